"""
Core - Runtime infrastructure.

- config/      - Settings and factory functions
- interfaces/  - Protocols for the transport and the state store
- cache/       - In-process expiring cache
- connectors/  - State store implementations (Memory, Redis, SQLite)
- monitoring/  - Prometheus metrics
"""
