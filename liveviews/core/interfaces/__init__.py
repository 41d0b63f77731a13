"""
Interfaces - Protocols for Dependency Injection.

Example:
    runtime = ViewRuntime(connector=my_connector, store=my_store)
    # Works with any implementation of the protocols
"""

from .store_protocol import StateStoreProtocol, PersistedRecord
from .connector_protocol import ConnectorProtocol

__all__ = [
    'StateStoreProtocol',
    'PersistedRecord',
    'ConnectorProtocol',
]
