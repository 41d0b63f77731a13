"""
Runtime metrics collection using Prometheus.

Tracks:
- View cache hits/misses and evictions
- Rehydrations from the state store (and their outcome)
- Commits to the remote service by path
- Dispatched component events
"""

from prometheus_client import Counter, Histogram, Gauge
import time
from functools import wraps
from typing import Callable, Any

# =============================================================================
# Cache Metrics
# =============================================================================

view_cache_operations_total = Counter(
    'liveviews_cache_operations_total',
    'View cache operations',
    ['operation', 'result']  # get/hit, get/miss, evict/expired, evict/deleted
)

view_cache_entries = Gauge(
    'liveviews_cache_entries',
    'Views currently held in memory'
)

# =============================================================================
# Lifecycle Metrics
# =============================================================================

view_rehydrations_total = Counter(
    'liveviews_rehydrations_total',
    'Views rebuilt from the state store',
    ['outcome']  # ok, missing, unknown_type, obsolete, stale
)

view_commits_total = Counter(
    'liveviews_commits_total',
    'Rendered views committed to the remote service',
    ['path']  # send, reply, interaction_update, interaction_edit, direct_edit
)

view_commit_duration_seconds = Histogram(
    'liveviews_commit_duration_seconds',
    'Time spent rendering and committing a view update',
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)

view_events_total = Counter(
    'liveviews_events_total',
    'Component events received by the runtime',
    ['result']  # handled, dropped, stale
)

# =============================================================================
# Decorators for Automatic Metrics
# =============================================================================

def track_duration(metric: Histogram, labels: dict = None):
    """
    Decorator to track coroutine execution duration.

    Usage:
        @track_duration(view_commit_duration_seconds)
        async def update_view(self, view, new_state):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            start_time = time.perf_counter()
            try:
                return await func(*args, **kwargs)
            finally:
                duration = time.perf_counter() - start_time
                if labels:
                    metric.labels(**labels).observe(duration)
                else:
                    metric.observe(duration)
        return wrapper
    return decorator


# =============================================================================
# Helper Functions
# =============================================================================

def record_cache_hit():
    """Record a view cache hit."""
    view_cache_operations_total.labels(operation='get', result='hit').inc()


def record_cache_miss():
    """Record a view cache miss."""
    view_cache_operations_total.labels(operation='get', result='miss').inc()


def record_eviction(reason: str):
    """Record a view leaving the cache (expired or deleted)."""
    view_cache_operations_total.labels(operation='evict', result=reason).inc()


def record_rehydration(outcome: str):
    """Record the outcome of a rehydration attempt."""
    view_rehydrations_total.labels(outcome=outcome).inc()


def record_commit(path: str):
    """Record a committed render."""
    view_commits_total.labels(path=path).inc()


def record_event(result: str):
    """Record a component event."""
    view_events_total.labels(result=result).inc()
