"""Monitoring and metrics collection."""

from .metrics import (
    # Decorators
    track_duration,

    # Helper functions
    record_cache_hit,
    record_cache_miss,
    record_eviction,
    record_rehydration,
    record_commit,
    record_event,

    # Metrics
    view_cache_operations_total,
    view_cache_entries,
    view_rehydrations_total,
    view_commits_total,
    view_commit_duration_seconds,
    view_events_total,
)

__all__ = [
    'track_duration',
    'record_cache_hit',
    'record_cache_miss',
    'record_eviction',
    'record_rehydration',
    'record_commit',
    'record_event',
    'view_cache_operations_total',
    'view_cache_entries',
    'view_rehydrations_total',
    'view_commits_total',
    'view_commit_duration_seconds',
    'view_events_total',
]
