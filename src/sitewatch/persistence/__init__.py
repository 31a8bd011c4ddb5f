"""
Event store backends
"""

from sitewatch.persistence.base import DEFAULT_CAPACITY, DEFAULT_RECENT_LIMIT, EventStore
from sitewatch.persistence.memory_backend import InMemoryEventStore
from sitewatch.persistence.sqlite_backend import SCHEMA_VERSION, SQLiteEventStore

__all__ = [
    'EventStore',
    'InMemoryEventStore',
    'SQLiteEventStore',
    'SCHEMA_VERSION',
    'DEFAULT_CAPACITY',
    'DEFAULT_RECENT_LIMIT',
]
