"""Sitewatch - Synthetic fleet error feed with a bounded event store"""

__version__ = "0.1.0"

from sitewatch.core.models import ErrorRecord, ErrorStatistics
from sitewatch.core.config import MonitorConfig
from sitewatch.core.generator import EventGenerator
from sitewatch.core.scheduler import MonitoringScheduler
from sitewatch.persistence import EventStore, InMemoryEventStore, SQLiteEventStore
from sitewatch.service import CommandRouter, MonitoringService, QueryService

__all__ = [
    "ErrorRecord",
    "ErrorStatistics",
    "MonitorConfig",
    "EventGenerator",
    "MonitoringScheduler",
    "EventStore",
    "InMemoryEventStore",
    "SQLiteEventStore",
    "CommandRouter",
    "MonitoringService",
    "QueryService",
]
