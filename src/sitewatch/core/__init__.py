"""
Core models, errors, configuration and generation for Sitewatch
"""

from sitewatch.core.models import ErrorRecord, ErrorStatistics, ErrorTypeCount
from sitewatch.core.errors import (
    SitewatchError,
    StorageUnavailable,
    SchemaMigrationFailed,
    InvalidArgument,
    EmptyCatalog,
    ConfigurationError,
    AlertDeliveryFailed
)
from sitewatch.core.config import MonitorConfig

__all__ = [
    'ErrorRecord',
    'ErrorStatistics',
    'ErrorTypeCount',
    'SitewatchError',
    'StorageUnavailable',
    'SchemaMigrationFailed',
    'InvalidArgument',
    'EmptyCatalog',
    'ConfigurationError',
    'AlertDeliveryFailed',
    'MonitorConfig'
]
