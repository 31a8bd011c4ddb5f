"""
Monitoring service, query facade and command interface
"""

from sitewatch.service.query import QueryService
from sitewatch.service.monitor import MonitoringService
from sitewatch.service.commands import CommandRouter, CommandResult

__all__ = [
    'QueryService',
    'MonitoringService',
    'CommandRouter',
    'CommandResult'
]
