"""
Command interface consumed by the presentation layer

Commands are addressed by name and take a mapping of arguments. Every call
returns a CommandResult and never raises. Malformed input and unknown
commands come back as structured errors. Storage failures on read commands
are logged and answered with an empty result, so the presentation layer
keeps rendering. Write commands report them as errors.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel

from sitewatch.core.errors import CommandNotImplemented, InvalidArgument, SitewatchError
from sitewatch.core.models import ErrorStatistics
from sitewatch.service.monitor import MonitoringService
from sitewatch.service.query import QueryService

logger = logging.getLogger(__name__)

START_MONITORING = "start-monitoring"
LIST_RECENT_ERRORS = "list-recent-errors"
LIST_ALL_ERRORS_FOR_STATS = "list-all-errors-for-stats"
GET_ERROR_STATISTICS = "get-error-statistics"
HIDE_ERROR = "hide-error"


class CommandResult(BaseModel):
    """Outcome of a single command"""
    ok: bool
    value: Any = None
    error_code: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def success(cls, value: Any) -> 'CommandResult':
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: SitewatchError) -> 'CommandResult':
        return cls(
            ok=False,
            error_code=error.wire_code,
            message=error.custom_message or error.definition.message
        )


Handler = Callable[[Dict[str, Any]], Awaitable[Any]]


class CommandRouter:
    """Dispatches named commands to the monitoring service and query facade"""

    def __init__(self, query: QueryService, monitor: Optional[MonitoringService] = None):
        self.query = query
        self.monitor = monitor

        self._handlers: Dict[str, Handler] = {
            START_MONITORING: self._start_monitoring,
            LIST_RECENT_ERRORS: self._list_recent_errors,
            LIST_ALL_ERRORS_FOR_STATS: self._list_all_errors_for_stats,
            GET_ERROR_STATISTICS: self._get_error_statistics,
            HIDE_ERROR: self._hide_error,
        }

        # Read commands answer with these when the store is unavailable
        self._degraded: Dict[str, Callable[[], Any]] = {
            LIST_RECENT_ERRORS: list,
            LIST_ALL_ERRORS_FOR_STATS: list,
            GET_ERROR_STATISTICS: lambda: ErrorStatistics().to_wire(),
        }

    @classmethod
    def for_service(cls, monitor: MonitoringService) -> 'CommandRouter':
        return cls(monitor.query, monitor)

    @property
    def commands(self) -> List[str]:
        return sorted(self._handlers)

    async def dispatch(self, command: str, arguments: Optional[Dict[str, Any]] = None) -> CommandResult:
        """Run a command and wrap its outcome"""
        handler = self._handlers.get(command)
        if handler is None:
            logger.warning(f"Unknown command: {command}")
            return CommandResult.failure(
                CommandNotImplemented(f"Command '{command}' is not implemented", context={'command': command})
            )

        try:
            value = await handler(arguments or {})
        except InvalidArgument as e:
            logger.info(f"Rejected {command}: {e}")
            return CommandResult.failure(e)
        except SitewatchError as e:
            logger.error(f"Command {command} failed: {e}")
            degraded = self._degraded.get(command)
            if degraded is not None:
                return CommandResult.success(degraded())
            return CommandResult.failure(e)

        return CommandResult.success(value)

    async def _start_monitoring(self, arguments: Dict[str, Any]) -> str:
        if self.monitor is None:
            raise CommandNotImplemented("No monitoring service attached", context={'command': START_MONITORING})
        return await self.monitor.start()

    async def _list_recent_errors(self, arguments: Dict[str, Any]) -> List[Dict[str, Any]]:
        records = await self.query.recent_visible()
        return [record.to_wire() for record in records]

    async def _list_all_errors_for_stats(self, arguments: Dict[str, Any]) -> List[Dict[str, Any]]:
        records = await self.query.all_for_stats()
        return [record.to_wire() for record in records]

    async def _get_error_statistics(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        stats = await self.query.statistics()
        return stats.to_wire()

    async def _hide_error(self, arguments: Dict[str, Any]) -> str:
        await self.query.hide(arguments)
        return "Error hidden"
