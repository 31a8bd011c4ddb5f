"""
Read-side facade used by the command interface
"""

import logging
from typing import Any, Dict, List, Optional

from sitewatch.core.errors import InvalidArgument
from sitewatch.core.models import ErrorRecord, ErrorStatistics
from sitewatch.persistence.base import DEFAULT_RECENT_LIMIT, EventStore

logger = logging.getLogger(__name__)

MAX_RECORD_ID = 2 ** 63 - 1


class QueryService:
    """Listing, statistics and hide requests against an event store"""

    def __init__(self, store: EventStore, recent_limit: int = DEFAULT_RECENT_LIMIT):
        self.store = store
        self.recent_limit = recent_limit

    async def recent_visible(
        self,
        limit: Optional[int] = None,
        offset: int = 0,
        site: Optional[str] = None
    ) -> List[ErrorRecord]:
        """Most recent visible records (20 by default)"""
        limit = self.recent_limit if limit is None else limit
        records = await self.store.list_visible(limit, offset=offset, site=site)
        logger.info(f"📊 {len(records)} errors loaded (hidden excluded)")
        return records

    async def all_for_stats(self) -> List[ErrorRecord]:
        """Every stored record, hidden ones included"""
        records = await self.store.list_all()
        logger.info(f"📊 {len(records)} errors loaded for statistics (all records)")
        return records

    async def statistics(self) -> ErrorStatistics:
        stats = await self.store.aggregate()
        logger.info(
            f"📊 Statistics: {stats.total} total, {stats.recent_24h} in 24h, "
            f"{len(stats.error_types)} types"
        )
        return stats

    async def hide(self, arguments: Optional[Dict[str, Any]]) -> None:
        """Hide the record named by ``arguments['errorId']``"""
        error_id = parse_error_id(arguments)
        await self.store.hide(error_id)


def parse_error_id(arguments: Optional[Dict[str, Any]]) -> int:
    """Extract an integer errorId from command arguments"""
    if not arguments or 'errorId' not in arguments or arguments['errorId'] is None:
        raise InvalidArgument("Error ID is required", context={'argument': 'errorId'})

    error_id = arguments['errorId']
    # bool is an int subclass but never a valid id
    if isinstance(error_id, bool) or not isinstance(error_id, int):
        raise InvalidArgument(
            "Error ID must be an integer",
            context={'argument': 'errorId', 'type': type(error_id).__name__}
        )
    # Store ids are positive SQLite INTEGERs
    if not 0 < error_id <= MAX_RECORD_ID:
        raise InvalidArgument(
            "Error ID is out of range",
            context={'argument': 'errorId', 'value': error_id}
        )
    return error_id
