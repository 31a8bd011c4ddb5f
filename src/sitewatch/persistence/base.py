"""
Event store interface

Durable, capacity-bounded collection of error records with visibility state
and read-side aggregate queries.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from sitewatch.core.errors import InvalidArgument
from sitewatch.core.models import ErrorRecord, ErrorStatistics

DEFAULT_CAPACITY = 5000
DEFAULT_RECENT_LIMIT = 20


def check_page(limit: int, offset: int) -> None:
    """Reject paging values the backends would interpret differently"""
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise InvalidArgument("limit must be a positive integer", context={'limit': limit})
    if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
        raise InvalidArgument("offset must be a non-negative integer", context={'offset': offset})


class EventStore(ABC):
    """Abstract interface for event store backends"""

    capacity: int = DEFAULT_CAPACITY

    @abstractmethod
    async def initialize(self) -> None:
        """Open the backend and bring its schema up to date"""
        pass

    @abstractmethod
    async def shutdown(self) -> None:
        """Release backend resources"""
        pass

    @abstractmethod
    async def insert(self, record: ErrorRecord) -> int:
        """Persist a record as visible, evict beyond capacity, return its new id"""
        pass

    @abstractmethod
    async def hide(self, record_id: int) -> None:
        """Mark a record hidden; unknown ids are ignored"""
        pass

    @abstractmethod
    async def list_visible(
        self,
        limit: int = DEFAULT_RECENT_LIMIT,
        offset: int = 0,
        site: Optional[str] = None
    ) -> List[ErrorRecord]:
        """Visible records, newest first"""
        pass

    @abstractmethod
    async def list_all(self) -> List[ErrorRecord]:
        """Every record regardless of visibility, newest first"""
        pass

    @abstractmethod
    async def aggregate(self, now_ms: Optional[int] = None) -> ErrorStatistics:
        """Counts and per-title breakdown over every record"""
        pass

    @abstractmethod
    async def count(self) -> int:
        """Number of stored records"""
        pass

    async def __aenter__(self) -> 'EventStore':
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()
