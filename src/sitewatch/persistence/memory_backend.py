"""
In-memory event store for tests and ephemeral runs
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional

from sitewatch.core.models import DAY_MS, ErrorRecord, ErrorStatistics, ErrorTypeCount, now_ms
from sitewatch.persistence.base import DEFAULT_CAPACITY, DEFAULT_RECENT_LIMIT, EventStore, check_page

logger = logging.getLogger(__name__)


def _newest_first(record: ErrorRecord):
    return (-record.timestamp, -record.id)


class InMemoryEventStore(EventStore):
    """Dict-backed event store with the same semantics as the SQLite store"""

    def __init__(self, capacity: int = DEFAULT_CAPACITY, clock: Optional[Callable[[], int]] = None):
        self.capacity = capacity
        self.clock = clock or now_ms
        self._records: Dict[int, ErrorRecord] = {}
        self._last_id = 0
        self._write_lock = asyncio.Lock()
        self._initialized = False

    async def initialize(self) -> None:
        self._initialized = True
        logger.info("In-memory event store initialized")

    async def shutdown(self) -> None:
        self._initialized = False

    async def insert(self, record: ErrorRecord) -> int:
        async with self._write_lock:
            self._last_id += 1
            stored = record.model_copy(update={'id': self._last_id, 'is_hidden': False})
            self._records[stored.id] = stored

            # Evict oldest by timestamp, lower id first on ties
            while len(self._records) > self.capacity:
                oldest = min(self._records.values(), key=lambda r: (r.timestamp, r.id))
                del self._records[oldest.id]
                logger.debug(f"Evicted record {oldest.id} (capacity {self.capacity})")

            logger.debug(f"Stored {stored.error_code} - {stored.title} [{stored.site}] as {stored.id}")
            return stored.id

    async def hide(self, record_id: int) -> None:
        async with self._write_lock:
            record = self._records.get(record_id)
            if record is not None:
                self._records[record_id] = record.model_copy(update={'is_hidden': True})

    async def list_visible(
        self,
        limit: int = DEFAULT_RECENT_LIMIT,
        offset: int = 0,
        site: Optional[str] = None
    ) -> List[ErrorRecord]:
        check_page(limit, offset)
        visible = [
            r for r in self._records.values()
            if not r.is_hidden and (site is None or r.site == site)
        ]
        visible.sort(key=_newest_first)
        return visible[offset:offset + limit]

    async def list_all(self) -> List[ErrorRecord]:
        return sorted(self._records.values(), key=_newest_first)

    async def aggregate(self, now_ms: Optional[int] = None) -> ErrorStatistics:
        now = self.clock() if now_ms is None else now_ms
        cutoff = now - DAY_MS
        records = sorted(self._records.values(), key=lambda r: r.id)

        # dicts keep first-seen order, sort() is stable
        counts: Dict[str, int] = {}
        for record in records:
            counts[record.title] = counts.get(record.title, 0) + 1
        breakdown = sorted(counts.items(), key=lambda item: -item[1])

        total = len(records)
        visible = sum(1 for r in records if not r.is_hidden)
        return ErrorStatistics(
            total=total,
            visible=visible,
            hidden=total - visible,
            recent_24h=sum(1 for r in records if r.timestamp > cutoff),
            error_types=[ErrorTypeCount(title=title, count=count) for title, count in breakdown]
        )

    async def count(self) -> int:
        return len(self._records)
