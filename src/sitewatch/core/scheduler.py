"""
Monitoring scheduler - periodic generation of synthetic error records

Each tick generates one record, stores it and hands it to the alert sink.
The first tick fires as soon as the scheduler starts; later ticks follow
every ``interval`` seconds until stop() is called.
"""

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from sitewatch.alerts.sinks import AlertSink, NullAlertSink
from sitewatch.core.errors import AlertDeliveryFailed
from sitewatch.core.generator import EventGenerator
from sitewatch.core.models import ErrorRecord
from sitewatch.persistence.base import EventStore

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 30 * 60


class SchedulerState(Enum):
    """Scheduler lifecycle states"""
    IDLE = "idle"
    RUNNING = "running"


class MonitoringScheduler:
    """
    Drives the generator on a fixed interval

    Only one scheduler runs per process. start() on a running scheduler is a
    no-op, and starting a second scheduler while another one runs is refused.
    Ticks never overlap; a failing tick is logged and the cadence continues.
    """

    _active: Optional['MonitoringScheduler'] = None

    def __init__(
        self,
        generator: EventGenerator,
        store: EventStore,
        alert_sink: Optional[AlertSink] = None,
        interval: float = DEFAULT_INTERVAL_SECONDS
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")

        self.generator = generator
        self.store = store
        self.alert_sink = alert_sink or NullAlertSink()
        self.interval = interval

        # State
        self.state = SchedulerState.IDLE
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._tick_lock = asyncio.Lock()

        # Metrics
        self.stats = {
            "ticks": 0,
            "records_inserted": 0,
            "tick_failures": 0,
            "alert_failures": 0,
        }
        self.started_at: Optional[datetime] = None
        self.last_tick_at: Optional[datetime] = None
        self.last_record: Optional[ErrorRecord] = None

    @property
    def running(self) -> bool:
        return self.state is SchedulerState.RUNNING

    async def start(self) -> bool:
        """Start periodic generation; returns False if nothing was started"""
        if self.running:
            logger.debug("Scheduler already running, start ignored")
            return False

        active = MonitoringScheduler._active
        if active is not None and active is not self and active.running:
            logger.warning("Another monitoring scheduler is already running in this process")
            return False

        self._stop_event = asyncio.Event()
        self.state = SchedulerState.RUNNING
        self.started_at = datetime.utcnow()
        MonitoringScheduler._active = self

        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"🚀 Monitoring scheduler started (interval {self.interval:g}s)")
        return True

    async def stop(self) -> None:
        """Stop the scheduler; no tick starts after this returns"""
        task = self._task
        if task is None:
            return

        self._stop_event.set()

        # An in-flight tick completes; the loop then exits instead of sleeping
        if task is not asyncio.current_task():
            try:
                await task
            except asyncio.CancelledError:
                pass

        self._task = None
        self._mark_idle()
        logger.info("Monitoring scheduler stopped")

    def _mark_idle(self) -> None:
        self.state = SchedulerState.IDLE
        if MonitoringScheduler._active is self:
            MonitoringScheduler._active = None

    async def _run_loop(self) -> None:
        # A restart replaces self._stop_event; this loop keeps answering to its own
        stop_event = self._stop_event
        try:
            while not stop_event.is_set():
                await self.tick()

                if stop_event.is_set():
                    break

                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=self.interval)
                except asyncio.TimeoutError:
                    pass
        finally:
            # Leave the state alone if a newer loop has taken over
            if self._task is None or self._task is asyncio.current_task():
                self._mark_idle()

    async def tick(self) -> Optional[ErrorRecord]:
        """Generate, store and alert one record; returns the stored record"""
        async with self._tick_lock:
            self.stats["ticks"] += 1
            self.last_tick_at = datetime.utcnow()

            try:
                record = self.generator.next()
                record_id = await self.store.insert(record)
            except Exception as e:
                self.stats["tick_failures"] += 1
                logger.error(f"Tick failed, no error record stored: {e}")
                return None

            record = record.model_copy(update={'id': record_id})
            self.stats["records_inserted"] += 1
            self.last_record = record

            # The insert has committed; alert failures only get reported
            await self._deliver_alert(record)
            return record

    async def _deliver_alert(self, record: ErrorRecord) -> None:
        try:
            await self.alert_sink.notify(record)
        except AlertDeliveryFailed as e:
            self.stats["alert_failures"] += 1
            logger.warning(f"❌ Alert not delivered for {record.error_code}: {e}")
        except Exception as e:
            self.stats["alert_failures"] += 1
            logger.error(f"❌ Alert sink error for {record.error_code}: {e}")

    def get_status(self) -> Dict[str, Any]:
        """Scheduler state and counters"""
        return {
            "state": self.state.value,
            "interval_seconds": self.interval,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "last_tick_at": self.last_tick_at.isoformat() if self.last_tick_at else None,
            "last_error_code": self.last_record.error_code if self.last_record else None,
            **self.stats
        }
