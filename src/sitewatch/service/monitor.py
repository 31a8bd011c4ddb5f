"""
Monitoring service - wires configuration to store, generator, alert sink and scheduler
"""

import asyncio
import logging
import signal
from typing import Any, Dict, Optional

from sitewatch.alerts.sinks import AlertSink, build_alert_sink
from sitewatch.core.config import MonitorConfig
from sitewatch.core.generator import EventGenerator
from sitewatch.core.scheduler import MonitoringScheduler
from sitewatch.persistence.base import EventStore
from sitewatch.persistence.sqlite_backend import SQLiteEventStore
from sitewatch.service.query import QueryService

logger = logging.getLogger(__name__)

STATUS_STARTED = "Background service started"
STATUS_ALREADY_RUNNING = "Background service already running"


class MonitoringService:
    """
    Background monitoring process

    Owns the single scheduler of the process and the event store it writes
    to. Collaborators can be injected; otherwise they are built from the
    configuration.
    """

    def __init__(
        self,
        config: Optional[MonitorConfig] = None,
        store: Optional[EventStore] = None,
        generator: Optional[EventGenerator] = None,
        alert_sink: Optional[AlertSink] = None
    ):
        self.config = config or MonitorConfig()
        self.config.validate()

        self.store = store or SQLiteEventStore(
            db_path=self.config.db_path,
            capacity=self.config.capacity,
            headquarters_site=self.config.headquarters_site,
            legacy_headquarters_site=self.config.legacy_headquarters_site
        )
        self.generator = generator or EventGenerator(
            messages=self.config.messages,
            sites=self.config.sites,
            severity=self.config.severity
        )
        self.alert_sink = alert_sink or build_alert_sink(self.config)
        self.scheduler = MonitoringScheduler(
            generator=self.generator,
            store=self.store,
            alert_sink=self.alert_sink,
            interval=self.config.interval_seconds
        )
        self.query = QueryService(self.store, recent_limit=self.config.recent_limit)

        self._initialized = False
        self._shutdown_event: Optional[asyncio.Event] = None

    async def initialize(self) -> None:
        """Open the event store (runs schema migrations)"""
        if self._initialized:
            return
        await self.store.initialize()
        self._initialized = True

    async def start(self) -> str:
        """Start background monitoring; idempotent"""
        await self.initialize()
        started = await self.scheduler.start()
        return STATUS_STARTED if started else STATUS_ALREADY_RUNNING

    async def stop(self) -> None:
        """Stop generating records"""
        await self.scheduler.stop()
        if self._shutdown_event:
            self._shutdown_event.set()

    async def shutdown(self) -> None:
        """Stop and release the alert sink and the store"""
        await self.stop()
        await self.alert_sink.close()
        if self._initialized:
            await self.store.shutdown()
            self._initialized = False

    async def run_forever(self) -> None:
        """Run until SIGINT/SIGTERM or stop()"""
        self._shutdown_event = asyncio.Event()
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self._shutdown_event.set)
            except (NotImplementedError, RuntimeError):
                # Signal handlers are unavailable off the main thread and on Windows
                pass

        try:
            logger.info(await self.start())
            await self._shutdown_event.wait()
        finally:
            for sig in (signal.SIGINT, signal.SIGTERM):
                try:
                    loop.remove_signal_handler(sig)
                except (NotImplementedError, RuntimeError):
                    pass
            await self.shutdown()

    def get_status(self) -> Dict[str, Any]:
        return {
            'db_path': self.config.db_path,
            'capacity': self.config.capacity,
            'alert_sink': self.config.alert_sink,
            'scheduler': self.scheduler.get_status()
        }
