"""
Alert sinks - deliver a human-visible alert for each new error record

The scheduler treats every sink as fire-and-forget: a sink signals failure by
raising AlertDeliveryFailed, and the scheduler logs it without stopping.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

import aiohttp

from sitewatch.core.config import MonitorConfig
from sitewatch.core.errors import AlertDeliveryFailed, ConfigurationError
from sitewatch.core.models import ErrorRecord

logger = logging.getLogger(__name__)


def format_alert(record: ErrorRecord) -> Tuple[str, str]:
    """Alert title and body for a record"""
    title = f"[{record.site}] Server error: {record.error_code}"
    return title, record.title


class AlertSink(ABC):
    """Abstract interface for alert delivery"""

    @abstractmethod
    async def notify(self, record: ErrorRecord) -> None:
        """Deliver an alert for a newly stored record"""
        pass

    async def close(self) -> None:
        """Release delivery resources"""
        pass


class NullAlertSink(AlertSink):
    """Discards every alert"""

    async def notify(self, record: ErrorRecord) -> None:
        return None


class LogAlertSink(AlertSink):
    """Writes each alert as a log line"""

    def __init__(self, level: int = logging.WARNING):
        self.level = level

    async def notify(self, record: ErrorRecord) -> None:
        title, body = format_alert(record)
        logger.log(self.level, f"🚨 {title} - {body}")


class WebhookAlertSink(AlertSink):
    """POSTs each alert as JSON to a webhook endpoint"""

    def __init__(self, url: str, timeout: float = 10.0):
        self.url = url
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    def _payload(self, record: ErrorRecord) -> Dict[str, Any]:
        title, body = format_alert(record)
        return {
            'title': title,
            'body': body,
            'record': record.to_wire()
        }

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def notify(self, record: ErrorRecord) -> None:
        session = await self._get_session()
        try:
            async with session.post(self.url, json=self._payload(record)) as resp:
                if resp.status >= 300:
                    text = await resp.text()
                    raise AlertDeliveryFailed(
                        f"Webhook returned HTTP {resp.status}: {text[:200]}",
                        context={'url': self.url, 'record_id': record.id}
                    )
        except aiohttp.ClientError as e:
            raise AlertDeliveryFailed(
                f"Webhook delivery failed: {e}",
                context={'url': self.url, 'record_id': record.id},
                cause=e
            ) from e
        except asyncio.TimeoutError as e:
            raise AlertDeliveryFailed(
                f"Webhook timed out after {self.timeout}s",
                context={'url': self.url, 'record_id': record.id},
                cause=e
            ) from e

        logger.debug(f"Delivered alert for record {record.id} to {self.url}")

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None


def build_alert_sink(config: MonitorConfig) -> AlertSink:
    """Create the alert sink selected by configuration"""
    if config.alert_sink == 'log':
        return LogAlertSink()
    if config.alert_sink == 'none':
        return NullAlertSink()
    if config.alert_sink == 'webhook':
        if not config.webhook_url:
            raise ConfigurationError("webhook_url is required for the webhook alert sink")
        return WebhookAlertSink(config.webhook_url, timeout=config.webhook_timeout)
    raise ConfigurationError(
        f"Unknown alert sink: {config.alert_sink}",
        context={'alert_sink': config.alert_sink}
    )
