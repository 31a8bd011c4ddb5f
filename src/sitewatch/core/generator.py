"""
Synthetic error event generator
"""

import logging
import random
from typing import Callable, Optional, Sequence

from sitewatch.core.catalogs import DEFAULT_MESSAGES, DEFAULT_SEVERITY, DEFAULT_SITES
from sitewatch.core.errors import EmptyCatalog
from sitewatch.core.models import ErrorRecord, now_ms

logger = logging.getLogger(__name__)

# Codes are drawn from 0..998 inclusive
ERROR_CODE_SPACE = 999


def format_error_code(value: int) -> str:
    """Render a code number as ERR_NNN"""
    return f"ERR_{value:03d}"


class EventGenerator:
    """
    Produces one synthetic ErrorRecord per call

    Message and site are chosen uniformly from fixed catalogs. Pass a seeded
    ``random.Random`` and a fixed clock for reproducible output.
    """

    def __init__(
        self,
        messages: Sequence[str] = DEFAULT_MESSAGES,
        sites: Sequence[str] = DEFAULT_SITES,
        severity: str = DEFAULT_SEVERITY,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], int]] = None
    ):
        if not messages:
            raise EmptyCatalog("Message catalog is empty", context={'catalog': 'messages'})
        if not sites:
            raise EmptyCatalog("Site catalog is empty", context={'catalog': 'sites'})

        self.messages = tuple(messages)
        self.sites = tuple(sites)
        self.severity = severity
        self.rng = rng or random.Random()
        self.clock = clock or now_ms

    def next(self) -> ErrorRecord:
        """Generate the next synthetic error record"""
        record = ErrorRecord(
            error_code=format_error_code(self.rng.randrange(ERROR_CODE_SPACE)),
            title=self.rng.choice(self.messages),
            timestamp=self.clock(),
            severity=self.severity,
            site=self.rng.choice(self.sites),
            is_hidden=False
        )
        logger.debug(f"Generated {record.error_code} - {record.title} [{record.site}]")
        return record
