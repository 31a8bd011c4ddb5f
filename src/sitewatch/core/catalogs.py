"""
Default generation catalogs for the reference deployment
"""

from typing import Tuple

HEADQUARTERS_SITE = "Seoul HQ"

# Label written by schema version 3 and earlier; migrated to HEADQUARTERS_SITE
LEGACY_HEADQUARTERS_SITE = "HQ"

DEFAULT_SEVERITY = "Error"

DEFAULT_MESSAGES: Tuple[str, ...] = (
    "CPU usage above 95%",
    "Database connection failed",
    "Out of memory (threshold exceeded)",
    "API response timeout",
    "Low disk space",
    "Unstable network connection",
    "SSL certificate expiring soon",
    "Redis cache error",
    "Load balancer not responding",
    "Background job failed",
)

DEFAULT_SITES: Tuple[str, ...] = (
    HEADQUARTERS_SITE,
    "Busan Branch",
    "Daegu Branch",
    "Incheon Branch",
    "Gwangju Branch",
    "Daejeon Branch",
    "Ulsan Branch",
    "Jeju Branch",
)
