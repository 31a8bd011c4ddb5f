"""
Configuration management for Sitewatch

Provides file and environment based configuration with sensible defaults.
Values are resolved in order: dataclass defaults, YAML config file,
environment variables.
"""

import os
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional, Dict, Any, List

import yaml

from sitewatch.core.catalogs import (
    DEFAULT_MESSAGES,
    DEFAULT_SEVERITY,
    DEFAULT_SITES,
    HEADQUARTERS_SITE,
    LEGACY_HEADQUARTERS_SITE,
)
from sitewatch.core.errors import ConfigurationError, EmptyCatalog

DEFAULT_CONFIG_FILE = Path.home() / '.sitewatch' / 'config.yaml'
DEFAULT_DB_PATH = str(Path.home() / '.sitewatch' / 'server_errors.db')

ALERT_SINKS = ('log', 'webhook', 'none')


@dataclass
class MonitorConfig:
    """Configuration for the monitoring service"""

    # Storage
    db_path: str = DEFAULT_DB_PATH
    capacity: int = 5000

    # Scheduling (reference deployment: 30 minutes, earlier revision: 1 minute)
    interval_seconds: float = 1800.0

    # Query defaults
    recent_limit: int = 20

    # Generation catalogs
    messages: List[str] = field(default_factory=lambda: list(DEFAULT_MESSAGES))
    sites: List[str] = field(default_factory=lambda: list(DEFAULT_SITES))
    headquarters_site: str = HEADQUARTERS_SITE
    legacy_headquarters_site: str = LEGACY_HEADQUARTERS_SITE
    severity: str = DEFAULT_SEVERITY

    # Alerting
    alert_sink: str = 'log'
    webhook_url: Optional[str] = None
    webhook_timeout: float = 10.0

    # Logging
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    def __post_init__(self):
        """Load configuration from environment variables"""

        # Storage
        self.db_path = os.getenv('SITEWATCH_DB_PATH', self.db_path)
        self.capacity = int(os.getenv('SITEWATCH_CAPACITY', str(self.capacity)))

        # Scheduling
        self.interval_seconds = float(os.getenv('SITEWATCH_INTERVAL', str(self.interval_seconds)))

        # Query defaults
        self.recent_limit = int(os.getenv('SITEWATCH_RECENT_LIMIT', str(self.recent_limit)))

        # Alerting
        self.alert_sink = os.getenv('SITEWATCH_ALERT_SINK', self.alert_sink)
        self.webhook_url = os.getenv('SITEWATCH_WEBHOOK_URL', self.webhook_url)

        # Logging
        self.log_level = os.getenv('LOG_LEVEL', self.log_level)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary"""
        return {
            'db_path': self.db_path,
            'capacity': self.capacity,
            'interval_seconds': self.interval_seconds,
            'recent_limit': self.recent_limit,
            'messages': list(self.messages),
            'sites': list(self.sites),
            'headquarters_site': self.headquarters_site,
            'legacy_headquarters_site': self.legacy_headquarters_site,
            'severity': self.severity,
            'alert_sink': self.alert_sink,
            'webhook_url': self.webhook_url,
            'webhook_timeout': self.webhook_timeout,
            'log_level': self.log_level,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MonitorConfig':
        """Create configuration from dictionary"""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration keys: {', '.join(unknown)}",
                context={'keys': unknown}
            )
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: Optional[Path] = None) -> 'MonitorConfig':
        """Load configuration from a YAML file, falling back to defaults if missing"""
        config_file = Path(path) if path else DEFAULT_CONFIG_FILE
        if not config_file.exists():
            return cls()

        with open(config_file, 'r') as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Config file must contain a mapping: {config_file}",
                context={'path': str(config_file)}
            )
        return cls.from_dict(data)

    def validate(self) -> bool:
        """Validate configuration"""
        if not self.messages:
            raise EmptyCatalog("Message catalog is empty", context={'catalog': 'messages'})

        if not self.sites:
            raise EmptyCatalog("Site catalog is empty", context={'catalog': 'sites'})

        if not self.db_path:
            raise ConfigurationError("db_path is required")

        if self.capacity <= 0:
            raise ConfigurationError("capacity must be positive", context={'capacity': self.capacity})

        if self.interval_seconds <= 0:
            raise ConfigurationError(
                "interval_seconds must be positive",
                context={'interval_seconds': self.interval_seconds}
            )

        if self.recent_limit <= 0:
            raise ConfigurationError("recent_limit must be positive", context={'recent_limit': self.recent_limit})

        if self.alert_sink not in ALERT_SINKS:
            raise ConfigurationError(
                f"alert_sink must be one of {', '.join(ALERT_SINKS)}",
                context={'alert_sink': self.alert_sink}
            )

        if self.alert_sink == 'webhook' and not self.webhook_url:
            raise ConfigurationError("webhook_url is required for the webhook alert sink")

        return True


def setup_logging(config: MonitorConfig, level: Optional[str] = None):
    """Setup logging based on configuration"""
    log_level = (level or config.log_level).upper()

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format=config.log_format
    )

    # Set specific loggers to appropriate levels
    logging.getLogger('aiosqlite').setLevel(logging.WARNING)
    logging.getLogger('aiohttp').setLevel(logging.WARNING)

    if log_level == 'DEBUG':
        logging.getLogger('sitewatch').setLevel(logging.DEBUG)
