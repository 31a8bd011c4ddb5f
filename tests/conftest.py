"""
Global pytest configuration and fixtures for Sitewatch tests
"""

import pytest
import logging
import random
import sys
from pathlib import Path

# Add the src directory to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from sitewatch.alerts.sinks import AlertSink
from sitewatch.core.generator import EventGenerator
from sitewatch.core.models import ErrorRecord
from sitewatch.core.scheduler import MonitoringScheduler
from sitewatch.persistence.memory_backend import InMemoryEventStore
from sitewatch.persistence.sqlite_backend import SQLiteEventStore

# Configure logging for tests
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

# Suppress noisy logs during testing
logging.getLogger('aiosqlite').setLevel(logging.WARNING)
logging.getLogger('aiohttp').setLevel(logging.WARNING)

BASE_TIME_MS = 1_760_000_000_000


class FixedClock:
    """Millisecond clock that only moves when told to"""

    def __init__(self, now: int = BASE_TIME_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


class RecordingAlertSink(AlertSink):
    """Alert sink that remembers every record and can be told to fail"""

    def __init__(self, fail_with: Exception = None):
        self.records = []
        self.fail_with = fail_with
        self.closed = False

    async def notify(self, record: ErrorRecord) -> None:
        self.records.append(record)
        if self.fail_with is not None:
            raise self.fail_with

    async def close(self) -> None:
        self.closed = True


def make_record(title: str = "Database connection failed", timestamp: int = BASE_TIME_MS,
                site: str = "Busan Branch", error_code: str = "ERR_042") -> ErrorRecord:
    return ErrorRecord(error_code=error_code, title=title, timestamp=timestamp, site=site)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep developer environment variables out of configuration under test"""
    for key in ('SITEWATCH_DB_PATH', 'SITEWATCH_CAPACITY', 'SITEWATCH_INTERVAL',
                'SITEWATCH_RECENT_LIMIT', 'SITEWATCH_ALERT_SINK', 'SITEWATCH_WEBHOOK_URL',
                'LOG_LEVEL'):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def reset_active_scheduler():
    """Make sure no scheduler is left registered as the process-wide runner"""
    yield
    MonitoringScheduler._active = None


@pytest.fixture
def temp_dir(tmp_path):
    """Provide a temporary directory for test files"""
    return tmp_path


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "server_errors.db")


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
async def sqlite_store(db_path, clock):
    store = SQLiteEventStore(db_path=db_path, clock=clock)
    await store.initialize()
    yield store
    await store.shutdown()


@pytest.fixture
async def memory_store(clock):
    store = InMemoryEventStore(clock=clock)
    await store.initialize()
    yield store
    await store.shutdown()


@pytest.fixture
def generator(clock):
    return EventGenerator(rng=random.Random(1234), clock=clock)


@pytest.fixture
def alert_sink():
    return RecordingAlertSink()
