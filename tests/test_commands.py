"""
Test the command interface and the query facade behind it
"""

import asyncio
import pytest

from sitewatch.core.config import MonitorConfig
from sitewatch.persistence.memory_backend import InMemoryEventStore
from sitewatch.persistence.sqlite_backend import SQLiteEventStore
from sitewatch.service.commands import (
    CommandResult,
    CommandRouter,
    GET_ERROR_STATISTICS,
    HIDE_ERROR,
    LIST_ALL_ERRORS_FOR_STATS,
    LIST_RECENT_ERRORS,
    START_MONITORING,
)
from sitewatch.service.monitor import STATUS_ALREADY_RUNNING, STATUS_STARTED, MonitoringService
from sitewatch.service.query import QueryService, parse_error_id
from sitewatch.core.errors import InvalidArgument

from conftest import BASE_TIME_MS, make_record


@pytest.fixture
def router(memory_store):
    return CommandRouter(QueryService(memory_store))


@pytest.fixture
async def service(memory_store, generator, alert_sink, db_path):
    config = MonitorConfig(db_path=db_path, interval_seconds=60, alert_sink='none')
    monitor = MonitoringService(config, store=memory_store, generator=generator, alert_sink=alert_sink)
    yield monitor
    await monitor.shutdown()


class TestParseErrorId:
    """Test validation of the hide-error argument"""

    def test_accepts_integer(self):
        assert parse_error_id({'errorId': 5}) == 5
        assert parse_error_id({'errorId': 2 ** 63 - 1}) == 2 ** 63 - 1

    @pytest.mark.parametrize("arguments", [
        None,
        {},
        {'errorId': None},
        {'errorId': "5"},
        {'errorId': 5.0},
        {'errorId': True},
        {'id': 5},
        {'errorId': 0},
        {'errorId': -3},
        {'errorId': 2 ** 63},
        {'errorId': 2 ** 70},
    ])
    def test_rejects_malformed(self, arguments):
        with pytest.raises(InvalidArgument):
            parse_error_id(arguments)


class TestQueryService:
    """Test the read-side facade"""

    @pytest.mark.asyncio
    async def test_recent_visible_defaults_to_configured_limit(self, memory_store):
        for i in range(8):
            await memory_store.insert(make_record(timestamp=BASE_TIME_MS + i))

        query = QueryService(memory_store, recent_limit=5)
        assert len(await query.recent_visible()) == 5
        assert len(await query.recent_visible(limit=3)) == 3

    @pytest.mark.asyncio
    async def test_recent_visible_explicit_zero_limit_rejected(self, memory_store):
        """Test limit=0 is not mistaken for the default"""
        await memory_store.insert(make_record())

        with pytest.raises(InvalidArgument):
            await QueryService(memory_store).recent_visible(limit=0)


class TestCommandRouter:
    """Test dispatch of named commands"""

    @pytest.mark.asyncio
    async def test_list_recent_errors_wire_form(self, router, memory_store):
        """Test records come back with camelCase keys"""
        await memory_store.insert(make_record(title="API response timeout", error_code="ERR_500"))

        result = await router.dispatch(LIST_RECENT_ERRORS)
        assert result.ok
        assert result.value == [{
            'id': 1,
            'errorCode': "ERR_500",
            'title': "API response timeout",
            'timestamp': BASE_TIME_MS,
            'severity': "Error",
            'site': "Busan Branch",
            'isHidden': False,
        }]

    @pytest.mark.asyncio
    async def test_list_recent_errors_limit(self, router, memory_store):
        """Test the recent list caps at 20 records"""
        for i in range(30):
            await memory_store.insert(make_record(timestamp=BASE_TIME_MS + i))

        result = await router.dispatch(LIST_RECENT_ERRORS)
        assert len(result.value) == 20
        assert result.value[0]['timestamp'] == BASE_TIME_MS + 29

    @pytest.mark.asyncio
    async def test_hide_error(self, router, memory_store):
        """Test hide-error hides the record from the recent list only"""
        record_id = await memory_store.insert(make_record())

        result = await router.dispatch(HIDE_ERROR, {'errorId': record_id})
        assert result.ok
        assert result.value == "Error hidden"

        recent = await router.dispatch(LIST_RECENT_ERRORS)
        assert recent.value == []

        everything = await router.dispatch(LIST_ALL_ERRORS_FOR_STATS)
        assert len(everything.value) == 1
        assert everything.value[0]['isHidden'] is True

    @pytest.mark.asyncio
    async def test_hide_error_unknown_id_succeeds(self, router):
        result = await router.dispatch(HIDE_ERROR, {'errorId': 424242})
        assert result.ok

    @pytest.mark.asyncio
    async def test_hide_error_id_beyond_sqlite_range(self, sqlite_store):
        """Test an id too large for SQLite is rejected instead of raising"""
        await sqlite_store.insert(make_record())
        sqlite_router = CommandRouter(QueryService(sqlite_store))

        result = await sqlite_router.dispatch(HIDE_ERROR, {'errorId': 2 ** 70})
        assert not result.ok
        assert result.error_code == "INVALID_ARGUMENT"

        stats = await sqlite_router.dispatch(GET_ERROR_STATISTICS)
        assert stats.value['hiddenErrors'] == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("arguments", [None, {}, {'errorId': "abc"}])
    async def test_hide_error_invalid_argument(self, router, arguments):
        """Test malformed hide-error input is rejected with INVALID_ARGUMENT"""
        result = await router.dispatch(HIDE_ERROR, arguments)
        assert not result.ok
        assert result.error_code == "INVALID_ARGUMENT"
        assert result.message

    @pytest.mark.asyncio
    async def test_statistics(self, router, memory_store):
        """Test get-error-statistics shape and hidden records included"""
        await memory_store.insert(make_record(title="Low disk space"))
        hidden = await memory_store.insert(make_record(title="Low disk space"))
        await memory_store.insert(make_record(title="Redis cache error"))
        await router.dispatch(HIDE_ERROR, {'errorId': hidden})

        result = await router.dispatch(GET_ERROR_STATISTICS)
        assert result.ok
        assert result.value == {
            'totalErrors': 3,
            'visibleErrors': 2,
            'hiddenErrors': 1,
            'recentErrors24h': 3,
            'errorTypes': [
                {'title': "Low disk space", 'count': 2},
                {'title': "Redis cache error", 'count': 1},
            ],
        }

    @pytest.mark.asyncio
    async def test_unknown_command(self, router):
        result = await router.dispatch("drop-all-errors")
        assert not result.ok
        assert result.error_code == "NOT_IMPLEMENTED"

    @pytest.mark.asyncio
    async def test_start_monitoring_without_service(self, router):
        result = await router.dispatch(START_MONITORING)
        assert not result.ok
        assert result.error_code == "NOT_IMPLEMENTED"

    def test_command_names(self):
        router = CommandRouter(QueryService(InMemoryEventStore()))
        assert router.commands == sorted([
            START_MONITORING,
            LIST_RECENT_ERRORS,
            LIST_ALL_ERRORS_FOR_STATS,
            GET_ERROR_STATISTICS,
            HIDE_ERROR,
        ])


class TestStorageDegradation:
    """Test read commands keep answering when the store is unavailable"""

    @pytest.fixture
    def broken_router(self, db_path):
        # Never initialized, so every operation raises StorageUnavailable
        return CommandRouter(QueryService(SQLiteEventStore(db_path)))

    @pytest.mark.asyncio
    async def test_reads_degrade_to_empty(self, broken_router):
        recent = await broken_router.dispatch(LIST_RECENT_ERRORS)
        assert recent.ok and recent.value == []

        everything = await broken_router.dispatch(LIST_ALL_ERRORS_FOR_STATS)
        assert everything.ok and everything.value == []

        stats = await broken_router.dispatch(GET_ERROR_STATISTICS)
        assert stats.ok
        assert stats.value['totalErrors'] == 0
        assert stats.value['errorTypes'] == []

    @pytest.mark.asyncio
    async def test_hide_reports_storage_failure(self, broken_router):
        result = await broken_router.dispatch(HIDE_ERROR, {'errorId': 1})
        assert not result.ok
        assert result.error_code == "STORAGE_UNAVAILABLE"


class TestStartMonitoring:
    """Test start-monitoring through a monitoring service"""

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, service, memory_store, alert_sink):
        """Test repeated start-monitoring keeps a single timer"""
        router = CommandRouter.for_service(service)

        first = await router.dispatch(START_MONITORING)
        second = await router.dispatch(START_MONITORING)
        assert first == CommandResult.success(STATUS_STARTED)
        assert second == CommandResult.success(STATUS_ALREADY_RUNNING)

        await asyncio.sleep(0.05)
        assert await memory_store.count() == 1
        assert len(alert_sink.records) == 1

    @pytest.mark.asyncio
    async def test_shutdown_stops_and_closes(self, service, alert_sink):
        await service.start()
        await service.shutdown()

        assert not service.scheduler.running
        assert alert_sink.closed
        assert service.get_status()['scheduler']['state'] == "idle"
