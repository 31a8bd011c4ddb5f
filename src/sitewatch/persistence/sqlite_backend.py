"""
SQLite Event Store

Durable event store backed by a single versioned ``errors`` table. Every
operation opens its own connection and closes it on the way out; nothing is
held between calls. Writes are serialized by a lock so the insert and the
capacity eviction that follows it commit as one unit.
"""

import asyncio
import logging
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Callable, List, Optional, Set

import aiosqlite

from sitewatch.core.catalogs import HEADQUARTERS_SITE, LEGACY_HEADQUARTERS_SITE
from sitewatch.core.errors import SchemaMigrationFailed, StorageUnavailable
from sitewatch.core.models import DAY_MS, ErrorRecord, ErrorStatistics, ErrorTypeCount, now_ms
from sitewatch.persistence.base import DEFAULT_CAPACITY, DEFAULT_RECENT_LIMIT, EventStore, check_page

logger = logging.getLogger(__name__)

DATABASE_NAME = "server_errors.db"
TABLE_NAME = "errors"
SCHEMA_VERSION = 4

# Columns present in every schema version
_BASE_COLUMNS = """
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    error_code TEXT NOT NULL,
    title TEXT NOT NULL,
    timestamp INTEGER NOT NULL,
    severity TEXT NOT NULL
"""


def _sql_literal(value: str) -> str:
    """Quote a string for use where SQLite does not accept bound parameters"""
    return "'" + value.replace("'", "''") + "'"


class SQLiteEventStore(EventStore):
    """SQLite-based event store"""

    def __init__(
        self,
        db_path: str = DATABASE_NAME,
        capacity: int = DEFAULT_CAPACITY,
        headquarters_site: str = HEADQUARTERS_SITE,
        legacy_headquarters_site: str = LEGACY_HEADQUARTERS_SITE,
        clock: Optional[Callable[[], int]] = None
    ):
        """
        Initialize SQLite event store

        Args:
            db_path: Path to SQLite database file
            capacity: Maximum number of retained records
            headquarters_site: Default site label for records without one
            legacy_headquarters_site: Label rewritten to headquarters_site by the v4 migration
            clock: Millisecond clock used for the trailing 24 hour count
        """
        self.db_path = str(db_path)
        self.capacity = capacity
        self.headquarters_site = headquarters_site
        self.legacy_headquarters_site = legacy_headquarters_site
        self.clock = clock or now_ms
        self._write_lock = asyncio.Lock()
        self._initialized = False

    # ------------------------------------------------------------------
    # Connection handling
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        """Open a connection for the duration of one operation"""
        try:
            db = await aiosqlite.connect(self.db_path, isolation_level=None)
        except (sqlite3.Error, OSError) as e:
            raise StorageUnavailable(
                f"Cannot open event store: {e}",
                context={'db_path': self.db_path},
                cause=e
            ) from e

        db.row_factory = aiosqlite.Row
        try:
            yield db
        except (sqlite3.Error, OverflowError) as e:
            # OverflowError: a bound int outside the SQLite INTEGER range
            raise StorageUnavailable(
                f"Event store operation failed: {e}",
                context={'db_path': self.db_path},
                cause=e
            ) from e
        finally:
            await db.close()

    @asynccontextmanager
    async def _transaction(self, db: aiosqlite.Connection, mode: str = "DEFERRED") -> AsyncIterator[None]:
        await db.execute(f"BEGIN {mode}")
        try:
            yield
        except BaseException:
            await db.execute("ROLLBACK")
            raise
        else:
            await db.execute("COMMIT")

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise StorageUnavailable("Event store not initialized", context={'db_path': self.db_path})

    # ------------------------------------------------------------------
    # Lifecycle and schema
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Create the database if needed and migrate it to the current schema"""
        if self._initialized:
            return

        try:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailable(
                f"Cannot create database directory: {e}",
                context={'db_path': self.db_path},
                cause=e
            ) from e

        async with self._connect() as db:
            # Enable WAL mode so readers do not block the writer
            await db.execute("PRAGMA journal_mode=WAL")
            await self._migrate(db)

        self._initialized = True
        logger.info(f"SQLite event store initialized: {self.db_path} (schema v{SCHEMA_VERSION})")

    async def shutdown(self) -> None:
        """Mark the store closed; connections are already released per operation"""
        if self._initialized:
            self._initialized = False
            logger.info("SQLite event store shut down")

    async def schema_version(self) -> int:
        """On-disk schema version"""
        async with self._connect() as db:
            return await self._user_version(db)

    async def _user_version(self, db: aiosqlite.Connection) -> int:
        cursor = await db.execute("PRAGMA user_version")
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def _table_exists(self, db: aiosqlite.Connection) -> bool:
        cursor = await db.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?",
            (TABLE_NAME,)
        )
        return await cursor.fetchone() is not None

    async def _columns(self, db: aiosqlite.Connection) -> Set[str]:
        cursor = await db.execute(f"PRAGMA table_info({TABLE_NAME})")
        rows = await cursor.fetchall()
        return {row['name'] for row in rows}

    async def _migrate(self, db: aiosqlite.Connection) -> None:
        """Bring the schema to SCHEMA_VERSION, one committed step at a time"""
        version = await self._user_version(db)

        if not await self._table_exists(db):
            async with self._transaction(db, "IMMEDIATE"):
                await self._create_tables(db)
                await db.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
            logger.info(f"Created {TABLE_NAME} table at schema v{SCHEMA_VERSION}")
            return

        # Databases written before versioning carry the original table only
        if version == 0:
            version = 1

        if version > SCHEMA_VERSION:
            raise SchemaMigrationFailed(
                f"Database schema v{version} is newer than supported v{SCHEMA_VERSION}",
                context={'db_path': self.db_path, 'version': version}
            )

        steps = [
            (2, self._add_hidden_column),
            (3, self._add_site_column),
            (4, self._merge_legacy_headquarters),
        ]
        for target, step in steps:
            if version >= target:
                continue
            try:
                async with self._transaction(db, "IMMEDIATE"):
                    await step(db)
                    await db.execute(f"PRAGMA user_version = {target}")
            except sqlite3.Error as e:
                raise SchemaMigrationFailed(
                    f"Migration to schema v{target} failed: {e}",
                    context={'db_path': self.db_path, 'version': target},
                    cause=e
                ) from e
            logger.info(f"Migrated {TABLE_NAME} table: v{version} -> v{target}")
            version = target

        await self._create_indexes(db)

    async def _create_tables(self, db: aiosqlite.Connection) -> None:
        await db.execute(f"""
            CREATE TABLE {TABLE_NAME} (
                {_BASE_COLUMNS.strip()},
                is_hidden INTEGER DEFAULT 0,
                site TEXT NOT NULL DEFAULT {_sql_literal(self.headquarters_site)}
            )
        """)
        await self._create_indexes(db)

    async def _create_indexes(self, db: aiosqlite.Connection) -> None:
        await db.execute(f"""
            CREATE INDEX IF NOT EXISTS idx_errors_timestamp ON {TABLE_NAME}(timestamp)
        """)
        await db.execute(f"""
            CREATE INDEX IF NOT EXISTS idx_errors_visible ON {TABLE_NAME}(is_hidden, timestamp)
        """)

    async def _add_hidden_column(self, db: aiosqlite.Connection) -> None:
        if 'is_hidden' not in await self._columns(db):
            await db.execute(f"ALTER TABLE {TABLE_NAME} ADD COLUMN is_hidden INTEGER DEFAULT 0")

    async def _add_site_column(self, db: aiosqlite.Connection) -> None:
        if 'site' not in await self._columns(db):
            await db.execute(
                f"ALTER TABLE {TABLE_NAME} ADD COLUMN site TEXT NOT NULL "
                f"DEFAULT {_sql_literal(self.headquarters_site)}"
            )

    async def _merge_legacy_headquarters(self, db: aiosqlite.Connection) -> None:
        cursor = await db.execute(
            f"UPDATE {TABLE_NAME} SET site = ? WHERE site = ?",
            (self.headquarters_site, self.legacy_headquarters_site)
        )
        logger.info(
            f"Merged {cursor.rowcount} records from '{self.legacy_headquarters_site}' "
            f"into '{self.headquarters_site}'"
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert(self, record: ErrorRecord) -> int:
        """Persist a record and evict the oldest ones beyond capacity"""
        self._require_initialized()

        async with self._write_lock:
            async with self._connect() as db:
                async with self._transaction(db, "IMMEDIATE"):
                    cursor = await db.execute(f"""
                        INSERT INTO {TABLE_NAME}
                        (error_code, title, timestamp, severity, is_hidden, site)
                        VALUES (?, ?, ?, ?, 0, ?)
                    """, (
                        record.error_code,
                        record.title,
                        record.timestamp,
                        record.severity,
                        record.site or self.headquarters_site
                    ))
                    record_id = cursor.lastrowid

                    cursor = await db.execute(f"SELECT COUNT(*) FROM {TABLE_NAME}")
                    total = (await cursor.fetchone())[0]
                    excess = total - self.capacity
                    if excess > 0:
                        await db.execute(f"""
                            DELETE FROM {TABLE_NAME} WHERE id IN (
                                SELECT id FROM {TABLE_NAME}
                                ORDER BY timestamp ASC, id ASC
                                LIMIT ?
                            )
                        """, (excess,))
                        logger.debug(f"Evicted {excess} oldest records (capacity {self.capacity})")

        logger.info(f"Stored error {record.error_code} - {record.title} [{record.site}] as id={record_id}")
        return record_id

    async def hide(self, record_id: int) -> None:
        """Mark a record hidden; unknown ids are a silent no-op"""
        self._require_initialized()

        async with self._write_lock:
            async with self._connect() as db:
                async with self._transaction(db, "IMMEDIATE"):
                    cursor = await db.execute(
                        f"UPDATE {TABLE_NAME} SET is_hidden = 1 WHERE id = ?",
                        (record_id,)
                    )
                    updated = cursor.rowcount

        if updated:
            logger.info(f"Hid error id={record_id}")
        else:
            logger.debug(f"Hide ignored, no record with id={record_id}")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _row_to_record(self, row: aiosqlite.Row) -> ErrorRecord:
        return ErrorRecord(
            id=row['id'],
            error_code=row['error_code'],
            title=row['title'],
            timestamp=row['timestamp'],
            severity=row['severity'],
            site=row['site'],
            is_hidden=bool(row['is_hidden'])
        )

    async def list_visible(
        self,
        limit: int = DEFAULT_RECENT_LIMIT,
        offset: int = 0,
        site: Optional[str] = None
    ) -> List[ErrorRecord]:
        """Visible records, newest first, optionally filtered by site"""
        check_page(limit, offset)
        self._require_initialized()

        query = f"SELECT * FROM {TABLE_NAME} WHERE is_hidden = 0"
        params: list = []
        if site is not None:
            query += " AND site = ?"
            params.append(site)
        query += " ORDER BY timestamp DESC, id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        async with self._connect() as db:
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()

        records = [self._row_to_record(row) for row in rows]
        logger.debug(f"Listed {len(records)} visible errors")
        return records

    async def list_all(self) -> List[ErrorRecord]:
        """Every record, hidden ones included, newest first"""
        self._require_initialized()

        async with self._connect() as db:
            cursor = await db.execute(f"""
                SELECT * FROM {TABLE_NAME} ORDER BY timestamp DESC, id DESC
            """)
            rows = await cursor.fetchall()

        records = [self._row_to_record(row) for row in rows]
        logger.debug(f"Listed all {len(records)} errors for statistics")
        return records

    async def aggregate(self, now_ms: Optional[int] = None) -> ErrorStatistics:
        """Counts and per-title breakdown from a single read snapshot"""
        self._require_initialized()

        now = self.clock() if now_ms is None else now_ms
        cutoff = now - DAY_MS

        async with self._connect() as db:
            async with self._transaction(db):
                cursor = await db.execute(f"""
                    SELECT
                        COUNT(*) AS total,
                        COALESCE(SUM(CASE WHEN is_hidden = 0 THEN 1 ELSE 0 END), 0) AS visible,
                        COALESCE(SUM(CASE WHEN timestamp > ? THEN 1 ELSE 0 END), 0) AS recent
                    FROM {TABLE_NAME}
                """, (cutoff,))
                counts = await cursor.fetchone()

                cursor = await db.execute(f"""
                    SELECT title, COUNT(*) AS count
                    FROM {TABLE_NAME}
                    GROUP BY title
                    ORDER BY count DESC, MIN(id) ASC
                """)
                type_rows = await cursor.fetchall()

        statistics = ErrorStatistics(
            total=counts['total'],
            visible=counts['visible'],
            hidden=counts['total'] - counts['visible'],
            recent_24h=counts['recent'],
            error_types=[ErrorTypeCount(title=row['title'], count=row['count']) for row in type_rows]
        )
        logger.debug(
            f"Statistics: total={statistics.total}, 24h={statistics.recent_24h}, "
            f"types={len(statistics.error_types)}"
        )
        return statistics

    async def count(self) -> int:
        self._require_initialized()

        async with self._connect() as db:
            cursor = await db.execute(f"SELECT COUNT(*) FROM {TABLE_NAME}")
            row = await cursor.fetchone()
        return row[0]
