import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from sqlite3 import Error as SqliteError

from aiosqlite import Connection, connect as sqlite_connect
from opentelemetry.instrumentation.sqlite3 import SQLite3Instrumentor

from petcare.helpers.config_models.database import SqliteModel
from petcare.helpers.logging import logger
from petcare.models.error import StorageUnavailableError
from petcare.models.readiness import ReadinessEnum
from petcare.persistence.istore import IStore

# Instrument sqlite
SQLite3Instrumentor().instrument()


class SqliteStore(IStore):
    _config: SqliteModel
    _db_path: str
    _first_run_done: bool

    def __init__(self, config: SqliteModel):
        logger.info(
            "Using SQLite database at %s with table %s", config.path, config.table
        )
        self._config = config

        # Create folder if does not exist
        self._db_path = self._config.full_path()

        # Check if first run
        self._first_run_done = False
        if not os.path.isfile(self._db_path):
            db_folder = os.path.dirname(self._db_path)
            if db_folder:
                os.makedirs(name=db_folder, exist_ok=True)
            self._first_run_done = True

    async def readiness(self) -> ReadinessEnum:
        """
        Check the readiness of the SQLite database.

        This checks if the database is reachable and can be queried.
        """
        try:
            async with self._use_db() as db:
                await db.execute("SELECT 1")
            return ReadinessEnum.OK
        except Exception:
            logger.exception("Unknown error while checking SQLite readiness")
        return ReadinessEnum.FAIL

    async def get(self, key: str) -> str | None:
        logger.debug("Loading document %s", key)
        try:
            async with self._use_db() as db:
                cursor = await db.execute(
                    f"SELECT value FROM {self._config.table} WHERE key = ?",
                    (key,),
                )
                row = await cursor.fetchone()
        except SqliteError as e:
            logger.exception("Error reading document %s", key)
            raise StorageUnavailableError(f"Cannot read {key}") from e
        return row[0] if row else None

    async def set(self, key: str, value: str) -> None:
        logger.debug("Saving document %s", key)
        try:
            async with self._use_db() as db:
                await db.execute(
                    f"INSERT OR REPLACE INTO {self._config.table} VALUES (?, ?)",
                    (
                        key,  # key
                        value,  # value
                    ),
                )
                await db.commit()
        except SqliteError as e:
            logger.exception("Error writing document %s", key)
            raise StorageUnavailableError(f"Cannot write {key}") from e

    async def _init_db(self, db: Connection) -> None:
        """
        Initialize the database.

        See: https://sqlite.org/wal.html
        """
        logger.info("First run, init database")
        # Optimize performance for concurrent writes
        await db.execute("PRAGMA journal_mode=WAL")
        # Create table
        await db.execute(
            f"CREATE TABLE IF NOT EXISTS {self._config.table} (key TEXT PRIMARY KEY, value TEXT)"
        )
        # Write changes to disk
        await db.commit()
        self._first_run_done = False

    @asynccontextmanager
    async def _use_db(self) -> AsyncGenerator[Connection]:
        """
        Generate the SQLite client and close it after use.
        """
        async with sqlite_connect(
            database=self._db_path,
        ) as client:
            if self._first_run_done:
                await self._init_db(client)
            yield client
