"""Connection handling for SQLite backed request storage."""

import asyncio
import logging
import sqlite3
import threading
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, closing, contextmanager

import aiosqlite

logger = logging.getLogger(__name__)

MEMORY = ":memory:"


class SQLiteStorageBase:
    """Owns the aiosqlite and sqlite3 connections of one database.

    The schema is applied lazily, once for the async side and once for the
    sync side. A file database opens a short-lived connection per operation
    and runs in WAL mode so readers and the writer do not block each other.

    A ``:memory:`` database only lives as long as its connection, so each
    side keeps one connection open until ``close``. The async and sync sides
    then hold two separate databases.

    Args:
        db_path: Database file path or ``:memory:``.
        schema: SQL script creating the tables, run with ``executescript``.
        timeout: Seconds to wait for a locked database.
    """

    def __init__(self, db_path: str, schema: str, timeout: float = 5.0) -> None:
        self.db_path = db_path
        self._schema = schema
        self._timeout = timeout

        self._async_ready = False
        self._async_lock: asyncio.Lock | None = None
        self._async_memory: aiosqlite.Connection | None = None

        self._sync_ready = False
        self._sync_lock = threading.Lock()
        self._sync_memory: sqlite3.Connection | None = None

    @property
    def in_memory(self) -> bool:
        return self.db_path == MEMORY

    # --- Async side ---

    async def _prepare_async(self) -> None:
        if self._async_ready:
            return
        # Created on first use so the lock binds to the running loop.
        if self._async_lock is None:
            self._async_lock = asyncio.Lock()
        async with self._async_lock:
            if self._async_ready:
                return
            if self.in_memory:
                self._async_memory = await aiosqlite.connect(MEMORY)
                await self._async_memory.executescript(self._schema)
            else:
                async with aiosqlite.connect(self.db_path, timeout=self._timeout) as db:
                    await db.execute("PRAGMA journal_mode=WAL")
                    await db.executescript(self._schema)
            self._async_ready = True
            logger.debug("Prepared request database %s", self.db_path)

    @asynccontextmanager
    async def async_connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield an aiosqlite connection with the schema in place."""
        await self._prepare_async()
        if self._async_memory is not None:
            yield self._async_memory
            return
        async with aiosqlite.connect(self.db_path, timeout=self._timeout) as db:
            yield db

    # --- Sync side ---

    def _prepare_sync(self) -> None:
        if self._sync_ready:
            return
        with self._sync_lock:
            if self._sync_ready:
                return
            if self.in_memory:
                self._sync_memory = sqlite3.connect(MEMORY, check_same_thread=False)
                self._sync_memory.executescript(self._schema)
            else:
                with closing(sqlite3.connect(self.db_path, timeout=self._timeout)) as db:
                    db.execute("PRAGMA journal_mode=WAL")
                    db.executescript(self._schema)
            self._sync_ready = True

    @contextmanager
    def sync_connection(self) -> Iterator[sqlite3.Connection]:
        """Yield a sqlite3 connection with the schema in place."""
        self._prepare_sync()
        if self._sync_memory is not None:
            yield self._sync_memory
            return
        with closing(sqlite3.connect(self.db_path, timeout=self._timeout)) as conn:
            yield conn

    async def close(self) -> None:
        """Close the persistent connections of a ``:memory:`` database."""
        if self._async_memory is not None:
            await self._async_memory.close()
            self._async_memory = None
            self._async_ready = False
        if self._sync_memory is not None:
            self._sync_memory.close()
            self._sync_memory = None
            self._sync_ready = False
