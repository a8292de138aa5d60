"""SQLite storage adapter for request records."""

import json
import logging
from collections.abc import AsyncIterable
from typing import Any

from clockworkpy.adapters.storage.sqlite_base import SQLiteStorageBase
from clockworkpy.core.encoding.ndjson import encode_request
from clockworkpy.core.models import Request

logger = logging.getLogger(__name__)

_REQUESTS_SCHEMA = """
CREATE TABLE IF NOT EXISTS requests (
    id TEXT PRIMARY KEY,
    type TEXT NOT NULL,
    time REAL,
    method TEXT,
    uri TEXT,
    response_status INTEGER,
    data TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_requests_time ON requests(time);
"""

_UPSERT_REQUEST = """
INSERT OR REPLACE INTO requests (id, type, time, method, uri, response_status, data)
VALUES (?, ?, ?, ?, ?, ?, ?)
"""

_SELECT_REQUEST = """
SELECT data FROM requests WHERE id = ?
"""

_SELECT_LATEST = """
SELECT data FROM requests ORDER BY rowid DESC LIMIT 1
"""

_SELECT_ALL = """
SELECT data FROM requests ORDER BY rowid ASC
"""

_COUNT_REQUESTS = """
SELECT COUNT(*) FROM requests
"""

_CLEAR_REQUESTS = """
DELETE FROM requests
"""


def _to_row(request: Request) -> tuple[Any, ...]:
    return (
        request.id,
        request.type.value,
        request.time,
        request.method,
        request.uri,
        request.response_status,
        encode_request(request),
    )


def _from_row(row: Any) -> Request | None:
    try:
        data = json.loads(row[0])
    except json.JSONDecodeError:
        data = None
    if not isinstance(data, dict):
        logger.warning("Skipping undecodable request record")
        return None
    return Request.from_dict(data)


class SQLiteStorage(SQLiteStorageBase):
    """SQLite implementation of StoragePort.

    Stores each request as a JSON record alongside a few indexed columns,
    using aiosqlite for non-blocking async operations and WAL mode for
    concurrent access.

    Sync methods (store_sync, find_sync, clear_sync) use the standard
    sqlite3 module for non-async contexts like queue workers or testing.
    For :memory: databases the sync and async methods see separate databases.
    """

    def __init__(self, db_path: str, timeout: float = 5.0) -> None:
        super().__init__(db_path, _REQUESTS_SCHEMA, timeout)

    async def store(self, request: Request) -> str:
        """Insert or replace the record for this request id."""
        async with self.async_connection() as db:
            await db.execute(_UPSERT_REQUEST, _to_row(request))
            await db.commit()
        return request.id

    async def find(self, request_id: str) -> Request | None:
        async with self.async_connection() as db:
            async with db.execute(_SELECT_REQUEST, (request_id,)) as cursor:
                row = await cursor.fetchone()
        return _from_row(row) if row else None

    async def latest(self) -> Request | None:
        async with self.async_connection() as db:
            async with db.execute(_SELECT_LATEST) as cursor:
                row = await cursor.fetchone()
        return _from_row(row) if row else None

    async def all(self) -> AsyncIterable[Request]:
        """Yield stored requests in insertion order."""
        async with self.async_connection() as db:
            async with db.execute(_SELECT_ALL) as cursor:
                async for row in cursor:
                    request = _from_row(row)
                    if request is not None:
                        yield request

    async def count(self) -> int:
        async with self.async_connection() as db:
            async with db.execute(_COUNT_REQUESTS) as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0

    async def clear(self) -> None:
        async with self.async_connection() as db:
            await db.execute(_CLEAR_REQUESTS)
            await db.commit()

    # --- Sync methods using standard sqlite3 module ---

    def store_sync(self, request: Request) -> str:
        """Synchronous store for non-async contexts."""
        with self.sync_connection() as conn:
            conn.execute(_UPSERT_REQUEST, _to_row(request))
            conn.commit()
        return request.id

    def find_sync(self, request_id: str) -> Request | None:
        """Synchronous find for non-async contexts."""
        with self.sync_connection() as conn:
            row = conn.execute(_SELECT_REQUEST, (request_id,)).fetchone()
        return _from_row(row) if row else None

    def clear_sync(self) -> None:
        """Synchronous clear for non-async contexts."""
        with self.sync_connection() as conn:
            conn.execute(_CLEAR_REQUESTS)
            conn.commit()
