"""Shared test fixtures for all test modules."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from clockworkpy.adapters.storage.in_memory import InMemoryStorage
from clockworkpy.adapters.storage.sqlite import SQLiteStorage

try:
    import httpx
except ImportError:
    httpx = None


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """Provide a temporary database path for SQLite storage tests."""
    return str(tmp_path / "clockwork.db")


@pytest.fixture
def storage() -> InMemoryStorage:
    """Fixture providing an empty in-memory request storage."""
    return InMemoryStorage()


@pytest.fixture
async def memory_sqlite_storage() -> AsyncGenerator[SQLiteStorage, None]:
    """In-memory SQLite storage with proper cleanup."""
    sqlite_storage = SQLiteStorage(":memory:")
    yield sqlite_storage
    await sqlite_storage.close()


# === ASGI Test Fixtures ===


@pytest.fixture
def basic_asgi_app():
    """Basic ASGI app fixture that returns 200 OK."""
    from clockworkpy.adapters.frameworks.asgi import Receive, Scope, Send

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        await send({"type": "http.response.start", "status": 200, "headers": []})
        await send({"type": "http.response.body", "body": b"OK"})

    return app


@pytest.fixture
def asgi_scope():
    """Factory fixture for creating ASGI scope dicts."""
    from clockworkpy.adapters.frameworks.asgi import Scope

    def _scope(
        method: str = "GET",
        path: str = "/test",
        query_string: bytes = b"",
        headers: list[tuple[bytes, bytes]] | None = None,
    ) -> Scope:
        return {
            "type": "http",
            "method": method,
            "path": path,
            "query_string": query_string,
            "headers": headers or [],
            "scheme": "http",
            "server": ("testserver", 80),
        }

    return _scope


@pytest.fixture
def asgi_receive():
    """Factory fixture returning a receive callable yielding one body chunk."""

    def _receive(body: bytes = b""):
        async def receive() -> dict[str, object]:
            return {"type": "http.request", "body": body, "more_body": False}

        return receive

    return _receive


@pytest.fixture
def asgi_send_capture():
    """Fixture that returns a send callable and a responses list for capture."""
    responses: list[dict[str, object]] = []

    async def send(message: dict[str, object]) -> None:
        responses.append(message)

    return send, responses


@pytest.fixture
def asgi_test_client():
    """Factory fixture that creates an httpx.AsyncClient for ASGI testing.

    Usage:
        async def test_something(asgi_test_client):
            async with asgi_test_client(app) as client:
                response = await client.get("/endpoint")
    """
    if httpx is None:
        pytest.skip("httpx not installed")

    def _get_client(app):
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )

    return _get_client
