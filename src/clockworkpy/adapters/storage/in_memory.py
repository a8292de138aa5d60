"""In-memory storage adapter for request records."""

from collections.abc import AsyncIterable

from clockworkpy.core.models import Request


def _snapshot(request: Request) -> Request:
    """Detach the stored copy from the live request object."""
    return Request.from_dict(request.to_dict())


class InMemoryStorage:
    """In-memory implementation of StoragePort.

    Stores request snapshots in a dict keyed by id. Suitable for testing and
    low-volume applications where persistence is not required.
    """

    def __init__(self) -> None:
        self._requests: dict[str, Request] = {}

    async def store(self, request: Request) -> str:
        """Store a snapshot of the request, replacing any earlier copy."""
        self._requests.pop(request.id, None)
        self._requests[request.id] = _snapshot(request)
        return request.id

    async def find(self, request_id: str) -> Request | None:
        return self._requests.get(request_id)

    async def latest(self) -> Request | None:
        return next(reversed(self._requests.values()), None)

    async def all(self) -> AsyncIterable[Request]:
        """Yield stored requests, oldest first."""
        for request in list(self._requests.values()):
            yield request

    async def count(self) -> int:
        return len(self._requests)

    async def clear(self) -> None:
        self._requests.clear()
