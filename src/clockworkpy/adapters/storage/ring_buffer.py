"""Ring buffer storage adapter for request records.

Provides bounded in-memory storage that automatically evicts the oldest
request when the buffer is full. Useful for long-running services that
need predictable memory usage.
"""

from collections import OrderedDict
from collections.abc import AsyncIterable

from clockworkpy.adapters.storage.in_memory import _snapshot
from clockworkpy.core.models import Request


class RingBufferStorage:
    """Ring buffer implementation of StoragePort.

    Args:
        max_size: Maximum number of requests to keep.
    """

    def __init__(self, max_size: int) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._max_size = max_size
        self._buffer: OrderedDict[str, Request] = OrderedDict()

    async def store(self, request: Request) -> str:
        """Store a snapshot, evicting the oldest request when full."""
        self._buffer.pop(request.id, None)
        self._buffer[request.id] = _snapshot(request)
        while len(self._buffer) > self._max_size:
            self._buffer.popitem(last=False)
        return request.id

    async def find(self, request_id: str) -> Request | None:
        return self._buffer.get(request_id)

    async def latest(self) -> Request | None:
        return next(reversed(self._buffer.values()), None)

    async def all(self) -> AsyncIterable[Request]:
        """Yield stored requests, oldest first."""
        for request in list(self._buffer.values()):
            yield request

    async def count(self) -> int:
        return len(self._buffer)
