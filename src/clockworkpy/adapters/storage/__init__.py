"""Storage adapters implementing StoragePort."""

from clockworkpy.adapters.storage.in_memory import InMemoryStorage
from clockworkpy.adapters.storage.ring_buffer import RingBufferStorage
from clockworkpy.adapters.storage.sqlite import SQLiteStorage
from clockworkpy.core.config import ClockworkConfig


def create_storage(config: ClockworkConfig) -> RingBufferStorage | SQLiteStorage:
    """Return SQLite storage when a path is configured, else a ring buffer."""
    if config.storage_path:
        return SQLiteStorage(config.storage_path)
    return RingBufferStorage(config.storage_max_requests)


__all__ = [
    "InMemoryStorage",
    "RingBufferStorage",
    "SQLiteStorage",
    "create_storage",
]
