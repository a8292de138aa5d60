"""In-process request diagnostics collector.

Example:
    ```python
    from clockworkpy import Clockwork, InMemoryStorage

    clockwork = Clockwork(storage=InMemoryStorage())
    clockwork.info("job started")
    clockwork.add_database_query("SELECT 1", duration=1.2)
    clockwork.resolve_as_queue_job("SendInvoice", payload={"invoice": 42})
    clockwork.store_request_sync()
    ```
"""

from clockworkpy.adapters.datasources import (
    DataSource,
    MessageDataSource,
    RequestMessage,
    ResponseMessage,
)
from clockworkpy.adapters.frameworks.asgi import ClockworkMiddleware, create_asgi_app
from clockworkpy.adapters.logging import ClockworkHandler
from clockworkpy.adapters.storage import (
    InMemoryStorage,
    RingBufferStorage,
    SQLiteStorage,
    create_storage,
)
from clockworkpy.core.authentication import NullAuthenticator, SimpleAuthenticator
from clockworkpy.core.clockwork import Clockwork, ClockworkState
from clockworkpy.core.config import ClockworkConfig, load_config
from clockworkpy.core.filters import ShouldCollect, ShouldRecord
from clockworkpy.core.log import Log
from clockworkpy.core.models import VERSION, LogEntry, LogLevel, Request, RequestType
from clockworkpy.core.ports import AuthenticatorPort, DataSourcePort, StoragePort
from clockworkpy.core.timeline import Timeline, TimelineEvent

__version__ = VERSION

__all__ = [
    "AuthenticatorPort",
    "Clockwork",
    "ClockworkConfig",
    "ClockworkHandler",
    "ClockworkMiddleware",
    "ClockworkState",
    "DataSource",
    "DataSourcePort",
    "InMemoryStorage",
    "Log",
    "LogEntry",
    "LogLevel",
    "MessageDataSource",
    "NullAuthenticator",
    "Request",
    "RequestMessage",
    "RequestType",
    "ResponseMessage",
    "RingBufferStorage",
    "SQLiteStorage",
    "ShouldCollect",
    "ShouldRecord",
    "SimpleAuthenticator",
    "StoragePort",
    "Timeline",
    "TimelineEvent",
    "create_asgi_app",
    "create_storage",
    "load_config",
]
