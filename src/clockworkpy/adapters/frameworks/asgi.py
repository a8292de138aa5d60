"""ASGI generic adapter collecting request diagnostics.

This adapter provides a framework-agnostic ASGI middleware and app that can
be used with any ASGI server (uvicorn, hypercorn, daphne) without requiring
FastAPI or Django as dependencies.
"""

import json
import logging
import time
from collections.abc import Callable, Coroutine, Iterable
from typing import Any

from clockworkpy.adapters.context import reset_clockwork, set_clockwork
from clockworkpy.adapters.datasources.message import (
    REQUEST_TIME_FLOAT,
    MessageDataSource,
    RequestMessage,
    ResponseMessage,
)
from clockworkpy.adapters.frameworks.api import (
    AUTH_HEADER,
    ID_HEADER,
    VERSION_HEADER,
    fetch_request,
)
from clockworkpy.core.authentication import create_authenticator
from clockworkpy.core.clockwork import Clockwork
from clockworkpy.core.config import ClockworkConfig
from clockworkpy.core.encoding.ndjson import encode_request
from clockworkpy.core.models import VERSION, Request
from clockworkpy.core.ports import AuthenticatorPort, DataSourcePort, StoragePort

logger = logging.getLogger(__name__)

# ASGI type aliases
Scope = dict[str, Any]
Receive = Callable[[], Coroutine[Any, Any, dict[str, Any]]]
Send = Callable[[dict[str, Any]], Coroutine[Any, Any, None]]
ASGIApp = Callable[[Scope, Receive, Send], Coroutine[Any, Any, None]]
Setup = Callable[[Clockwork], None]


def _get_header(scope: Scope, header_name: str) -> str | None:
    """Return the first value of a request header (case-insensitive)."""
    header_bytes = header_name.lower().encode()
    headers: list[tuple[bytes, bytes]] = scope.get("headers", [])
    for name, value in headers:
        if name.lower() == header_bytes:
            return value.decode("utf-8", errors="replace")
    return None


async def _send_response(send: Send, status: int, content_type: str, body: str) -> None:
    """Send an HTTP response with headers and body."""
    headers = [(b"content-type", content_type.encode())]
    await send({"type": "http.response.start", "status": status, "headers": headers})
    await send({"type": "http.response.body", "body": body.encode()})


async def _send_error(send: Send, status: int, message: str) -> None:
    await _send_response(send, status, "application/json", json.dumps({"error": message}))


def create_asgi_app(
    storage: StoragePort,
    authenticator: AuthenticatorPort | None = None,
    data_sources: Iterable[DataSourcePort] = (),
    api_path: str = "/__clockwork",
) -> ASGIApp:
    """Create an ASGI app serving stored requests as JSON.

    Endpoints (relative to ``api_path``):
        /latest  - the most recently stored request
        /<id>    - the request with the given id

    Args:
        storage: Storage adapter implementing StoragePort.
        authenticator: Checks the X-Clockwork-Auth header. Defaults to
            allowing everyone.
        data_sources: Sources used to extend records before serving them.
        api_path: Path prefix stripped from incoming paths.

    Returns:
        ASGI application callable.
    """
    auth = authenticator
    sources = list(data_sources)
    prefix = api_path.rstrip("/")

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            return

        path = scope["path"]
        if prefix and path.startswith(prefix):
            path = path[len(prefix):]
        request_id = path.strip("/")

        if scope["method"] != "GET" or not request_id or "/" in request_id:
            await _send_response(send, 404, "text/plain", "Not Found")
            return
        if auth is not None and not auth.authenticate(_get_header(scope, AUTH_HEADER)):
            await _send_error(send, 403, "Forbidden")
            return

        try:
            request = await fetch_request(storage, request_id, sources)
            if request is None:
                await _send_error(send, 404, "Request not found")
                return
            body = encode_request(request)
        except Exception:
            logger.exception("Error serving clockwork request %s", request_id)
            await _send_error(send, 500, "Internal Server Error")
            return
        await _send_response(send, 200, "application/json", body)

    return app


class ClockworkMiddleware:
    """ASGI middleware collecting diagnostics for every HTTP request.

    Each request gets its own Clockwork instance, bound to the current
    context (see ``clockworkpy.adapters.context``) while the wrapped app runs.
    Requests under ``config.api_path`` are served from storage instead.
    """

    def __init__(
        self,
        app: ASGIApp,
        storage: StoragePort | None,
        config: ClockworkConfig | None = None,
        authenticator: AuthenticatorPort | None = None,
        setup: Setup | None = None,
        data_sources: Iterable[DataSourcePort] = (),
    ) -> None:
        """Initialize the middleware.

        Args:
            app: The ASGI application to wrap.
            storage: Storage adapter for collected requests (optional).
            config: Collection settings. Defaults to ClockworkConfig().
            authenticator: Guards the API endpoints. Defaults to the one
                derived from ``config``.
            setup: Called with each new Clockwork before the app runs, e.g.
                to register data sources or policy callbacks.
            data_sources: Sources added to every Clockwork after the message
                source. Their ``extend`` step also runs on records served
                from the API path. The same instances serve every request.
        """
        self.app = app
        self.storage = storage
        self.config = config or ClockworkConfig()
        self.authenticator = authenticator or create_authenticator(self.config)
        self.setup = setup
        self.data_sources = list(data_sources)
        self.api_app = (
            create_asgi_app(
                storage,
                self.authenticator,
                self.data_sources,
                api_path=self.config.api_path,
            )
            if storage is not None
            else None
        )

    def _is_api_path(self, path: str) -> bool:
        api_path = self.config.api_path.rstrip("/")
        if not api_path:
            return False
        return path == api_path or path.startswith(api_path + "/")

    def _new_clockwork(self, source: MessageDataSource) -> Clockwork:
        clockwork = Clockwork(
            storage=self.storage, authenticator=self.authenticator, config=self.config
        )
        clockwork.add_data_source(source)
        for data_source in self.data_sources:
            clockwork.add_data_source(data_source)
        if self.setup is not None:
            self.setup(clockwork)
        return clockwork

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not self.config.enabled:
            await self.app(scope, receive, send)
            return

        if self._is_api_path(scope["path"]):
            if self.api_app is None:
                await self.app(scope, receive, send)
            else:
                await self.api_app(scope, receive, send)
            return

        server_params = {REQUEST_TIME_FLOAT: time.time()}
        source = MessageDataSource(
            RequestMessage.from_asgi(scope, server_params=server_params),
            sensitive_keys=self.config.sensitive_keys,
        )
        clockwork = self._new_clockwork(source)
        provisional = source.resolve(Request())
        if not clockwork.should_collect().allows(provisional):
            await self.app(scope, receive, send)
            return

        body = bytearray()
        captured: dict[str, Any] = {"start": None, "exception": None}
        request_id = clockwork.request.id

        async def wrapped_receive() -> dict[str, Any]:
            message = await receive()
            if message["type"] == "http.request":
                body.extend(message.get("body", b""))
            return message

        async def wrapped_send(message: dict[str, Any]) -> None:
            if message["type"] == "http.response.start":
                captured["start"] = message
                if self.config.headers:
                    message = {
                        **message,
                        "headers": [
                            *message.get("headers", []),
                            (ID_HEADER.lower().encode(), request_id.encode()),
                            (VERSION_HEADER.lower().encode(), VERSION.encode()),
                        ],
                    }
            await send(message)

        token = set_clockwork(clockwork)
        try:
            await self.app(scope, wrapped_receive, wrapped_send)
        except Exception as e:
            captured["exception"] = e
            try:
                clockwork.error("Unhandled exception", {"exception": e})
            except Exception:
                logger.exception("Failed to log exception for clockwork request %s", request_id)
        finally:
            reset_clockwork(token)

        source.request_message = RequestMessage.from_asgi(
            scope, bytes(body), server_params=server_params
        )
        if captured["start"] is not None:
            source.response_message = ResponseMessage.from_asgi(captured["start"])
        elif captured["exception"] is not None:
            source.response_message = ResponseMessage(status_code=500)

        await self._record(clockwork)
        if captured["exception"] is not None:
            raise captured["exception"]

    async def _record(self, clockwork: Clockwork) -> None:
        """Resolve the request and store it when the record policy allows."""
        try:
            clockwork.resolve_request()
        except Exception:
            logger.exception("Failed to resolve clockwork request %s", clockwork.request.id)
            return
        if not clockwork.should_record().allows(clockwork.request):
            return
        try:
            await clockwork.store_request()
        except Exception:
            logger.exception("Failed to store clockwork request %s", clockwork.request.id)
