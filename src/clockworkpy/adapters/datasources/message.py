"""Data source reading an HTTP request/response message pair.

The messages are plain dataclasses so the adapter does not depend on any web
framework. ``RequestMessage.from_asgi`` and ``ResponseMessage.from_asgi``
build them from ASGI scope and response-start messages.
"""

import json
import re
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from http.cookies import CookieError, SimpleCookie
from typing import Any
from urllib.parse import parse_qs

from clockworkpy.adapters.datasources.base import DataSource
from clockworkpy.core.models import Request
from clockworkpy.core.serializer import DEFAULT_SENSITIVE_KEYS

REQUEST_TIME_FLOAT = "REQUEST_TIME_FLOAT"
REQUEST_TIME = "REQUEST_TIME"


@dataclass
class RequestMessage:
    """Request side of an HTTP exchange.

    Attributes:
        method: HTTP method.
        uri: Path with query string.
        url: Absolute URL, when known.
        headers: Header name to list of values, names as received.
        query_params: Parsed query string.
        parsed_body: Parsed form or JSON body, None when absent or unparseable.
        cookies: Cookie name to value.
        server_params: Environment values such as REQUEST_TIME_FLOAT.
    """

    method: str
    uri: str
    url: str | None = None
    headers: dict[str, list[str]] = field(default_factory=dict)
    query_params: dict[str, Any] = field(default_factory=dict)
    parsed_body: Any = None
    cookies: dict[str, str] = field(default_factory=dict)
    server_params: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_asgi(
        cls,
        scope: Mapping[str, Any],
        body: bytes = b"",
        server_params: Mapping[str, Any] | None = None,
    ) -> "RequestMessage":
        """Build a request message from an ASGI HTTP scope and its body."""
        headers = _decode_headers(scope.get("headers", []))
        query_string = scope.get("query_string", b"").decode(errors="replace")
        path = scope.get("path", "/")
        uri = f"{path}?{query_string}" if query_string else path
        return cls(
            method=scope.get("method", "GET"),
            uri=uri,
            url=_build_url(scope, headers, uri),
            headers=headers,
            query_params=_parse_query(query_string),
            parsed_body=_parse_body(_first(headers, "content-type"), body),
            cookies=_parse_cookies(headers.get("cookie", [])),
            server_params=dict(server_params or {}),
        )


@dataclass
class ResponseMessage:
    """Response side of an HTTP exchange."""

    status_code: int
    headers: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def from_asgi(cls, message: Mapping[str, Any]) -> "ResponseMessage":
        """Build a response message from an ``http.response.start`` message."""
        return cls(
            status_code=message["status"],
            headers=_decode_headers(message.get("headers", [])),
        )


class MessageDataSource(DataSource):
    """Populate a request from an HTTP message pair.

    Claims ``method``, ``uri``, ``url``, ``headers``, ``get_data``,
    ``post_data``, ``cookies`` and ``time`` from the request message, and
    ``response_status`` and ``response_time`` from the response message.
    Either message may be omitted.
    """

    def __init__(
        self,
        request_message: RequestMessage | None = None,
        response_message: ResponseMessage | None = None,
        sensitive_keys: Iterable[str] = DEFAULT_SENSITIVE_KEYS,
    ) -> None:
        super().__init__(sensitive_keys)
        self.request_message = request_message
        self.response_message = response_message

    def resolve(self, request: Request) -> Request:
        message = self.request_message
        if message is not None:
            request.method = message.method
            request.uri = message.uri
            if message.url is not None:
                request.url = message.url
            request.headers = self._request_headers()
            request.get_data = self.sanitize(message.query_params)
            request.post_data = self.sanitize(message.parsed_body)
            request.cookies = self.sanitize(message.cookies)
            request.time = self._request_time()

        if self.response_message is not None:
            request.response_status = self.response_message.status_code
            request.response_time = self._response_time()

        return request

    def _request_time(self) -> float | None:
        """Prefer the high resolution start time, then the coarse one."""
        assert self.request_message is not None
        params = self.request_message.server_params
        if params.get(REQUEST_TIME_FLOAT) is not None:
            return float(params[REQUEST_TIME_FLOAT])
        if params.get(REQUEST_TIME) is not None:
            return float(params[REQUEST_TIME])
        return None

    def _response_time(self) -> float:
        # The transport's completion time is not observable, sample it now.
        return time.time()

    def _request_headers(self) -> dict[str, list[str]]:
        assert self.request_message is not None
        headers: dict[str, list[str]] = {}
        for name, values in self.request_message.headers.items():
            headers.setdefault(normalize_header_name(name), []).extend(values)
        return dict(sorted(headers.items()))


def normalize_header_name(name: str) -> str:
    """Normalize ``HTTP_X_FORWARDED_FOR``/``x-forwarded-for`` to ``X-Forwarded-For``."""
    if name[:5].upper() == "HTTP_":
        name = name[5:]
    return "-".join(part.capitalize() for part in re.split(r"[ _-]+", name.lower()) if part)


def _decode_headers(raw: Iterable[tuple[bytes, bytes]]) -> dict[str, list[str]]:
    headers: dict[str, list[str]] = {}
    for name, value in raw:
        key = name.decode("latin-1").lower()
        headers.setdefault(key, []).append(value.decode("latin-1"))
    return headers


def _first(headers: Mapping[str, list[str]], name: str) -> str | None:
    values = headers.get(name)
    return values[0] if values else None


def _build_url(scope: Mapping[str, Any], headers: Mapping[str, list[str]], uri: str) -> str | None:
    host = _first(headers, "host")
    if host is None and scope.get("server"):
        server_host, port = scope["server"]
        host = f"{server_host}:{port}" if port else server_host
    if host is None:
        return None
    return f"{scope.get('scheme', 'http')}://{host}{uri}"


def _parse_query(query_string: str) -> dict[str, Any]:
    """Parse a query string, collapsing single-valued parameters to scalars."""
    params = parse_qs(query_string, keep_blank_values=True)
    return {key: values[0] if len(values) == 1 else values for key, values in params.items()}


def _parse_body(content_type: str | None, body: bytes) -> Any:
    if not body:
        return None
    media_type = (content_type or "").split(";")[0].strip().lower()
    try:
        if media_type == "application/x-www-form-urlencoded":
            return _parse_query(body.decode())
        if media_type == "application/json" or media_type.endswith("+json"):
            return json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    return None


def _parse_cookies(values: Iterable[str]) -> dict[str, str]:
    cookies: dict[str, str] = {}
    for value in values:
        jar = SimpleCookie()
        try:
            jar.load(value)
        except CookieError:
            continue
        cookies.update({name: morsel.value for name, morsel in jar.items()})
    return cookies
