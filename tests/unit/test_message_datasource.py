"""Tests for the HTTP message data source."""

import json

import pytest

from clockworkpy.adapters.datasources.base import DataSource
from clockworkpy.adapters.datasources.message import (
    REQUEST_TIME,
    REQUEST_TIME_FLOAT,
    MessageDataSource,
    RequestMessage,
    ResponseMessage,
    normalize_header_name,
)
from clockworkpy.core.models import Request
from clockworkpy.core.serializer import REDACTED

pytestmark = [pytest.mark.core, pytest.mark.tier(1)]


class TestNormalizeHeaderName:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("HTTP_X_FORWARDED_FOR", "X-Forwarded-For"),
            ("x-forwarded-for", "X-Forwarded-For"),
            ("content-type", "Content-Type"),
            ("CONTENT_LENGTH", "Content-Length"),
            ("http_accept", "Accept"),
        ],
    )
    def test_normalizes(self, raw: str, expected: str) -> None:
        assert normalize_header_name(raw) == expected


class TestRequestMessageFromAsgi:
    """Tests for RequestMessage.from_asgi()."""

    def test_builds_uri_url_and_query(self, asgi_scope) -> None:
        scope = asgi_scope(path="/search", query_string=b"q=clock&tag=a&tag=b")

        message = RequestMessage.from_asgi(scope)

        assert message.method == "GET"
        assert message.uri == "/search?q=clock&tag=a&tag=b"
        assert message.url == "http://testserver:80/search?q=clock&tag=a&tag=b"
        assert message.query_params == {"q": "clock", "tag": ["a", "b"]}

    def test_host_header_wins_over_server(self, asgi_scope) -> None:
        scope = asgi_scope(path="/", headers=[(b"host", b"example.com")])
        assert RequestMessage.from_asgi(scope).url == "http://example.com/"

    def test_headers_keep_every_value(self, asgi_scope) -> None:
        scope = asgi_scope(headers=[(b"X-Tag", b"a"), (b"x-tag", b"b")])
        assert RequestMessage.from_asgi(scope).headers == {"x-tag": ["a", "b"]}

    def test_parses_json_body(self, asgi_scope) -> None:
        scope = asgi_scope(method="POST", headers=[(b"content-type", b"application/json")])
        message = RequestMessage.from_asgi(scope, json.dumps({"name": "Ada"}).encode())
        assert message.parsed_body == {"name": "Ada"}

    def test_parses_form_body(self, asgi_scope) -> None:
        scope = asgi_scope(
            method="POST",
            headers=[(b"content-type", b"application/x-www-form-urlencoded; charset=utf-8")],
        )
        message = RequestMessage.from_asgi(scope, b"name=Ada&password=pw")
        assert message.parsed_body == {"name": "Ada", "password": "pw"}

    @pytest.mark.parametrize(
        ("content_type", "body"),
        [(b"application/json", b"{broken"), (b"text/plain", b"hello"), (b"application/json", b"")],
        ids=["invalid_json", "unsupported_type", "empty"],
    )
    def test_unparseable_body_is_none(self, asgi_scope, content_type, body) -> None:
        scope = asgi_scope(method="POST", headers=[(b"content-type", content_type)])
        assert RequestMessage.from_asgi(scope, body).parsed_body is None

    def test_parses_cookies(self, asgi_scope) -> None:
        scope = asgi_scope(headers=[(b"cookie", b"session=abc; theme=dark")])
        assert RequestMessage.from_asgi(scope).cookies == {"session": "abc", "theme": "dark"}


class TestResponseMessageFromAsgi:
    def test_reads_status_and_headers(self) -> None:
        message = ResponseMessage.from_asgi(
            {
                "type": "http.response.start",
                "status": 201,
                "headers": [(b"content-type", b"application/json")],
            }
        )
        assert message.status_code == 201
        assert message.headers == {"content-type": ["application/json"]}


class TestMessageDataSource:
    """Tests for MessageDataSource.resolve()."""

    def _request_message(self, **overrides) -> RequestMessage:
        values = {
            "method": "POST",
            "uri": "/login?next=/home",
            "url": "http://example.com/login?next=/home",
            "headers": {"user-agent": ["pytest"], "HTTP_ACCEPT": ["*/*"]},
            "query_params": {"next": "/home"},
            "parsed_body": {"username": "ada", "password": "secret"},
            "cookies": {"session": "abc"},
            "server_params": {REQUEST_TIME_FLOAT: 100.5, REQUEST_TIME: 100},
        }
        values.update(overrides)
        return RequestMessage(**values)

    def test_claims_request_fields(self) -> None:
        source = MessageDataSource(self._request_message())

        request = source.resolve(Request())

        assert request.method == "POST"
        assert request.uri == "/login?next=/home"
        assert request.url == "http://example.com/login?next=/home"
        assert request.get_data == {"next": "/home"}
        assert request.post_data == {"username": "ada", "password": REDACTED}
        assert request.cookies == {"session": "abc"}
        assert request.time == 100.5

    def test_headers_are_normalized_and_sorted(self) -> None:
        request = MessageDataSource(self._request_message()).resolve(Request())
        assert request.headers == {"Accept": ["*/*"], "User-Agent": ["pytest"]}

    def test_falls_back_to_coarse_request_time(self) -> None:
        message = self._request_message(server_params={REQUEST_TIME: 100})
        assert MessageDataSource(message).resolve(Request()).time == 100.0

    def test_request_time_is_none_without_server_params(self) -> None:
        message = self._request_message(server_params={})
        assert MessageDataSource(message).resolve(Request(time=5.0)).time is None

    def test_claims_response_fields(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("time.time", lambda: 200.0)
        source = MessageDataSource(response_message=ResponseMessage(status_code=404))

        request = source.resolve(Request(time=199.0))

        assert request.response_status == 404
        assert request.response_time == 200.0
        assert request.method is None
        assert request.time == 199.0

    def test_custom_sensitive_keys(self) -> None:
        message = self._request_message(query_params={"api_token": "t"})
        source = MessageDataSource(message, sensitive_keys=("token",))
        assert source.resolve(Request()).get_data == {"api_token": REDACTED}


class TestDataSourceBase:
    def test_resolve_must_be_implemented(self) -> None:
        with pytest.raises(NotImplementedError):
            DataSource().resolve(Request())

    def test_extend_and_reset_are_noops(self) -> None:
        source = DataSource()
        request = Request()
        assert source.extend(request) is request
        assert source.reset() is None
