"""Tests for core domain models."""

import json
import re

import pytest

from clockworkpy.core.models import (
    VERSION,
    LogEntry,
    Request,
    RequestType,
    UserData,
    generate_request_id,
)
from clockworkpy.core.serializer import UNSERIALIZABLE

pytestmark = [pytest.mark.core, pytest.mark.tier(0)]


class TestRequestDefaults:
    """Tests for a freshly created Request."""

    def test_new_request_has_id_version_and_time(self) -> None:
        request = Request()
        assert re.fullmatch(r"\d+-\d{4}-\d+", request.id)
        assert request.version == VERSION
        assert request.type is RequestType.REQUEST
        assert request.time is not None

    def test_generated_ids_differ(self) -> None:
        ids = {generate_request_id() for _ in range(50)}
        assert len(ids) > 1

    def test_collections_start_empty(self) -> None:
        request = Request()
        assert request.log == []
        assert len(request.timeline) == 0
        assert request.database_queries == []
        assert request.user_data_tabs == {}


class TestDerivedValues:
    def test_response_duration_in_milliseconds(self) -> None:
        request = Request(time=100.0, response_time=100.25)
        assert request.response_duration() == pytest.approx(250.0)

    def test_response_duration_unknown_without_response_time(self) -> None:
        assert Request(time=100.0).response_duration() is None

    def test_database_duration_sums_known_durations(self) -> None:
        request = Request()
        request.add_database_query("SELECT 1", duration=2.5)
        request.add_database_query("SELECT 2")
        request.add_database_query("SELECT 3", duration=1.5)
        assert request.database_duration() == 4.0

    def test_cache_summary_counts_by_type(self) -> None:
        request = Request()
        request.add_cache_query("read", "a", duration=1.0)
        request.add_cache_query("hit", "a")
        request.add_cache_query("write", "b", duration=2.0)
        request.add_cache_query("delete", "b")
        request.add_cache_query("read", "c")

        assert request.cache_summary() == {
            "cacheReads": 2,
            "cacheHits": 1,
            "cacheWrites": 1,
            "cacheDeletes": 1,
            "cacheTime": 3.0,
        }


class TestCollectionHelpers:
    """Tests for the Request.add_* helpers."""

    def test_add_helpers_keep_discovery_order(self) -> None:
        request = Request()
        for index in range(3):
            request.add_database_query(f"SELECT {index}")
        assert [q.query for q in request.database_queries] == [
            "SELECT 0",
            "SELECT 1",
            "SELECT 2",
        ]

    def test_database_query_start_time_is_derived_from_duration(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr("time.time", lambda: 50.0)
        request = Request().add_database_query("SELECT 1", duration=500.0)
        assert request.database_queries[0].time == 49.5

    def test_values_are_normalized(self) -> None:
        request = Request()
        request.add_database_query("SELECT ?", bindings=(1, len))
        request.add_event("user.created", {"user": {"id": 1}, "callback": print})
        request.add_view("index.html", {"items": {"a"}})

        assert request.database_queries[0].bindings == [1, UNSERIALIZABLE]
        assert request.events[0].data == {"user": {"id": 1}, "callback": UNSERIALIZABLE}
        assert request.views[0].data == {"items": ["a"]}

    def test_keyword_extras_are_stored(self) -> None:
        request = Request().add_cache_query(
            "write", "users:1", {"id": 1}, connection="redis", expiration=60
        )
        query = request.cache_queries[0]
        assert query.connection == "redis"
        assert query.expiration == 60

    def test_add_email_route_subrequest_and_assert(self) -> None:
        request = (
            Request()
            .add_email("Welcome", "ada@example.com", from_="noreply@example.com")
            .add_route("GET", "/users", "UsersController.index", name="users.index")
            .add_subrequest("http://api/internal", "123-0001-1")
            .add_test_assert("assertEqual", [1, 1], passed=True)
        )

        assert request.emails[0].from_ == "noreply@example.com"
        assert request.routes[0].name == "users.index"
        assert request.subrequests[0].id == "123-0001-1"
        assert request.test_asserts[0].arguments == [1, 1]

    def test_user_data_tab_is_created_once(self) -> None:
        request = Request()
        tab = request.user_data("cart")
        assert request.user_data("cart") is tab
        assert request.user_data().key == "default"


class TestUserData:
    def test_items_record_display_hints(self) -> None:
        tab = UserData(key="cart").set_title("Cart")
        tab.counters({"items": 3})
        tab.table("Products", [{"name": "Pen"}])
        tab.data({"coupon": None}, key="extra")

        assert tab.title == "Cart"
        assert [item["meta"]["showAs"] for item in tab.items] == ["counters", "table", None]
        assert tab.items[1]["meta"]["title"] == "Products"
        assert tab.items[2]["meta"]["key"] == "extra"

    def test_round_trip(self) -> None:
        tab = UserData(key="cart", title="Cart").counters({"items": 3})
        assert UserData.from_dict(tab.to_dict()) == tab


class TestLogEntry:
    def test_entries_are_immutable(self) -> None:
        entry = LogEntry(level="info", message="hi")
        with pytest.raises(AttributeError):
            entry.message = "changed"  # type: ignore[misc]

    def test_round_trip(self) -> None:
        entry = LogEntry(level="error", message="boom", context={"a": 1}, time=1.5)
        assert LogEntry.from_dict(entry.to_dict()) == entry


class TestRequestSerialization:
    """Tests for Request.to_dict() and Request.from_dict()."""

    def _populated(self) -> Request:
        request = Request(time=10.0, method="POST", uri="/orders?x=1", response_status=201)
        request.response_time = 10.5
        request.log.append(LogEntry(level="info", message="hello", time=10.1))
        request.timeline.event("Controller", start=10.0, end=10.2)
        request.add_database_query("INSERT", duration=3.0, time=10.1)
        request.add_cache_query("hit", "k", time=10.1)
        request.add_email("Hi", "a@b.c", time=10.3)
        request.add_view("orders.html", time=10.3)
        request.user_data("cart").counters({"items": 1})
        return request

    def test_to_dict_uses_wire_names(self) -> None:
        data = self._populated().to_dict()

        assert data["responseStatus"] == 201
        assert data["responseDuration"] == pytest.approx(500.0)
        assert data["databaseQueriesCount"] == 1
        assert data["databaseDuration"] == 3.0
        assert data["cacheHits"] == 1
        assert data["emailsData"][0]["subject"] == "Hi"
        assert data["emailsData"][0]["from"] is None
        assert data["viewsData"][0]["name"] == "orders.html"
        assert data["timelineData"][0]["duration"] == pytest.approx(200.0)
        assert data["userData"]["cart"]["items"][0]["data"] == {"items": 1}
        assert data["type"] == "request"

    def test_to_dict_is_json_encodable(self) -> None:
        json.dumps(self._populated().to_dict())

    def test_round_trip_preserves_record(self) -> None:
        original = self._populated()
        rebuilt = Request.from_dict(original.to_dict())
        assert rebuilt.to_dict() == original.to_dict()

    def test_from_dict_restores_type(self) -> None:
        request = Request(type=RequestType.QUEUE_JOB, job_name="SendInvoice")
        rebuilt = Request.from_dict(request.to_dict())
        assert rebuilt.type is RequestType.QUEUE_JOB
        assert rebuilt.job_name == "SendInvoice"
