"""Step definitions for the request lifecycle feature."""

import asyncio
from dataclasses import dataclass, field

import pytest
from pytest_bdd import given, parsers, then, when

from clockworkpy.adapters.storage.in_memory import InMemoryStorage
from clockworkpy.core.clockwork import Clockwork
from clockworkpy.core.models import Request


@dataclass
class LifecycleContext:
    """Shared state between the steps of one scenario."""

    storage: InMemoryStorage = field(default_factory=InMemoryStorage)
    clockwork: Clockwork | None = None
    stored_ids: list[str] = field(default_factory=list)

    @property
    def stored(self) -> Request:
        request = asyncio.run(self.storage.find(self.stored_ids[-1]))
        assert request is not None
        return request


@pytest.fixture
def ctx() -> LifecycleContext:
    return LifecycleContext()


def _store(ctx: LifecycleContext) -> None:
    stored_id = ctx.clockwork.store_request_sync()
    ctx.stored_ids.append(stored_id)


# === Given ===


@given("a clockwork with in-memory storage")
def step_clockwork(ctx: LifecycleContext) -> None:
    ctx.clockwork = Clockwork(storage=ctx.storage)


@given(parsers.parse('the application logs "{message}" at level "{level}"'))
@when(parsers.parse('the application logs "{message}" at level "{level}"'))
def step_log(ctx: LifecycleContext, message: str, level: str) -> None:
    ctx.clockwork.log(level, message)


@given(
    parsers.parse('a timeline event "{description}" starting {seconds:d} seconds before the request')
)
def step_timeline_event(ctx: LifecycleContext, description: str, seconds: int) -> None:
    start = ctx.clockwork.request.time - seconds
    ctx.clockwork.event(description, start=start)


@given("the record policy only keeps errors")
def step_errors_only(ctx: LifecycleContext) -> None:
    ctx.clockwork.should_record({"errors_only": True})


@given(parsers.parse("the response status is {status:d}"))
def step_response_status(ctx: LifecycleContext, status: int) -> None:
    ctx.clockwork.request.response_status = status


# === When ===


@given("the request is resolved and stored")
@when("the request is resolved and stored")
def step_resolve_and_store(ctx: LifecycleContext) -> None:
    ctx.clockwork.resolve_request()
    _store(ctx)


@when("the request is resolved and stored if allowed")
def step_resolve_and_store_if_allowed(ctx: LifecycleContext) -> None:
    ctx.clockwork.resolve_request()
    if ctx.clockwork.should_record().allows(ctx.clockwork.request):
        _store(ctx)


@when("the clockwork is reset")
def step_reset(ctx: LifecycleContext) -> None:
    ctx.clockwork.reset()


@when(parsers.parse('the request is resolved as a failed test "{name}" with {count:d} assertions'))
def step_resolve_as_test(ctx: LifecycleContext, name: str, count: int) -> None:
    asserts = [
        {"name": "assertEqual", "arguments": [index, index], "passed": True, "trace": []}
        for index in range(count)
    ]
    ctx.clockwork.resolve_as_test(name, "failed", "expected 1, got 2", asserts)


@when("the request is stored")
def step_store(ctx: LifecycleContext) -> None:
    _store(ctx)


# === Then ===


@then(parsers.parse("the stored record has {count:d} log entries"))
def step_log_count(ctx: LifecycleContext, count: int) -> None:
    assert len(ctx.stored.log) == count


@then(parsers.parse('the stored log levels are "{levels}"'))
def step_log_levels(ctx: LifecycleContext, levels: str) -> None:
    assert [entry.level for entry in ctx.stored.log] == levels.split(",")


@then("every stored timeline event is closed")
def step_timeline_closed(ctx: LifecycleContext) -> None:
    events = list(ctx.stored.timeline)
    assert events
    for event in events:
        assert event.end is not None
        assert event.end >= event.start


@then(parsers.parse("the storage holds {count:d} records"))
def step_storage_count(ctx: LifecycleContext, count: int) -> None:
    assert asyncio.run(ctx.storage.count()) == count


@then(parsers.parse('the stored record is of type "{type_}"'))
def step_record_type(ctx: LifecycleContext, type_: str) -> None:
    assert ctx.stored.type.value == type_


@then(parsers.parse("the stored record has {count:d} test assertions"))
def step_assert_count(ctx: LifecycleContext, count: int) -> None:
    assert len(ctx.stored.test_asserts) == count
