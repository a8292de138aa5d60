"""Core domain models for collected request diagnostics."""

import random
import time
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any

from clockworkpy.core.serializer import normalize
from clockworkpy.core.timeline import Timeline

VERSION = "0.1.0"


class RequestType(str, Enum):
    """Kind of unit of work a Request describes."""

    REQUEST = "request"
    COMMAND = "command"
    QUEUE_JOB = "queue-job"
    TEST = "test"


class LogLevel(str, Enum):
    """Syslog style severities, most severe first."""

    EMERGENCY = "emergency"
    ALERT = "alert"
    CRITICAL = "critical"
    ERROR = "error"
    WARNING = "warning"
    NOTICE = "notice"
    INFO = "info"
    DEBUG = "debug"


def generate_request_id() -> str:
    """Return an id of the form ``<seconds>-<milliseconds>-<random>``."""
    now = time.time()
    return f"{int(now)}-{int(now * 1000) % 1000:04d}-{random.randint(0, 999_999_999)}"


def _to_camel(name: str) -> str:
    head, *rest = name.rstrip("_").split("_")
    return head + "".join(part.capitalize() for part in rest)


def _record_to_dict(record: Any) -> dict[str, Any]:
    return {_to_camel(f.name): getattr(record, f.name) for f in fields(record)}


def _record_from_dict(cls: type, data: Mapping[str, Any]) -> Any:
    values = {
        f.name: data[_to_camel(f.name)] for f in fields(cls) if _to_camel(f.name) in data
    }
    return cls(**values)


@dataclass(frozen=True)
class LogEntry:
    """A single log message.

    Attributes:
        level: Severity, one of the LogLevel values.
        message: The log message.
        context: Normalized structured context.
        time: Unix timestamp in seconds.
        trace: Optional normalized stack trace frames.
    """

    level: str
    message: str
    context: dict[str, Any] = field(default_factory=dict)
    time: float = 0.0
    trace: list[Any] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return _record_to_dict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LogEntry":
        return _record_from_dict(cls, data)


@dataclass
class DatabaseQuery:
    query: str
    bindings: Any = None
    duration: float | None = None
    connection: str | None = None
    time: float | None = None
    file: str | None = None
    line: int | None = None
    trace: list[Any] = field(default_factory=list)
    model: str | None = None
    tags: list[str] = field(default_factory=list)


@dataclass
class CacheQuery:
    type: str
    key: str
    value: Any = None
    duration: float | None = None
    connection: str | None = None
    time: float | None = None
    file: str | None = None
    line: int | None = None
    trace: list[Any] = field(default_factory=list)
    expiration: int | None = None


@dataclass
class Event:
    event: str
    data: Any = None
    time: float | None = None
    listeners: list[Any] = field(default_factory=list)
    file: str | None = None
    line: int | None = None
    trace: list[Any] = field(default_factory=list)


@dataclass
class Route:
    method: str
    uri: str
    action: str
    name: str | None = None
    middleware: list[Any] = field(default_factory=list)
    before: list[Any] = field(default_factory=list)
    after: list[Any] = field(default_factory=list)


@dataclass
class Email:
    subject: str
    to: Any
    from_: Any = None
    headers: dict[str, Any] = field(default_factory=dict)
    time: float | None = None
    duration: float | None = None


@dataclass
class View:
    name: str
    data: Any = None
    time: float | None = None
    duration: float | None = None


@dataclass
class Subrequest:
    url: str
    id: str
    path: str | None = None


@dataclass
class TestAssert:
    __test__ = False

    name: str
    arguments: list[Any] = field(default_factory=list)
    passed: bool = True
    trace: list[Any] = field(default_factory=list)


@dataclass
class UserData:
    """A user defined data tab, rendered by the client as an extra panel."""

    key: str
    title: str | None = None
    items: list[dict[str, Any]] = field(default_factory=list)

    def data(self, data: Any, key: str | None = None) -> "UserData":
        return self._add(data, show_as=None, key=key)

    def counters(self, counters: Mapping[str, Any]) -> "UserData":
        return self._add(counters, show_as="counters")

    def table(self, title: str, rows: list[Any]) -> "UserData":
        return self._add(rows, show_as="table", title=title)

    def set_title(self, title: str) -> "UserData":
        self.title = title
        return self

    def _add(self, data: Any, show_as: str | None, **meta: Any) -> "UserData":
        meta = {"showAs": show_as, **meta}
        self.items.append({"data": normalize(data), "meta": meta})
        return self

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "title": self.title, "items": self.items}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "UserData":
        return cls(key=data["key"], title=data.get("title"), items=list(data.get("items", [])))


# Plain fields and their wire names. Collections are handled separately.
_SCALAR_FIELDS = (
    "id",
    "version",
    "time",
    "method",
    "uri",
    "url",
    "headers",
    "controller",
    "get_data",
    "post_data",
    "cookies",
    "session_data",
    "middleware",
    "response_time",
    "response_status",
    "command_name",
    "command_arguments",
    "command_arguments_defaults",
    "command_options",
    "command_options_defaults",
    "command_exit_code",
    "command_output",
    "job_name",
    "job_description",
    "job_status",
    "job_payload",
    "job_queue",
    "job_connection",
    "job_options",
    "test_name",
    "test_status",
    "test_status_message",
)

_RECORD_COLLECTIONS = {
    "database_queries": ("databaseQueries", DatabaseQuery),
    "cache_queries": ("cacheQueries", CacheQuery),
    "events": ("events", Event),
    "routes": ("routes", Route),
    "emails": ("emailsData", Email),
    "views": ("viewsData", View),
    "subrequests": ("subrequests", Subrequest),
    "test_asserts": ("testAsserts", TestAssert),
}


@dataclass
class Request:
    """Aggregate diagnostic record for one unit of application work.

    Collections keep discovery order. Only one of the command, job or test
    field groups is filled in, depending on how the request was resolved.
    """

    id: str = field(default_factory=generate_request_id)
    version: str = VERSION
    type: RequestType = RequestType.REQUEST
    time: float | None = field(default_factory=time.time)

    method: str | None = None
    uri: str | None = None
    url: str | None = None
    headers: dict[str, list[str]] = field(default_factory=dict)
    controller: str | None = None
    get_data: Any = None
    post_data: Any = None
    cookies: Any = None
    session_data: Any = None
    middleware: list[Any] = field(default_factory=list)

    response_time: float | None = None
    response_status: int | None = None

    log: list[LogEntry] = field(default_factory=list)
    timeline: Timeline = field(default_factory=Timeline)
    database_queries: list[DatabaseQuery] = field(default_factory=list)
    cache_queries: list[CacheQuery] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)
    routes: list[Route] = field(default_factory=list)
    emails: list[Email] = field(default_factory=list)
    views: list[View] = field(default_factory=list)
    subrequests: list[Subrequest] = field(default_factory=list)
    user_data_tabs: dict[str, UserData] = field(default_factory=dict)

    command_name: str | None = None
    command_arguments: Any = None
    command_arguments_defaults: Any = None
    command_options: Any = None
    command_options_defaults: Any = None
    command_exit_code: int | None = None
    command_output: str | None = None

    job_name: str | None = None
    job_description: str | None = None
    job_status: str | None = None
    job_payload: Any = None
    job_queue: str | None = None
    job_connection: str | None = None
    job_options: Any = None

    test_name: str | None = None
    test_status: str | None = None
    test_status_message: str | None = None
    test_asserts: list[TestAssert] = field(default_factory=list)

    # --- Derived values ---

    def response_duration(self) -> float | None:
        """Return the response duration in milliseconds, if both ends are known."""
        if self.time is None or self.response_time is None:
            return None
        return (self.response_time - self.time) * 1000

    def database_duration(self) -> float:
        return sum(q.duration or 0.0 for q in self.database_queries)

    def cache_summary(self) -> dict[str, float]:
        """Count cache queries by type and sum their durations."""
        counts = {"read": 0, "hit": 0, "write": 0, "delete": 0}
        for query in self.cache_queries:
            if query.type in counts:
                counts[query.type] += 1
        return {
            "cacheReads": counts["read"],
            "cacheHits": counts["hit"],
            "cacheWrites": counts["write"],
            "cacheDeletes": counts["delete"],
            "cacheTime": sum(q.duration or 0.0 for q in self.cache_queries),
        }

    # --- Collection helpers ---

    def add_database_query(
        self,
        query: str,
        bindings: Any = None,
        duration: float | None = None,
        *,
        connection: str | None = None,
        time: float | None = None,
        file: str | None = None,
        line: int | None = None,
        trace: list[Any] | None = None,
        model: str | None = None,
        tags: list[str] | None = None,
    ) -> "Request":
        """Add an executed database query. Duration is in milliseconds."""
        self.database_queries.append(
            DatabaseQuery(
                query=query,
                bindings=normalize(bindings),
                duration=duration,
                connection=connection,
                time=_started_at(time, duration),
                file=file,
                line=line,
                trace=normalize(trace or []),
                model=model,
                tags=list(tags or []),
            )
        )
        return self

    def add_cache_query(
        self,
        type: str,
        key: str,
        value: Any = None,
        duration: float | None = None,
        *,
        connection: str | None = None,
        time: float | None = None,
        file: str | None = None,
        line: int | None = None,
        trace: list[Any] | None = None,
        expiration: int | None = None,
    ) -> "Request":
        """Add a cache operation (read, hit, write or delete)."""
        self.cache_queries.append(
            CacheQuery(
                type=type,
                key=key,
                value=normalize(value),
                duration=duration,
                connection=connection,
                time=_started_at(time, duration),
                file=file,
                line=line,
                trace=normalize(trace or []),
                expiration=expiration,
            )
        )
        return self

    def add_event(
        self,
        event: str,
        event_data: Any = None,
        time: float | None = None,
        *,
        listeners: list[Any] | None = None,
        file: str | None = None,
        line: int | None = None,
        trace: list[Any] | None = None,
    ) -> "Request":
        self.events.append(
            Event(
                event=event,
                data=normalize(event_data),
                time=_now_if_missing(time),
                listeners=normalize(listeners or []),
                file=file,
                line=line,
                trace=normalize(trace or []),
            )
        )
        return self

    def add_route(
        self,
        method: str,
        uri: str,
        action: str,
        *,
        name: str | None = None,
        middleware: list[Any] | None = None,
        before: list[Any] | None = None,
        after: list[Any] | None = None,
    ) -> "Request":
        self.routes.append(
            Route(
                method=method,
                uri=uri,
                action=action,
                name=name,
                middleware=normalize(middleware or []),
                before=normalize(before or []),
                after=normalize(after or []),
            )
        )
        return self

    def add_email(
        self,
        subject: str,
        to: Any,
        from_: Any = None,
        headers: Mapping[str, Any] | None = None,
        *,
        time: float | None = None,
        duration: float | None = None,
    ) -> "Request":
        self.emails.append(
            Email(
                subject=subject,
                to=normalize(to),
                from_=normalize(from_),
                headers=normalize(dict(headers or {})),
                time=_now_if_missing(time),
                duration=duration,
            )
        )
        return self

    def add_view(
        self,
        name: str,
        view_data: Any = None,
        *,
        time: float | None = None,
        duration: float | None = None,
    ) -> "Request":
        self.views.append(
            View(
                name=name,
                data=normalize(view_data),
                time=_now_if_missing(time),
                duration=duration,
            )
        )
        return self

    def add_subrequest(self, url: str, id: str, *, path: str | None = None) -> "Request":
        self.subrequests.append(Subrequest(url=url, id=id, path=path))
        return self

    def add_test_assert(
        self,
        name: str,
        arguments: list[Any] | None = None,
        passed: bool = True,
        trace: list[Any] | None = None,
    ) -> "Request":
        self.test_asserts.append(
            TestAssert(
                name=name,
                arguments=normalize(list(arguments or [])),
                passed=passed,
                trace=normalize(trace or []),
            )
        )
        return self

    def user_data(self, key: str | None = None) -> UserData:
        """Return the user data tab for ``key``, creating it on first use."""
        key = key or "default"
        if key not in self.user_data_tabs:
            self.user_data_tabs[key] = UserData(key=key)
        return self.user_data_tabs[key]

    # --- Serialization ---

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-safe wire record of this request."""
        data: dict[str, Any] = {
            _to_camel(name): normalize(getattr(self, name)) for name in _SCALAR_FIELDS
        }
        data["type"] = self.type.value
        data["responseDuration"] = self.response_duration()
        data["log"] = [normalize(entry.to_dict()) for entry in self.log]
        data["timelineData"] = normalize(self.timeline.to_list())
        for name, (key, _) in _RECORD_COLLECTIONS.items():
            data[key] = [normalize(_record_to_dict(item)) for item in getattr(self, name)]
        data["databaseQueriesCount"] = len(self.database_queries)
        data["databaseDuration"] = self.database_duration()
        data.update(self.cache_summary())
        data["userData"] = {
            key: normalize(tab.to_dict()) for key, tab in self.user_data_tabs.items()
        }
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Request":
        """Rebuild a request from a record produced by ``to_dict``."""
        request = cls(
            **{name: data[_to_camel(name)] for name in _SCALAR_FIELDS if _to_camel(name) in data}
        )
        request.type = RequestType(data.get("type", RequestType.REQUEST.value))
        request.log = [LogEntry.from_dict(entry) for entry in data.get("log", [])]
        request.timeline = Timeline.from_list(data.get("timelineData"))
        for name, (key, record_cls) in _RECORD_COLLECTIONS.items():
            items = [_record_from_dict(record_cls, item) for item in data.get(key, [])]
            setattr(request, name, items)
        request.user_data_tabs = {
            key: UserData.from_dict(tab) for key, tab in data.get("userData", {}).items()
        }
        return request


def _now_if_missing(timestamp: float | None) -> float:
    return time.time() if timestamp is None else timestamp


def _started_at(timestamp: float | None, duration: float | None) -> float:
    if timestamp is not None:
        return timestamp
    return time.time() - (duration or 0) / 1000
