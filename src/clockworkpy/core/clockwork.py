"""The Clockwork orchestrator.

Owns the Request being collected, the global Log, the registered data
sources and the storage/authentication collaborators, and drives the
resolve -> finalize -> store lifecycle for exactly one unit of work at a time.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from clockworkpy.core.authentication import NullAuthenticator
from clockworkpy.core.config import ClockworkConfig
from clockworkpy.core.filters import ShouldCollect, ShouldRecord
from clockworkpy.core.log import Log
from clockworkpy.core.models import LogEntry, LogLevel, Request, RequestType, UserData
from clockworkpy.core.ports import AuthenticatorPort, DataSourcePort, StoragePort
from clockworkpy.core.serializer import normalize, normalize_each
from clockworkpy.core.timeline import TimelineEvent

logger = logging.getLogger(__name__)


class ClockworkState(str, Enum):
    IDLE = "idle"
    RESOLVED = "resolved"
    STORED = "stored"


class Clockwork:
    """Collects diagnostics for the current unit of work.

    Example:
        ```python
        clockwork = Clockwork(storage=InMemoryStorage())
        clockwork.add_data_source(MessageDataSource(request_message))
        clockwork.info("handling request")
        clockwork.resolve_request()
        await clockwork.store_request()
        ```
    """

    def __init__(
        self,
        storage: StoragePort | None = None,
        authenticator: AuthenticatorPort | None = None,
        config: ClockworkConfig | None = None,
    ) -> None:
        self.config = config or ClockworkConfig()
        self.request = Request()
        self.storage = storage
        self.authenticator: AuthenticatorPort = authenticator or NullAuthenticator()
        self.state = ClockworkState.IDLE
        self._log = Log()
        self._data_sources: list[DataSourcePort] = []
        self._should_collect = ShouldCollect(**self.config.collect_rules())
        self._should_record = ShouldRecord(**self.config.record_rules())

    # --- Collaborators ---

    def add_data_source(self, data_source: DataSourcePort) -> "Clockwork":
        self._data_sources.append(data_source)
        return self

    @property
    def data_sources(self) -> list[DataSourcePort]:
        return list(self._data_sources)

    def set_request(self, request: Request) -> "Clockwork":
        self.request = request
        return self

    def get_log(self) -> Log:
        return self._log

    def set_log(self, log: Log) -> "Clockwork":
        self._log = log
        return self

    def set_storage(self, storage: StoragePort) -> "Clockwork":
        self.storage = storage
        return self

    def set_authenticator(self, authenticator: AuthenticatorPort) -> "Clockwork":
        self.authenticator = authenticator
        return self

    # --- Lifecycle ---

    def resolve_request(self) -> "Clockwork":
        """Run every data source, merge the log, close and sort the timeline.

        Data sources run in registration order. Exceptions raised by a data
        source propagate to the caller.
        """
        for data_source in self._data_sources:
            data_source.resolve(self.request)

        self.request.log = _merge_log(self.request.log, self._log.to_list())
        self.request.timeline.finalize(self.request.time)
        self.request.timeline.sort()
        self.state = ClockworkState.RESOLVED
        logger.debug("Resolved request %s", self.request.id)
        return self

    def resolve_as_command(
        self,
        name: str,
        exit_code: int | None = None,
        arguments: Mapping[str, Any] | None = None,
        options: Mapping[str, Any] | None = None,
        arguments_defaults: Mapping[str, Any] | None = None,
        options_defaults: Mapping[str, Any] | None = None,
        output: str | None = None,
    ) -> "Clockwork":
        """Resolve the current request as a console command."""
        self.resolve_request()
        request = self.request
        request.type = RequestType.COMMAND
        request.command_name = name
        request.command_arguments = normalize_each(arguments)
        request.command_arguments_defaults = normalize_each(arguments_defaults)
        request.command_options = normalize_each(options)
        request.command_options_defaults = normalize_each(options_defaults)
        request.command_exit_code = exit_code
        request.command_output = output
        return self

    def resolve_as_queue_job(
        self,
        name: str,
        description: str | None = None,
        status: str = "processed",
        payload: Any = None,
        queue: str | None = None,
        connection: str | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> "Clockwork":
        """Resolve the current request as a processed queue job."""
        self.resolve_request()
        request = self.request
        request.type = RequestType.QUEUE_JOB
        request.job_name = name
        request.job_description = description
        request.job_status = status
        request.job_payload = normalize(payload if payload is not None else {})
        request.job_queue = queue
        request.job_connection = connection
        request.job_options = normalize_each(options)
        return self

    def resolve_as_test(
        self,
        name: str,
        status: str = "passed",
        status_message: str | None = None,
        asserts: list[Mapping[str, Any]] | None = None,
    ) -> "Clockwork":
        """Resolve the current request as a test run.

        Args:
            name: Test name.
            status: Outcome, e.g. "passed", "failed", "skipped".
            status_message: Failure message, if any.
            asserts: Mappings with ``name``, ``arguments``, ``passed`` and
                ``trace`` keys.
        """
        self.resolve_request()
        request = self.request
        request.type = RequestType.TEST
        request.test_name = name
        request.test_status = status
        request.test_status_message = status_message
        for assertion in asserts or []:
            request.add_test_assert(
                assertion["name"],
                assertion.get("arguments"),
                assertion.get("passed", True),
                assertion.get("trace"),
            )
        return self

    def extend_request(self, request: Request | None = None) -> "Clockwork":
        """Let every data source enrich a stored request (or the current one)."""
        target = request if request is not None else self.request
        for data_source in self._data_sources:
            data_source.extend(target)
        return self

    async def store_request(self) -> str | None:
        """Hand the current request to storage. Without storage this is a no-op."""
        if self.storage is None:
            return None
        stored_id = await self.storage.store(self.request)
        self.state = ClockworkState.STORED
        logger.debug("Stored request %s", self.request.id)
        return stored_id

    def store_request_sync(self) -> str | None:
        """Synchronous ``store_request`` for code without a running event loop."""
        return asyncio.run(self.store_request())

    def reset(self) -> "Clockwork":
        """Clear collected data so the next unit of work starts empty."""
        for data_source in self._data_sources:
            data_source.reset()
        self._log = Log()
        self.request = Request()
        self.state = ClockworkState.IDLE
        return self

    # --- Policies ---

    def should_collect(
        self, rule: Callable[[Request], bool] | Mapping[str, Any] | None = None
    ) -> ShouldCollect:
        return _apply_policy(self._should_collect, rule)

    def should_record(
        self, rule: Callable[[Request], bool] | Mapping[str, Any] | None = None
    ) -> ShouldRecord:
        return _apply_policy(self._should_record, rule)

    # --- Log shortcuts ---

    def log(
        self,
        level: LogLevel | str,
        message: Any,
        context: Mapping[str, Any] | None = None,
    ) -> LogEntry:
        return self._log.log(level, message, context)

    def emergency(self, message: Any, context: Mapping[str, Any] | None = None) -> LogEntry:
        return self._log.emergency(message, context)

    def alert(self, message: Any, context: Mapping[str, Any] | None = None) -> LogEntry:
        return self._log.alert(message, context)

    def critical(self, message: Any, context: Mapping[str, Any] | None = None) -> LogEntry:
        return self._log.critical(message, context)

    def error(self, message: Any, context: Mapping[str, Any] | None = None) -> LogEntry:
        return self._log.error(message, context)

    def warning(self, message: Any, context: Mapping[str, Any] | None = None) -> LogEntry:
        return self._log.warning(message, context)

    def notice(self, message: Any, context: Mapping[str, Any] | None = None) -> LogEntry:
        return self._log.notice(message, context)

    def info(self, message: Any, context: Mapping[str, Any] | None = None) -> LogEntry:
        return self._log.info(message, context)

    def debug(self, message: Any, context: Mapping[str, Any] | None = None) -> LogEntry:
        return self._log.debug(message, context)

    # --- Timeline and request shortcuts ---

    def event(
        self, description: str, attributes: Mapping[str, Any] | None = None, **options: Any
    ) -> TimelineEvent:
        return self.request.timeline.event(description, attributes, **options)

    def add_database_query(
        self, query: str, bindings: Any = None, duration: float | None = None, **data: Any
    ) -> "Clockwork":
        self.request.add_database_query(query, bindings, duration, **data)
        return self

    def add_cache_query(
        self,
        type: str,
        key: str,
        value: Any = None,
        duration: float | None = None,
        **data: Any,
    ) -> "Clockwork":
        self.request.add_cache_query(type, key, value, duration, **data)
        return self

    def add_event(
        self, event: str, event_data: Any = None, time: float | None = None, **data: Any
    ) -> "Clockwork":
        self.request.add_event(event, event_data, time, **data)
        return self

    def add_route(self, method: str, uri: str, action: str, **data: Any) -> "Clockwork":
        self.request.add_route(method, uri, action, **data)
        return self

    def add_email(
        self,
        subject: str,
        to: Any,
        from_: Any = None,
        headers: Mapping[str, Any] | None = None,
        **data: Any,
    ) -> "Clockwork":
        self.request.add_email(subject, to, from_, headers, **data)
        return self

    def add_view(self, name: str, view_data: Any = None, **data: Any) -> "Clockwork":
        self.request.add_view(name, view_data, **data)
        return self

    def add_subrequest(
        self,
        url: str,
        id: str,
        *,
        path: str | None = None,
        start: float | None = None,
        end: float | None = None,
        duration: float | None = None,
    ) -> "Clockwork":
        """Record a subrequest and, when its timing is known, a timeline span.

        Args:
            url: The requested URL.
            id: Clockwork id of the child request.
            path: Storage path of the child request, if non-default.
            start: Start timestamp in seconds.
            end: End timestamp in seconds.
            duration: Duration in seconds, measured back from now.
        """
        if duration is not None:
            end = time.time()
            start = end - duration
        if start is not None:
            self.request.timeline.event(
                f"Subrequest - {url}", name=f"subrequest-{id}", start=start, end=end
            )
        self.request.add_subrequest(url, id, path=path)
        return self

    def user_data(self, key: str | None = None) -> UserData:
        return self.request.user_data(key)


def _merge_log(request_log: list[LogEntry], global_log: list[LogEntry]) -> list[LogEntry]:
    """Concatenate both logs and stable-sort by time.

    Entries already present in the request log (by identity) are not added
    again, so resolving twice does not duplicate the global log.
    """
    present = {id(entry) for entry in request_log}
    merged = [*request_log, *(entry for entry in global_log if id(entry) not in present)]
    return sorted(merged, key=lambda entry: entry.time)


def _apply_policy(policy: Any, rule: Any) -> Any:
    if rule is None:
        return policy
    if isinstance(rule, Mapping):
        return policy.merge(rule)
    if callable(rule):
        return policy.callback(rule)
    raise TypeError(f"expected a callable or a mapping of rules, got {type(rule).__name__}")
