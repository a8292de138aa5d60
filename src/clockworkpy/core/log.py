"""Log buffer collecting leveled messages for the current request."""

import json
import time
import traceback
from collections.abc import Iterator, Mapping
from typing import Any

from clockworkpy.core.models import LogEntry, LogLevel
from clockworkpy.core.serializer import normalize, safe_str


class Log:
    """Append-only buffer of log entries.

    Entries are kept under an increasing sequence number, so ``to_list``
    always returns them in the order they were logged. Between requests the
    whole instance is replaced rather than cleared.
    """

    def __init__(self) -> None:
        self._entries: dict[int, LogEntry] = {}
        self._sequence = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(self.to_list())

    def log(
        self,
        level: LogLevel | str,
        message: Any,
        context: Mapping[str, Any] | None = None,
    ) -> LogEntry:
        """Append a message with the current timestamp.

        Args:
            level: Severity (a LogLevel or its string value).
            message: The message. Non-string values are normalized and
                rendered as JSON.
            context: Additional structured fields. An ``exception`` value
                holding an exception is expanded into type, message and trace.

        Returns:
            The stored LogEntry.
        """
        context = dict(context or {})
        trace: list[Any] = []
        exception = context.get("exception")
        if isinstance(exception, BaseException):
            context["exception"] = _describe_exception(exception)
            trace = context["exception"]["trace"]

        entry = LogEntry(
            level=LogLevel(level.lower()).value,
            message=_render_message(message),
            context=normalize(context),
            time=time.time(),
            trace=trace,
        )
        self._entries[self._sequence] = entry
        self._sequence += 1
        return entry

    def emergency(self, message: Any, context: Mapping[str, Any] | None = None) -> LogEntry:
        return self.log(LogLevel.EMERGENCY, message, context)

    def alert(self, message: Any, context: Mapping[str, Any] | None = None) -> LogEntry:
        return self.log(LogLevel.ALERT, message, context)

    def critical(self, message: Any, context: Mapping[str, Any] | None = None) -> LogEntry:
        return self.log(LogLevel.CRITICAL, message, context)

    def error(self, message: Any, context: Mapping[str, Any] | None = None) -> LogEntry:
        return self.log(LogLevel.ERROR, message, context)

    def warning(self, message: Any, context: Mapping[str, Any] | None = None) -> LogEntry:
        return self.log(LogLevel.WARNING, message, context)

    def notice(self, message: Any, context: Mapping[str, Any] | None = None) -> LogEntry:
        return self.log(LogLevel.NOTICE, message, context)

    def info(self, message: Any, context: Mapping[str, Any] | None = None) -> LogEntry:
        return self.log(LogLevel.INFO, message, context)

    def debug(self, message: Any, context: Mapping[str, Any] | None = None) -> LogEntry:
        return self.log(LogLevel.DEBUG, message, context)

    def to_list(self) -> list[LogEntry]:
        """Return the entries in append order, each carrying its own time."""
        return [self._entries[key] for key in sorted(self._entries)]


def _render_message(message: Any) -> str:
    if isinstance(message, str):
        return message
    return json.dumps(normalize(message))


def _describe_exception(exception: BaseException) -> dict[str, Any]:
    frames = traceback.extract_tb(exception.__traceback__)
    return {
        "type": type(exception).__name__,
        "message": safe_str(exception),
        "trace": [
            {"file": frame.filename, "line": frame.lineno, "function": frame.name}
            for frame in frames
        ],
    }
