"""Python logging handler adapter for clockworkpy.

This adapter bridges Python's standard library logging module to a Clockwork
Log, so records emitted through ``logging`` show up in the request's log.
"""

import logging
from typing import Any

from clockworkpy.adapters.context import get_clockwork
from clockworkpy.core.clockwork import Clockwork
from clockworkpy.core.log import Log
from clockworkpy.core.models import LogLevel

# Standard LogRecord attributes that should not be treated as extra fields
_STANDARD_LOGRECORD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)

_LEVELS = {
    "CRITICAL": LogLevel.CRITICAL,
    "ERROR": LogLevel.ERROR,
    "WARNING": LogLevel.WARNING,
    "INFO": LogLevel.INFO,
    "DEBUG": LogLevel.DEBUG,
}


def _map_level(levelno: int) -> LogLevel:
    """Map a stdlib level number to a LogLevel, rounding down to known names."""
    if levelno >= logging.CRITICAL:
        return LogLevel.CRITICAL
    if levelno >= logging.ERROR:
        return LogLevel.ERROR
    if levelno >= logging.WARNING:
        return LogLevel.WARNING
    if levelno >= logging.INFO:
        return LogLevel.INFO
    return LogLevel.DEBUG


class ClockworkHandler(logging.Handler):
    """Logging handler that writes log records to a Clockwork Log.

    Without an explicit target the handler writes to the Clockwork bound to
    the current context and drops records when none is bound.

    Example:
        ```python
        handler = ClockworkHandler()
        logging.getLogger().addHandler(handler)
        ```
    """

    def __init__(self, target: Clockwork | Log | None = None, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self._target = target

    def _resolve_target(self) -> Clockwork | Log | None:
        if self._target is not None:
            return self._target
        return get_clockwork()

    def emit(self, record: logging.LogRecord) -> None:
        """Emit a log record to the target log."""
        target = self._resolve_target()
        if target is None:
            return

        context: dict[str, Any] = {
            "logger": record.name,
            "file": record.pathname,
            "line": record.lineno,
        }
        for key, value in record.__dict__.items():
            if key not in _STANDARD_LOGRECORD_ATTRS and not key.startswith("_"):
                context[key] = value
        if record.exc_info and record.exc_info[1] is not None:
            context["exception"] = record.exc_info[1]

        try:
            level = _LEVELS.get(record.levelname) or _map_level(record.levelno)
            target.log(level, record.getMessage(), context)
        except Exception:
            self.handleError(record)
