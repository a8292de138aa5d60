"""Timeline of named spans recorded during a request."""

import time
import uuid
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from clockworkpy.core.serializer import normalize


@dataclass
class TimelineEvent:
    """A single span on the request timeline.

    Attributes:
        name: Unique name, used to look the event up later.
        description: Human readable label shown by the client.
        start: Unix timestamp in seconds, None until the event begins.
        end: Unix timestamp in seconds, None while the event is open.
        color: Optional display color hint.
        data: Arbitrary normalized payload attached to the span.
    """

    name: str
    description: str
    start: float | None = None
    end: float | None = None
    color: str | None = None
    data: Any = None

    @property
    def is_open(self) -> bool:
        return self.end is None

    def begin(self, timestamp: float | None = None) -> "TimelineEvent":
        self.start = time.time() if timestamp is None else timestamp
        return self

    def close(self, timestamp: float | None = None) -> "TimelineEvent":
        self.end = time.time() if timestamp is None else timestamp
        return self

    def duration(self) -> float | None:
        """Return the span length in milliseconds, None while incomplete."""
        if self.start is None or self.end is None:
            return None
        return (self.end - self.start) * 1000

    def finalize(self, end: float, start: float | None = None) -> None:
        """Fill in a missing start and close the event if it is still open.

        The closing time never precedes the event's own start.
        """
        if self.start is None:
            self.start = start if start is not None else end
        if self.end is None:
            self.end = max(end, self.start)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "start": self.start,
            "end": self.end,
            "duration": self.duration(),
            "color": self.color,
            "data": self.data,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TimelineEvent":
        return cls(
            name=data["name"],
            description=data.get("description", ""),
            start=data.get("start"),
            end=data.get("end"),
            color=data.get("color"),
            data=data.get("data"),
        )


class Timeline:
    """Ordered buffer of timeline events.

    Events are kept in the order they were opened. An event stays open until
    it is closed explicitly or ``finalize`` closes every remaining open event.
    """

    def __init__(self, events: list[TimelineEvent] | None = None) -> None:
        self._events: list[TimelineEvent] = list(events or [])

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[TimelineEvent]:
        return iter(self._events)

    def event(
        self, description: str, attributes: Mapping[str, Any] | None = None, **options: Any
    ) -> TimelineEvent:
        """Open a new event and return it.

        Args:
            description: Label for the event.
            attributes: Optional mapping with ``name``, ``start``, ``end``, ``color``
                and ``data`` keys. Keyword options take precedence.

        Returns:
            The created TimelineEvent. It is already closed when an explicit
            ``end`` was given.
        """
        options = {**(attributes or {}), **options}
        start = options.get("start")
        event = TimelineEvent(
            name=options.get("name") or uuid.uuid4().hex,
            description=description,
            start=time.time() if start is None else start,
            end=options.get("end"),
            color=options.get("color"),
            data=normalize(options.get("data")),
        )
        self._events.append(event)
        return event

    def start_event(
        self, name: str, description: str, timestamp: float | None = None
    ) -> TimelineEvent:
        """Open a named event, to be closed later with ``end_event``."""
        return self.event(description, name=name, start=timestamp)

    def end_event(self, name: str, timestamp: float | None = None) -> TimelineEvent | None:
        """Close the most recent open event with the given name."""
        for event in reversed(self._events):
            if event.name == name and event.is_open:
                return event.close(timestamp)
        return None

    def find(self, name: str) -> TimelineEvent | None:
        for event in self._events:
            if event.name == name:
                return event
        return None

    @contextmanager
    def measure(
        self, description: str, **options: Any
    ) -> Iterator[TimelineEvent]:
        """Context manager recording the wrapped block as a closed event."""
        event = self.event(description, **options)
        try:
            yield event
        finally:
            event.close()

    def finalize(self, end: float | None = None, start: float | None = None) -> None:
        """Close every open event.

        Args:
            end: Closing time for open events (default: now). Events that
                started later than ``end`` are closed at their own start.
            start: Start time assigned to events that never began.

        Already closed events are left untouched, so calling this twice has
        the same effect as calling it once.
        """
        closing = time.time() if end is None else end
        for event in self._events:
            event.finalize(closing, start)

    def sort(self) -> None:
        self._events.sort(key=lambda e: e.start if e.start is not None else 0.0)

    def to_list(self) -> list[dict[str, Any]]:
        return [event.to_dict() for event in self._events]

    @classmethod
    def from_list(cls, items: list[Mapping[str, Any]] | None) -> "Timeline":
        return cls([TimelineEvent.from_dict(item) for item in items or []])
