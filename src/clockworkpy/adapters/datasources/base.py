"""Base class for data source adapters."""

from collections.abc import Iterable
from typing import Any

from clockworkpy.core.models import Request
from clockworkpy.core.serializer import DEFAULT_SENSITIVE_KEYS, sanitize


class DataSource:
    """Convenience base implementing DataSourcePort.

    Subclasses implement ``resolve``; ``extend`` and ``reset`` default to
    no-ops. Subclassing is optional, any object with the three methods
    satisfies the port.
    """

    def __init__(self, sensitive_keys: Iterable[str] = DEFAULT_SENSITIVE_KEYS) -> None:
        self.sensitive_keys = tuple(sensitive_keys)

    def resolve(self, request: Request) -> Request:
        raise NotImplementedError

    def extend(self, request: Request) -> Request:
        return request

    def reset(self) -> None:
        return None

    def sanitize(self, data: Any) -> Any:
        """Replace unserializable values and redact credential-looking keys."""
        return sanitize(data, self.sensitive_keys)
