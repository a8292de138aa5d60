"""Normalization of arbitrary application values into JSON-safe trees.

Collected diagnostics contain whatever the application hands us: ORM models,
closures, open files, exceptions. Everything passes through ``normalize``
before it is stored, so the resulting record only ever holds scalars, lists
and string-keyed dicts. Values that cannot be represented are replaced with a
placeholder marker instead of raising.
"""

import dataclasses
import datetime
import enum
import inspect
import io
import math
import uuid
from collections.abc import Iterable, Mapping
from decimal import Decimal
from types import ModuleType
from typing import Any

UNSERIALIZABLE = "*unserializable*"
RECURSION = "*recursion*"
MAX_DEPTH = "*max depth*"
REDACTED = "*removed*"

DEFAULT_MAX_DEPTH = 10
DEFAULT_SENSITIVE_KEYS = ("password",)

_SCALARS = (str, int, bool, type(None))


def normalize(value: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> Any:
    """Convert a value into a JSON-safe tree.

    Args:
        value: Any application value.
        max_depth: Nesting level below which containers are replaced by
            the ``MAX_DEPTH`` marker.

    Returns:
        A tree of str/int/float/bool/None, lists and dicts with string keys.
    """
    return _normalize(value, max_depth, set())


def normalize_each(values: Mapping[str, Any] | None) -> dict[str, Any]:
    """Normalize every value of a mapping, each from its own root."""
    if not values:
        return {}
    return {str(key): normalize(value) for key, value in values.items()}


def remove_passwords(
    data: Any, keys: Iterable[str] = DEFAULT_SENSITIVE_KEYS
) -> Any:
    """Redact values whose key name contains one of the sensitive fragments.

    Matching is case-insensitive and applies at every nesting level.
    """
    fragments = tuple(key.lower() for key in keys)
    return _redact(data, fragments)


def sanitize(data: Any, sensitive_keys: Iterable[str] = DEFAULT_SENSITIVE_KEYS) -> Any:
    """Normalize user supplied data and redact credential-looking keys.

    ``None`` is kept as ``None`` so "not provided" stays distinguishable from
    "empty".
    """
    if data is None:
        return None
    return remove_passwords(normalize(data), sensitive_keys)


def safe_str(value: Any) -> str:
    """Return ``str(value)``, or the unserializable marker when that raises."""
    try:
        return str(value)
    except Exception:
        return UNSERIALIZABLE


def _read_field(value: Any, name: str) -> Any:
    # Fields declared with init=False may not be set yet.
    try:
        return getattr(value, name)
    except Exception:
        return UNSERIALIZABLE


def _redact(data: Any, fragments: tuple[str, ...]) -> Any:
    if isinstance(data, dict):
        return {
            key: REDACTED
            if any(fragment in key.lower() for fragment in fragments)
            else _redact(value, fragments)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [_redact(item, fragments) for item in data]
    return data


def _normalize(value: Any, depth: int, seen: set[int]) -> Any:
    if isinstance(value, enum.Enum):
        return _normalize(value.value, depth, seen)
    if isinstance(value, _SCALARS):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else str(value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, datetime.timedelta):
        return value.total_seconds()
    if isinstance(value, (Decimal, uuid.UUID)):
        return str(value)
    if _is_unserializable(value):
        return UNSERIALIZABLE

    if depth <= 0:
        return MAX_DEPTH
    if id(value) in seen:
        return RECURSION

    seen.add(id(value))
    try:
        return _normalize_container(value, depth - 1, seen)
    except Exception:
        return UNSERIALIZABLE
    finally:
        seen.discard(id(value))


def _normalize_container(value: Any, depth: int, seen: set[int]) -> Any:
    if isinstance(value, Mapping):
        return {
            str(key): _normalize(item, depth, seen) for key, item in value.items()
        }
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_normalize(item, depth, seen) for item in value]
    if isinstance(value, BaseException):
        return {"__class__": type(value).__name__, "message": safe_str(value)}
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        fields = {
            f.name: _normalize(_read_field(value, f.name), depth, seen)
            for f in dataclasses.fields(value)
        }
        return {"__class__": type(value).__name__, **fields}
    attributes = getattr(value, "__dict__", None)
    if isinstance(attributes, dict):
        fields = {
            str(key): _normalize(item, depth, seen)
            for key, item in attributes.items()
            if not str(key).startswith("_")
        }
        return {"__class__": type(value).__name__, **fields}
    return UNSERIALIZABLE


def _is_unserializable(value: Any) -> bool:
    return (
        callable(value)
        or isinstance(value, (ModuleType, io.IOBase))
        or inspect.isgenerator(value)
        or inspect.iscoroutine(value)
        or inspect.isasyncgen(value)
    )
