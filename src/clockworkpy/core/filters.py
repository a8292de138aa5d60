"""Policies deciding whether a request is collected and whether it is stored.

The surrounding application glue (middleware, worker loop) evaluates these;
the orchestrator itself only holds them.
"""

import copy
import fnmatch
from collections.abc import Callable, Mapping
from typing import Any
from urllib.parse import urlsplit

from clockworkpy.core.models import Request

Predicate = Callable[[Request], bool]


class _Policy:
    """Mutable predicate plus merge-able rules. Allows everything by default."""

    _rule_defaults: dict[str, Any] = {}

    def __init__(self, **rules: Any) -> None:
        self._callback: Predicate | None = None
        self.rules: dict[str, Any] = copy.deepcopy(self._rule_defaults)
        self.merge(rules)

    def callback(self, predicate: Predicate) -> "_Policy":
        """Install the predicate evaluated after the rules."""
        if not callable(predicate):
            raise TypeError("predicate must be callable")
        self._callback = predicate
        return self

    def merge(self, rules: Mapping[str, Any]) -> "_Policy":
        """Merge rule overrides into the current rules.

        Raises:
            ValueError: If a rule name is not known to this policy.
        """
        unknown = set(rules) - set(self._rule_defaults)
        if unknown:
            raise ValueError(f"unknown rules for {type(self).__name__}: {sorted(unknown)}")
        self.rules.update(rules)
        return self

    def allows(self, request: Request) -> bool:
        if not self._passes_rules(request):
            return False
        if self._callback is not None:
            return bool(self._callback(request))
        return True

    def _passes_rules(self, request: Request) -> bool:
        raise NotImplementedError


class ShouldCollect(_Policy):
    """Whether diagnostics should be gathered for a request at all.

    Rules:
        except_paths: fnmatch patterns; matching paths are not collected.
        only_paths: fnmatch patterns; when set, only matching paths are.
        except_preflight: skip CORS preflight (OPTIONS) requests.
    """

    _rule_defaults = {"except_paths": [], "only_paths": [], "except_preflight": True}

    def _passes_rules(self, request: Request) -> bool:
        path = urlsplit(request.uri or "").path or "/"
        if any(fnmatch.fnmatch(path, pattern) for pattern in self.rules["except_paths"]):
            return False
        only = self.rules["only_paths"]
        if only and not any(fnmatch.fnmatch(path, pattern) for pattern in only):
            return False
        if self.rules["except_preflight"] and _is_preflight(request):
            return False
        return True


class ShouldRecord(_Policy):
    """Whether a collected request should be handed to storage.

    Rules:
        errors_only: store only responses with status >= 400.
        slow_only: store only requests at least this many milliseconds long
            (0 disables the rule).
    """

    _rule_defaults = {"errors_only": False, "slow_only": 0}

    def _passes_rules(self, request: Request) -> bool:
        if self.rules["errors_only"] and (request.response_status or 0) < 400:
            return False
        threshold = self.rules["slow_only"]
        if threshold:
            duration = request.response_duration()
            if duration is None or duration < threshold:
                return False
        return True


def _is_preflight(request: Request) -> bool:
    if (request.method or "").upper() != "OPTIONS":
        return False
    return "Access-Control-Request-Method" in request.headers
