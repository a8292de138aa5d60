"""Context-local access to the Clockwork instance of the current request.

The ASGI middleware binds a fresh Clockwork per request; application code and
the logging handler look it up here instead of through a process-wide global.
"""

from contextvars import ContextVar, Token

from clockworkpy.core.clockwork import Clockwork

_current_clockwork: ContextVar[Clockwork | None] = ContextVar(
    "clockworkpy_current", default=None
)


def get_clockwork() -> Clockwork | None:
    """Return the Clockwork bound to the current context, if any."""
    return _current_clockwork.get()


def set_clockwork(clockwork: Clockwork) -> Token[Clockwork | None]:
    """Bind a Clockwork to the current context."""
    return _current_clockwork.set(clockwork)


def reset_clockwork(token: Token[Clockwork | None]) -> None:
    """Restore the binding that was active before ``set_clockwork``."""
    _current_clockwork.reset(token)
