"""Authenticators guarding access to stored diagnostics."""

import hmac

from clockworkpy.core.config import ClockworkConfig


class NullAuthenticator:
    """Authenticator that grants access to everyone."""

    def authenticate(self, credential: str | None) -> bool:
        return True


class SimpleAuthenticator:
    """Authenticator checking a single shared password.

    Args:
        password: The password a client must present.
    """

    def __init__(self, password: str) -> None:
        if not password:
            raise ValueError("password must not be empty")
        self._password = password

    def authenticate(self, credential: str | None) -> bool:
        if credential is None:
            return False
        return hmac.compare_digest(credential.encode(), self._password.encode())


def create_authenticator(config: ClockworkConfig) -> NullAuthenticator | SimpleAuthenticator:
    """Return a SimpleAuthenticator when a password is configured."""
    if config.authentication_password:
        return SimpleAuthenticator(config.authentication_password)
    return NullAuthenticator()
