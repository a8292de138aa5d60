"""Port interfaces for collaborators of the orchestrator.

These protocols define the contracts that data sources, storage and
authentication adapters must implement. The core depends only on these
interfaces, not concrete implementations.
"""

from typing import Protocol, runtime_checkable

from clockworkpy.core.models import Request


@runtime_checkable
class DataSourcePort(Protocol):
    """Port for adapters that populate a Request from their environment.

    Examples: MessageDataSource. Each adapter documents the fields it claims;
    sources run in registration order, so a later source wins on a field both
    set.
    """

    def resolve(self, request: Request) -> Request:
        """Populate the fields this source can determine, in place."""
        ...

    def extend(self, request: Request) -> Request:
        """Enrich a request loaded from storage. May be a no-op."""
        ...

    def reset(self) -> None:
        """Clear adapter-local state between units of work."""
        ...


@runtime_checkable
class StoragePort(Protocol):
    """Port for request storage operations.

    Examples: InMemoryStorage, RingBufferStorage, SQLiteStorage.
    """

    async def store(self, request: Request) -> str | None:
        """Persist a request, returning its id."""
        ...

    async def find(self, request_id: str) -> Request | None:
        """Return the stored request with the given id, or None."""
        ...

    async def latest(self) -> Request | None:
        """Return the most recently stored request, or None when empty."""
        ...


@runtime_checkable
class AuthenticatorPort(Protocol):
    """Port gatekeeping access to stored diagnostics."""

    def authenticate(self, credential: str | None) -> bool:
        """Return True when the credential grants access."""
        ...
