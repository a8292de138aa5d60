"""FastAPI adapter serving stored requests."""

from collections.abc import Iterable

from fastapi import APIRouter, Header, HTTPException, Response

from clockworkpy.adapters.frameworks.api import AUTH_HEADER, fetch_request
from clockworkpy.core.encoding.ndjson import encode_request
from clockworkpy.core.ports import AuthenticatorPort, DataSourcePort, StoragePort


def create_clockwork_router(
    storage: StoragePort,
    authenticator: AuthenticatorPort | None = None,
    data_sources: Iterable[DataSourcePort] = (),
    prefix: str = "/__clockwork",
) -> APIRouter:
    """Create a FastAPI router with ``/latest`` and ``/{request_id}`` endpoints.

    Args:
        storage: Storage adapter implementing StoragePort.
        authenticator: Checks the X-Clockwork-Auth header (optional).
        data_sources: Sources used to extend records before serving them.
        prefix: Router path prefix.

    Returns:
        APIRouter with the endpoints configured.
    """
    router = APIRouter(prefix=prefix)
    sources = list(data_sources)

    @router.get("/{request_id}")
    async def get_request(
        request_id: str,
        auth: str | None = Header(default=None, alias=AUTH_HEADER),
    ) -> Response:
        """Return a stored request ("latest" for the most recent) as JSON."""
        if authenticator is not None and not authenticator.authenticate(auth):
            raise HTTPException(status_code=403, detail="Forbidden")
        request = await fetch_request(storage, request_id, sources)
        if request is None:
            raise HTTPException(status_code=404, detail="Request not found")
        return Response(content=encode_request(request), media_type="application/json")

    return router
