"""Shared helpers for the framework adapters serving stored requests."""

from collections.abc import Iterable

from clockworkpy.core.clockwork import Clockwork
from clockworkpy.core.models import Request
from clockworkpy.core.ports import DataSourcePort, StoragePort

AUTH_HEADER = "X-Clockwork-Auth"
ID_HEADER = "X-Clockwork-Id"
VERSION_HEADER = "X-Clockwork-Version"
LATEST = "latest"


async def fetch_request(
    storage: StoragePort,
    request_id: str,
    data_sources: Iterable[DataSourcePort] = (),
) -> Request | None:
    """Load a stored request (or the latest one) and let data sources extend it.

    The sources extend a detached copy, so the stored record is left as is.

    Args:
        storage: Storage adapter holding the records.
        request_id: A request id, or "latest".
        data_sources: Sources whose ``extend`` step enriches the record.

    Returns:
        The extended Request, or None when nothing matches.
    """
    if request_id == LATEST:
        request = await storage.latest()
    else:
        request = await storage.find(request_id)
    if request is None:
        return None

    request = Request.from_dict(request.to_dict())
    clockwork = Clockwork()
    for data_source in data_sources:
        clockwork.add_data_source(data_source)
    clockwork.extend_request(request)
    return request
