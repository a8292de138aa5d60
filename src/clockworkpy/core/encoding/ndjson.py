"""JSON and NDJSON encoders for request records."""

import json
from collections.abc import Iterable

from clockworkpy.core.models import Request


def encode_request(request: Request) -> str:
    """Encode a single request record as compact JSON."""
    return json.dumps(request.to_dict(), separators=(",", ":"))


def decode_request(data: str | bytes) -> Request:
    """Rebuild a request from JSON produced by ``encode_request``."""
    return Request.from_dict(json.loads(data))


def encode_requests(requests: Iterable[Request]) -> str:
    """Encode requests to newline-delimited JSON.

    Args:
        requests: An iterable of Request objects.

    Returns:
        NDJSON string with one JSON object per line.
        Empty string if no requests.
    """
    lines = [encode_request(request) for request in requests]

    if not lines:
        return ""

    return "\n".join(lines) + "\n"
