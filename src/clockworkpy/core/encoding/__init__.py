"""Encoders for request records."""

from clockworkpy.core.encoding.ndjson import decode_request, encode_request, encode_requests

__all__ = ["decode_request", "encode_request", "encode_requests"]
