"""Data source adapters populating requests from their environment."""

from clockworkpy.adapters.datasources.base import DataSource
from clockworkpy.adapters.datasources.message import (
    MessageDataSource,
    RequestMessage,
    ResponseMessage,
)

__all__ = ["DataSource", "MessageDataSource", "RequestMessage", "ResponseMessage"]
