"""Pydantic models for cached records and request options."""

from restsync.models.requests import RequestOptions, coerce_options
from restsync.models.resource import Resource, normalize_id, same_id

__all__ = [
    "RequestOptions",
    "Resource",
    "coerce_options",
    "normalize_id",
    "same_id",
]
