"""Custom exception hierarchy for restsync."""

from __future__ import annotations

from typing import Any


class RestSyncError(Exception):
    """Base exception for all restsync errors."""


class RestSyncConfigError(RestSyncError):
    """Invalid or missing configuration."""


class ResponseShapeError(RestSyncError):
    """API response lacks the expected root key once unenveloped."""

    def __init__(self, message: str, *, key: str = "", path: str = "") -> None:
        self.key = key
        self.path = path
        super().__init__(message)


class HttpError(RestSyncError):
    """Non-2xx response or transport failure.

    ``body`` holds the decoded response (JSON when possible, text
    otherwise) so callers can interpret it per call.
    """

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        method: str = "",
        path: str = "",
        body: Any = None,
    ) -> None:
        self.status = status
        self.method = method
        self.path = path
        self.body = body
        super().__init__(message)


class AuthOrNotFoundError(HttpError):
    """HTTP 401/403/404.

    Escalated on the app-events bus as ``api.exception`` so the
    application can redirect to login or a not-found view.
    """


class ValidationError(HttpError):
    """HTTP 422: the server rejected the submitted fields.

    Never escalated globally; ``body`` usually carries field errors
    to render next to form inputs.
    """


class NetworkError(HttpError):
    """Any other HTTP failure, including connection errors (``status=None``)."""
