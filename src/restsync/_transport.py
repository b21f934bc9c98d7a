"""JSON-over-HTTP transport with response classification."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import aiohttp

from restsync._redact import redact_for_log
from restsync.config import RestSyncConfig
from restsync.events import API_EXCEPTION, API_NETWORK_ERROR, API_NETWORK_OK, AppEvents
from restsync.exceptions import AuthOrNotFoundError, HttpError, NetworkError, ValidationError

_logger = logging.getLogger(__name__)

AUTH_OR_NOT_FOUND_STATUSES: frozenset[int] = frozenset({401, 403, 404})
VALIDATION_STATUS = 422


class Transport(Protocol):
    """Structural transport interface used by :class:`restsync.store.Store`.

    Tests pass small fakes implementing ``request``; production code uses
    :class:`HttpTransport`.
    """

    async def request(self, method: str, path: str, *, json_body: Any = None) -> Any: ...


def classify_failure(
    status: int | None,
    *,
    method: str,
    path: str,
    body: Any = None,
) -> HttpError:
    """Map an HTTP status to the matching :class:`HttpError` subclass."""
    if status in AUTH_OR_NOT_FOUND_STATUSES:
        return AuthOrNotFoundError(
            f"{method} {path} failed: HTTP {status}",
            status=status,
            method=method,
            path=path,
            body=body,
        )
    if status == VALIDATION_STATUS:
        return ValidationError(
            f"{method} {path} rejected: HTTP {status}",
            status=status,
            method=method,
            path=path,
            body=body,
        )
    return NetworkError(
        f"{method} {path} failed: HTTP {status}",
        status=status,
        method=method,
        path=path,
        body=body,
    )


def signal_failure(app_events: AppEvents, error: HttpError) -> None:
    """Escalate *error* on the app-events bus; 422 stays with the caller."""
    if isinstance(error, ValidationError):
        return
    if isinstance(error, AuthOrNotFoundError):
        app_events.emit(API_EXCEPTION, error)
        return
    app_events.emit(API_NETWORK_ERROR, error)


def _decode_body(text: str) -> Any:
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


class HttpTransport:
    """aiohttp transport that sends JSON and classifies every response.

    Usage::

        async with HttpTransport(config) as transport:
            store = Store("widget", transport=transport)
    """

    def __init__(
        self,
        config: RestSyncConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        app_events: AppEvents | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http = session
        self._app_events = app_events if app_events is not None else AppEvents.instance()

    @property
    def app_events(self) -> AppEvents:
        return self._app_events

    async def __aenter__(self) -> HttpTransport:
        if self._http is None:
            self._http = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._config.request_timeout),
            )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http is not None:
            await self._http.close()
            self._http = None

    def _require_session(self) -> aiohttp.ClientSession:
        if self._http is None:
            raise NetworkError("Transport not initialized. Use 'async with HttpTransport(...) as transport:'")
        return self._http

    def _headers(self) -> dict[str, str]:
        headers = {
            "accept": "application/json",
            "content-type": self._config.content_type,
        }
        headers.update(self._config.default_headers)
        return headers

    async def request(self, method: str, path: str, *, json_body: Any = None) -> Any:
        """Send one request and return the decoded JSON body of a 2xx response.

        Raises
        ------
        AuthOrNotFoundError
            HTTP 401/403/404; ``api.exception`` is emitted first.
        ValidationError
            HTTP 422; nothing is emitted.
        NetworkError
            Any other status or a connection failure; ``api.networkerror``
            is emitted first.
        """
        http = self._require_session()
        url = f"{self._config.base_url}{path}"
        data = json.dumps(json_body) if json_body is not None else None

        _logger.debug("%s %s body=%s", method, url, redact_for_log(json_body))

        try:
            async with http.request(method, url, data=data, headers=self._headers()) as resp:
                text = await resp.text()
                status = resp.status
        except (aiohttp.ClientError, TimeoutError) as exc:
            error = NetworkError(f"{method} {path} failed: {str(exc) or type(exc).__name__}", method=method, path=path)
            _logger.debug("%s %s transport failure: %s", method, url, exc)
            self._app_events.emit(API_NETWORK_ERROR, error)
            raise error from exc

        body = _decode_body(text)
        _logger.debug("%s %s -> %s body=%s", method, url, status, redact_for_log(body))

        if 200 <= status < 300:
            self._app_events.emit(API_NETWORK_OK)
            return body

        error = classify_failure(status, method=method, path=path, body=body)
        signal_failure(self._app_events, error)
        raise error
