"""Client configuration for restsync."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from restsync.exceptions import RestSyncConfigError

#: Default polling interval in milliseconds.
DEFAULT_POLL_DELAY_MS: int = 15000


@dataclasses.dataclass(frozen=True)
class RestSyncConfig:
    """Transport and polling configuration.

    Parameters
    ----------
    base_url : str
        API root every store path is appended to (no trailing slash).
    content_type : str
        Content-Type header attached to every request.
    default_headers : dict[str, str]
        Extra headers sent with every request (e.g. ``authorization``).
    poll_delay_ms : int
        Default store polling interval in milliseconds.
    request_timeout : float
        Total timeout in seconds for a single HTTP request.
    """

    base_url: str = "http://localhost:3000/api"
    content_type: str = "application/json"
    default_headers: dict[str, str] = dataclasses.field(default_factory=dict)
    poll_delay_ms: int = DEFAULT_POLL_DELAY_MS
    request_timeout: float = 30.0

    def __post_init__(self) -> None:
        if self.poll_delay_ms <= 0:
            raise RestSyncConfigError(f"poll_delay_ms must be positive, got {self.poll_delay_ms}")
        if self.base_url.endswith("/"):
            object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @classmethod
    def from_env(cls, **overrides: Any) -> RestSyncConfig:
        """Create configuration from ``RESTSYNC_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        base_url = env.get("RESTSYNC_BASE_URL")
        if base_url is not None:
            config_kwargs["base_url"] = base_url

        content_type = env.get("RESTSYNC_CONTENT_TYPE")
        if content_type is not None:
            config_kwargs["content_type"] = content_type

        token = env.get("RESTSYNC_AUTH_TOKEN")
        if token and "default_headers" not in overrides:
            config_kwargs["default_headers"] = {"authorization": f"Bearer {token}"}

        delay_env = env.get("RESTSYNC_POLL_DELAY_MS")
        if delay_env is not None and "poll_delay_ms" not in overrides:
            try:
                config_kwargs["poll_delay_ms"] = int(delay_env)
            except ValueError as exc:
                raise RestSyncConfigError(f"RESTSYNC_POLL_DELAY_MS is not an integer: {delay_env!r}") from exc

        timeout_env = env.get("RESTSYNC_REQUEST_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            config_kwargs["request_timeout"] = float(timeout_env)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
