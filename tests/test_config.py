from __future__ import annotations

import pytest

from restsync.config import DEFAULT_POLL_DELAY_MS, RestSyncConfig
from restsync.exceptions import RestSyncConfigError


def test_defaults() -> None:
    config = RestSyncConfig()

    assert config.poll_delay_ms == DEFAULT_POLL_DELAY_MS == 15000
    assert config.content_type == "application/json"


def test_trailing_slash_is_stripped() -> None:
    assert RestSyncConfig(base_url="https://api.example.test/v1/").base_url == "https://api.example.test/v1"


def test_non_positive_delay_rejected() -> None:
    with pytest.raises(RestSyncConfigError):
        RestSyncConfig(poll_delay_ms=0)


def test_from_env_reads_variables_and_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RESTSYNC_BASE_URL", "https://env.example.test")
    monkeypatch.setenv("RESTSYNC_AUTH_TOKEN", "tok")
    monkeypatch.setenv("RESTSYNC_POLL_DELAY_MS", "5000")
    monkeypatch.setenv("RESTSYNC_REQUEST_TIMEOUT", "2.5")

    config = RestSyncConfig.from_env(request_timeout=9.0)

    assert config.base_url == "https://env.example.test"
    assert config.default_headers == {"authorization": "Bearer tok"}
    assert config.poll_delay_ms == 5000
    assert config.request_timeout == 9.0


def test_from_env_rejects_bad_delay(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RESTSYNC_POLL_DELAY_MS", "soon")

    with pytest.raises(RestSyncConfigError):
        RestSyncConfig.from_env()
