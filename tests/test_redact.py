from __future__ import annotations

from restsync._redact import redact_for_log
from restsync.models import Resource


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "user": {"email": "a@example.test", "password": "pw"},
        "Authorization": "Bearer abc",
        "access_token": "tok",
        "widgets": [{"id": 1, "secret": "s"}],
    }

    redacted = redact_for_log(payload)
    assert redacted["user"]["password"] == "<redacted>"
    assert redacted["user"]["email"] == "a@example.test"
    assert redacted["Authorization"] == "<redacted>"
    assert redacted["access_token"] == "<redacted>"
    assert redacted["widgets"][0]["secret"] == "<redacted>"


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_dumps_models() -> None:
    redacted = redact_for_log(Resource.model_validate({"id": 1, "token": "t"}))

    assert redacted == {"id": 1, "policy": None, "token": "<redacted>"}


def test_redact_for_log_matches_camel_and_header_spellings() -> None:
    redacted = redact_for_log(
        {"accessToken": "a", "X-Api-Key": "k", "passwordConfirmation": "p", "Set-Cookie": "c", "name": "w"}
    )

    assert redacted == {
        "accessToken": "<redacted>",
        "X-Api-Key": "<redacted>",
        "passwordConfirmation": "<redacted>",
        "Set-Cookie": "<redacted>",
        "name": "w",
    }


def test_redact_for_log_masks_bearer_credentials_in_text() -> None:
    redacted = redact_for_log({"error": "token Bearer abc.def.ghi expired"})

    assert redacted["error"] == "token Bearer <redacted> expired"
