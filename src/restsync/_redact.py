"""Redaction of credentials in DEBUG request/response logs.

REST bodies carry login forms, API tokens and signed headers. Keys are
compared after dropping case, ``_`` and ``-`` so ``accessToken``,
``access_token`` and ``X-Api-Key`` are all caught.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

REDACTED = "<redacted>"

_SENSITIVE_FRAGMENTS: tuple[str, ...] = ("password", "token", "secret", "apikey")
_SENSITIVE_KEYS: frozenset[str] = frozenset({"authorization", "cookie", "setcookie", "session"})
_BEARER = re.compile(r"\b(Bearer|Basic)\s+\S+", re.IGNORECASE)
_MAX_DEPTH = 20


def is_sensitive_key(key: Any) -> bool:
    flat = str(key).lower().replace("_", "").replace("-", "")
    return flat in _SENSITIVE_KEYS or any(fragment in flat for fragment in _SENSITIVE_FRAGMENTS)


def _scrub_text(text: str, max_string: int) -> str:
    text = _BEARER.sub(lambda m: f"{m.group(1)} {REDACTED}", text)
    if len(text) > max_string:
        return f"{text[:max_string]}…<truncated>"
    return text


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a copy of *value* with credentials masked, for debug logs."""
    if _depth > _MAX_DEPTH:
        return "<max-depth>"

    model_dump = getattr(value, "model_dump", None)
    if callable(model_dump):
        value = model_dump(mode="json")

    match value:
        case None | bool() | int() | float():
            return value
        case str():
            return _scrub_text(value, max_string)
        case bytes() | bytearray():
            return f"<bytes:{len(value)}b>"
        case Mapping():
            return {
                str(k): REDACTED if is_sensitive_key(k) else redact_for_log(v, max_string=max_string, _depth=_depth + 1)
                for k, v in value.items()
            }
        case list() | tuple() | set() | frozenset():
            return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]
    return repr(value)
