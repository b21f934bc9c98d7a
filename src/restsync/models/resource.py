"""Cached API record model.

Every record a :class:`~restsync.store.Store` caches is a
:class:`Resource` (or a subclass the store was built with). Unknown API
fields are kept as extra attributes, so ``widget.name`` works for any
record carrying a ``name`` key.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


def normalize_id(value: Any) -> Any:
    """Coerce numeric ids (``5``, ``"5"``, ``5.0``) to ``int``.

    Non-numeric strings are returned stripped; anything else unchanged.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        stripped = value.strip()
        try:
            return int(stripped)
        except ValueError:
            return stripped
    return value


def same_id(left: Any, right: Any) -> bool:
    """Loose id equality: ``same_id(5, "5")`` is ``True``; ``None`` never matches."""
    if left is None or right is None:
        return False
    return bool(normalize_id(left) == normalize_id(right))


class Resource(BaseModel):
    """One API record plus optional access-control policy."""

    model_config = ConfigDict(frozen=True, extra="allow")

    id: int | str
    policy: dict[str, Any] | None = None

    @property
    def attributes(self) -> dict[str, Any]:
        """Record fields other than ``id`` and ``policy``."""
        return dict(self.model_extra or {})

    def can(self, action: str) -> bool:
        """Whether the attached policy grants *action* (``False`` without policy)."""
        if not self.policy:
            return False
        return bool(self.policy.get(action))

    def has_id(self, other: Any) -> bool:
        return same_id(self.id, other)
