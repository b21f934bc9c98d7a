"""Binding records linking a delivery to a store."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from restsync.models.requests import RequestOptions

if TYPE_CHECKING:
    from restsync.store import Store

Callback = Callable[[dict[str, Any]], Any]


class BindingKind(StrEnum):
    """Retrieval mode of a binding.

    ``fetch``/``reset`` are live (polled and kept in sync by store
    events); the ``*once`` variants are fetched a single time.
    """

    FETCH = "fetch"
    FETCHONCE = "fetchonce"
    RESET = "reset"
    RESETONCE = "resetonce"

    @property
    def is_live(self) -> bool:
        return self in (BindingKind.FETCH, BindingKind.RESET)

    @property
    def is_collection(self) -> bool:
        return self in (BindingKind.RESET, BindingKind.RESETONCE)


@dataclass(frozen=True, slots=True)
class Subscription:
    store: Store
    event_name: BindingKind
    options: RequestOptions
    callback: Callback | None = None

    @property
    def state_key(self) -> str:
        """Key the bound data lands under in delivery state."""
        if self.options.namespace:
            return self.options.namespace
        if self.event_name.is_collection:
            return self.store.resources_key
        return self.store.resource_key
