"""Lifecycle hooks a delivery calls into.

Concrete components pass a :class:`DeliveryHooks` subclass declaring their
bindings; every method defaults to a no-op.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from restsync.delivery.component import Delivery


class DeliveryHooks:
    def bind_resources(self, delivery: Delivery, props: Mapping[str, Any]) -> None:
        """Declare bindings with ``delivery.subscribe_*`` / ``delivery.retrieve_*``."""

    def resources_will_load(self, delivery: Delivery) -> None:
        pass

    def resources_did_load(self, delivery: Delivery) -> None:
        pass
