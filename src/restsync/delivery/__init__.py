"""Subscription manager layer.

A :class:`Delivery` binds one UI component instance to any number of
shared :class:`~restsync.store.Store` objects and keeps the component's
state in sync with them.
"""

from restsync.delivery.component import Delivery, DeliveryPhase
from restsync.delivery.hooks import DeliveryHooks
from restsync.delivery.subscription import BindingKind, Subscription

__all__ = [
    "BindingKind",
    "Delivery",
    "DeliveryHooks",
    "DeliveryPhase",
    "Subscription",
]
