"""restsync - Async REST resource stores and UI subscription management."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("restsync")
except PackageNotFoundError:
    __version__ = "0+local"
from restsync._transport import HttpTransport, Transport
from restsync.config import DEFAULT_POLL_DELAY_MS, RestSyncConfig
from restsync.delivery import BindingKind, Delivery, DeliveryHooks, DeliveryPhase, Subscription
from restsync.events import (
    API_EXCEPTION,
    API_NETWORK_ERROR,
    API_NETWORK_OK,
    AppEvents,
    EventBus,
    ListenerRegistry,
    install_exception_logging,
)
from restsync.exceptions import (
    AuthOrNotFoundError,
    HttpError,
    NetworkError,
    ResponseShapeError,
    RestSyncConfigError,
    RestSyncError,
    ValidationError,
)
from restsync.models import RequestOptions, Resource, same_id
from restsync.store import Store, StoreEvent

__all__ = [
    "__version__",
    "API_EXCEPTION",
    "API_NETWORK_ERROR",
    "API_NETWORK_OK",
    "AppEvents",
    "AuthOrNotFoundError",
    "BindingKind",
    "DEFAULT_POLL_DELAY_MS",
    "Delivery",
    "DeliveryHooks",
    "DeliveryPhase",
    "EventBus",
    "HttpError",
    "HttpTransport",
    "ListenerRegistry",
    "NetworkError",
    "RequestOptions",
    "Resource",
    "ResponseShapeError",
    "RestSyncConfig",
    "RestSyncConfigError",
    "RestSyncError",
    "Store",
    "StoreEvent",
    "Subscription",
    "Transport",
    "ValidationError",
    "install_exception_logging",
    "same_id",
]
