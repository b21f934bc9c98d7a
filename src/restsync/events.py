"""Event bus and listener bookkeeping.

Stores own an :class:`EventBus` and emit their lifecycle events on it.
Subscribers that must detach everything at once (a
:class:`~restsync.delivery.Delivery` on unmount) keep their handlers in a
:class:`ListenerRegistry` instead of calling ``off`` one by one.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

_logger = logging.getLogger(__name__)

Handler = Callable[..., Any]

API_NETWORK_OK = "api.networkok"
API_EXCEPTION = "api.exception"
API_NETWORK_ERROR = "api.networkerror"


class EventBus:
    """Synchronous named-event emitter.

    Handlers run in registration order inside :meth:`emit`. A handler
    that raises is logged and does not prevent the remaining handlers
    from running.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = {}

    def on(self, event: str, handler: Handler) -> Handler:
        self._handlers.setdefault(event, []).append(handler)
        return handler

    def once(self, event: str, handler: Handler) -> Handler:
        def _wrapper(*args: Any) -> Any:
            self.off(event, _wrapper)
            return handler(*args)

        return self.on(event, _wrapper)

    def off(self, event: str, handler: Handler | None = None) -> None:
        """Remove *handler* from *event*, or every handler when omitted."""
        if handler is None:
            self._handlers.pop(event, None)
            return
        handlers = self._handlers.get(event)
        if not handlers:
            return
        try:
            handlers.remove(handler)
        except ValueError:
            return
        if not handlers:
            del self._handlers[event]

    def emit(self, event: str, *args: Any) -> None:
        for handler in list(self._handlers.get(event, ())):
            try:
                handler(*args)
            except Exception:
                _logger.exception("Handler for %r failed", event)

    def listener_count(self, event: str) -> int:
        return len(self._handlers.get(event, ()))


class ListenerRegistry:
    """Tracks handlers attached to other buses so they can be removed together."""

    def __init__(self) -> None:
        self._attached: list[tuple[EventBus, str, Handler]] = []

    def listen_to(self, bus: EventBus, event: str, handler: Handler) -> None:
        bus.on(event, handler)
        self._attached.append((bus, event, handler))

    def stop_listening(self, bus: EventBus | None = None) -> None:
        """Detach everything, or only the handlers attached to *bus*."""
        kept: list[tuple[EventBus, str, Handler]] = []
        for entry in self._attached:
            target, event, handler = entry
            if bus is not None and target is not bus:
                kept.append(entry)
                continue
            target.off(event, handler)
        self._attached = kept

    def __len__(self) -> int:
        return len(self._attached)


class AppEvents(EventBus):
    """Process-wide bus for ``api.*`` network signals.

    Built once by :meth:`instance` at application startup and passed to
    every transport; it is never torn down.
    """

    _instance: AppEvents | None = None

    @classmethod
    def instance(cls) -> AppEvents:
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance


def _log_unhandled(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
    exc = context.get("exception")
    message = context.get("message", "Unhandled exception in event loop")
    if exc is not None:
        _logger.warning("%s: %r", message, exc, exc_info=exc)
    else:
        _logger.warning("%s", message)


def install_exception_logging(loop: asyncio.AbstractEventLoop | None = None) -> None:
    """Log unretrieved task exceptions on *loop* instead of printing tracebacks."""
    if loop is None:
        loop = asyncio.get_running_loop()
    loop.set_exception_handler(_log_unhandled)
