"""Subscription manager binding one UI component instance to stores.

Lifecycle::

    delivery = Delivery(props, hooks=WidgetPageHooks(widgets))
    await delivery.mount()                  # bind, fetch, merge, poll
    await delivery.receive_props(new_props) # rebind on route change
    delivery.unmount()                      # detach, stop polling

Each set of bindings gets a generation number. Teardown bumps it, so a
fetch issued by a superseded binding set (or after unmount) never merges
into state when it eventually completes.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping, Sequence
from enum import StrEnum
from typing import Any

from restsync.delivery.hooks import DeliveryHooks
from restsync.delivery.subscription import BindingKind, Callback, Subscription
from restsync.events import ListenerRegistry
from restsync.models.requests import RequestOptions, coerce_options
from restsync.models.resource import same_id
from restsync.store import Store, StoreEvent

_logger = logging.getLogger(__name__)

META_KEY = "meta"

Options = RequestOptions | Mapping[str, Any] | None
Payload = dict[str, Any]


class DeliveryPhase(StrEnum):
    UNBOUND = "unbound"
    LOADING = "loading"
    LOADED = "loaded"


def _query_of(props: Mapping[str, Any]) -> Any:
    location = props.get("location")
    if isinstance(location, Mapping):
        return location.get("query") or {}
    return {}


def _rename(payload: Mapping[str, Any], source: str, target: str) -> Payload:
    if source == target or source not in payload:
        return dict(payload)
    renamed = {k: v for k, v in payload.items() if k != source}
    renamed[target] = payload[source]
    return renamed


class Delivery:
    """Binds stores to one component's state.

    Parameters
    ----------
    props : mapping, optional
        Initial component props; ``params`` and ``location.query`` drive
        re-binding in :meth:`receive_props`.
    hooks : DeliveryHooks, optional
        Declares bindings and receives load notifications.
    route_key : str, optional
        Route parameter whose change forces a reload. Defaults to the
        first ``params`` key ending in ``Id``.
    on_change : callable, optional
        Called with the state after every merge.
    """

    def __init__(
        self,
        props: Mapping[str, Any] | None = None,
        *,
        hooks: DeliveryHooks | None = None,
        route_key: str | None = None,
        initial_state: Mapping[str, Any] | None = None,
        on_change: Callable[[dict[str, Any]], None] | None = None,
    ) -> None:
        self.props: dict[str, Any] = dict(props or {})
        self.hooks = hooks if hooks is not None else DeliveryHooks()
        self.route_key = route_key
        self.state: dict[str, Any] = {"loaded": False}
        if initial_state:
            self.state.update(initial_state)
        self.bound_resources: list[Subscription] = []
        self.listeners = ListenerRegistry()
        self.unmounted = False
        self._generation = 0
        self._on_change = on_change

    @property
    def phase(self) -> DeliveryPhase:
        if not self.bound_resources:
            return DeliveryPhase.UNBOUND
        if self.state.get("loaded"):
            return DeliveryPhase.LOADED
        return DeliveryPhase.LOADING

    @property
    def generation(self) -> int:
        return self._generation

    def set_state(self, updates: Mapping[str, Any]) -> None:
        if self.unmounted:
            _logger.debug("Ignoring state update after unmount: %s", sorted(updates))
            return
        self.state.update(updates)
        if self._on_change is not None:
            self._on_change(self.state)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def mount(self) -> None:
        self.hooks.bind_resources(self, self.props)
        if self.bound_resources:
            await self.get_resources()

    async def receive_props(self, props: Mapping[str, Any]) -> bool:
        """Apply new props, rebinding when the route or query changed.

        Returns whether the bindings were rebuilt.
        """
        incoming = dict(props)
        previous = self.props
        self.props = incoming

        if "params" not in incoming and "location" not in incoming:
            return False

        key = self.identifying_key(incoming)
        old_params = previous.get("params") or {}
        new_params = incoming.get("params") or {}
        segment_changed = key is not None and old_params.get(key) != new_params.get(key)
        query_changed = _query_of(previous) != _query_of(incoming)

        if not segment_changed and not query_changed:
            return False

        _logger.debug(
            "Rebinding delivery: %s changed=%s query changed=%s",
            key,
            segment_changed,
            query_changed,
        )
        if segment_changed:
            self.set_state({"loaded": False})
        self._teardown()
        self.hooks.bind_resources(self, incoming)
        if self.bound_resources:
            await self.get_resources()
        return True

    def unmount(self) -> None:
        self.listeners.stop_listening()
        self._stop_polling_bound_resources()
        self.unmounted = True
        self._generation += 1

    def identifying_key(self, props: Mapping[str, Any]) -> str | None:
        if self.route_key:
            return self.route_key
        params = props.get("params") or self.props.get("params") or {}
        for key in params:
            if str(key).endswith("Id"):
                return str(key)
        return None

    def _teardown(self) -> None:
        self._stop_polling_bound_resources()
        self.listeners.stop_listening()
        self.bound_resources = []
        self._generation += 1

    def _stop_polling_bound_resources(self) -> None:
        for binding in self.bound_resources:
            binding.store.stop_polling()

    # ------------------------------------------------------------------
    # Binding declaration
    # ------------------------------------------------------------------

    def _bind(self, kind: BindingKind, store: Store, callback: Callback | None, options: Options) -> Subscription:
        opts = coerce_options(options).with_query_defaults(store.default_query())
        binding = Subscription(store=store, event_name=kind, options=opts, callback=callback)
        self.bound_resources.append(binding)
        return binding

    def subscribe_all(self, store: Store, callback: Callback | None = None, options: Options = None) -> Subscription:
        return self._bind(BindingKind.RESET, store, callback, options)

    def subscribe_resource(
        self, store: Store, callback: Callback | None = None, options: Options = None
    ) -> Subscription:
        return self._bind(BindingKind.FETCH, store, callback, options)

    def retrieve_all(self, store: Store, callback: Callback | None = None, options: Options = None) -> Subscription:
        return self._bind(BindingKind.RESETONCE, store, callback, options)

    def retrieve_resource(
        self, store: Store, callback: Callback | None = None, options: Options = None
    ) -> Subscription:
        return self._bind(BindingKind.FETCHONCE, store, callback, options)

    # ------------------------------------------------------------------
    # Fetching and merging
    # ------------------------------------------------------------------

    def _request(self, binding: Subscription) -> Any:
        if binding.event_name.is_collection:
            return binding.store.get_all(binding.options)
        return binding.store.get_resource(binding.options.id, binding.options)

    async def get_resources(self) -> None:
        """Fetch every binding, then merge all results at once.

        Any failure propagates and nothing is merged.
        """
        generation = self._generation
        bindings = list(self.bound_resources)
        requests = [self._request(binding) for binding in bindings]
        self.hooks.resources_will_load(self)

        payloads = await asyncio.gather(*requests)

        if self.unmounted or generation != self._generation:
            _logger.debug("Discarding %d stale payload(s) (generation %d)", len(payloads), generation)
            return

        self.set_state_from_store(list(payloads))
        self.set_state({"loaded": True})
        self.start_polling_bound_resources()
        self.hooks.resources_did_load(self)

    def set_state_from_store(self, payloads: Payload | Sequence[Payload]) -> None:
        """Merge store payloads as ``state[key]`` plus ``state[key + "Meta"]``."""
        if isinstance(payloads, Mapping):
            payloads = [payloads]
        updates: dict[str, Any] = {}
        for payload in payloads:
            for key in payload:
                if key == META_KEY:
                    continue
                updates[key] = payload[key]
                updates[f"{key}Meta"] = payload.get(META_KEY)
                break
        if updates:
            self.set_state(updates)

    def _handler(self, binding: Subscription) -> Callback:
        return binding.callback if binding.callback is not None else self.set_state_from_store

    def start_polling_bound_resources(self) -> None:
        """Attach store listeners for every binding and start live polls."""
        for binding in self.bound_resources:
            store = binding.store
            handler = self._handler(binding)
            key = binding.state_key

            if binding.event_name.is_live:
                self.listeners.listen_to(store.events, binding.event_name.value, self._live_listener(binding, handler))
                store.start_polling(binding.options)

            if binding.event_name.is_collection:
                # create(payload, snapshot) and destroy(snapshot) both end with the snapshot.
                on_snapshot = self._on_snapshot(handler, store.resources_key, key)
                self.listeners.listen_to(store.events, StoreEvent.CREATE, on_snapshot)
                self.listeners.listen_to(store.events, StoreEvent.DESTROY, on_snapshot)

            self.listeners.listen_to(store.events, StoreEvent.UPDATE, self._on_bound_id(binding, handler))

    def _live_listener(self, binding: Subscription, handler: Callback) -> Callable[..., Any]:
        store = binding.store
        if binding.event_name.is_collection:
            return self._on_event(handler, store.resources_key, binding.state_key)
        if binding.options.id is None:
            return self._on_event(handler, store.resource_key, binding.state_key)
        return self._on_bound_id(binding, handler)

    @staticmethod
    def _on_event(handler: Callback, source_key: str, target_key: str) -> Callable[..., Any]:
        def _listener(payload: Payload, *_extra: Any) -> Any:
            return handler(_rename(payload, source_key, target_key))

        return _listener

    @staticmethod
    def _on_snapshot(handler: Callback, source_key: str, target_key: str) -> Callable[..., Any]:
        def _listener(*args: Any) -> Any:
            return handler(_rename(args[-1], source_key, target_key))

        return _listener

    @staticmethod
    def _on_bound_id(binding: Subscription, handler: Callback) -> Callable[..., Any]:
        resource_key = binding.store.resource_key
        target_key = binding.options.namespace or resource_key

        def _listener(payload: Payload, *_extra: Any) -> Any:
            source_key = target_key if target_key in payload else resource_key
            resource = payload.get(source_key)
            if isinstance(resource, Mapping):
                resource_id = resource.get("id")
            else:
                resource_id = getattr(resource, "id", None)
            if not same_id(resource_id, binding.options.id):
                return None
            return handler(_rename(payload, source_key, target_key))

        return _listener
