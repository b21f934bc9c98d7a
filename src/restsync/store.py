"""Per-resource-type cache, REST client and poller.

A :class:`Store` owns the cached collection for one resource type. It is
the only component allowed to mutate that cache, and it does so only in
response to network results. Every mutation is announced on
:attr:`Store.events`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from enum import StrEnum
from typing import Any

import pydantic
from pydantic.alias_generators import to_snake

from restsync._transport import Transport
from restsync.config import DEFAULT_POLL_DELAY_MS
from restsync.events import EventBus
from restsync.exceptions import ResponseShapeError, RestSyncError
from restsync.models.requests import RequestOptions, coerce_options
from restsync.models.resource import Resource, normalize_id, same_id
from restsync.paths import Action, build_path

_logger = logging.getLogger(__name__)

Options = RequestOptions | Mapping[str, Any] | None
Denormalizer = Callable[[Any], Any]
QueryDefaults = Mapping[str, Any] | Callable[["Store"], Mapping[str, Any]]


class StoreEvent(StrEnum):
    RESET = "reset"
    FETCH = "fetch"
    CREATE = "create"
    UPDATE = "update"
    DESTROY = "destroy"


class Store:
    """Cache and REST client for one resource type.

    Parameters
    ----------
    resource_key : str
        Singular name, used as the root key of show/create/update responses
        (``"widget"``).
    transport : Transport
        Object performing the HTTP requests.
    resources_key : str, optional
        Plural name, used as the root key of index responses and as the
        path segment. Defaults to ``resource_key + "s"``.
    resource_cls : type[Resource]
        Model every cached record is validated into.
    default_query : mapping or callable, optional
        Query merged under the caller's query by delivery bindings. A
        callable receives the store.
    denormalize_all, denormalize_resource : callable, optional
        Reshape raw index / single-record responses before the root key
        is extracted. Identity when omitted.
    poll_delay_ms : int
        Polling interval used when the options carry no ``delay``.
    """

    def __init__(
        self,
        resource_key: str,
        *,
        transport: Transport,
        resources_key: str | None = None,
        resource_cls: type[Resource] = Resource,
        default_query: QueryDefaults | None = None,
        denormalize_all: Denormalizer | None = None,
        denormalize_resource: Denormalizer | None = None,
        poll_delay_ms: int = DEFAULT_POLL_DELAY_MS,
        events: EventBus | None = None,
    ) -> None:
        self.resource_key = resource_key
        self.resources_key = resources_key or f"{resource_key}s"
        self.resource_cls = resource_cls
        self.events = events if events is not None else EventBus()
        self._transport = transport
        self._default_query = default_query
        self._denormalize_all = denormalize_all
        self._denormalize_resource = denormalize_resource
        self._poll_delay_ms = poll_delay_ms
        self._resources: list[Resource] = []
        self._meta: dict[str, Any] = {}
        self._poll_task: asyncio.Task[None] | None = None

    def __repr__(self) -> str:
        return f"<Store {self.resources_key} cached={len(self._resources)} polling={self.is_polling}>"

    # ------------------------------------------------------------------
    # Cache access
    # ------------------------------------------------------------------

    @property
    def resources(self) -> list[Resource]:
        return list(self._resources)

    @property
    def meta(self) -> dict[str, Any]:
        return self._meta

    def find(self, resource_id: Any) -> Resource | None:
        for resource in self._resources:
            if same_id(resource.id, resource_id):
                return resource
        return None

    def snapshot(self) -> dict[str, Any]:
        """Full cache view sent with ``create``/``update``/``destroy``."""
        return {self.resources_key: self.resources, "meta": self._meta}

    def clear(self) -> None:
        self._resources = []
        self._meta = {}

    def _store(self, resource: Resource) -> Resource:
        """Insert *resource*, replacing an entry with the same id in place."""
        return _upsert(self._resources, resource)

    def _remove(self, resource_id: Any) -> Resource | None:
        for index, existing in enumerate(self._resources):
            if same_id(existing.id, resource_id):
                return self._resources.pop(index)
        return None

    def default_query(self) -> dict[str, Any]:
        defaults = self._default_query
        if defaults is None:
            return {}
        if callable(defaults):
            return dict(defaults(self))
        return dict(defaults)

    # ------------------------------------------------------------------
    # Override points
    # ------------------------------------------------------------------

    def denormalize_all(self, data: Any) -> Any:
        if self._denormalize_all is not None:
            return self._denormalize_all(data)
        return data

    def denormalize_resource(self, data: Any) -> Any:
        if self._denormalize_resource is not None:
            return self._denormalize_resource(data)
        return data

    def get_policies(self, data: Any, resource_id: Any) -> dict[str, Any] | None:
        """Return the ``meta.policies`` entry for *resource_id*, if any."""
        if not isinstance(data, Mapping):
            return None
        meta = data.get("meta")
        if not isinstance(meta, Mapping):
            return None
        policies = meta.get("policies")
        if not policies:
            return None
        id_key = f"{to_snake(self.resource_key)}_id"
        for policy in policies:
            if isinstance(policy, Mapping) and same_id(policy.get(id_key), resource_id):
                return dict(policy)
        return None

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def path(self, action: Action, resource_id: Any = None, options: Options = None) -> str:
        return build_path(action, self.resources_key, resource_id, coerce_options(options))

    def get_path(self, action: Action, resource_id: Any = None, options: Options = None) -> str:
        return self.path(action, resource_id, options)

    # ------------------------------------------------------------------
    # Response handling
    # ------------------------------------------------------------------

    def _build(self, item: Any, envelope: Any, path: str) -> Resource:
        if isinstance(item, Resource):
            resource = item
        else:
            try:
                resource = self.resource_cls.model_validate(item)
            except pydantic.ValidationError as exc:
                raise ResponseShapeError(
                    f"Response from {path} has an invalid '{self.resource_key}' record: {exc}",
                    key=self.resource_key,
                    path=path,
                ) from exc
        policy = self.get_policies(envelope, resource.id)
        if policy is not None:
            resource = resource.model_copy(update={"policy": policy})
        return resource

    def _extract_collection(self, data: Any, path: str) -> list[Any]:
        if isinstance(data, list):
            return data
        if isinstance(data, Mapping):
            root = data.get(self.resources_key)
            if isinstance(root, list):
                return root
        raise ResponseShapeError(
            f"Response from {path} has no '{self.resources_key}' collection",
            key=self.resources_key,
            path=path,
        )

    def _extract_member(self, data: Any, path: str) -> Any:
        if isinstance(data, Mapping):
            root = data.get(self.resource_key)
            if isinstance(root, (Mapping, Resource)):
                return root
        raise ResponseShapeError(
            f"Response from {path} has no '{self.resource_key}' record",
            key=self.resource_key,
            path=path,
        )

    # ------------------------------------------------------------------
    # Network operations
    # ------------------------------------------------------------------

    async def get_all(self, options: Options = None) -> dict[str, Any]:
        """Fetch the collection, replace the cache and emit ``reset``.

        Returns ``{"meta": ..., <resources_key or namespace>: [...]}``.
        """
        opts = coerce_options(options)
        path = self.path("index", options=opts)
        body = await self._transport.request("GET", path)

        data = self.denormalize_all(body)
        collection = self._extract_collection(data, path)
        meta = data.get("meta") if isinstance(data, Mapping) else None

        # Validate everything before touching the cache.
        fresh: list[Resource] = []
        for item in collection:
            _upsert(fresh, self._build(item, data, path))

        old_ids = {normalize_id(resource.id) for resource in self._resources}
        new_ids = {normalize_id(resource.id) for resource in fresh}
        self._resources = fresh
        self._meta = dict(meta) if isinstance(meta, Mapping) else {}
        added_count = len(new_ids - old_ids)

        key = opts.namespace or self.resources_key
        payload = {"meta": self._meta, key: self.resources}
        _logger.debug("%s reset: %d cached, %d added", self.resources_key, len(self._resources), added_count)
        self.events.emit(StoreEvent.RESET, payload, added_count)
        return payload

    async def get_resource(self, resource_id: Any, options: Options = None) -> dict[str, Any]:
        """Fetch one record, store it and emit ``fetch``.

        With ``cache=True`` a cached record is returned without a request
        and without emitting.
        """
        opts = coerce_options(options)
        key = opts.namespace or self.resource_key

        if opts.cache:
            cached = self.find(resource_id)
            if cached is not None:
                return {key: cached}

        path = self.path("show", resource_id, opts)
        body = await self._transport.request("GET", path)

        data = self.denormalize_resource(body)
        resource = self._store(self._build(self._extract_member(data, path), data, path))

        payload = {key: resource}
        _logger.debug("%s fetch: id=%s", self.resource_key, resource.id)
        self.events.emit(StoreEvent.FETCH, payload)
        return payload

    async def create_resource(self, model: Any, options: Options = None) -> dict[str, Any]:
        """POST *model* to the collection and emit ``create``."""
        opts = coerce_options(options)
        path = self.path("create", options=opts)
        body = await self._transport.request("POST", path, json_body=_dump(model))

        data = self.denormalize_resource(body)
        resource = self._store(self._build(self._extract_member(data, path), data, path))

        payload = {self.resource_key: resource}
        _logger.debug("%s create: id=%s", self.resource_key, resource.id)
        self.events.emit(StoreEvent.CREATE, payload, self.snapshot())
        return payload

    async def update_resource(self, resource_id: Any, patch: Any, options: Options = None) -> dict[str, Any]:
        """PATCH the record and emit ``update``."""
        opts = coerce_options(options)
        path = self.path("update", resource_id, opts)
        body = await self._transport.request("PATCH", path, json_body=_dump(patch))

        data = self.denormalize_resource(body)
        resource = self._store(self._build(self._extract_member(data, path), data, path))

        payload = {self.resource_key: resource}
        _logger.debug("%s update: id=%s", self.resource_key, resource.id)
        self.events.emit(StoreEvent.UPDATE, payload, self.snapshot())
        return payload

    async def destroy_resource(self, resource_id: Any, options: Options = None) -> dict[str, Any]:
        """DELETE the record, drop it from the cache and emit ``destroy``."""
        opts = coerce_options(options)
        path = self.path("destroy", resource_id, opts)
        await self._transport.request("DELETE", path)

        self._remove(resource_id)
        snapshot = self.snapshot()
        _logger.debug("%s destroy: id=%s", self.resource_key, resource_id)
        self.events.emit(StoreEvent.DESTROY, snapshot)
        return snapshot

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def start_polling(self, options: Options = None) -> bool:
        """Start re-fetching on an interval; no-op while a poll is active.

        Polls ``get_resource(options.id)`` when an id is given, otherwise
        ``get_all(options)``. Returns whether a new poll was started.
        """
        if self.is_polling:
            _logger.debug("%s already polling, ignoring start_polling", self.resources_key)
            return False

        opts = coerce_options(options)
        delay_ms = opts.delay or self._poll_delay_ms
        self._poll_task = asyncio.get_running_loop().create_task(
            self._poll(opts, delay_ms / 1000.0),
            name=f"restsync-poll-{self.resources_key}",
        )
        _logger.debug("%s polling every %d ms", self.resources_key, delay_ms)
        return True

    def stop_polling(self) -> bool:
        """Cancel the active poll. Returns whether one was running."""
        task = self._poll_task
        self._poll_task = None
        if task is None or task.done():
            return False
        task.cancel()
        _logger.debug("%s polling stopped", self.resources_key)
        return True

    async def _poll(self, options: RequestOptions, interval: float) -> None:
        # A cached hit would never refresh anything.
        if options.cache:
            options = options.model_copy(update={"cache": False})
        while True:
            await asyncio.sleep(interval)
            try:
                if options.id is not None:
                    await self.get_resource(options.id, options)
                else:
                    await self.get_all(options)
            except RestSyncError as exc:
                _logger.warning("Polling %s failed: %s", self.resources_key, exc)
            except Exception:
                _logger.exception("Polling %s failed unexpectedly", self.resources_key)


def _upsert(resources: list[Resource], resource: Resource) -> Resource:
    for index, existing in enumerate(resources):
        if same_id(existing.id, resource.id):
            resources[index] = resource
            return resource
    resources.append(resource)
    return resource


def _dump(model: Any) -> Any:
    model_dump = getattr(model, "model_dump", None)
    if callable(model_dump):
        return model_dump(mode="json", exclude_none=True)
    return model
