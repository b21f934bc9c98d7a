"""REST path construction for stores."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any, Literal
from urllib.parse import urlencode

from pydantic.alias_generators import to_snake

from restsync.models.requests import RequestOptions

Action = Literal["index", "create", "show", "update", "destroy"]

COLLECTION_ACTIONS: frozenset[str] = frozenset({"index", "create"})
MEMBER_ACTIONS: frozenset[str] = frozenset({"show", "update", "destroy"})


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _flatten_query(prefix: str, value: Any) -> Iterator[tuple[str, str]]:
    """Yield bracket-style pairs: ``{"filter": {"a": 1}}`` → ``filter[a]=1``."""
    if value is None:
        return
    if isinstance(value, Mapping):
        for key, item in value.items():
            yield from _flatten_query(f"{prefix}[{key}]", item)
        return
    if isinstance(value, (list, tuple, set, frozenset)):
        for item in value:
            yield from _flatten_query(f"{prefix}[]", item)
        return
    yield prefix, _scalar(value)


def serialize_query(query: Mapping[str, Any] | None) -> str:
    """Serialize *query* into a url-encoded string (no leading ``?``)."""
    if not query:
        return ""
    pairs: list[tuple[str, str]] = []
    for key, value in query.items():
        pairs.extend(_flatten_query(str(key), value))
    return urlencode(pairs)


def build_path(
    action: Action,
    resources_key: str,
    resource_id: Any = None,
    options: RequestOptions | None = None,
) -> str:
    """Build the API path for *action* on *resources_key*.

    ``index``/``create`` may nest under a parent collection;
    ``show``/``update``/``destroy`` are always shallow.
    """
    if options is None:
        options = RequestOptions()

    segments: list[str] = []
    if action in COLLECTION_ACTIONS:
        if options.parent_resources_key:
            segments.append(to_snake(options.parent_resources_key))
            if options.parent_resource_id is not None:
                segments.append(str(options.parent_resource_id))
        segments.append(to_snake(resources_key))
    elif action in MEMBER_ACTIONS:
        segments.append(to_snake(resources_key))
        if resource_id is not None:
            segments.append(str(resource_id))
    else:
        raise ValueError(f"Unknown path action: {action!r}")

    path = "/" + "/".join(segments)
    query = serialize_query(options.query)
    if query:
        path = f"{path}?{query}"
    return path
