"""Pydantic request models for store and delivery entrypoints.

These models provide a consistent "validate → normalize → execute" flow:
public methods accept either a model or a plain mapping and validate it
through :func:`coerce_options`.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class RequestOptions(BaseModel):
    """Options shared by every store call and binding.

    Keys may be given in snake_case or camelCase (``parentResourcesKey``).
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    id: int | str | None = None
    parent_resources_key: str | None = None
    parent_resource_id: int | str | None = None
    query: dict[str, Any] = Field(default_factory=dict)
    namespace: str | None = None
    cache: bool = False
    delay: int | None = Field(default=None, gt=0)
    """Polling interval in milliseconds; the store default when ``None``."""

    @field_validator("parent_resources_key", "namespace")
    @classmethod
    def _non_blank(cls, value: str | None) -> str | None:
        if value is None:
            return value
        stripped = value.strip()
        if not stripped:
            raise ValueError("must be non-empty when given")
        return stripped

    def with_query_defaults(self, defaults: Mapping[str, Any]) -> RequestOptions:
        """Return a copy whose query is *defaults* overlaid by this query."""
        if not defaults:
            return self
        return self.model_copy(update={"query": {**defaults, **self.query}})


def coerce_options(options: RequestOptions | Mapping[str, Any] | None = None, **updates: Any) -> RequestOptions:
    """Validate *options* into :class:`RequestOptions`, applying *updates* on top."""
    if options is None:
        base = RequestOptions()
    elif isinstance(options, RequestOptions):
        base = options
    else:
        base = RequestOptions.model_validate(dict(options))
    if not updates:
        return base
    return RequestOptions.model_validate({**base.model_dump(), **updates})
