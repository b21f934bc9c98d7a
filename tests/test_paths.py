from __future__ import annotations

import pytest

from restsync.models import RequestOptions
from restsync.paths import build_path, serialize_query


def test_index_path_with_parent_and_query() -> None:
    options = RequestOptions(parent_resources_key="projectGroups", parent_resource_id=7, query={"page": 2})

    assert build_path("index", "lineItems", options=options) == "/project_groups/7/line_items?page=2"


def test_parent_without_id() -> None:
    options = RequestOptions(parent_resources_key="projects")

    assert build_path("create", "widgets", options=options) == "/projects/widgets"


def test_member_paths_are_shallow() -> None:
    options = RequestOptions(parent_resources_key="projects", parent_resource_id=7)

    assert build_path("show", "widgets", 3, options) == "/widgets/3"
    assert build_path("update", "widgets", "3") == "/widgets/3"
    assert build_path("destroy", "widgets") == "/widgets"


def test_unknown_action_rejected() -> None:
    with pytest.raises(ValueError):
        build_path("archive", "widgets")  # type: ignore[arg-type]


def test_query_serialization_nests_with_brackets() -> None:
    query = {"filter": {"status": "open"}, "ids": [1, 2], "archived": False, "skip": None}

    assert serialize_query(query) == "filter%5Bstatus%5D=open&ids%5B%5D=1&ids%5B%5D=2&archived=false"
    assert serialize_query({}) == ""
