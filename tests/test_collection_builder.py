from pathlib import Path

from routedoc.collection.builder import (
    ParsedUnit,
    build_collection,
    filter_by_paths,
    filter_by_tags,
    group_by_path,
    group_by_tag,
)
from routedoc.domain.models import EndpointRecord, RouteGroup


def ep(method: str, path: str, *tags: str) -> EndpointRecord:
    return EndpointRecord(path=path, method=method, tags=tuple(tags), operation_id=f"{method.lower()}{path}")


def test_build_collection_concatenates_and_dedupes_tags():
    u1 = ParsedUnit(
        path=Path("a.controller.ts"),
        groups=(RouteGroup(name="UsersController", base_path="/users", tag="users"),),
        endpoints=(ep("GET", "/users", "users"),),
    )
    u2 = ParsedUnit(
        path=Path("b.controller.ts"),
        groups=(
            RouteGroup(name="UsersController", base_path="/v2/users", tag="users"),
            RouteGroup(name="Anon", base_path="", tag=None),
            RouteGroup(name="OrdersController", base_path="/orders", tag="orders"),
        ),
        endpoints=(ep("GET", "/v2/users", "users"), ep("POST", "/orders", "orders")),
    )

    c = build_collection([u1, u2], title="API", version="1.0.0", description="Generated from 2 file(s)")

    assert [t.name for t in c.tags] == ["users", "orders"]
    assert [e.path for e in c.endpoints] == ["/users", "/v2/users", "/orders"]
    assert c.description == "Generated from 2 file(s)"
    assert c.base_url == ""


def test_filters_and_grouping():
    endpoints = [
        ep("GET", "/users", "users"),
        ep("GET", "/users/{id}", "users"),
        ep("GET", "/orders", "orders"),
        ep("GET", "/health"),
    ]

    assert [e.path for e in filter_by_tags(endpoints, ["orders"])] == ["/orders"]
    assert [e.path for e in filter_by_paths(endpoints, ["/users/*"])] == ["/users/{id}"]
    assert [e.path for e in filter_by_paths(endpoints, ["/users*", "/health"])] == [
        "/users",
        "/users/{id}",
        "/health",
    ]

    groups = group_by_tag(endpoints)
    assert list(groups) == ["users", "orders", "default"]
    assert [e.path for e in groups["default"]] == ["/health"]


def test_group_by_path_uses_first_segment():
    endpoints = [
        ep("GET", "/users"),
        ep("GET", "/users/{id}"),
        ep("POST", "/orders/{id}/items"),
        ep("GET", "/"),
    ]
    groups = group_by_path(endpoints)
    assert list(groups) == ["/users", "/orders", "/"]
    assert [e.path for e in groups["/users"]] == ["/users", "/users/{id}"]
