from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

from routedoc.domain.models import ApiCollection, EndpointRecord, RouteGroup, TagSpec

DEFAULT_GROUP = "default"


@dataclass(frozen=True)
class ParsedUnit:
    """Extraction result for one source file."""

    path: Path
    groups: tuple[RouteGroup, ...]
    endpoints: tuple[EndpointRecord, ...]
    description: str = ""


def build_collection(
    units: Iterable[ParsedUnit],
    title: str,
    version: str,
    description: str = "",
    base_url: str = "",
) -> ApiCollection:
    """
    Merge per-file results into one collection.

    Endpoints keep scan order. Tags are de-duplicated by name, first-seen order.
    """
    endpoints: list[EndpointRecord] = []
    tag_names: dict[str, None] = {}

    for unit in units:
        endpoints.extend(unit.endpoints)
        for g in unit.groups:
            if g.tag:
                tag_names.setdefault(g.tag, None)

    return ApiCollection(
        title=title,
        description=description,
        version=version,
        base_url=base_url,
        endpoints=endpoints,
        tags=[TagSpec(name=n) for n in tag_names],
    )


def filter_by_tags(endpoints: Iterable[EndpointRecord], tags: Sequence[str]) -> list[EndpointRecord]:
    wanted = set(tags)
    return [e for e in endpoints if wanted.intersection(e.tags)]


def _glob_regex(pattern: str) -> re.Pattern[str]:
    return re.compile("^" + ".*".join(re.escape(p) for p in pattern.split("*")) + "$")


def filter_by_paths(endpoints: Iterable[EndpointRecord], patterns: Sequence[str]) -> list[EndpointRecord]:
    """Keep endpoints whose path matches any pattern; '*' matches any run of characters."""
    regexes = [_glob_regex(p) for p in patterns]
    return [e for e in endpoints if any(r.match(e.path) for r in regexes)]


def group_by_tag(endpoints: Iterable[EndpointRecord]) -> dict[str, list[EndpointRecord]]:
    groups: dict[str, list[EndpointRecord]] = {}
    for e in endpoints:
        for tag in e.tags or (DEFAULT_GROUP,):
            groups.setdefault(tag, []).append(e)
    return groups


def with_endpoints(collection: ApiCollection, endpoints: Sequence[EndpointRecord]) -> ApiCollection:
    return collection.model_copy(update={"endpoints": list(endpoints)})


def group_by_path(endpoints: Iterable[EndpointRecord]) -> dict[str, list[EndpointRecord]]:
    """Group on the first path segment: '/users/{id}' and '/users' both land in '/users'."""
    groups: dict[str, list[EndpointRecord]] = {}
    for e in endpoints:
        key = "/".join(e.path.split("/")[:2]) or "/"
        groups.setdefault(key, []).append(e)
    return groups
