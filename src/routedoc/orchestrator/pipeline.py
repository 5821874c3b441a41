from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from routedoc.collection.builder import filter_by_paths, filter_by_tags, with_endpoints
from routedoc.collection.openapi_reader import load_openapi_document
from routedoc.config import ExtractorConfig
from routedoc.domain.models import ApiCollection
from routedoc.errors import InvalidTargetError
from routedoc.extractors.nestjs.extractor import EndpointExtractor
from routedoc.repo.scanner import is_source_file

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractResult:
    collection: ApiCollection
    mode: str  # "file" | "directory" | "openapi"
    target: Path
    total_endpoints: int  # before filters


def run_extract(
    target: Path,
    title: Optional[str] = None,
    version: Optional[str] = None,
    tags: Sequence[str] = (),
    paths: Sequence[str] = (),
    base_url: Optional[str] = None,
    config: Optional[ExtractorConfig] = None,
    extractor: Optional[EndpointExtractor] = None,
) -> ExtractResult:
    """
    File or directory extraction followed by optional tag/path filters.

    A controller file (*.controller.ts by default) is parsed on its own, any
    other existing path is treated as a directory to scan.
    """
    config = config or ExtractorConfig()
    extractor = extractor or EndpointExtractor(config)
    target = Path(target).expanduser().resolve()

    if not target.exists():
        raise InvalidTargetError(target, "path does not exist")

    if target.is_file():
        if not is_source_file(target, config.controller_glob):
            logger.warning("%s does not match %s; parsing it anyway", target.name, config.controller_glob)
        collection = extractor.parse_file(target, title=title, version=version)
        mode = "file"
    else:
        collection = extractor.parse_directory(target, title=title, version=version)
        mode = "directory"

    total = len(collection.endpoints)
    collection = _narrow(collection, tags, paths, base_url)
    return ExtractResult(collection=collection, mode=mode, target=target, total_endpoints=total)


def run_import(
    target: Path,
    title: Optional[str] = None,
    version: Optional[str] = None,
    tags: Sequence[str] = (),
    paths: Sequence[str] = (),
    base_url: Optional[str] = None,
) -> ExtractResult:
    """Read an existing OpenAPI/Swagger JSON document instead of scanning controllers."""
    target = Path(target).expanduser().resolve()
    if not target.is_file():
        raise InvalidTargetError(target, "not a file")

    collection = load_openapi_document(target)
    overrides = {k: v for k, v in (("title", title), ("version", version)) if v}
    if overrides:
        collection = collection.model_copy(update=overrides)

    total = len(collection.endpoints)
    collection = _narrow(collection, tags, paths, base_url)
    return ExtractResult(collection=collection, mode="openapi", target=target, total_endpoints=total)


def _narrow(
    collection: ApiCollection,
    tags: Sequence[str],
    paths: Sequence[str],
    base_url: Optional[str],
) -> ApiCollection:
    total = len(collection.endpoints)
    endpoints = collection.endpoints
    if tags:
        endpoints = filter_by_tags(endpoints, tags)
    if paths:
        endpoints = filter_by_paths(endpoints, paths)
    if len(endpoints) != total:
        logger.info("Filters kept %d of %d endpoints", len(endpoints), total)
        collection = with_endpoints(collection, endpoints)

    if base_url:
        collection = collection.model_copy(update={"base_url": base_url})
    return collection
