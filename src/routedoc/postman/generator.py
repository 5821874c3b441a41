from __future__ import annotations

import json
import re
from typing import Any, Optional
from urllib.parse import urlsplit

from routedoc.config import ExtractorConfig
from routedoc.domain.models import ApiCollection, EndpointRecord, ParameterSpec, PropertySpec, RequestBodySpec

POSTMAN_SCHEMA = "https://schema.getpostman.com/json/collection/v2.1.0/collection.json"

_PLACEHOLDER = re.compile(r"\{([^}]+)\}")
_NUMERIC_TYPES = {"number", "bigint"}


def generate_postman_collection(
    collection: ApiCollection,
    base_url: Optional[str] = None,
    config: Optional[ExtractorConfig] = None,
) -> dict[str, Any]:
    """Postman v2.1 collection with one request item per endpoint."""
    config = config or ExtractorConfig()
    url = (base_url or collection.base_url or config.default_base_url).rstrip("/")

    return {
        "info": {
            "name": collection.title,
            "description": collection.description,
            "schema": POSTMAN_SCHEMA,
        },
        "item": [_request_item(e, url) for e in collection.endpoints],
        "variable": [
            {"key": "baseUrl", "value": url, "type": "string"},
            {"key": "api_token", "value": "<your_api_token>", "type": "string"},
        ],
        "auth": _bearer("<your_api_token>"),
    }


def _bearer(token: str) -> dict[str, Any]:
    return {"type": "bearer", "bearer": [{"key": "token", "value": token, "type": "string"}]}


def _request_item(endpoint: EndpointRecord, base_url: str) -> dict[str, Any]:
    request: dict[str, Any] = {
        "method": endpoint.method,
        "header": [
            {"key": "Content-Type", "value": "application/json", "type": "text"},
            {"key": "Accept", "value": "application/json", "type": "text"},
        ],
        "url": _url(endpoint, base_url),
        "auth": _bearer("{{api_token}}"),
    }
    for p in endpoint.parameters:
        if p.location == "header":
            request["header"].append({"key": p.name, "value": _param_example(p), "type": "text"})
    if endpoint.request_body is not None:
        request["body"] = _body(endpoint.request_body)

    return {
        "name": f"{endpoint.method} {endpoint.path}",
        "description": endpoint.description or endpoint.summary or "",
        "request": request,
    }


def _url(endpoint: EndpointRecord, base_url: str) -> dict[str, Any]:
    path = _PLACEHOLDER.sub(r"{{\1}}", endpoint.path)
    query = [
        {"key": p.name, "value": _param_example(p), "disabled": not p.required}
        for p in endpoint.parameters
        if p.location == "query"
    ]
    raw = f"{base_url}{path}"
    if query:
        raw += "?" + "&".join(f"{q['key']}={{{{{q['key']}}}}}" for q in query)

    parts = urlsplit(base_url)
    base_segments = [s for s in parts.path.split("/") if s]
    return {
        "raw": raw,
        "protocol": parts.scheme or "http",
        "host": [parts.netloc or "localhost"],
        "path": base_segments + [s for s in path.split("/") if s],
        "query": query,
        "variable": [
            {"key": p.name, "value": _param_example(p)} for p in endpoint.parameters if p.location == "path"
        ],
    }


def _body(body: RequestBodySpec) -> dict[str, Any]:
    example = {name: property_example(name, prop) for name, prop in body.body_schema.properties.items()}
    return {
        "mode": "raw",
        "raw": json.dumps(example, indent=2),
        "options": {"raw": {"language": "json"}},
    }


def property_example(name: str, prop: PropertySpec) -> Any:
    if prop.has_example:
        return prop.example
    return type_example(name, prop.type)


def type_example(name: str, type_text: str) -> Any:
    t = (type_text or "").strip()
    if t.endswith("[]") or t.startswith("Array<"):
        return [type_example("item", t[:-2] if t.endswith("[]") else t[6:-1])]
    if t in _NUMERIC_TYPES:
        return 1
    if t == "boolean":
        return False
    if t.startswith("{") or t in ("object", "Record<string, any>"):
        return {}
    # string literal unions like 'a' | 'b' -> first member
    first = t.split("|")[0].strip()
    if len(first) >= 2 and first[0] == first[-1] and first[0] in "'\"":
        return first[1:-1]
    return f"<{name}>"


def _param_example(p: ParameterSpec) -> str:
    if p.type in _NUMERIC_TYPES:
        return "1"
    return f"<{p.name}>"
