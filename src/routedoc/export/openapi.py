from __future__ import annotations

from typing import Any

from routedoc.domain.models import ApiCollection, EndpointRecord, PropertySpec

OPENAPI_VERSION = "3.0.3"

_PRIMITIVES = {
    "string": {"type": "string"},
    "number": {"type": "number"},
    "bigint": {"type": "integer"},
    "boolean": {"type": "boolean"},
    "Date": {"type": "string", "format": "date-time"},
}


def schema_for_type(type_text: str) -> dict[str, Any]:
    t = (type_text or "").strip()
    if t in _PRIMITIVES:
        return dict(_PRIMITIVES[t])
    if t.endswith("[]"):
        return {"type": "array", "items": schema_for_type(t[:-2])}
    if t.startswith("Array<") and t.endswith(">"):
        return {"type": "array", "items": schema_for_type(t[6:-1])}

    options = [o.strip() for o in t.split("|")]
    if len(options) > 1 and all(len(o) >= 2 and o[0] == o[-1] and o[0] in "'\"" for o in options):
        return {"type": "string", "enum": [o[1:-1] for o in options]}
    if t in ("any", "unknown", ""):
        return {}
    return {"type": "object", "description": t}


def _property_schema(prop: PropertySpec) -> dict[str, Any]:
    schema = schema_for_type(prop.type)
    if prop.description:
        schema["description"] = prop.description
    if prop.has_example:
        schema["example"] = prop.example
    return schema


def _operation(endpoint: EndpointRecord) -> dict[str, Any]:
    op: dict[str, Any] = {
        "tags": list(endpoint.tags),
        "summary": endpoint.summary,
        "description": endpoint.description,
        "operationId": endpoint.operation_id,
        "parameters": [
            {
                "name": p.name,
                "in": p.location,
                "required": True if p.location == "path" else p.required,
                "description": p.description,
                "schema": schema_for_type(p.type),
            }
            for p in endpoint.parameters
        ],
        "responses": {code: {"description": r.description} for code, r in endpoint.responses.items()},
    }
    body = endpoint.request_body
    if body is not None:
        schema: dict[str, Any] = {
            "type": "object",
            "properties": {n: _property_schema(p) for n, p in body.body_schema.properties.items()},
        }
        if body.body_schema.required:
            schema["required"] = list(body.body_schema.required)
        op["requestBody"] = {
            "description": body.description,
            "required": body.required,
            "content": {"application/json": {"schema": schema}},
        }
    return op


def to_openapi(collection: ApiCollection) -> dict[str, Any]:
    paths: dict[str, dict[str, Any]] = {}
    for e in collection.endpoints:
        paths.setdefault(e.path, {})[e.method.lower()] = _operation(e)

    doc: dict[str, Any] = {
        "openapi": OPENAPI_VERSION,
        "info": {
            "title": collection.title,
            "description": collection.description,
            "version": collection.version,
        },
        "tags": [t.model_dump(exclude_none=True) for t in collection.tags],
        "paths": paths,
    }
    if collection.base_url:
        doc["servers"] = [{"url": collection.base_url}]
    return doc
