from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union, get_args

from routedoc.collection.builder import DEFAULT_GROUP
from routedoc.domain.models import (
    ApiCollection,
    BodySchema,
    EndpointRecord,
    HttpMethod,
    ParameterSpec,
    PropertySpec,
    RequestBodySpec,
    ResponseSpec,
    TagSpec,
)
from routedoc.errors import InvalidDocumentError

logger = logging.getLogger(__name__)

_HTTP_METHODS = {m.lower() for m in get_args(HttpMethod)}
_LOCATIONS = ("path", "query", "header", "cookie")
_MAX_REF_DEPTH = 16

Document = dict[str, Any]


def load_openapi_document(path: Path) -> ApiCollection:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise InvalidDocumentError(path, str(exc)) from exc
    return parse_openapi_document(text, source=str(path))


def parse_openapi_document(document: Union[str, bytes, Document], source: str = "<memory>") -> ApiCollection:
    """
    Build a collection from an OpenAPI 3 or Swagger 2 JSON document.

    Every path x method pair that declares responses becomes an endpoint.
    Operations without tags are filed under "default". Local `$ref`s
    (`#/components/...`, `#/definitions/...`) are followed; remote ones are not.
    """
    if isinstance(document, (str, bytes)):
        try:
            doc = json.loads(document)
        except json.JSONDecodeError as exc:
            raise InvalidDocumentError(source, f"not valid JSON ({exc.msg} at line {exc.lineno})") from exc
    else:
        doc = document

    if not isinstance(doc, dict):
        raise InvalidDocumentError(source, "top-level value must be an object")
    if "openapi" not in doc and "swagger" not in doc:
        raise InvalidDocumentError(source, "missing 'openapi' or 'swagger' version field")
    if not isinstance(doc.get("info"), dict) or not isinstance(doc.get("paths"), dict):
        raise InvalidDocumentError(source, "'info' and 'paths' must be objects")

    endpoints: list[EndpointRecord] = []
    for path, item in doc["paths"].items():
        item = _resolve(doc, item)
        if not item:
            continue
        shared = item.get("parameters") or []
        for method, op in item.items():
            if method.lower() not in _HTTP_METHODS or not isinstance(op, dict):
                continue
            if not op.get("responses"):
                logger.debug("Skipping %s %s: no responses declared", method.upper(), path)
                continue
            endpoints.append(_endpoint(doc, path, method.upper(), op, shared))

    info = doc["info"]
    tags = [
        TagSpec(name=t["name"], description=t.get("description"))
        for t in doc.get("tags") or []
        if isinstance(t, dict) and t.get("name")
    ]
    logger.info("Read %d endpoint(s) from %s", len(endpoints), source)
    return ApiCollection(
        title=info.get("title") or "API",
        description=info.get("description") or "",
        version=str(info.get("version") or ""),
        base_url=document_base_url(doc),
        endpoints=endpoints,
        tags=tags,
    )


def document_base_url(doc: Document) -> str:
    """servers[0].url (OpenAPI 3), else scheme://host + basePath (Swagger 2), else ""."""
    servers = doc.get("servers") or []
    if servers and isinstance(servers[0], dict) and servers[0].get("url"):
        return servers[0]["url"]
    schemes = doc.get("schemes") or []
    if schemes and doc.get("basePath"):
        return f"{schemes[0]}://{doc.get('host') or ''}{doc['basePath']}"
    return ""


def type_text(doc: Document, schema: Any, depth: int = 0) -> str:
    """Render a JSON schema in the same type notation the controller extractor produces."""
    if not isinstance(schema, dict) or depth > _MAX_REF_DEPTH:
        return "any"
    ref = schema.get("$ref")
    if isinstance(ref, str):
        return ref.rsplit("/", 1)[-1]

    enum = schema.get("enum")
    if enum and all(isinstance(v, str) for v in enum):
        return " | ".join(f"'{v}'" for v in enum)

    t = schema.get("type")
    if t == "array":
        inner = type_text(doc, schema.get("items"), depth + 1)
        return f"({inner})[]" if "|" in inner else f"{inner}[]"
    if t in ("integer", "number"):
        return "number"
    if t in ("string", "boolean", "object"):
        return t
    return "any"


def _resolve(doc: Document, node: Any) -> Document:
    """Follow local JSON pointers; anything unresolvable becomes {}."""
    for _ in range(_MAX_REF_DEPTH):
        if not isinstance(node, dict):
            return {}
        ref = node.get("$ref")
        if not isinstance(ref, str):
            return node
        if not ref.startswith("#/"):
            logger.debug("Not following remote reference %s", ref)
            return {}
        target: Any = doc
        for part in ref[2:].split("/"):
            part = part.replace("~1", "/").replace("~0", "~")
            target = target.get(part) if isinstance(target, dict) else None
        node = target
    return {}


def _object_schema(doc: Document, schema: Any, depth: int = 0) -> tuple[dict[str, Any], list[str]]:
    """Properties and required names of an object schema, with allOf parts merged in order."""
    schema = _resolve(doc, schema)
    props: dict[str, Any] = {}
    required: list[str] = []
    if depth < _MAX_REF_DEPTH:
        for part in schema.get("allOf") or []:
            p, r = _object_schema(doc, part, depth + 1)
            props.update(p)
            required.extend(r)
    props.update(schema.get("properties") or {})
    required.extend(schema.get("required") or [])
    return props, required


def _body(doc: Document, schema: Any, description: str, required: bool) -> RequestBodySpec:
    raw_props, raw_required = _object_schema(doc, schema)
    properties: dict[str, PropertySpec] = {}
    for name, prop in raw_props.items():
        resolved = _resolve(doc, prop)
        kwargs: dict[str, Any] = {
            "type": type_text(doc, prop),
            "description": resolved.get("description") or "",
        }
        if "example" in resolved:
            kwargs["example"] = resolved["example"]
        properties[name] = PropertySpec(**kwargs)

    names: list[str] = []
    for r in raw_required:
        if r in properties and r not in names:
            names.append(r)
    return RequestBodySpec(
        description=description,
        required=required,
        schema=BodySchema(properties=properties, required=names),
    )


def _merged_parameters(doc: Document, shared: list[Any], own: list[Any]) -> list[Document]:
    # operation-level parameters override path-level ones with the same name and location
    merged: dict[tuple[str, str], Document] = {}
    for raw in list(shared) + list(own):
        p = _resolve(doc, raw)
        if p.get("name") and p.get("in"):
            merged[(p["name"], p["in"])] = p
    return list(merged.values())


def _endpoint(doc: Document, path: str, method: str, op: Document, shared: list[Any]) -> EndpointRecord:
    parameters: list[ParameterSpec] = []
    body: Optional[RequestBodySpec] = None

    for p in _merged_parameters(doc, shared, op.get("parameters") or []):
        location = p["in"]
        if location == "body":
            body = _body(doc, p.get("schema"), p.get("description") or "", bool(p.get("required", False)))
            continue
        if location not in _LOCATIONS:
            logger.debug("Ignoring %s parameter %s on %s %s", location, p["name"], method, path)
            continue
        parameters.append(
            ParameterSpec(
                name=p["name"],
                location=location,
                # Swagger 2 puts the type on the parameter itself
                type=type_text(doc, p.get("schema") or p),
                required=True if location == "path" else bool(p.get("required", False)),
                description=p.get("description") or "",
            )
        )

    request_body = _resolve(doc, op.get("requestBody"))
    if request_body:
        content = request_body.get("content") or {}
        media = content.get("application/json") or next(iter(content.values()), {})
        body = _body(
            doc,
            media.get("schema") if isinstance(media, dict) else None,
            request_body.get("description") or "",
            bool(request_body.get("required", False)),
        )

    responses = {
        str(code): ResponseSpec(description=_resolve(doc, r).get("description") or "")
        for code, r in op["responses"].items()
    }
    return EndpointRecord(
        path=path,
        method=method,
        tags=tuple(op.get("tags") or (DEFAULT_GROUP,)),
        summary=op.get("summary") or "",
        description=op.get("description") or "",
        parameters=parameters,
        request_body=body,
        responses=responses,
        operation_id=op.get("operationId") or "",
    )
