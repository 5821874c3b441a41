import json
from pathlib import Path

import pytest

from routedoc.collection.openapi_reader import document_base_url, load_openapi_document, parse_openapi_document
from routedoc.errors import InvalidDocumentError

OPENAPI_DOC = {
    "openapi": "3.0.3",
    "info": {"title": "Shop", "description": "Shop API", "version": "2.0.0"},
    "servers": [{"url": "https://shop.test/v2"}, {"url": "http://localhost:8080"}],
    "tags": [{"name": "orders", "description": "Order handling"}],
    "paths": {
        "/orders/{id}": {
            "parameters": [{"name": "id", "in": "path", "schema": {"type": "integer"}}],
            "get": {
                "tags": ["orders"],
                "summary": "Get order",
                "operationId": "getOrder",
                "parameters": [
                    {"name": "expand", "in": "query", "schema": {"type": "array", "items": {"type": "string"}}},
                    {"name": "X-Trace", "in": "header", "required": True, "schema": {"type": "string"}},
                ],
                "responses": {"200": {"description": "The order"}, "404": {"$ref": "#/components/responses/NotFound"}},
            },
            "put": {
                "operationId": "replaceOrder",
                "requestBody": {
                    "required": True,
                    "content": {"application/json": {"schema": {"$ref": "#/components/schemas/OrderInput"}}},
                },
                "responses": {"204": {"description": "Replaced"}},
            },
            "delete": {"operationId": "noResponses"},
        },
        "/health": {"get": {"responses": {"200": {"description": "ok"}}}},
    },
    "components": {
        "responses": {"NotFound": {"description": "Not found"}},
        "schemas": {
            "Base": {"type": "object", "properties": {"note": {"type": "string"}}},
            "OrderInput": {
                "allOf": [{"$ref": "#/components/schemas/Base"}],
                "properties": {
                    "sku": {"type": "string", "description": "Stock unit", "example": "A-1"},
                    "qty": {"type": "integer"},
                    "status": {"type": "string", "enum": ["open", "closed"]},
                },
                "required": ["sku", "qty", "ghost"],
            },
        },
    },
}


def test_openapi3_document_becomes_collection():
    c = parse_openapi_document(json.dumps(OPENAPI_DOC))

    assert (c.title, c.description, c.version) == ("Shop", "Shop API", "2.0.0")
    assert c.base_url == "https://shop.test/v2"
    assert [(t.name, t.description) for t in c.tags] == [("orders", "Order handling")]
    # operations without responses are skipped
    assert [(e.method, e.path) for e in c.endpoints] == [
        ("GET", "/orders/{id}"),
        ("PUT", "/orders/{id}"),
        ("GET", "/health"),
    ]

    get, put, health = c.endpoints
    assert get.tags == ("orders",)
    assert health.tags == ("default",)
    assert [(p.name, p.location, p.type, p.required) for p in get.parameters] == [
        ("id", "path", "number", True),
        ("expand", "query", "string[]", False),
        ("X-Trace", "header", "string", True),
    ]
    assert get.responses["404"].description == "Not found"

    body = put.request_body
    assert body is not None and body.required is True
    assert list(body.body_schema.properties) == ["note", "sku", "qty", "status"]
    assert body.body_schema.properties["sku"].example == "A-1"
    assert body.body_schema.properties["qty"].has_example is False
    assert body.body_schema.properties["status"].type == "'open' | 'closed'"
    assert body.body_schema.required == ["sku", "qty"]


def test_swagger2_body_parameter_and_base_url():
    doc = {
        "swagger": "2.0",
        "info": {"title": "Legacy", "version": "1"},
        "schemes": ["https", "http"],
        "host": "legacy.test",
        "basePath": "/api",
        "paths": {
            "/items": {
                "post": {
                    "parameters": [
                        {"name": "dry", "in": "query", "type": "boolean"},
                        {"name": "item", "in": "body", "required": True, "schema": {"$ref": "#/definitions/Item"}},
                    ],
                    "responses": {"201": {"description": "Created"}},
                }
            }
        },
        "definitions": {"Item": {"type": "object", "properties": {"name": {"type": "string"}}, "required": ["name"]}},
    }

    c = parse_openapi_document(doc)
    assert c.base_url == "https://legacy.test/api"

    (post,) = c.endpoints
    assert [(p.name, p.type) for p in post.parameters] == [("dry", "boolean")]
    assert list(post.request_body.body_schema.properties) == ["name"]
    assert post.request_body.body_schema.required == ["name"]


def test_document_base_url_fallbacks():
    assert document_base_url({"schemes": ["https"], "host": "x.test"}) == ""
    assert document_base_url({"servers": []}) == ""


def test_invalid_documents_are_rejected(tmp_path: Path):
    with pytest.raises(InvalidDocumentError):
        parse_openapi_document("{not json")
    with pytest.raises(InvalidDocumentError):
        parse_openapi_document({"info": {}, "paths": {}})
    with pytest.raises(InvalidDocumentError):
        parse_openapi_document({"openapi": "3.0.0", "paths": {}})
    with pytest.raises(InvalidDocumentError):
        load_openapi_document(tmp_path / "missing.json")
