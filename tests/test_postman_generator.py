import json

from routedoc.domain.models import (
    ApiCollection,
    BodySchema,
    EndpointRecord,
    ParameterSpec,
    PropertySpec,
    RequestBodySpec,
)
from routedoc.postman.generator import POSTMAN_SCHEMA, generate_postman_collection, type_example


def sample_collection() -> ApiCollection:
    body = RequestBodySpec(
        description="CreateUserDto",
        schema=BodySchema(
            properties={
                "email": PropertySpec(type="string", description="", example="a@b.c"),
                "age": PropertySpec(type="number", description=""),
                "roles": PropertySpec(type="string[]", description=""),
                "active": PropertySpec(type="boolean", description=""),
            },
            required=["email"],
        ),
    )
    return ApiCollection(
        title="Users",
        description="Generated from 1 file(s)",
        version="1.0.0",
        endpoints=[
            EndpointRecord(
                path="/users/{id}",
                method="GET",
                tags=("users",),
                summary="Get user",
                parameters=[
                    ParameterSpec(name="id", location="path", type="string"),
                    ParameterSpec(name="page", location="query", type="number", required=False),
                    ParameterSpec(name="x-trace", location="header", type="string"),
                ],
                operation_id="findOne",
            ),
            EndpointRecord(path="/users", method="POST", request_body=body, operation_id="create"),
        ],
    )


def test_postman_collection_shape():
    out = generate_postman_collection(sample_collection(), base_url="https://api.example.com/edge/")

    assert out["info"] == {"name": "Users", "description": "Generated from 1 file(s)", "schema": POSTMAN_SCHEMA}
    assert out["variable"][0] == {"key": "baseUrl", "value": "https://api.example.com/edge", "type": "string"}
    assert out["auth"]["type"] == "bearer"

    get_item, post_item = out["item"]
    assert get_item["name"] == "GET /users/{id}"
    assert get_item["description"] == "Get user"

    url = get_item["request"]["url"]
    assert url["raw"] == "https://api.example.com/edge/users/{{id}}?page={{page}}"
    assert url["protocol"] == "https"
    assert url["host"] == ["api.example.com"]
    assert url["path"] == ["edge", "users", "{{id}}"]
    assert url["query"] == [{"key": "page", "value": "1", "disabled": True}]
    assert {"key": "x-trace", "value": "<x-trace>", "type": "text"} in get_item["request"]["header"]
    assert "body" not in get_item["request"]

    body = post_item["request"]["body"]
    assert body["mode"] == "raw"
    assert json.loads(body["raw"]) == {"email": "a@b.c", "age": 1, "roles": ["<item>"], "active": False}


def test_postman_uses_default_base_url():
    out = generate_postman_collection(sample_collection())
    assert out["item"][1]["request"]["url"]["raw"] == "http://localhost:3000/users"


def test_type_example_literal_union():
    assert type_example("role", "'admin' | 'member'") == "admin"
    assert type_example("meta", "{ a: string }") == {}
    assert type_example("name", "CustomThing") == "<name>"
