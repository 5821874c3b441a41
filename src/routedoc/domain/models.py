from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, SerializerFunctionWrapHandler, model_serializer

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]
ParameterLocation = Literal["path", "query", "header", "cookie"]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class RouteGroup(_Frozen):
    name: str
    base_path: str = ""
    tag: Optional[str] = None


class ParameterSpec(_Frozen):
    name: str
    location: ParameterLocation
    type: str = "any"
    required: bool = True
    description: str = ""


class PropertySpec(_Frozen):
    type: str = "any"
    description: str = ""
    example: Any = None

    @property
    def has_example(self) -> bool:
        # a literal `null` example is set explicitly, a missing one is not
        return "example" in self.model_fields_set

    @model_serializer(mode="wrap")
    def _serialize(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        if not self.has_example:
            data.pop("example", None)
        return data


class BodySchema(_Frozen):
    properties: dict[str, PropertySpec] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)


class RequestBodySpec(_Frozen):
    description: str = ""
    required: bool = True
    body_schema: BodySchema = Field(default_factory=BodySchema, alias="schema")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class ResponseSpec(_Frozen):
    description: str


class EndpointRecord(_Frozen):
    path: str
    method: HttpMethod
    tags: tuple[str, ...] = ()
    summary: str = ""
    description: str = ""
    parameters: list[ParameterSpec] = Field(default_factory=list)
    request_body: Optional[RequestBodySpec] = None
    responses: dict[str, ResponseSpec] = Field(default_factory=dict)
    operation_id: str = ""


class TagSpec(_Frozen):
    name: str
    description: Optional[str] = None


class ApiCollection(_Frozen):
    title: str
    description: str = ""
    version: str
    base_url: str = ""
    endpoints: list[EndpointRecord] = Field(default_factory=list)
    tags: list[TagSpec] = Field(default_factory=list)


class ErrorEntry(_Frozen):
    code: int
    message: str


class SuccessEntry(_Frozen):
    message: str
