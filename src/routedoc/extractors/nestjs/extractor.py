from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from routedoc.collection.builder import ParsedUnit, build_collection
from routedoc.config import ExtractorConfig
from routedoc.domain.models import (
    ApiCollection,
    BodySchema,
    EndpointRecord,
    ParameterSpec,
    PropertySpec,
    RequestBodySpec,
    ResponseSpec,
    RouteGroup,
)
from routedoc.domain.status import status_from_name
from routedoc.errors import NoSourceFilesError
from routedoc.extractors.nestjs.annotations import (
    PropertyDoc,
    clean_doc_comment,
    extract_summary,
    parse_property_doc,
)
from routedoc.extractors.nestjs.inspector import RouteHandler, inspect_unit
from routedoc.extractors.nestjs.syntax import (
    Annotation,
    Expr,
    Member,
    MethodDecl,
    ParamDecl,
    TypeScriptBackend,
    find_annotation,
)
from routedoc.repo.scanner import scan_source_files
from routedoc.symbols.loader import SymbolTables, load_symbol_tables

logger = logging.getLogger(__name__)

_MULTI_SLASH = re.compile(r"/{2,}")
_PARAM_COLON = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")
_PLACEHOLDER = re.compile(r"\{([^}/]+)\}")
_CONTROLLER_NAME = re.compile(r"^(\w+?)Controller$")

BINDING_LOCATIONS = {
    "Param": "path",
    "Query": "query",
    "Headers": "header",
    "Header": "header",
}
BODY_ANNOTATION = "Body"
OPTIONAL_ANNOTATIONS = ("IsOptional", "Optional", "ApiPropertyOptional")
PROPERTY_DOC_ANNOTATIONS = ("ApiProperty", "ApiPropertyOptional")
SUMMARY_ANNOTATIONS = ("ApiOperation", "ApiSummary")
PARAM_DOC_ANNOTATIONS = {"ApiParam": "path", "ApiQuery": "query", "ApiHeader": "header"}

RESPONSE_ANNOTATION = "ApiResponse"
SHORTHAND_RESPONSES = {
    "ApiOkResponse": "200",
    "ApiCreatedResponse": "201",
    "ApiAcceptedResponse": "202",
    "ApiNoContentResponse": "204",
    "ApiBadRequestResponse": "400",
    "ApiUnauthorizedResponse": "401",
    "ApiForbiddenResponse": "403",
    "ApiNotFoundResponse": "404",
    "ApiConflictResponse": "409",
    "ApiUnprocessableEntityResponse": "422",
    "ApiInternalServerErrorResponse": "500",
}
DEFAULT_RESPONSES = {"401": "Unauthorized", "500": "Internal Server Error"}
FALLBACK_DESCRIPTION = "Response"


def join_paths(base_path: str, method_path: str) -> str:
    """
    '/users/' + ':id' -> '/users/{id}'
    Always absolute, no repeated separators, no trailing '/' except for root.
    """
    base = base_path[:-1] if base_path.endswith("/") else base_path
    frag = method_path if method_path.startswith("/") else "/" + method_path
    p = _MULTI_SLASH.sub("/", base + frag)
    if not p.startswith("/"):
        p = "/" + p
    p = _PARAM_COLON.sub(r"{\1}", p)
    if p != "/" and p.endswith("/"):
        p = p[:-1]
    return p


def controller_tag(class_name: str, base_path: str) -> Optional[str]:
    m = _CONTROLLER_NAME.match(class_name or "")
    if m:
        return m.group(1).lower()
    for seg in base_path.split("/"):
        if seg:
            return seg
    return None


def path_placeholders(path: str) -> set[str]:
    return set(_PLACEHOLDER.findall(path))


def _identifier_segments(text: str) -> list[str]:
    t = text.strip().strip("'\"`")
    return [s for s in t.split(".") if s]


@dataclass(frozen=True)
class _ParamDocs:
    by_location: dict[tuple[str, str], str]

    def lookup(self, location: str, name: str) -> str:
        return self.by_location.get((location, name), "")


class EndpointExtractor:
    """
    Builds EndpointRecords from NestJS controller sources.

    One instance per documentation run: symbol tables are loaded lazily on the
    first parse and kept once a load returns entries.
    """

    def __init__(self, config: Optional[ExtractorConfig] = None, backend: Optional[TypeScriptBackend] = None):
        self.config = config or ExtractorConfig()
        self.backend = backend or TypeScriptBackend(
            max_import_depth=self.config.max_import_depth,
            max_source_bytes=self.config.max_source_bytes,
        )
        self.symbols: Optional[SymbolTables] = None

    # ----------------------------
    # Entry points
    # ----------------------------

    def parse_file(self, file_path: Path, title: Optional[str] = None, version: Optional[str] = None) -> ApiCollection:
        path = Path(file_path).resolve()
        self.ensure_symbols(path.parent)
        unit = self.extract_unit(path)
        return build_collection(
            [unit],
            title=title or path.name,
            version=version or self.config.default_version,
            description=unit.description,
        )

    def parse_directory(self, dir_path: Path, title: Optional[str] = None, version: Optional[str] = None) -> ApiCollection:
        root = Path(dir_path).resolve()
        files = scan_source_files(root, pattern=self.config.controller_glob, ignore=self.config.ignore_dirs)
        if not files:
            raise NoSourceFilesError(root)

        self.ensure_symbols(root)

        # parse everything before building so a bad file leaves no partial output
        units: list[ParsedUnit] = []
        for f in files:
            self.ensure_symbols(f.parent)
            units.append(self.extract_unit(f))

        logger.info("Parsed %d controller file(s) under %s", len(files), root)
        return build_collection(
            units,
            title=title or self.config.default_title,
            version=version or self.config.default_version,
            description=f"Generated from {len(files)} file(s)",
        )

    def ensure_symbols(self, start_dir: Path) -> SymbolTables:
        if self.symbols is not None and not self.symbols.is_empty():
            return self.symbols
        self.symbols = load_symbol_tables(start_dir, self.config)
        return self.symbols

    def extract_unit(self, path: Path) -> ParsedUnit:
        unit = self.backend.load_unit(path)
        groups: list[RouteGroup] = []
        endpoints: list[EndpointRecord] = []
        for g in inspect_unit(unit):
            group = RouteGroup(name=g.name, base_path=g.base_path, tag=controller_tag(g.name, g.base_path))
            groups.append(group)
            endpoints.extend(self.build_endpoint(group, h) for h in g.handlers)
        return ParsedUnit(
            path=unit.path,
            groups=tuple(groups),
            endpoints=tuple(endpoints),
            description=clean_doc_comment(unit.doc),
        )

    # ----------------------------
    # Per-method extraction
    # ----------------------------

    def build_endpoint(self, group: RouteGroup, handler: RouteHandler) -> EndpointRecord:
        method = handler.method
        path = join_paths(group.base_path, handler.path)
        return EndpointRecord(
            path=path,
            method=handler.verb,
            tags=(group.tag,) if group.tag else (),
            summary=self.extract_summary(method),
            description=clean_doc_comment(method.doc),
            parameters=self.extract_parameters(method, path),
            request_body=self.extract_request_body(method),
            responses=self.extract_responses(method),
            operation_id=method.name,
        )

    def extract_summary(self, method: MethodDecl) -> str:
        a = find_annotation(method.annotations, *SUMMARY_ANNOTATIONS)
        return extract_summary(a.text) if a is not None else ""

    # ---- parameters ----

    def extract_parameters(self, method: MethodDecl, path: str) -> list[ParameterSpec]:
        docs = _collect_param_docs(method.annotations)
        placeholders = path_placeholders(path)
        out: list[ParameterSpec] = []

        for param in method.params:
            for a in param.annotations:
                location = BINDING_LOCATIONS.get(a.name)
                if location is None:
                    continue
                for spec in self._binding_specs(param, a, location, docs):
                    if spec.location == "path" and spec.name not in placeholders:
                        logger.debug("Dropping path parameter %r: no {%s} in %s", spec.name, spec.name, path)
                        continue
                    out.append(spec)
        return out

    def _binding_specs(
        self,
        param: ParamDecl,
        binding: Annotation,
        location: str,
        docs: _ParamDocs,
    ) -> list[ParameterSpec]:
        first = binding.arg(0)
        wire_name = first.as_str() if first is not None else None
        if wire_name:
            return [
                ParameterSpec(
                    name=wire_name,
                    location=location,
                    type=param.type.text,
                    required=not param.optional,
                    description=docs.lookup(location, wire_name),
                )
            ]

        # @Query() dto: QueryDto  -> one parameter per member
        if param.type.members:
            return [
                ParameterSpec(
                    name=m.name,
                    location=location,
                    type=m.type_text,
                    required=not (param.optional or _member_optional(m)),
                    description=docs.lookup(location, m.name) or _member_doc(m).description,
                )
                for m in param.type.members
            ]

        return [
            ParameterSpec(
                name=param.name,
                location=location,
                type=param.type.text,
                required=not param.optional,
                description=docs.lookup(location, param.name),
            )
        ]

    # ---- request body ----

    def extract_request_body(self, method: MethodDecl) -> Optional[RequestBodySpec]:
        for param in method.params:
            body = find_annotation(param.annotations, BODY_ANNOTATION)
            if body is None:
                continue

            first = body.arg(0)
            field_name = first.as_str() if first is not None else None
            if field_name:
                schema = BodySchema(
                    properties={field_name: PropertySpec(type=param.type.text, description="")},
                    required=[] if param.optional else [field_name],
                )
            else:
                schema = self.body_schema(param.type.members or ())

            return RequestBodySpec(
                required=not param.optional,
                schema=schema,
            )
        return None

    def body_schema(self, members: Iterable[Member]) -> BodySchema:
        properties: dict[str, PropertySpec] = {}
        required: list[str] = []
        for m in members:
            doc = _member_doc(m)
            if doc.has_example:
                prop = PropertySpec(type=m.type_text, description=doc.description, example=doc.example)
            else:
                prop = PropertySpec(type=m.type_text, description=doc.description)
            properties[m.name] = prop
            if not _member_optional(m):
                required.append(m.name)
        return BodySchema(properties=properties, required=required)

    # ---- responses ----

    def extract_responses(self, method: MethodDecl) -> dict[str, ResponseSpec]:
        responses: dict[str, ResponseSpec] = {}

        for a in method.annotations:
            if a.name == RESPONSE_ANNOTATION:
                status, desc_expr = _response_args(a)
                code = _status_code(status)
                if code is None:
                    logger.debug("Dropping @%s with unresolved status %r", a.name, status.text if status else None)
                    continue
                responses[code] = ResponseSpec(description=self.resolve_description(desc_expr))
            elif a.name in SHORTHAND_RESPONSES:
                first = a.arg(0)
                desc_expr = first.get("description") if first is not None and first.kind == "object" else None
                responses[SHORTHAND_RESPONSES[a.name]] = ResponseSpec(
                    description=self.resolve_description(desc_expr)
                )
            elif a.name == "HttpCode":
                code = _status_code(a.arg(0))
                if code is not None and code not in responses:
                    responses[code] = ResponseSpec(description=FALLBACK_DESCRIPTION)

        for code, desc in DEFAULT_RESPONSES.items():
            responses.setdefault(code, ResponseSpec(description=desc))
        return responses

    def resolve_description(self, expr: Optional[Expr]) -> str:
        """
        Description priority:
          literal string > error helper > success helper > table reference > "Response"
        """
        if expr is None:
            return FALLBACK_DESCRIPTION
        if expr.kind == "string":
            return expr.value or ""
        if expr.kind == "call":
            helper = expr.callee.split(".")[-1]
            if helper in self.config.error_helpers:
                return self._aggregate_errors(expr.items)
            if helper in self.config.success_helpers:
                return self._aggregate_successes(expr.items)
        if expr.kind == "reference":
            return self._direct_reference(expr.text)
        return FALLBACK_DESCRIPTION

    def _tables(self) -> SymbolTables:
        return self.symbols if self.symbols is not None else SymbolTables()

    def _aggregate_errors(self, args: Iterable[Expr]) -> str:
        tables = self._tables()
        parts: list[str] = []
        for arg in args:
            ident = _lookup_identifier(arg.text, tables.errors)
            entry = tables.error(ident)
            parts.append(f"{entry.code}: {entry.message}<br><br>" if entry else f"{ident}<br><br>")
        return "".join(parts) if parts else "Bad Request"

    def _aggregate_successes(self, args: Iterable[Expr]) -> str:
        tables = self._tables()
        parts: list[str] = []
        for arg in args:
            ident = _lookup_identifier(arg.text, tables.successes)
            entry = tables.success(ident)
            parts.append(f"{entry.message if entry else ident}<br><br>")
        return "".join(parts) if parts else "Success"

    def _direct_reference(self, text: str) -> str:
        tables = self._tables()
        for seg in reversed(_identifier_segments(text)):
            err = tables.error(seg)
            if err is not None:
                return f"{err.code}: {err.message}"
            ok = tables.success(seg)
            if ok is not None:
                return ok.message
        segs = _identifier_segments(text)
        return segs[-1] if segs else FALLBACK_DESCRIPTION


def _lookup_identifier(text: str, table: dict) -> str:
    """ErrorCode.NOT_FOUND(.message) -> the segment present in table, else the last name segment."""
    segs = _identifier_segments(text)
    for seg in reversed(segs):
        if seg in table:
            return seg
    meaningful = [s for s in segs if s not in ("message", "code")]
    if meaningful:
        return meaningful[-1]
    return segs[-1] if segs else text.strip()


def _response_args(a: Annotation) -> tuple[Optional[Expr], Optional[Expr]]:
    first = a.arg(0)
    if first is None:
        return None, None
    if first.kind == "object":
        return first.get("status"), first.get("description")
    # positional form: @ApiResponse(404, 'Not found')
    return first, a.arg(1)


def _status_code(expr: Optional[Expr]) -> Optional[str]:
    if expr is None:
        return None
    if expr.kind == "number" and isinstance(expr.value, int):
        return str(expr.value)
    if expr.kind == "string" and (expr.value or "").isdigit():
        return expr.value
    if expr.kind == "reference":
        code = status_from_name(expr.text)
        return str(code) if code is not None else None
    return None


def _member_doc(m: Member) -> PropertyDoc:
    a = find_annotation(m.annotations, *PROPERTY_DOC_ANNOTATIONS)
    return parse_property_doc(a.text if a is not None else "")


def _member_optional(m: Member) -> bool:
    if m.optional:
        return True
    if find_annotation(m.annotations, *OPTIONAL_ANNOTATIONS) is not None:
        return True
    return _member_doc(m).required_false


def _collect_param_docs(annotations: Iterable[Annotation]) -> _ParamDocs:
    out: dict[tuple[str, str], str] = {}
    for a in annotations:
        location = PARAM_DOC_ANNOTATIONS.get(a.name)
        first = a.arg(0)
        if location is None or first is None or first.kind != "object":
            continue
        name = first.get("name")
        desc = first.get("description")
        if name is None or name.as_str() is None:
            continue
        out[(location, name.as_str())] = (desc.as_str() or "") if desc is not None else ""
    return _ParamDocs(by_location=out)
