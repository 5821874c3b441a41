from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from routedoc.extractors.nestjs.syntax import (
    Annotation,
    ClassDecl,
    Expr,
    MethodDecl,
    SourceUnit,
    find_annotation,
)

ROUTE_GROUP_ANNOTATION = "Controller"

HTTP_VERB_ANNOTATIONS = {
    "Get": "GET",
    "Post": "POST",
    "Put": "PUT",
    "Patch": "PATCH",
    "Delete": "DELETE",
    "Options": "OPTIONS",
    "Head": "HEAD",
}


@dataclass(frozen=True)
class RouteHandler:
    method: MethodDecl
    verb: str
    path: str  # method-level fragment, "" when absent


@dataclass(frozen=True)
class RouteGroupDecl:
    decl: ClassDecl
    base_path: str
    handlers: tuple[RouteHandler, ...]

    @property
    def name(self) -> str:
        return self.decl.name


def inspect_unit(unit: SourceUnit) -> list[RouteGroupDecl]:
    """
    Controller classes of a source unit with their verb-decorated methods.
    Classes without @Controller and methods without a verb decorator are skipped.
    """
    groups: list[RouteGroupDecl] = []
    for cls in unit.classes:
        controller = find_annotation(cls.annotations, ROUTE_GROUP_ANNOTATION)
        if controller is None:
            continue

        handlers: list[RouteHandler] = []
        for m in cls.methods:
            verb = find_verb_annotation(m)
            if verb is None:
                continue
            handlers.append(
                RouteHandler(
                    method=m,
                    verb=HTTP_VERB_ANNOTATIONS[verb.name],
                    path=annotation_path(verb),
                )
            )

        base = annotation_path(controller)
        if base and not base.startswith("/"):
            base = "/" + base
        groups.append(RouteGroupDecl(decl=cls, base_path=base, handlers=tuple(handlers)))
    return groups


def find_verb_annotation(method: MethodDecl) -> Optional[Annotation]:
    for a in method.annotations:
        if a.is_call and a.name in HTTP_VERB_ANNOTATIONS:
            return a
    return None


def annotation_path(annotation: Annotation) -> str:
    """
    Path argument of @Controller / @Get(...) style decorators.

      'users'                      -> 'users'
      ['short', '/api/edge/short'] -> 'short'  (shortest wins, first on ties)
      { path: 'users' }            -> 'users'
      (none / anything else)       -> ''
    """
    arg = annotation.arg(0)
    if arg is None:
        return ""
    if arg.kind == "object":
        inner = arg.get("path")
        if inner is None:
            return ""
        arg = inner
    return _path_value(arg)


def _path_value(expr: Expr) -> str:
    if expr.kind == "string":
        return (expr.value or "").strip()
    if expr.kind == "array":
        options = [i.value.strip() for i in expr.items if i.kind == "string" and i.value is not None]
        if not options:
            return ""
        return min(options, key=len)
    return ""
