from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional

import tree_sitter_typescript as tsts
from tree_sitter import Language, Node, Parser

from routedoc.errors import SourceParseError

logger = logging.getLogger(__name__)

TS_LANGUAGE = Language(tsts.language_typescript())

_WS = re.compile(r"\s+")
_MAX_TYPE_DEPTH = 8


# ----------------------------
# Backend-neutral model
# ----------------------------


@dataclass(frozen=True)
class Expr:
    """
    Literal-ish view of a decorator argument.

    kind is one of: string, number, literal (true/false/null/undefined),
    array, object, call, reference, other.
    """

    kind: str
    text: str
    value: Any = None
    items: tuple["Expr", ...] = ()
    fields: tuple[tuple[str, "Expr"], ...] = ()
    callee: str = ""

    def get(self, key: str) -> Optional["Expr"]:
        for k, v in self.fields:
            if k == key:
                return v
        return None

    def as_str(self) -> Optional[str]:
        return self.value if self.kind == "string" else None


@dataclass(frozen=True)
class Annotation:
    name: str  # last segment of the decorator callee, e.g. "Get"
    args: tuple[Expr, ...] = ()
    text: str = ""  # raw text between the call parens
    is_call: bool = True

    def arg(self, index: int) -> Optional[Expr]:
        return self.args[index] if index < len(self.args) else None


@dataclass(frozen=True)
class Member:
    name: str
    type_text: str
    optional: bool = False
    annotations: tuple[Annotation, ...] = ()


@dataclass(frozen=True)
class TypeShape:
    text: str
    # None when the type has no resolvable structure (primitives, any, unknown names)
    members: Optional[tuple[Member, ...]] = None


ANY_TYPE = TypeShape(text="any")


@dataclass(frozen=True)
class ParamDecl:
    name: str
    type: TypeShape
    optional: bool
    annotations: tuple[Annotation, ...] = ()


@dataclass(frozen=True)
class MethodDecl:
    name: str
    annotations: tuple[Annotation, ...]
    params: tuple[ParamDecl, ...]
    doc: str = ""
    line: int = 0


@dataclass(frozen=True)
class ClassDecl:
    name: str
    annotations: tuple[Annotation, ...]
    methods: tuple[MethodDecl, ...]
    line: int = 0


@dataclass(frozen=True)
class SourceUnit:
    path: Path
    classes: tuple[ClassDecl, ...]
    doc: str = ""


def find_annotation(annotations: Iterable[Annotation], *names: str) -> Optional[Annotation]:
    for a in annotations:
        if a.name in names:
            return a
    return None


# ----------------------------
# tree-sitter plumbing
# ----------------------------


@dataclass
class ParsedFile:
    path: Path
    source: bytes
    root: Node
    type_decls: dict[str, "TypeDecl"] = field(default_factory=dict)
    imports: list[str] = field(default_factory=list)

    def text(self, node: Optional[Node]) -> str:
        if node is None:
            return ""
        return self.source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


@dataclass(frozen=True)
class TypeDecl:
    name: str
    kind: str  # interface | alias | class
    node: Node
    file: ParsedFile


def _normalize_ws(text: str) -> str:
    return _WS.sub(" ", text).strip()


def _last_segment(text: str) -> str:
    return text.strip().split(".")[-1]


def _strip_quotes(text: str) -> str:
    t = text.strip()
    if len(t) >= 2 and t[0] == t[-1] and t[0] in "'\"`":
        return t[1:-1]
    return t


def _is_named(node: Node) -> bool:
    return node.is_named and node.type != "comment"


def _named(node: Optional[Node]) -> list[Node]:
    if node is None:
        return []
    return [c for c in node.children if _is_named(c)]


def _has_token(node: Node, token: str) -> bool:
    return any(not c.is_named and c.type == token for c in node.children)


def _type_node(annotation_node: Optional[Node]) -> Optional[Node]:
    # type_annotation := ':' <type>
    if annotation_node is None:
        return None
    kids = _named(annotation_node)
    return kids[0] if kids else None


class TypeScriptBackend:
    """
    Parses TypeScript sources with tree-sitter and exposes them as the neutral
    model above. Parsed files are cached per instance.
    """

    def __init__(self, max_import_depth: int = 3, max_source_bytes: int = 2_000_000):
        self.parser = Parser(TS_LANGUAGE)
        self.max_import_depth = max_import_depth
        self.max_source_bytes = max_source_bytes
        self._cache: dict[Path, ParsedFile] = {}

    # ---- files ----

    def parse_path(self, path: Path) -> ParsedFile:
        path = path.resolve()
        cached = self._cache.get(path)
        if cached is not None:
            return cached
        try:
            data = path.read_bytes()
            if len(data) > self.max_source_bytes:
                raise SourceParseError(path, f"file exceeds {self.max_source_bytes} bytes")
            data.decode("utf-8")
        except OSError as exc:
            raise SourceParseError(path, str(exc)) from exc
        except UnicodeDecodeError as exc:
            raise SourceParseError(path, f"not valid UTF-8 ({exc.reason})") from exc
        parsed = self._parse_bytes(path, data)
        self._cache[path] = parsed
        return parsed

    def parse_text(self, source: str, path: Path = Path("<memory>.ts")) -> ParsedFile:
        return self._parse_bytes(path, source.encode("utf-8"))

    def _parse_bytes(self, path: Path, data: bytes) -> ParsedFile:
        tree = self.parser.parse(data)
        parsed = ParsedFile(path=path, source=data, root=tree.root_node)
        if tree.root_node.has_error:
            logger.debug("Syntax errors in %s; continuing with a partial tree", path)
        self._collect_top_level(parsed)
        return parsed

    def _collect_top_level(self, pf: ParsedFile) -> None:
        for node in _named(pf.root):
            decl = node
            if node.type == "export_statement":
                decl = node.child_by_field_name("declaration")
                if decl is None:
                    # re-exports (`export * from "./x"`) are followed like imports
                    src = node.child_by_field_name("source")
                    if src is not None:
                        pf.imports.append(_strip_quotes(pf.text(src)))
                    continue
            if node.type == "import_statement":
                src = node.child_by_field_name("source")
                if src is not None:
                    pf.imports.append(_strip_quotes(pf.text(src)))
                continue

            kind = {
                "interface_declaration": "interface",
                "type_alias_declaration": "alias",
                "class_declaration": "class",
                "abstract_class_declaration": "class",
            }.get(decl.type)
            if kind is None:
                continue
            name = pf.text(decl.child_by_field_name("name"))
            if name and name not in pf.type_decls:
                pf.type_decls[name] = TypeDecl(name=name, kind=kind, node=decl, file=pf)

    def _resolve_import(self, base: Path, spec: str) -> Optional[Path]:
        if not spec.startswith("."):
            return None
        target = (base.parent / spec).resolve()
        for candidate in (Path(f"{target}.ts"), target / "index.ts", target):
            if candidate.is_file() and candidate.suffix == ".ts":
                return candidate
        return None

    def type_registry(self, pf: ParsedFile) -> dict[str, TypeDecl]:
        """Type declarations visible from pf: its own first, then relative imports (breadth-first)."""
        registry: dict[str, TypeDecl] = dict(pf.type_decls)
        seen: set[Path] = {pf.path}
        frontier = [pf]
        for _ in range(self.max_import_depth):
            nxt: list[ParsedFile] = []
            for cur in frontier:
                for spec in cur.imports:
                    target = self._resolve_import(cur.path, spec)
                    if target is None or target in seen:
                        continue
                    seen.add(target)
                    try:
                        dep = self.parse_path(target)
                    except SourceParseError as exc:
                        # imported files only feed type resolution
                        logger.debug("Cannot follow import %s: %s", target, exc)
                        continue
                    for name, decl in dep.type_decls.items():
                        registry.setdefault(name, decl)
                    nxt.append(dep)
            frontier = nxt
            if not frontier:
                break
        return registry

    # ---- units ----

    def load_unit(self, path: Path) -> SourceUnit:
        pf = self.parse_path(path)
        return self.build_unit(pf)

    def build_unit(self, pf: ParsedFile) -> SourceUnit:
        resolver = TypeResolver(self.type_registry(pf))
        classes: list[ClassDecl] = []
        for node in _named(pf.root):
            outer_decorators: list[Node] = []
            decl = node
            if node.type == "export_statement":
                outer_decorators = [c for c in node.children if c.type == "decorator"]
                decl = node.child_by_field_name("declaration")
            if decl is None or decl.type not in ("class_declaration", "abstract_class_declaration"):
                continue
            classes.append(self._class_decl(pf, decl, outer_decorators, resolver))
        return SourceUnit(path=pf.path, classes=tuple(classes), doc=_file_doc(pf))

    def _class_decl(
        self,
        pf: ParsedFile,
        node: Node,
        outer_decorators: list[Node],
        resolver: "TypeResolver",
    ) -> ClassDecl:
        decorators = outer_decorators + [c for c in node.children if c.type == "decorator"]
        methods: list[MethodDecl] = []
        for member, member_decorators, doc in _iter_class_members(pf, node.child_by_field_name("body")):
            if member.type != "method_definition":
                continue
            methods.append(
                MethodDecl(
                    name=pf.text(member.child_by_field_name("name")),
                    annotations=tuple(_annotation(pf, d) for d in member_decorators),
                    params=tuple(self._params(pf, member, resolver)),
                    doc=doc,
                    line=member.start_point[0] + 1,
                )
            )
        return ClassDecl(
            name=pf.text(node.child_by_field_name("name")),
            annotations=tuple(_annotation(pf, d) for d in decorators),
            methods=tuple(methods),
            line=node.start_point[0] + 1,
        )

    def _params(self, pf: ParsedFile, method: Node, resolver: "TypeResolver") -> Iterator[ParamDecl]:
        for p in _named(method.child_by_field_name("parameters")):
            if p.type not in ("required_parameter", "optional_parameter"):
                continue
            pattern = p.child_by_field_name("pattern")
            annotations = tuple(_annotation(pf, d) for d in p.children if d.type == "decorator")
            type_node = _type_node(p.child_by_field_name("type"))
            optional = p.type == "optional_parameter" or find_annotation(
                annotations, "IsOptional", "Optional"
            ) is not None
            yield ParamDecl(
                name=pf.text(pattern),
                type=resolver.shape(pf, type_node),
                optional=optional,
                annotations=annotations,
            )


def _iter_class_members(pf: ParsedFile, body: Optional[Node]) -> Iterator[tuple[Node, list[Node], str]]:
    """
    Yield (member, decorators, doc) for each class body member.
    Decorators may sit inside the member node or precede it as siblings.
    """
    if body is None:
        return
    pending: list[Node] = []
    doc = ""
    for child in body.children:
        if not child.is_named:
            continue
        if child.type == "comment":
            text = pf.text(child)
            if text.startswith("/**"):
                doc = text
            continue
        if child.type == "decorator":
            pending.append(child)
            continue
        inner = [c for c in child.children if c.type == "decorator"]
        yield child, pending + inner, doc
        pending = []
        doc = ""


def _file_doc(pf: ParsedFile) -> str:
    for child in pf.root.children:
        if child.type != "comment":
            return ""
        text = pf.text(child)
        if text.startswith("/**"):
            return text
    return ""


def _annotation(pf: ParsedFile, decorator: Node) -> Annotation:
    kids = _named(decorator)
    expr = kids[0] if kids else None
    if expr is not None and expr.type == "parenthesized_expression":
        inner = _named(expr)
        expr = inner[0] if inner else expr
    if expr is None:
        return Annotation(name="", is_call=False)
    if expr.type != "call_expression":
        return Annotation(name=_last_segment(pf.text(expr)), is_call=False)

    callee = pf.text(expr.child_by_field_name("function"))
    args_node = expr.child_by_field_name("arguments")
    raw = pf.text(args_node).strip()
    if raw.startswith("(") and raw.endswith(")"):
        raw = raw[1:-1].strip()
    return Annotation(
        name=_last_segment(callee),
        args=tuple(to_expr(pf, a) for a in _named(args_node)),
        text=raw,
    )


def _number(text: str) -> Optional[float | int]:
    t = text.replace("_", "")
    try:
        return int(t, 0)
    except ValueError:
        pass
    try:
        return float(t)
    except ValueError:
        return None


def to_expr(pf: ParsedFile, node: Node) -> Expr:
    text = pf.text(node)
    t = node.type

    if t == "string":
        return Expr(kind="string", text=text, value=text[1:-1])
    if t == "template_string":
        if any(c.type == "template_substitution" for c in node.children):
            return Expr(kind="other", text=text)
        return Expr(kind="string", text=text, value=text[1:-1])
    if t == "number":
        n = _number(text)
        return Expr(kind="number", text=text, value=n) if n is not None else Expr(kind="other", text=text)
    if t == "unary_expression":
        kids = _named(node)
        if text.startswith("-") and kids and kids[0].type == "number":
            n = _number(pf.text(kids[0]))
            if n is not None:
                return Expr(kind="number", text=text, value=-n)
        return Expr(kind="other", text=text)
    if t in ("true", "false", "null", "undefined"):
        return Expr(kind="literal", text=text, value={"true": True, "false": False}.get(t))
    if t == "array":
        return Expr(kind="array", text=text, items=tuple(to_expr(pf, c) for c in _named(node)))
    if t == "object":
        fields: list[tuple[str, Expr]] = []
        for c in _named(node):
            if c.type == "pair":
                key = _strip_quotes(pf.text(c.child_by_field_name("key")))
                value = c.child_by_field_name("value")
                if value is not None:
                    fields.append((key, to_expr(pf, value)))
            elif c.type == "shorthand_property_identifier":
                name = pf.text(c)
                fields.append((name, Expr(kind="reference", text=name)))
        return Expr(kind="object", text=text, fields=tuple(fields))
    if t == "call_expression":
        args = node.child_by_field_name("arguments")
        return Expr(
            kind="call",
            text=text,
            callee=pf.text(node.child_by_field_name("function")),
            items=tuple(to_expr(pf, a) for a in _named(args)),
        )
    if t in ("identifier", "member_expression", "property_identifier"):
        return Expr(kind="reference", text=text)
    if t in ("as_expression", "satisfies_expression", "parenthesized_expression", "non_null_expression"):
        kids = _named(node)
        if kids:
            return to_expr(pf, kids[0])
    return Expr(kind="other", text=text)


class TypeResolver:
    """Resolves type annotation nodes to TypeShape using a name -> TypeDecl registry."""

    def __init__(self, registry: dict[str, TypeDecl]):
        self.registry = registry

    def shape(self, pf: ParsedFile, node: Optional[Node], depth: int = 0) -> TypeShape:
        if node is None:
            return ANY_TYPE
        text = self.text(pf, node, depth)
        return TypeShape(text=text, members=self.members(pf, node, depth))

    def text(self, pf: ParsedFile, node: Optional[Node], depth: int = 0) -> str:
        """Type text with aliases to non-object types expanded, whitespace normalized."""
        if node is None:
            return "any"
        if depth < _MAX_TYPE_DEPTH and node.type in ("type_identifier", "nested_type_identifier"):
            decl = self.registry.get(_last_segment(pf.text(node)))
            if decl is not None and decl.kind == "alias":
                value = decl.node.child_by_field_name("value")
                if value is not None and value.type != "object_type":
                    return self.text(decl.file, value, depth + 1)
        return _normalize_ws(pf.text(node))

    def members(self, pf: ParsedFile, node: Node, depth: int = 0) -> Optional[tuple[Member, ...]]:
        if depth >= _MAX_TYPE_DEPTH:
            return None
        if node.type == "parenthesized_type":
            kids = _named(node)
            return self.members(pf, kids[0], depth + 1) if kids else None
        if node.type == "object_type":
            return tuple(self._signature_members(pf, node, depth))
        if node.type in ("type_identifier", "nested_type_identifier"):
            return self._named_members(_last_segment(pf.text(node)), depth)
        return None

    def _named_members(self, name: str, depth: int) -> Optional[tuple[Member, ...]]:
        # also bounds cyclic `extends` chains
        if depth >= _MAX_TYPE_DEPTH:
            return None
        decl = self.registry.get(name)
        if decl is None:
            return None
        pf, node = decl.file, decl.node

        if decl.kind == "alias":
            value = node.child_by_field_name("value")
            return self.members(pf, value, depth + 1) if value is not None else None

        inherited: list[Member] = []
        for base in self._base_names(pf, node):
            base_members = self._named_members(base, depth + 1)
            if base_members:
                inherited.extend(base_members)

        body = node.child_by_field_name("body")
        if decl.kind == "interface":
            own = list(self._signature_members(pf, body, depth))
        else:
            own = list(self._field_members(pf, body, depth))

        own_names = {m.name for m in own}
        return tuple([m for m in inherited if m.name not in own_names] + own)

    def _base_names(self, pf: ParsedFile, node: Node) -> list[str]:
        raw: list[str] = []
        for c in node.children:
            if c.type == "extends_type_clause":
                raw.extend(pf.text(t) for t in _named(c))
            elif c.type == "class_heritage":
                for clause in c.children:
                    if clause.type == "extends_clause":
                        value = clause.child_by_field_name("value")
                        if value is not None:
                            raw.append(pf.text(value))
        # generic bases like Base<T> keep only the name
        return [_last_segment(r.split("<")[0]) for r in raw]

    def _signature_members(self, pf: ParsedFile, body: Optional[Node], depth: int) -> Iterator[Member]:
        for c in _named(body):
            if c.type != "property_signature":
                continue
            yield Member(
                name=_strip_quotes(pf.text(c.child_by_field_name("name"))),
                type_text=self.text(pf, _type_node(c.child_by_field_name("type")), depth + 1),
                optional=_has_token(c, "?"),
            )

    def _field_members(self, pf: ParsedFile, body: Optional[Node], depth: int) -> Iterator[Member]:
        for member, decorators, _doc in _iter_class_members(pf, body):
            if member.type != "public_field_definition":
                continue
            if any(not c.is_named and c.type == "static" for c in member.children):
                continue
            yield Member(
                name=_strip_quotes(pf.text(member.child_by_field_name("name"))),
                type_text=self.text(pf, _type_node(member.child_by_field_name("type")), depth + 1),
                optional=_has_token(member, "?"),
                annotations=tuple(_annotation(pf, d) for d in decorators),
            )
