"""Go syntax model on top of tree-sitter.

Parsing, traversal and position helpers, plus a small tagged view of the
expression shapes the detectors care about (identifiers, selectors, calls).
Types can optionally be described by a `TypeResolver`; the bundled
`DeclaredTypeResolver` works from the file's own imports and type
declarations, which is enough to see through local aliases such as
`type Request = ctrl.Request`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Protocol, Union

import tree_sitter_go as tsgo
from tree_sitter import Language, Node, Parser, Tree

GO_LANGUAGE = Language(tsgo.language())

IDENTIFIER_TYPES = frozenset({"identifier", "field_identifier", "type_identifier", "package_identifier"})
BUILTIN_TYPES = frozenset(
    {
        "any",
        "bool",
        "byte",
        "comparable",
        "complex64",
        "complex128",
        "error",
        "float32",
        "float64",
        "int",
        "int8",
        "int16",
        "int32",
        "int64",
        "rune",
        "string",
        "uint",
        "uint8",
        "uint16",
        "uint32",
        "uint64",
        "uintptr",
    }
)
_VERSION_SEGMENT = re.compile(r"^v\d+$")


@dataclass(frozen=True, slots=True)
class SourceFile:
    """One parsed Go file with its raw bytes."""

    path: str
    source: bytes
    tree: Tree = field(repr=False, compare=False)

    @property
    def root(self) -> Node:
        return self.tree.root_node

    @property
    def package_name(self) -> str:
        for child in self.root.named_children:
            if child.type != "package_clause":
                continue
            for part in child.named_children:
                if part.type == "package_identifier":
                    return text_of(part)
        return ""


def parse_source(source: bytes | str, path: str = "<memory>") -> SourceFile:
    if isinstance(source, str):
        source = source.encode("utf-8")
    # Parsers are not shared between threads.
    parser = Parser(GO_LANGUAGE)
    return SourceFile(path=path, source=source, tree=parser.parse(source))


def parse_file(path: str | Path) -> SourceFile:
    file_path = Path(path)
    return parse_source(file_path.read_bytes(), path=str(file_path))


def walk(node: Node) -> Iterator[Node]:
    """Yield `node` and all of its descendants in pre-order."""

    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def text_of(node: Node | None) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def line_of(node: Node) -> int:
    return node.start_point[0] + 1


def end_line_of(node: Node) -> int:
    return node.end_point[0] + 1


def named_children(node: Node | None) -> list[Node]:
    if node is None:
        return []
    return [child for child in node.named_children if child.type != "comment"]


def block_statements(block: Node | None) -> list[Node]:
    """Direct statements of a block, looking through `statement_list` wrappers."""

    statements: list[Node] = []
    for child in named_children(block):
        if child.type == "statement_list":
            statements.extend(named_children(child))
        else:
            statements.append(child)
    return statements


@dataclass(frozen=True, slots=True)
class Ident:
    name: str
    node: Node = field(repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class Selector:
    operand: Expr
    member: str
    node: Node = field(repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class Call:
    function: Expr
    args: tuple[Node, ...]
    node: Node = field(repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class OtherExpr:
    kind: str
    node: Node = field(repr=False, compare=False)


Expr = Union[Ident, Selector, Call, OtherExpr]


def expression(node: Node) -> Expr:
    """Classify an expression node into one of the tagged shapes."""

    if node.type == "identifier":
        return Ident(text_of(node), node)
    if node.type == "selector_expression":
        operand = node.child_by_field_name("operand")
        member = node.child_by_field_name("field")
        if operand is not None and member is not None:
            return Selector(expression(operand), text_of(member), node)
    if node.type == "call_expression":
        function = node.child_by_field_name("function")
        if function is not None:
            arguments = named_children(node.child_by_field_name("arguments"))
            return Call(expression(function), tuple(arguments), node)
    return OtherExpr(node.type, node)


class TypeResolver(Protocol):
    def resolve(self, node: Node) -> str | None:
        """Describe the type written at `node`, or None when unknown."""


def _default_import_name(import_path: str) -> str:
    segments = [part for part in import_path.split("/") if part]
    while len(segments) > 1 and _VERSION_SEGMENT.match(segments[-1]):
        segments.pop()
    if not segments:
        return ""
    return segments[-1].replace("-", "").replace(".", "")


class DeclaredTypeResolver:
    """Resolve type expressions using one file's imports and type declarations.

    Qualified types resolve to `<import path>.<Name>`; aliases
    (`type A = B`) resolve to their target; defined types and other
    local names resolve to `<package>.<Name>`, the way go/types prints
    named types.
    """

    def __init__(self, source: SourceFile, package: str = "") -> None:
        self.package = package or source.package_name
        self.imports: dict[str, str] = {}
        self.aliases: dict[str, Node] = {}
        self._collect(source.root)

    def _collect(self, root: Node) -> None:
        for decl in named_children(root):
            if decl.type == "import_declaration":
                for spec in walk(decl):
                    if spec.type == "import_spec":
                        self._add_import(spec)
            elif decl.type == "type_declaration":
                for spec in named_children(decl):
                    if spec.type != "type_alias":
                        continue
                    name = spec.child_by_field_name("name")
                    target = spec.child_by_field_name("type")
                    if name is not None and target is not None:
                        self.aliases[text_of(name)] = target

    def _add_import(self, spec: Node) -> None:
        path_node = spec.child_by_field_name("path")
        if path_node is None:
            return
        import_path = text_of(path_node).strip("\"`")
        name_node = spec.child_by_field_name("name")
        local = text_of(name_node) if name_node is not None else _default_import_name(import_path)
        if local in ("", "_", "."):
            return
        self.imports[local] = import_path

    def resolve(self, node: Node) -> str | None:
        return self._render(node, frozenset())

    def _render(self, node: Node, seen: frozenset[str]) -> str | None:
        kind = node.type
        if kind == "type_identifier":
            name = text_of(node)
            if name in BUILTIN_TYPES:
                return name
            target = self.aliases.get(name)
            if target is not None and name not in seen:
                return self._render(target, seen | {name})
            return f"{self.package}.{name}" if self.package else name
        if kind == "qualified_type":
            package = text_of(node.child_by_field_name("package"))
            name = text_of(node.child_by_field_name("name"))
            return f"{self.imports.get(package, package)}.{name}"
        if kind == "pointer_type":
            inner = named_children(node)
            rendered = self._render(inner[0], seen) if inner else None
            return f"*{rendered}" if rendered else None
        if kind == "generic_type":
            base = node.child_by_field_name("type")
            return self._render(base, seen) if base is not None else None
        if kind == "parenthesized_type":
            inner = named_children(node)
            return self._render(inner[0], seen) if inner else None
        rendered = text_of(node)
        return rendered or None
