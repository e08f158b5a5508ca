"""Find `Reconcile` methods matching the controller-runtime signature.

Expected shape::

    func (r *T) Reconcile(ctx context.Context, req ctrl.Request) (ctrl.Result, error)

Type checks are substring matches on the written type name (`Context`,
`Request`, `Result`), so wrappers and vendored copies of controller-runtime
still qualify. When the written name lacks the marker, a `TypeResolver`
description is consulted instead, if one is available.
"""

from __future__ import annotations

from tree_sitter import Node

from .models import CandidateFunction
from .syntax import SourceFile, TypeResolver, end_line_of, line_of, named_children, text_of, walk

RECONCILE_METHOD = "Reconcile"
CONTEXT_MARKER = "Context"
REQUEST_MARKER = "Request"
RESULT_MARKER = "Result"
ERROR_TYPE = "error"
DEFAULT_REQUEST_NAME = "req"

_DECLARATION_TYPES = ("parameter_declaration", "variadic_parameter_declaration")


def find_candidates(
    source: SourceFile,
    resolver: TypeResolver | None = None,
    package: str = "",
) -> list[CandidateFunction]:
    """Return every matching method in declaration order."""

    candidates: list[CandidateFunction] = []
    for node in walk(source.root):
        if node.type != "method_declaration":
            continue
        if text_of(node.child_by_field_name("name")) != RECONCILE_METHOD:
            continue
        if len(_declarations(node.child_by_field_name("receiver"))) != 1:
            continue
        if not matches_reconcile_signature(node, resolver):
            continue
        candidates.append(
            CandidateFunction(
                name=RECONCILE_METHOD,
                receiver_type=receiver_type(node),
                receiver_package=package or source.package_name,
                param_names=param_names(node),
                request_name=request_param_name(node),
                line=line_of(node),
                end_line=end_line_of(node),
                node=node,
                source=source,
            )
        )
    return candidates


def matches_reconcile_signature(node: Node, resolver: TypeResolver | None = None) -> bool:
    params = _declarations(node.child_by_field_name("parameters"))
    results = _declarations(node.child_by_field_name("result"))
    if len(params) < 2 or len(results) < 2:
        return False

    return (
        _has_marker(_type_of(params[0]), CONTEXT_MARKER, resolver)
        and _has_marker(_type_of(params[1]), REQUEST_MARKER, resolver)
        and _has_marker(_type_of(results[0]), RESULT_MARKER, resolver)
        and _is_error_type(_type_of(results[1]))
    )


def request_param_name(node: Node) -> str:
    """Local name bound to the request parameter, `req` when unnamed."""

    params = _declarations(node.child_by_field_name("parameters"))
    if len(params) < 2:
        return DEFAULT_REQUEST_NAME
    names = params[1].children_by_field_name("name")
    if names:
        return text_of(names[0])
    return DEFAULT_REQUEST_NAME


def param_names(node: Node) -> tuple[str | None, ...]:
    names: list[str | None] = []
    for decl in _declarations(node.child_by_field_name("parameters")):
        bound = decl.children_by_field_name("name")
        names.append(text_of(bound[0]) if bound else None)
    return tuple(names)


def receiver_type(node: Node) -> str:
    receivers = _declarations(node.child_by_field_name("receiver"))
    if not receivers:
        return ""
    type_node = _type_of(receivers[0])
    if type_node is not None and type_node.type == "pointer_type":
        inner = named_children(type_node)
        type_node = inner[0] if inner else None
    if type_node is not None and type_node.type == "generic_type":
        type_node = type_node.child_by_field_name("type")
    return syntactic_type_name(type_node) or "unknown"


def syntactic_type_name(type_node: Node | None) -> str | None:
    """Written name of a plain or package-qualified type, else None."""

    if type_node is None:
        return None
    if type_node.type == "type_identifier":
        return text_of(type_node)
    if type_node.type == "qualified_type":
        return text_of(type_node.child_by_field_name("name"))
    return None


def _declarations(param_list: Node | None) -> list[Node]:
    # A single unparenthesised result is a bare type, not a parameter list.
    if param_list is None or param_list.type != "parameter_list":
        return []
    return [child for child in named_children(param_list) if child.type in _DECLARATION_TYPES]


def _type_of(declaration: Node) -> Node | None:
    return declaration.child_by_field_name("type")


def _has_marker(type_node: Node | None, marker: str, resolver: TypeResolver | None) -> bool:
    if type_node is None:
        return False
    name = syntactic_type_name(type_node)
    if name is not None and marker in name:
        return True
    if resolver is None:
        return False
    described = resolver.resolve(type_node)
    return described is not None and marker in described


def _is_error_type(type_node: Node | None) -> bool:
    return type_node is not None and type_node.type == "type_identifier" and text_of(type_node) == ERROR_TYPE
