"""Detect reconciliation patterns inside a `Reconcile` body.

The body is walked once in pre-order. Three node categories are inspected:

* client calls (`List`, `Get`, and the write verbs), classified by how their
  arguments relate to the request parameter;
* `if ...IsNotFound(err) { return ... }` branches;
* `for` loops (including range loops) that contain a client write.

A write inside a loop contributes both its own `single_write` and the loop's
`loop_write`; the two are independent.
"""

from __future__ import annotations

from tree_sitter import Node

from .models import CandidateFunction, Signal, SignalKind
from .snippets import extract_snippet
from .syntax import (
    IDENTIFIER_TYPES,
    Call,
    Ident,
    Selector,
    block_statements,
    expression,
    line_of,
    named_children,
    text_of,
    walk,
)

CLIENT_HOLDER_NAMES = frozenset({"Client", "client", "c"})
CLIENT_VERBS = frozenset({"Get", "List", "Create", "Update", "Delete", "Patch"})
WRITE_VERBS = frozenset({"Create", "Update", "Delete", "Patch"})

NAMESPACE_OPTION_MARKERS = ("InNamespace",)
LABEL_OPTION_MARKERS = ("MatchingLabels", "MatchingFields")
NAMESPACED_NAME_FIELD = "NamespacedName"
NOT_FOUND_CHECK = "IsNotFound"
NIL_LITERAL = "nil"

LOOP_NODE_TYPES = frozenset({"for_statement"})


def is_client_holder(name: str) -> bool:
    return name in CLIENT_HOLDER_NAMES or "client" in name.lower()


def is_client_call(selector: Selector) -> bool:
    """Whether `selector` (the callee of a call) targets a Kubernetes client.

    `r.Get(...)` counts because reconcilers commonly embed the client; for
    longer chains the holder must appear somewhere along the chain, e.g.
    `r.Client.Get(...)` or `r.client.Status().Patch(...)`.
    """

    match selector.operand:
        case Ident(name=name):
            return is_client_holder(name) or selector.member in CLIENT_VERBS
        case Selector(member=member) as inner:
            return is_client_holder(member) or is_client_call(inner)
        case Call(function=Selector() as inner):
            return is_client_call(inner)
    return False


def option_name(node: Node) -> str | None:
    """Final name of an option constructor call such as `client.InNamespace(ns)`."""

    match expression(node):
        case Call(function=Ident(name=name)):
            return name
        case Call(function=Selector(member=member)):
            return member
    return None


def is_namespace_option(node: Node) -> bool:
    name = option_name(node)
    return name is not None and any(marker in name for marker in NAMESPACE_OPTION_MARKERS)


def is_label_option(node: Node) -> bool:
    name = option_name(node)
    return name is not None and any(marker in name for marker in LABEL_OPTION_MARKERS)


def is_not_found_check(node: Node | None) -> bool:
    if node is None:
        return False
    match expression(node):
        case Call(function=Selector(member=member)):
            return member == NOT_FOUND_CHECK
    return False


def _returned_values(statement: Node) -> list[Node]:
    values: list[Node] = []
    for child in named_children(statement):
        if child.type == "expression_list":
            values.extend(named_children(child))
        else:
            values.append(child)
    return values


def _is_nil(node: Node) -> bool:
    return node.type == NIL_LITERAL or (node.type == "identifier" and text_of(node) == NIL_LITERAL)


class PatternDetector:
    """Emit signals for one reconciler body.

    `request_name` is the local name of the request parameter; `source` is
    the file's raw bytes, used for snippets when available.
    """

    def __init__(self, request_name: str, source: bytes | None = None) -> None:
        self.request_name = request_name
        self.source = source

    def detect(self, body: Node | None) -> list[Signal]:
        if body is None:
            return []
        signals: list[Signal] = []
        for node in walk(body):
            signal = self._dispatch(node)
            if signal is not None:
                signals.append(signal)
        return signals

    def _dispatch(self, node: Node) -> Signal | None:
        if node.type == "call_expression":
            return self._call_signal(node)
        if node.type == "if_statement":
            return self._not_found_signal(node)
        if node.type in LOOP_NODE_TYPES:
            return self._loop_signal(node)
        return None

    # Calls.

    def _call_signal(self, node: Node) -> Signal | None:
        call = expression(node)
        if not isinstance(call, Call) or not isinstance(call.function, Selector):
            return None
        if not is_client_call(call.function):
            return None

        verb = call.function.member
        if verb == "List":
            return self._list_signal(call)
        if verb == "Get":
            return self._get_signal(call)
        if verb in WRITE_VERBS:
            return self._signal(SignalKind.SINGLE_WRITE, node, description=f"client.{verb} call")
        return None

    def _list_signal(self, call: Call) -> Signal | None:
        # List(ctx, list, opts...)
        if len(call.args) < 2:
            return None
        options = call.args[2:]
        if not any(self.references_request(option) for option in options):
            return self._signal(SignalKind.LIST_UNSCOPED, call.node)

        has_namespace = any(is_namespace_option(option) for option in options)
        has_label = any(is_label_option(option) for option in options)
        if has_namespace and not has_label:
            return self._signal(SignalKind.LIST_NAMESPACE_SCOPED, call.node)
        return self._signal(SignalKind.LIST_LABEL_SCOPED, call.node)

    def _get_signal(self, call: Call) -> Signal | None:
        # Get(ctx, key, obj, opts...)
        if len(call.args) < 3:
            return None
        key = call.args[1]
        if self.is_request_namespaced_name(key):
            return self._signal(SignalKind.GET_REQ_SCOPED, call.node)
        if self.references_request(key):
            return self._signal(SignalKind.GET_DERIVED, call.node)
        return self._signal(SignalKind.GET_UNRELATED, call.node)

    # Control flow.

    def _not_found_signal(self, node: Node) -> Signal | None:
        if not is_not_found_check(node.child_by_field_name("condition")):
            return None
        statements = block_statements(node.child_by_field_name("consequence"))
        returns = [statement for statement in statements if statement.type == "return_statement"]
        if not returns:
            return None
        if any(_is_nil(value) for statement in returns for value in _returned_values(statement)):
            return self._signal(SignalKind.NOTFOUND_IGNORE, node)
        return self._signal(SignalKind.NOTFOUND_EARLY_RETURN, node)

    # Loops.

    def _loop_signal(self, node: Node) -> Signal | None:
        body = node.child_by_field_name("body")
        if body is None:
            return None
        if any(self._is_write_call(inner) for inner in walk(body)):
            return self._signal(SignalKind.LOOP_WRITE, node)
        return None

    def _is_write_call(self, node: Node) -> bool:
        if node.type != "call_expression":
            return False
        match expression(node):
            case Call(function=Selector(member=member) as selector) if member in WRITE_VERBS:
                return is_client_call(selector)
        return False

    # Helpers.

    def references_request(self, node: Node) -> bool:
        """Whether any identifier inside `node` names the request parameter."""

        return any(
            inner.type in IDENTIFIER_TYPES and text_of(inner) == self.request_name for inner in walk(node)
        )

    def is_request_namespaced_name(self, node: Node) -> bool:
        match expression(node):
            case Selector(operand=Ident(name=name), member=member) if member == NAMESPACED_NAME_FIELD:
                return name == self.request_name
        return False

    def _signal(self, kind: SignalKind, node: Node, description: str | None = None) -> Signal:
        return Signal.of(kind, line_of(node), extract_snippet(node, self.source), description)


def detect_patterns(candidate: CandidateFunction) -> list[Signal]:
    detector = PatternDetector(candidate.request_name, candidate.source.source)
    return detector.detect(candidate.body)
