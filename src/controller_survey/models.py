"""Records produced by a survey pass."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tree_sitter import Node

    from .syntax import SourceFile


class SignalKind(str, Enum):
    """Fixed signal vocabulary; each kind carries its score and description."""

    score: int
    description: str

    def __new__(cls, value: str, score: int, description: str) -> SignalKind:
        member = str.__new__(cls, value)
        member._value_ = value
        member.score = score
        member.description = description
        return member

    # Reads.
    LIST_UNSCOPED = ("list_unscoped", 3, "client.List without request-scoped selectors")
    LIST_NAMESPACE_SCOPED = ("list_namespace_scoped", 1, "client.List scoped to request namespace only")
    LIST_LABEL_SCOPED = ("list_label_scoped", 0, "client.List scoped by labels/fields derived from request")
    LIST_OWNER_SCOPED = ("list_owner_scoped", -1, "client.List scoped by owner reference from request")
    GET_REQ_SCOPED = ("get_req_scoped", -1, "client.Get with req.NamespacedName (primary resource fetch)")
    GET_DERIVED = ("get_derived", -1, "client.Get with key derived from request")
    GET_UNRELATED = ("get_unrelated", 1, "client.Get with key not derived from request")

    # Writes.
    LOOP_WRITE = ("loop_write", 3, "Loop containing write operations (SoTW pattern)")
    DIFF_SYNC = ("diff_sync", 3, "Desired state diffed against actual state and synced")
    SINGLE_WRITE = ("single_write", -1, "client write call")
    CREATE_OR_UPDATE = ("create_or_update", -1, "controllerutil.CreateOrUpdate call")
    STATUS_UPDATE = ("status_update", 0, "Status subresource update")

    # Control flow.
    NOTFOUND_EARLY_RETURN = (
        "notfound_early_return",
        -2,
        "NotFound handling with delete logic (classic edge-triggered pattern)",
    )
    NOTFOUND_IGNORE = ("notfound_ignore", -1, "Early return on NotFound (ignores deletes)")
    FINALIZER_HANDLING = ("finalizer_handling", -1, "Finalizer add/remove pattern")
    BUILD_DESIRED_STATE = ("build_desired_state", 2, "Full desired state built then applied")

    # Controller setup.
    OWNS_RESOURCES = ("owns_resources", -1, ".Owns() in controller setup")
    WATCHES_WITH_HANDLER = ("watches_with_handler", -1, ".Watches() with EnqueueRequestForOwner")


# Declared in the vocabulary but never emitted by the detector.
RESERVED_KINDS = frozenset(
    {
        SignalKind.LIST_OWNER_SCOPED,
        SignalKind.DIFF_SYNC,
        SignalKind.CREATE_OR_UPDATE,
        SignalKind.STATUS_UPDATE,
        SignalKind.FINALIZER_HANDLING,
        SignalKind.BUILD_DESIRED_STATE,
        SignalKind.OWNS_RESOURCES,
        SignalKind.WATCHES_WITH_HANDLER,
    }
)


class Classification(str, Enum):
    """Score bands, ordered from most edge-triggered to most state-of-the-world."""

    EDGE_TRIGGERED = "edge_triggered"
    MOSTLY_EDGE = "mostly_edge"
    MOSTLY_SOTW = "mostly_sotw"
    SOTW = "sotw"


@dataclass(frozen=True, slots=True)
class Signal:
    """A single detected pattern occurrence."""

    kind: SignalKind
    line: int
    score: int
    snippet: str
    description: str

    @classmethod
    def of(cls, kind: SignalKind, line: int, snippet: str, description: str | None = None) -> Signal:
        return cls(
            kind=kind,
            line=line,
            score=kind.score,
            snippet=snippet,
            description=description or kind.description,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "line": self.line,
            "score": self.score,
            "snippet": self.snippet,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> Signal:
        return cls(
            kind=SignalKind(payload["kind"]),
            line=int(payload["line"]),
            score=int(payload["score"]),
            snippet=str(payload.get("snippet", "")),
            description=str(payload.get("description", "")),
        )


@dataclass(frozen=True, slots=True)
class CandidateFunction:
    """A `Reconcile` method whose signature matched the reconciler template."""

    name: str
    receiver_type: str
    receiver_package: str
    param_names: tuple[str | None, ...]
    request_name: str
    line: int
    end_line: int
    node: Node = field(repr=False, compare=False)
    source: SourceFile = field(repr=False, compare=False)

    @property
    def body(self) -> Node | None:
        return self.node.child_by_field_name("body")


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    """Score, classification and signals for one reconciler."""

    id: str
    repo: str
    file: str
    line: int
    end_line: int
    receiver_type: str
    receiver_package: str
    score: int
    classification: Classification
    signals: tuple[Signal, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "repo": self.repo,
            "file": self.file,
            "line": self.line,
            "end_line": self.end_line,
            "receiver_type": self.receiver_type,
            "receiver_package": self.receiver_package,
            "score": self.score,
            "classification": self.classification.value,
            "signals": [signal.to_dict() for signal in self.signals],
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> AnalysisResult:
        return cls(
            id=str(payload["id"]),
            repo=str(payload.get("repo", "")),
            file=str(payload["file"]),
            line=int(payload["line"]),
            end_line=int(payload["end_line"]),
            receiver_type=str(payload.get("receiver_type", "")),
            receiver_package=str(payload.get("receiver_package", "")),
            score=int(payload["score"]),
            classification=Classification(payload["classification"]),
            signals=tuple(Signal.from_dict(item) for item in payload.get("signals") or []),
        )


@dataclass(frozen=True, slots=True)
class Repository:
    """A repository to survey; `local_path` is set once a checkout exists."""

    url: str
    owner: str
    name: str
    source: str
    local_path: str = ""
