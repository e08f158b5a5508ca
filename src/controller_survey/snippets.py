"""Bounded source excerpts for signals."""

from __future__ import annotations

import structlog
from tree_sitter import Node

from .syntax import walk

MAX_SNIPPET_LENGTH = 200
ELLIPSIS = "..."
UNPRINTABLE = "<unprintable>"

logger = structlog.get_logger(__name__)


def extract_snippet(node: Node, source: bytes | None = None) -> str:
    """Return a whitespace-normalised excerpt of `node`.

    Slices the raw file bytes when they cover the node, otherwise re-renders
    the node from its tokens. Never raises.
    """

    text = _slice(node, source)
    if text is None:
        try:
            text = render_node(node)
        except Exception as exc:  # noqa: BLE001
            logger.debug("snippet_unprintable", node_type=node.type, error=type(exc).__name__)
            return UNPRINTABLE
    return normalize(text)


def _slice(node: Node, source: bytes | None) -> str | None:
    if not source:
        return None
    start, end = node.start_byte, node.end_byte
    if not 0 <= start < end <= len(source):
        return None
    return source[start:end].decode("utf-8", errors="replace")


def render_node(node: Node) -> str:
    """Rebuild source text from leaf tokens, spacing only where the source had a gap."""

    pieces: list[str] = []
    previous_end: int | None = None
    for leaf in walk(node):
        if leaf.child_count or not leaf.text:
            continue
        if previous_end is not None and leaf.start_byte != previous_end:
            pieces.append(" ")
        pieces.append(leaf.text.decode("utf-8", errors="replace"))
        previous_end = leaf.end_byte
    if not pieces:
        raise ValueError(f"no tokens to render for {node.type}")
    return "".join(pieces)


def normalize(text: str) -> str:
    collapsed = " ".join(text.split())
    if len(collapsed) > MAX_SNIPPET_LENGTH:
        return collapsed[:MAX_SNIPPET_LENGTH] + ELLIPSIS
    return collapsed
