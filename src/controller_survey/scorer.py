"""Score aggregation and classification for reconciler signals."""

from __future__ import annotations

from typing import Iterable

from .models import Classification, Signal

# Upper bound (inclusive) of each band; anything above MOSTLY_SOTW_MAX is SoTW.
EDGE_TRIGGERED_MAX = -3
MOSTLY_EDGE_MAX = 0
MOSTLY_SOTW_MAX = 3


def score(signals: Iterable[Signal]) -> int:
    """Return the sum of signal scores (0 for no signals)."""

    return sum(signal.score for signal in signals)


def classify(total: int) -> Classification:
    """Map an aggregate score to its classification band."""

    if total <= EDGE_TRIGGERED_MAX:
        return Classification.EDGE_TRIGGERED
    if total <= MOSTLY_EDGE_MAX:
        return Classification.MOSTLY_EDGE
    if total <= MOSTLY_SOTW_MAX:
        return Classification.MOSTLY_SOTW
    return Classification.SOTW


def evaluate(signals: Iterable[Signal]) -> tuple[int, Classification]:
    total = score(signals)
    return total, classify(total)
