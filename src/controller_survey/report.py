"""Result persistence and summary output for machine and human consumers."""

from __future__ import annotations

import json
import sys
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from textwrap import shorten
from typing import IO, Iterable

import structlog

from .models import AnalysisResult, Classification

MAX_SIGNAL_ROWS = 10

logger = structlog.get_logger(__name__)


def write_results(results: Iterable[AnalysisResult], stream: IO[str]) -> int:
    """Write one JSON object per line to `stream`; returns the number written."""

    count = 0
    for result in results:
        stream.write(json.dumps(result.to_dict()) + "\n")
        count += 1
    stream.flush()
    return count


class ResultWriter:
    """Write results as JSON lines to a file, or stdout for `None`/`-`."""

    def __init__(self, path: str | Path | None = None) -> None:
        if path is None or str(path) == "-":
            self._file: IO[str] | None = None
            self._stream: IO[str] = sys.stdout
        else:
            self._file = open(path, "w", encoding="utf-8")
            self._stream = self._file

    def write(self, result: AnalysisResult) -> None:
        write_results([result], self._stream)

    def write_all(self, results: Iterable[AnalysisResult]) -> None:
        write_results(results, self._stream)

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> ResultWriter:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def load_results(path: str | Path) -> list[AnalysisResult]:
    """Load JSONL results, skipping lines that do not parse."""

    results: list[AnalysisResult] = []
    for idx, line in enumerate(Path(path).read_text(encoding="utf-8").splitlines(), start=1):
        if not line.strip():
            continue
        try:
            results.append(AnalysisResult.from_dict(json.loads(line)))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("result_line_skipped", path=str(path), line=idx, error=str(exc))
    return results


@dataclass(frozen=True)
class Summary:
    total: int
    average_score: float
    by_classification: dict[str, int] = field(default_factory=dict)
    by_repo: dict[str, int] = field(default_factory=dict)
    signal_frequency: dict[str, int] = field(default_factory=dict)
    top_sotw: list[AnalysisResult] = field(default_factory=list)
    top_edge: list[AnalysisResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "total_reconcilers": self.total,
            "average_score": round(self.average_score, 3),
            "by_classification": self.by_classification,
            "by_repo": self.by_repo,
            "signal_frequency": self.signal_frequency,
            "top_sotw": [_brief(r) for r in self.top_sotw],
            "top_edge": [_brief(r) for r in self.top_edge],
        }


def _brief(result: AnalysisResult) -> dict[str, object]:
    return {"id": result.id, "score": result.score, "classification": result.classification.value}


def generate_summary(results: list[AnalysisResult], top_n: int = 10) -> Summary:
    classifications = Counter(r.classification.value for r in results)
    repos = Counter(r.repo for r in results)
    kinds = Counter(s.kind.value for r in results for s in r.signals)

    average = sum(r.score for r in results) / len(results) if results else 0.0
    by_classification = {c.value: classifications[c.value] for c in Classification if classifications[c.value]}
    frequency = dict(sorted(kinds.items(), key=lambda item: (-item[1], item[0])))

    top_sotw: list[AnalysisResult] = []
    top_edge: list[AnalysisResult] = []
    if top_n > 0:
        top_sotw = sorted(results, key=lambda r: r.score, reverse=True)[:top_n]
        top_edge = sorted(results, key=lambda r: r.score)[:top_n]

    return Summary(
        total=len(results),
        average_score=average,
        by_classification=by_classification,
        by_repo=dict(sorted(repos.items())),
        signal_frequency=frequency,
        top_sotw=top_sotw,
        top_edge=top_edge,
    )


def to_json(summary: Summary) -> str:
    return json.dumps(summary.to_dict(), indent=2)


def to_table(summary: Summary) -> str:
    lines = [
        "=== Analysis Summary ===",
        "",
        f"Total Reconcilers: {summary.total}",
        f"Average Score: {summary.average_score:.2f}",
        "",
        "Classification Distribution:",
    ]
    for label, count in summary.by_classification.items():
        pct = 100.0 * count / summary.total if summary.total else 0.0
        lines.append(f"  {label}: {count} ({pct:.1f}%)")

    lines += ["", "Top Signal Types:"]
    for kind, count in list(summary.signal_frequency.items())[:MAX_SIGNAL_ROWS]:
        lines.append(f"  {kind}: {count}")

    for title, rows in (("Top SoTW Reconcilers", summary.top_sotw), ("Top Edge-Triggered Reconcilers", summary.top_edge)):
        if not rows:
            continue
        lines += ["", f"{title}:", "| # | Reconciler | Score | Classification |", "|---:|---|---:|---|"]
        for idx, result in enumerate(rows, start=1):
            name = shorten(result.id, width=80, placeholder="...")
            lines.append(f"| {idx} | {name} | {result.score} | {result.classification.value} |")
    return "\n".join(lines)
