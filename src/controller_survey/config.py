"""Options for an `analyze` run."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

DEFAULT_WORK_DIR = Path("./repos")
DEFAULT_WORKERS = 1
DEFAULT_TOP_N = 10


@dataclass(frozen=True)
class SurveyConfig:
    """Immutable container for the analyze command's settings."""

    work_dir: Path = DEFAULT_WORK_DIR
    output: str | None = None
    keep_clones: bool = False
    workers: int = DEFAULT_WORKERS
    top_n: int = DEFAULT_TOP_N
    verbose: bool = False
    json_logs: bool = False

    @property
    def log_level(self) -> str:
        return "DEBUG" if self.verbose else "INFO"
