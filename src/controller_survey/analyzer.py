"""Run the matcher, detector and scorer over files and repositories."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import structlog

from .errors import NoGoSourcesError
from .matcher import find_candidates
from .models import AnalysisResult, CandidateFunction, Repository
from .patterns import detect_patterns
from .repos import find_go_files, package_path, repo_slug
from .scorer import evaluate
from .syntax import DeclaredTypeResolver, SourceFile, TypeResolver, parse_file

logger = structlog.get_logger(__name__)


def result_id(repo: str, file: str, line: int) -> str:
    return f"{repo}#{file}#{line}"


def analyze_candidate(candidate: CandidateFunction, repo: str = "", file: str = "") -> AnalysisResult:
    signals = detect_patterns(candidate)
    total, classification = evaluate(signals)
    return AnalysisResult(
        id=result_id(repo, file, candidate.line),
        repo=repo,
        file=file,
        line=candidate.line,
        end_line=candidate.end_line,
        receiver_type=candidate.receiver_type,
        receiver_package=candidate.receiver_package,
        score=total,
        classification=classification,
        signals=tuple(signals),
    )


def analyze_source(
    source: SourceFile,
    repo: str = "",
    file: str | None = None,
    package: str = "",
    resolver: TypeResolver | None = None,
) -> list[AnalysisResult]:
    """Analyse every reconciler in one parsed file."""

    if resolver is None:
        resolver = DeclaredTypeResolver(source, package=package)
    rel_path = source.path if file is None else file
    return [
        analyze_candidate(candidate, repo=repo, file=rel_path)
        for candidate in find_candidates(source, resolver=resolver, package=package)
    ]


def analyze_file(path: Path, root: Path, repo: str = "") -> list[AnalysisResult]:
    source = parse_file(path)
    if source.package_name.endswith("_test"):
        return []
    rel_path = path.relative_to(root).as_posix()
    package = package_path(root, path)
    results = analyze_source(source, repo=repo, file=rel_path, package=package)
    if results:
        logger.debug("reconcilers_found", repo=repo, file=rel_path, count=len(results))
    return results


def analyze_repo(repo: Repository, workers: int = 1) -> list[AnalysisResult]:
    """Analyse a checked-out repository.

    Files are processed independently; with `workers > 1` they are fanned out
    over a thread pool. Results are always returned in sorted file order.
    """

    root = Path(repo.local_path or repo.url)
    files = find_go_files(root)
    if not files:
        raise NoGoSourcesError(repo.url, "no Go files found")

    slug = repo_slug(repo.url)

    def run(path: Path) -> list[AnalysisResult]:
        try:
            return analyze_file(path, root, repo=slug)
        except OSError as exc:
            logger.warning("file_unreadable", repo=slug, file=str(path), error=str(exc))
            return []

    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            per_file = list(executor.map(run, files))
    else:
        per_file = [run(path) for path in files]

    results = [result for chunk in per_file for result in chunk]
    logger.info("repo_analyzed", repo=slug, files=len(files), reconcilers=len(results))
    return results
