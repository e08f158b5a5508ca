"""CLI entrypoint for controller-survey."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import structlog

from .analyzer import analyze_repo
from .config import DEFAULT_TOP_N, DEFAULT_WORK_DIR, DEFAULT_WORKERS, SurveyConfig
from .errors import SurveyError
from .logging_config import configure_logging
from .models import AnalysisResult, Repository
from .repos import clone_repo, load_repos, local_repository, remove_clone, repository_from_url
from .report import ResultWriter, generate_summary, load_results, to_json, to_table

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="controller-survey",
        description="Classify Kubernetes controllers as state-of-the-world or edge-triggered "
        "from the shape of their Reconcile methods.",
    )
    subcommands = parser.add_subparsers(dest="command", required=True)

    analyze = subcommands.add_parser("analyze", help="analyze repositories for reconciliation patterns")
    analyze.add_argument("-r", "--repos", help="file with repository URLs (one per line)")
    analyze.add_argument(
        "--repo",
        action="append",
        default=[],
        help="repository URL to analyze (repeatable)",
    )
    analyze.add_argument(
        "--path",
        action="append",
        default=[],
        help="local checkout to analyze without cloning (repeatable)",
    )
    analyze.add_argument("-o", "--output", default=None, help="output JSONL file (default: stdout)")
    analyze.add_argument("--work-dir", default=str(DEFAULT_WORK_DIR), help="directory for cloning repos")
    analyze.add_argument("--keep-clones", action="store_true", help="keep cloned repos after analysis")
    analyze.add_argument("--workers", type=int, default=DEFAULT_WORKERS, help="files analyzed in parallel")
    analyze.add_argument("--top", type=int, default=DEFAULT_TOP_N, help="reconcilers listed per summary ranking")
    analyze.add_argument("-v", "--verbose", action="store_true", help="verbose output")
    analyze.add_argument("--json-logs", action="store_true", help="emit logs as JSON")

    report = subcommands.add_parser("report", help="summarize analysis results")
    report.add_argument("-i", "--input", required=True, help="JSONL file produced by analyze")
    report.add_argument("--top", type=int, default=DEFAULT_TOP_N, help="reconcilers listed per summary ranking")
    report.add_argument("--format", choices=("table", "json"), default="table", help="output format")
    return parser


def _collect_repos(parser: argparse.ArgumentParser, args: argparse.Namespace) -> list[Repository]:
    repos: list[Repository] = []
    if args.repos:
        try:
            repos.extend(load_repos(args.repos))
        except OSError as exc:
            parser.error(f"failed to load repos from {args.repos}: {exc}")
    repos.extend(repository_from_url(url, source="cli") for url in args.repo)
    repos.extend(local_repository(path) for path in args.path)
    return repos


def _survey(repo: Repository, config: SurveyConfig) -> list[AnalysisResult]:
    cloned = not repo.local_path
    if cloned:
        repo = clone_repo(repo, config.work_dir, verbose=config.verbose)
    try:
        return analyze_repo(repo, workers=config.workers)
    finally:
        if cloned and not config.keep_clones:
            remove_clone(repo)


def run_analyze(parser: argparse.ArgumentParser, args: argparse.Namespace) -> int:
    config = SurveyConfig(
        work_dir=Path(args.work_dir),
        output=args.output,
        keep_clones=args.keep_clones,
        workers=max(1, args.workers),
        top_n=args.top,
        verbose=args.verbose,
        json_logs=args.json_logs,
    )
    configure_logging(config.log_level, json_logs=config.json_logs)

    repos = _collect_repos(parser, args)
    if not repos:
        parser.error("no repositories specified")

    config.work_dir.mkdir(parents=True, exist_ok=True)
    collected: list[AnalysisResult] = []
    with ResultWriter(config.output) as writer:
        for repo in repos:
            logger.info("repo_processing", repo=repo.url)
            try:
                results = _survey(repo, config)
            except SurveyError as exc:
                logger.warning("repo_skipped", repo=repo.url, error=str(exc))
                continue
            writer.write_all(results)
            collected.extend(results)

    print(to_table(generate_summary(collected, config.top_n)), file=sys.stderr)
    return 0


def run_report(parser: argparse.ArgumentParser, args: argparse.Namespace) -> int:
    configure_logging("INFO")
    try:
        results = load_results(args.input)
    except OSError as exc:
        parser.error(f"failed to load results from {args.input}: {exc}")
    summary = generate_summary(results, args.top)
    print(to_json(summary) if args.format == "json" else to_table(summary))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "analyze":
        return run_analyze(parser, args)
    if args.command == "report":
        return run_report(parser, args)

    parser.error(f"Unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
