"""Repository lists, checkouts and Go file discovery."""

from __future__ import annotations

import os
import re
import shutil
import subprocess
from functools import lru_cache
from pathlib import Path

import structlog

from .errors import CloneError
from .models import Repository

GITHUB_PREFIXES = ("https://github.com/", "http://github.com/")
SKIPPED_DIRS = {"vendor", "testdata", "node_modules"}
GO_SUFFIX = ".go"
TEST_SUFFIX = "_test.go"
GO_MOD = "go.mod"

_MODULE_LINE = re.compile(r"^\s*module\s+(\S+)", re.MULTILINE)

logger = structlog.get_logger(__name__)


def repo_slug(url: str) -> str:
    """`owner/name` for GitHub URLs; other locations are returned unchanged."""

    for prefix in GITHUB_PREFIXES:
        if url.startswith(prefix):
            return url[len(prefix) :]
    return url


def parse_repo_url(url: str) -> tuple[str, str]:
    slug = repo_slug(url)
    if slug.endswith(".git"):
        slug = slug[: -len(".git")]
    slug = slug.rstrip("/")
    parts = slug.split("/")
    if len(parts) >= 2:
        return parts[0], parts[1]
    return "", ""


def repository_from_url(url: str, source: str) -> Repository:
    owner, name = parse_repo_url(url)
    return Repository(url=url, owner=owner, name=name, source=source)


def local_repository(path: str | Path) -> Repository:
    """A repository that is already checked out at `path`."""

    root = Path(path)
    return Repository(url=str(root), owner="", name=root.resolve().name, source="path", local_path=str(root))


def load_repos(path: str | Path) -> list[Repository]:
    """Load repository URLs, one per line; blank lines and `#` comments are skipped."""

    repos: list[Repository] = []
    for line in Path(path).read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        repos.append(repository_from_url(line, source="file"))
    return repos


def clone_repo(repo: Repository, work_dir: str | Path, verbose: bool = False) -> Repository:
    """Shallow-clone `repo` under `work_dir/<owner>/<name>`, reusing an existing checkout."""

    if not repo.owner or not repo.name:
        raise CloneError(repo.url, "invalid repository URL")

    local_path = Path(work_dir) / repo.owner / repo.name
    if local_path.exists():
        logger.debug("clone_reused", repo=repo.url, path=str(local_path))
        return _with_path(repo, local_path)

    local_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("clone_started", repo=repo.url, path=str(local_path))
    try:
        subprocess.run(
            ["git", "clone", "--depth=1", repo.url, str(local_path)],
            check=True,
            capture_output=not verbose,
        )
    except FileNotFoundError as exc:
        raise CloneError(repo.url, "git is not installed") from exc
    except subprocess.CalledProcessError as exc:
        raise CloneError(repo.url, f"git clone exited with {exc.returncode}") from exc
    return _with_path(repo, local_path)


def remove_clone(repo: Repository) -> None:
    if not repo.local_path:
        return
    try:
        shutil.rmtree(repo.local_path)
    except OSError as exc:
        logger.warning("clone_cleanup_failed", path=repo.local_path, error=str(exc))


def _with_path(repo: Repository, local_path: Path) -> Repository:
    return Repository(
        url=repo.url,
        owner=repo.owner,
        name=repo.name,
        source=repo.source,
        local_path=str(local_path),
    )


def _skip_dir(name: str) -> bool:
    # The go tool ignores directories starting with "." or "_".
    return name in SKIPPED_DIRS or name.startswith((".", "_"))


def find_go_files(root: str | Path) -> list[Path]:
    """Non-test Go files under `root`, sorted by path."""

    root_path = Path(root)
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root_path):
        dirnames[:] = sorted(name for name in dirnames if not _skip_dir(name))
        for filename in filenames:
            if filename.endswith(GO_SUFFIX) and not filename.endswith(TEST_SUFFIX):
                found.append(Path(dirpath) / filename)
    return sorted(found)


@lru_cache(maxsize=256)
def _read_module(go_mod: Path) -> str:
    try:
        text = go_mod.read_text(errors="replace")
    except OSError as exc:
        logger.warning("go_mod_unreadable", path=str(go_mod), error=str(exc))
        return ""
    match = _MODULE_LINE.search(text)
    return match.group(1).strip("\"`") if match else ""


def module_path(root: str | Path) -> str:
    """Module path declared in `root/go.mod`, or "" when there is none."""

    go_mod = Path(root) / GO_MOD
    return _read_module(go_mod) if go_mod.is_file() else ""


def package_path(root: str | Path, file: str | Path) -> str:
    """Import path of the package holding `file`, from the nearest enclosing go.mod.

    Returns "" when no go.mod is found between the file and `root`.
    """

    root_path = Path(root).resolve()
    directory = Path(file).resolve().parent
    current = directory
    while True:
        module = module_path(current)
        if module:
            relative = directory.relative_to(current).as_posix()
            return module if relative == "." else f"{module}/{relative}"
        if current == root_path or current.parent == current:
            return ""
        current = current.parent
