"""Tests for the command line entrypoint."""

import json

import pytest
from conftest import reconciler_source

from controller_survey.cli import build_parser, main

BODY = """
_ = r.List(ctx, &items)
for _, item := range items.Items {
    _ = r.Patch(ctx, &item, patch)
}
"""


@pytest.fixture
def checkout(tmp_path):
    repo = tmp_path / "op"
    repo.mkdir()
    (repo / "go.mod").write_text("module example.com/op\n")
    (repo / "reconciler.go").write_text(reconciler_source(BODY))
    return repo


def test_analyze_requires_repositories(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["analyze"])
    assert excinfo.value.code == 2
    assert "no repositories specified" in capsys.readouterr().err


def test_analyze_missing_repo_list(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        main(["analyze", "--repos", str(tmp_path / "missing.txt")])
    assert excinfo.value.code == 2


def test_analyze_local_checkout_then_report(checkout, tmp_path, capsys):
    output = tmp_path / "results.jsonl"
    code = main(["analyze", "--path", str(checkout), "-o", str(output), "--work-dir", str(tmp_path / "work")])
    assert code == 0

    [line] = output.read_text().splitlines()
    record = json.loads(line)
    assert record["file"] == "reconciler.go"
    assert record["receiver_package"] == "example.com/op"
    assert record["classification"] == "sotw"
    assert [s["kind"] for s in record["signals"]] == ["list_unscoped", "loop_write", "single_write"]
    assert "=== Analysis Summary ===" in capsys.readouterr().err

    assert main(["report", "-i", str(output), "--format", "json"]) == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["total_reconcilers"] == 1
    assert summary["by_classification"] == {"sotw": 1}


def test_analyze_skips_failing_repositories(tmp_path, capsys):
    empty = tmp_path / "empty"
    empty.mkdir()
    output = tmp_path / "results.jsonl"
    assert main(["analyze", "--path", str(empty), "-o", str(output), "--work-dir", str(tmp_path / "work")]) == 0
    assert output.read_text() == ""
    assert "Total Reconcilers: 0" in capsys.readouterr().err


def test_parser_defaults():
    args = build_parser().parse_args(["analyze", "--repo", "https://github.com/acme/op"])
    assert args.repo == ["https://github.com/acme/op"]
    assert args.workers == 1
    assert args.top == 10
    assert args.output is None
