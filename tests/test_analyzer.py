"""Tests for per-file and per-repository analysis."""

import pytest
from conftest import RECONCILE_LINE, reconciler_source

from controller_survey.analyzer import analyze_repo, analyze_source
from controller_survey.errors import NoGoSourcesError
from controller_survey.models import Classification
from controller_survey.repos import local_repository
from controller_survey.syntax import parse_source

SOTW_BODY = """
var pods corev1.PodList
_ = r.List(ctx, &pods)
for _, pod := range pods.Items {
    _ = r.Delete(ctx, &pod)
}
"""

EDGE_BODY = """
var foo v1.Foo
if err := r.Get(ctx, req.NamespacedName, &foo); err != nil {
    if apierrors.IsNotFound(err) {
        r.cleanup(req.Name)
        return ctrl.Result{}, err
    }
}
_ = r.Update(ctx, &foo)
"""


@pytest.fixture
def operator_repo(tmp_path):
    (tmp_path / "go.mod").write_text("module example.com/op\n")
    controllers = tmp_path / "internal" / "controllers"
    controllers.mkdir(parents=True)
    (controllers / "edge.go").write_text(reconciler_source(EDGE_BODY))
    (controllers / "sotw.go").write_text(reconciler_source(SOTW_BODY))
    (controllers / "sotw_test.go").write_text(reconciler_source(SOTW_BODY))
    (tmp_path / "main.go").write_text("package main\n\nfunc main() {}\n")
    return tmp_path


class TestAnalyzeSource:
    def test_result_identity(self):
        source = parse_source(reconciler_source(SOTW_BODY), path="/abs/sotw.go")
        [result] = analyze_source(source, repo="acme/op", file="controllers/sotw.go", package="example.com/op")
        assert result.id == f"acme/op#controllers/sotw.go#{RECONCILE_LINE}"
        assert result.file == "controllers/sotw.go"
        assert result.receiver_type == "FooReconciler"
        assert result.receiver_package == "example.com/op"
        assert [s.kind.value for s in result.signals] == ["list_unscoped", "loop_write", "single_write"]
        assert result.score == 5
        assert result.classification is Classification.SOTW

    def test_defaults_to_source_path(self):
        [result] = analyze_source(parse_source(reconciler_source(""), path="foo.go"))
        assert result.id == f"#foo.go#{RECONCILE_LINE}"

    def test_no_candidates(self):
        assert analyze_source(parse_source("package p\n\nfunc helper() {}\n")) == []


class TestAnalyzeRepo:
    def test_walks_repository(self, operator_repo):
        results = analyze_repo(local_repository(operator_repo))
        assert [r.file for r in results] == ["internal/controllers/edge.go", "internal/controllers/sotw.go"]
        edge, sotw = results
        assert edge.receiver_package == "example.com/op/internal/controllers"
        assert [s.kind.value for s in edge.signals] == ["get_req_scoped", "notfound_early_return", "single_write"]
        assert edge.score == -4
        assert edge.classification is Classification.EDGE_TRIGGERED
        assert sotw.classification is Classification.SOTW

    def test_parallel_matches_sequential(self, operator_repo):
        repo = local_repository(operator_repo)
        assert analyze_repo(repo, workers=4) == analyze_repo(repo, workers=1)

    def test_external_test_package_skipped(self, operator_repo):
        (operator_repo / "internal" / "controllers" / "extra.go").write_text(
            reconciler_source("").replace("package controllers", "package controllers_test")
        )
        results = analyze_repo(local_repository(operator_repo))
        assert "internal/controllers/extra.go" not in [r.file for r in results]

    def test_no_go_files(self, tmp_path):
        with pytest.raises(NoGoSourcesError):
            analyze_repo(local_repository(tmp_path))
