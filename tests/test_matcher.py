"""Tests for Reconcile signature matching."""

from conftest import RECONCILE_LINE, reconciler_source

from controller_survey.matcher import find_candidates, request_param_name
from controller_survey.syntax import DeclaredTypeResolver, parse_source, walk


def _candidates(code: str, resolver: bool = False, package: str = ""):
    source = parse_source(code, path="controller.go")
    return find_candidates(source, DeclaredTypeResolver(source) if resolver else None, package=package)


def _method(code: str):
    source = parse_source(code)
    return next(node for node in walk(source.root) if node.type == "method_declaration")


class TestFindCandidates:
    def test_matches_controller_runtime_shape(self):
        [candidate] = _candidates(reconciler_source(""))
        assert candidate.name == "Reconcile"
        assert candidate.receiver_type == "FooReconciler"
        assert candidate.receiver_package == "controllers"
        assert candidate.request_name == "req"
        assert candidate.param_names == ("ctx", "req")
        assert candidate.line == RECONCILE_LINE
        assert candidate.end_line == RECONCILE_LINE + 2

    def test_package_override(self):
        [candidate] = _candidates(reconciler_source(""), package="example.com/op/controllers")
        assert candidate.receiver_package == "example.com/op/controllers"

    def test_value_receiver_and_reconcile_package(self):
        code = """package p

func (r FooReconciler) Reconcile(ctx context.Context, request reconcile.Request) (reconcile.Result, error) {
	return reconcile.Result{}, nil
}
"""
        [candidate] = _candidates(code)
        assert candidate.receiver_type == "FooReconciler"
        assert candidate.request_name == "request"

    def test_declaration_order(self):
        code = """package p

func (a *A) Reconcile(ctx context.Context, req ctrl.Request) (ctrl.Result, error) {
	return ctrl.Result{}, nil
}

func (b *B) Reconcile(ctx context.Context, req ctrl.Request) (ctrl.Result, error) {
	return ctrl.Result{}, nil
}
"""
        assert [c.receiver_type for c in _candidates(code)] == ["A", "B"]

    def test_rejects_non_matching_shapes(self):
        code = """package p

func Reconcile(ctx context.Context, req ctrl.Request) (ctrl.Result, error) {
	return ctrl.Result{}, nil
}

func (r *R) Sync(ctx context.Context, req ctrl.Request) (ctrl.Result, error) {
	return ctrl.Result{}, nil
}

func (r *R) Reconcile(ctx context.Context) (ctrl.Result, error) {
	return ctrl.Result{}, nil
}

func (r *R) Reconcile(ctx context.Context, req ctrl.Request) error {
	return nil
}

func (r *R) Reconcile(ctx context.Context, req ctrl.Request) (ctrl.Result, *Error) {
	return ctrl.Result{}, nil
}

func (r *R) Reconcile(ctx context.Context, key string) (ctrl.Result, error) {
	return ctrl.Result{}, nil
}

func (r *R) Reconcile(ctx context.Context, req ctrl.Request) (bool, error) {
	return false, nil
}
"""
        assert _candidates(code) == []

    def test_alias_resolved_through_declarations(self):
        code = """package p

import ctrl "sigs.k8s.io/controller-runtime"

type Req = ctrl.Request
type Res = ctrl.Result

func (r *R) Reconcile(ctx context.Context, in Req) (Res, error) {
	return Res{}, nil
}
"""
        assert _candidates(code) == []
        [candidate] = _candidates(code, resolver=True)
        assert candidate.request_name == "in"

    def test_defined_type_is_not_an_alias(self):
        code = """package p

type Input ctrl.Request

func (r *R) Reconcile(ctx context.Context, in Input) (ctrl.Result, error) {
	return ctrl.Result{}, nil
}
"""
        assert _candidates(code, resolver=True) == []

    def test_pointer_types_need_resolver(self):
        code = """package p

import ctrl "sigs.k8s.io/controller-runtime"

func (r *R) Reconcile(ctx context.Context, req *ctrl.Request) (ctrl.Result, error) {
	return ctrl.Result{}, nil
}
"""
        assert _candidates(code) == []
        assert len(_candidates(code, resolver=True)) == 1


class TestRequestParamName:
    def test_named(self):
        node = _method("package p\n\nfunc (r *R) Reconcile(c context.Context, r2 ctrl.Request) (ctrl.Result, error) {}\n")
        assert request_param_name(node) == "r2"

    def test_unnamed_defaults_to_req(self):
        node = _method("package p\n\nfunc (r *R) Reconcile(context.Context, ctrl.Request) (ctrl.Result, error) {}\n")
        assert request_param_name(node) == "req"

    def test_missing_defaults_to_req(self):
        node = _method("package p\n\nfunc (r *R) Reconcile(ctx context.Context) (ctrl.Result, error) {}\n")
        assert request_param_name(node) == "req"


class TestDeclaredTypeResolver:
    def test_import_paths(self):
        code = """package p

import (
	"context"

	ctrl "sigs.k8s.io/controller-runtime"
	"sigs.k8s.io/controller-runtime/pkg/reconcile"
)

func (r *R) Reconcile(ctx context.Context, req reconcile.Request) (ctrl.Result, error) {
	return ctrl.Result{}, nil
}
"""
        source = parse_source(code)
        resolver = DeclaredTypeResolver(source, package="example.com/p")
        types = [node for node in walk(source.root) if node.type in ("qualified_type", "type_identifier")]
        rendered = [resolver.resolve(node) for node in types]
        assert "context.Context" in rendered
        assert "sigs.k8s.io/controller-runtime/pkg/reconcile.Request" in rendered
        assert "sigs.k8s.io/controller-runtime.Result" in rendered
        assert "error" in rendered
        assert "example.com/p.R" in rendered
