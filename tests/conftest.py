"""Shared Go fixtures for the test suite."""

import logging
import textwrap

import pytest
import structlog

from controller_survey.analyzer import analyze_source
from controller_survey.syntax import parse_source

RECONCILER_HEADER = """\
package controllers

import (
	"context"

	apierrors "k8s.io/apimachinery/pkg/api/errors"
	ctrl "sigs.k8s.io/controller-runtime"
	"sigs.k8s.io/controller-runtime/pkg/client"
)

type FooReconciler struct {
	client.Client
}

func (r *FooReconciler) Reconcile(ctx context.Context, req ctrl.Request) (ctrl.Result, error) {
"""

# Line of the `func ... Reconcile` declaration and of the first body line.
RECONCILE_LINE = 15
BODY_START = 16


def reconciler_source(body: str) -> str:
    lines = textwrap.dedent(body).strip("\n").splitlines()
    statements = "".join(f"\t{line}\n" if line else "\n" for line in lines)
    return f"{RECONCILER_HEADER}{statements}\treturn ctrl.Result{{}}, nil\n}}\n"


@pytest.fixture
def analyze_body():
    """Analyse a Reconcile body and return its single result."""

    def run(body: str):
        results = analyze_source(parse_source(reconciler_source(body), path="foo.go"))
        assert len(results) == 1
        return results[0]

    return run


@pytest.fixture
def kinds_of(analyze_body):
    """Signal kind values for a Reconcile body, in emission order."""

    def run(body: str):
        return [signal.kind.value for signal in analyze_body(body).signals]

    return run


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers bound to a test's captured stderr once the test ends."""

    yield
    structlog.reset_defaults()
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(logging.WARNING)
