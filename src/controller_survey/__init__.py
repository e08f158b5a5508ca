"""Static survey of Kubernetes controller reconciliation patterns."""

__version__ = "0.1.0"
