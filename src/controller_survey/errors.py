"""Exceptions raised by the repository driver."""

from __future__ import annotations


class SurveyError(Exception):
    """Base class for failures that skip one repository."""


class RepositoryError(SurveyError):
    """A repository could not be prepared for analysis."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class CloneError(RepositoryError):
    """`git clone` failed or git is not installed."""


class NoGoSourcesError(RepositoryError):
    """The checkout holds no analysable Go files."""
