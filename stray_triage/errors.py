from __future__ import annotations


class ClassifierUnavailable(RuntimeError):
    """Live classifier not configured, unreachable, or answered with something unusable."""


class ClassificationFailed(RuntimeError):
    """No strategy produced any tags."""


class InvalidReport(ValueError):
    """Submission rejected before triage (missing image or bad coordinates)."""
