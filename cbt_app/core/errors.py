"""Exceptions raised by the CBT core."""

from __future__ import annotations


class InvalidInput(ValueError):
    """Raised when a structural precondition is violated, e.g. an empty question set.

    An attempt that raises this cannot be scored; callers must surface it as
    such instead of reporting a zero score.
    """


class AttemptStateError(RuntimeError):
    """Raised when an attempt operation is not allowed in its current status."""


class QuestionValidationError(ValueError):
    """Raised when a question fails ingestion checks."""
