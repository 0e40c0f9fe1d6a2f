"""Small policy checks for retakes, time limits and result visibility."""

from __future__ import annotations

from datetime import datetime, timezone

from cbt_app.core.models import Attempt, ResultsVisibility, TestSettings


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def can_retake(attempt: Attempt | None, test: TestSettings) -> bool:
    """Retakes are gated only by the test's own flag."""
    return test.allow_retakes


def elapsed_seconds(attempt: Attempt, now: datetime | None = None) -> float:
    now = now or utc_now()
    return max(0.0, (now - attempt.started_at).total_seconds())


def is_time_expired(attempt: Attempt, now: datetime | None = None) -> bool:
    return elapsed_seconds(attempt, now) >= attempt.time_limit_seconds


def can_view_results(
    test: TestSettings,
    viewer_id: str | None,
    has_completed_attempt: bool = False,
) -> bool:
    is_creator = viewer_id is not None and viewer_id == test.creator_id
    if test.results_visibility is ResultsVisibility.PUBLIC:
        return True
    if test.results_visibility is ResultsVisibility.TEST_TAKERS:
        return is_creator or has_completed_attempt
    return is_creator
