"""Service for scoring a finished answer sequence against its question set."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
import logging

from cbt_app.constants.cbt_constants import (
    EXCELLENT_THRESHOLD_PERCENT,
    PASSING_THRESHOLD_PERCENT,
)
from cbt_app.core.errors import InvalidInput
from cbt_app.core.models import Answer, Question, QuestionOutcome, ScoreResult

logger = logging.getLogger(__name__)


def round_half_up_percent(numerator: int, denominator: int) -> int:
    """Return ``round(numerator / denominator * 100)`` rounding halves up, in integers."""
    if denominator <= 0:
        raise InvalidInput("Cannot compute a percentage of zero items.")
    return (numerator * 200 + denominator) // (denominator * 2)


class ScoringEngine:
    """Pure scoring of answers: no I/O, same inputs always give the same result."""

    def score(self, question_set: Sequence[Question], answers: Iterable[Answer]) -> ScoreResult:
        if not question_set:
            raise InvalidInput("Question set is empty; the attempt cannot be scored.")

        known_ids = {question.id for question in question_set}
        latest: dict[str, int | None] = {}
        for answer in answers:
            if answer.question_id not in known_ids:
                logger.debug("Ignoring answer for unknown question %s", answer.question_id)
                continue
            # Later answers replace earlier ones.
            latest[answer.question_id] = answer.selected_option_index

        outcomes: list[QuestionOutcome] = []
        for question in question_set:
            selected = latest.get(question.id)
            outcomes.append(
                QuestionOutcome(
                    question_id=question.id,
                    selected_option_index=selected,
                    is_correct=selected is not None and selected == question.correct_option_index,
                )
            )

        correct_count = sum(1 for outcome in outcomes if outcome.is_correct)
        total = len(question_set)
        return ScoreResult(
            correct_count=correct_count,
            total_questions=total,
            percentage=round_half_up_percent(correct_count, total),
            per_question=tuple(outcomes),
        )


def result_message(percentage: int) -> str:
    """Headline shown on the results screen for a given percentage."""
    if percentage >= EXCELLENT_THRESHOLD_PERCENT:
        return "Excellent work!"
    if percentage < PASSING_THRESHOLD_PERCENT:
        return "Keep practicing!"
    return "Good effort!"


def time_efficiency(time_taken_seconds: int, time_limit_seconds: int) -> int:
    """Share of the time budget consumed, as a rounded percentage."""
    if time_limit_seconds <= 0:
        raise InvalidInput("Time limit must be positive.")
    clamped = min(max(time_taken_seconds, 0), time_limit_seconds)
    return round_half_up_percent(clamped, time_limit_seconds)


scoring_engine = ScoringEngine()
