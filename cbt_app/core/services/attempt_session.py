"""Service for managing the lifecycle of a single test attempt."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime, timedelta
import logging
from uuid import uuid4

from cbt_app.core.errors import AttemptStateError, InvalidInput
from cbt_app.core.models import Answer, Attempt, AttemptStatus, Question
from cbt_app.core.policies import elapsed_seconds, is_time_expired, utc_now
from cbt_app.core.services.scoring import ScoringEngine, scoring_engine

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class AttemptSession:
    """Owns the mutable phase of an attempt until it is finalized.

    Answers may only change while the attempt is in progress. Finalizing
    scores it once; afterwards only the disqualification flag may change.
    """

    def __init__(
        self,
        attempt: Attempt,
        clock: Clock = utc_now,
        engine: ScoringEngine = scoring_engine,
    ) -> None:
        self._attempt = attempt
        self._clock = clock
        self._engine = engine

    @classmethod
    def start(
        cls,
        test_id: str,
        participant_identity: str,
        question_set: Sequence[Question],
        time_limit_seconds: int,
        clock: Clock = utc_now,
        engine: ScoringEngine = scoring_engine,
    ) -> "AttemptSession":
        if not question_set:
            raise InvalidInput("Cannot start an attempt without questions.")
        if time_limit_seconds <= 0:
            raise ValueError("Time limit must be a positive number of seconds.")
        identity = participant_identity.strip()
        if not identity:
            raise ValueError("Participant identity must not be empty.")

        attempt = Attempt(
            id=uuid4().hex,
            test_id=test_id,
            participant_identity=identity,
            question_set=tuple(question_set),
            started_at=clock(),
            time_limit_seconds=time_limit_seconds,
        )
        logger.info("Attempt %s started on test %s by %s", attempt.id, test_id, identity)
        return cls(attempt, clock=clock, engine=engine)

    @property
    def attempt(self) -> Attempt:
        return self._attempt

    def is_in_progress(self) -> bool:
        return self._attempt.status is AttemptStatus.IN_PROGRESS

    def is_time_expired(self) -> bool:
        return is_time_expired(self._attempt, self._clock())

    def time_remaining_seconds(self) -> int:
        elapsed = elapsed_seconds(self._attempt, self._clock())
        return max(0, self._attempt.time_limit_seconds - int(elapsed))

    def record_answer(self, question_id: str, selected_option_index: int | None) -> Answer | None:
        """Store or replace the answer for a question.

        Returns ``None`` when the question is not part of this attempt.
        """
        self._require_in_progress()
        if self.expire_if_needed():
            raise AttemptStateError("Time limit reached; no further answers are accepted.")

        question = next((q for q in self._attempt.question_set if q.id == question_id), None)
        if question is None:
            logger.warning(
                "Attempt %s: ignoring answer for unknown question %s", self._attempt.id, question_id
            )
            return None
        if selected_option_index is not None and not 0 <= selected_option_index < len(question.options):
            raise ValueError(
                f"Option index {selected_option_index} is out of range for question {question_id}."
            )

        answer = Answer(question_id=question_id, selected_option_index=selected_option_index)
        self._attempt.answers[question_id] = answer
        return answer

    @property
    def deadline(self) -> datetime:
        return self._attempt.started_at + timedelta(seconds=self._attempt.time_limit_seconds)

    def finalize(self, time_remaining_seconds: int | None = None) -> Attempt:
        """Score the attempt and freeze it. Can only happen once.

        Past the time limit the reported remaining time is ignored: the
        attempt counts as finished at its deadline with the full limit used.
        """
        self._require_in_progress()
        if self.is_time_expired():
            return self._complete(time_remaining_seconds=0, completed_at=self.deadline)
        if time_remaining_seconds is None:
            time_remaining_seconds = self.time_remaining_seconds()
        return self._complete(time_remaining_seconds, completed_at=self._clock())

    def _complete(self, time_remaining_seconds: int, completed_at: datetime) -> Attempt:
        attempt = self._attempt
        limit = attempt.time_limit_seconds
        result = self._engine.score(attempt.question_set, attempt.answers.values())
        attempt.score_result = result
        attempt.time_taken_seconds = min(max(limit - time_remaining_seconds, 0), limit)
        attempt.completed_at = completed_at
        attempt.status = AttemptStatus.COMPLETED
        logger.info(
            "Attempt %s finalized: %d/%d (%d%%) in %ss",
            attempt.id,
            result.correct_count,
            result.total_questions,
            result.percentage,
            attempt.time_taken_seconds,
        )
        return attempt

    def expire_if_needed(self) -> bool:
        """Finalize with the answers present at the deadline if the time limit has passed."""
        if not self.is_in_progress() or not self.is_time_expired():
            return False
        logger.info("Attempt %s reached its time limit; finalizing", self._attempt.id)
        self.finalize()
        return True

    def abandon(self) -> Attempt:
        self._require_in_progress()
        self._attempt.status = AttemptStatus.ABANDONED
        logger.info("Attempt %s abandoned", self._attempt.id)
        return self._attempt

    def disqualify(self, disqualified: bool = True) -> Attempt:
        if not self._attempt.is_completed:
            raise AttemptStateError("Only completed attempts can be disqualified.")
        self._attempt.disqualified = disqualified
        logger.info("Attempt %s disqualified=%s", self._attempt.id, disqualified)
        return self._attempt

    def _require_in_progress(self) -> None:
        if not self.is_in_progress():
            raise AttemptStateError(
                f"Attempt {self._attempt.id} is {self._attempt.status.value}; it can no longer change."
            )
