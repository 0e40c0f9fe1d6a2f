"""Domain models for the computer-based testing core."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from cbt_app.constants.cbt_constants import DEFAULT_TIME_LIMIT_MINUTES

UNANSWERED = None


class AttemptStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class RankChange(str, Enum):
    UP = "up"
    DOWN = "down"
    SAME = "same"
    NEW = "new"


class Medal(str, Enum):
    GOLD = "gold"
    SILVER = "silver"
    BRONZE = "bronze"


MEDALS_BY_RANK: dict[int, Medal] = {1: Medal.GOLD, 2: Medal.SILVER, 3: Medal.BRONZE}


class ResultsVisibility(str, Enum):
    """Who may see the results and leaderboard of a test."""

    PUBLIC = "public"
    TEST_TAKERS = "test_takers"
    CREATOR_ONLY = "creator_only"


@dataclass(slots=True)
class Question:
    """Multiple-choice question with a single correct option."""

    id: str
    text: str
    options: list[str]
    correct_option_index: int
    explanation: str | None = None


@dataclass(slots=True, frozen=True)
class Answer:
    """Selected option for one question; ``None`` marks it unanswered."""

    question_id: str
    selected_option_index: int | None = UNANSWERED


@dataclass(slots=True, frozen=True)
class QuestionOutcome:
    question_id: str
    selected_option_index: int | None
    is_correct: bool


@dataclass(slots=True, frozen=True)
class ScoreResult:
    """Outcome of scoring one answer sequence against a question set."""

    correct_count: int
    total_questions: int
    percentage: int
    per_question: tuple[QuestionOutcome, ...]


@dataclass(slots=True)
class TestSettings:
    """Creator-owned configuration of a test."""

    __test__ = False  # not a pytest test class

    id: str
    title: str
    creator_id: str
    time_limit_minutes: int = DEFAULT_TIME_LIMIT_MINUTES
    allow_retakes: bool = True
    results_visibility: ResultsVisibility = ResultsVisibility.PUBLIC

    @property
    def time_limit_seconds(self) -> int:
        return self.time_limit_minutes * 60


@dataclass(slots=True)
class Attempt:
    """One participant's pass through a test's question set."""

    id: str
    test_id: str
    participant_identity: str
    question_set: tuple[Question, ...]
    started_at: datetime
    time_limit_seconds: int
    answers: dict[str, Answer] = field(default_factory=dict)
    status: AttemptStatus = AttemptStatus.IN_PROGRESS
    completed_at: datetime | None = None
    disqualified: bool = False
    score_result: ScoreResult | None = None
    time_taken_seconds: int | None = None

    @property
    def score(self) -> int | None:
        return self.score_result.correct_count if self.score_result else None

    @property
    def total_questions(self) -> int:
        return len(self.question_set)

    @property
    def is_completed(self) -> bool:
        return self.status is AttemptStatus.COMPLETED


@dataclass(slots=True, frozen=True)
class LeaderboardEntry:
    """Read projection of a completed attempt used for ranking."""

    attempt_id: str
    participant_identity: str
    score: int
    total_questions: int
    time_taken_seconds: int | None
    completed_at: datetime
    disqualified: bool = False

    @classmethod
    def from_attempt(cls, attempt: Attempt) -> "LeaderboardEntry":
        if not attempt.is_completed or attempt.score_result is None or attempt.completed_at is None:
            raise ValueError(f"Attempt {attempt.id} has not been completed.")
        return cls(
            attempt_id=attempt.id,
            participant_identity=attempt.participant_identity,
            score=attempt.score_result.correct_count,
            total_questions=attempt.score_result.total_questions,
            time_taken_seconds=attempt.time_taken_seconds,
            completed_at=attempt.completed_at,
            disqualified=attempt.disqualified,
        )


@dataclass(slots=True, frozen=True)
class RankedEntry:
    """Leaderboard entry with its position and movement since the last snapshot."""

    entry: LeaderboardEntry
    rank: int
    rank_change: RankChange

    @property
    def medal(self) -> Medal | None:
        return MEDALS_BY_RANK.get(self.rank)
