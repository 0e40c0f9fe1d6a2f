from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from cbt_app.core.models import Answer, Question


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def four_questions() -> list[Question]:
    """Four questions whose correct indices are 0, 1, 2 and 3."""
    return [
        Question(
            id=f"q{number}",
            text=f"Question {number}",
            options=["A", "B", "C", "D"],
            correct_option_index=number - 1,
        )
        for number in range(1, 5)
    ]


def answers(*pairs: tuple[str, int | None]) -> list[Answer]:
    return [Answer(question_id=question_id, selected_option_index=index) for question_id, index in pairs]
