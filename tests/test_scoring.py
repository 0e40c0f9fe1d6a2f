from __future__ import annotations

import itertools

import pytest

from cbt_app.core.errors import InvalidInput
from cbt_app.core.models import Question
from cbt_app.core.services.scoring import (
    ScoringEngine,
    result_message,
    round_half_up_percent,
    time_efficiency,
)

from conftest import answers


@pytest.fixture
def engine() -> ScoringEngine:
    return ScoringEngine()


def test_three_of_four_correct(engine, four_questions):
    result = engine.score(four_questions, answers(("q1", 0), ("q2", 1), ("q3", 0), ("q4", 3)))

    assert result.correct_count == 3
    assert result.total_questions == 4
    assert result.percentage == 75
    assert [o.is_correct for o in result.per_question] == [True, True, False, True]


def test_no_answers_scores_zero(engine, four_questions):
    result = engine.score(four_questions, [])

    assert result.correct_count == 0
    assert result.percentage == 0
    assert all(o.selected_option_index is None for o in result.per_question)
    assert not any(o.is_correct for o in result.per_question)
    assert [o.question_id for o in result.per_question] == ["q1", "q2", "q3", "q4"]


def test_empty_question_set_is_rejected(engine):
    with pytest.raises(InvalidInput):
        engine.score([], answers(("q1", 0)))


def test_last_answer_wins(engine, four_questions):
    wrong_then_right = engine.score(four_questions, answers(("q1", 3), ("q1", 0)))
    right_then_wrong = engine.score(four_questions, answers(("q1", 0), ("q1", 3)))

    assert wrong_then_right.per_question[0].is_correct
    assert wrong_then_right.per_question[0].selected_option_index == 0
    assert not right_then_wrong.per_question[0].is_correct
    assert right_then_wrong.correct_count == 0


def test_later_unanswered_clears_earlier_selection(engine, four_questions):
    result = engine.score(four_questions, answers(("q1", 0), ("q1", None)))

    assert result.per_question[0].selected_option_index is None
    assert result.correct_count == 0


def test_unknown_questions_are_ignored(engine, four_questions):
    result = engine.score(four_questions, answers(("stale", 0), ("q2", 1)))

    assert result.correct_count == 1
    assert "stale" not in {o.question_id for o in result.per_question}


def test_scoring_is_idempotent(engine, four_questions):
    submitted = answers(("q1", 0), ("q2", 2), ("q4", 3))

    assert engine.score(four_questions, submitted) == engine.score(four_questions, submitted)


def test_score_bounds_hold_for_every_answer_combination(engine):
    questions = [
        Question(id="a", text="a", options=["x", "y"], correct_option_index=1),
        Question(id="b", text="b", options=["x", "y", "z"], correct_option_index=0),
        Question(id="c", text="c", options=["x", "y", "z"], correct_option_index=2),
    ]
    for picks in itertools.product([None, 0, 1, 2], repeat=3):
        submitted = answers(*zip(["a", "b", "c"], picks))
        result = engine.score(questions, submitted)
        assert 0 <= result.correct_count <= len(questions)
        assert 0 <= result.percentage <= 100


@pytest.mark.parametrize(
    ("correct", "total", "expected"),
    [(1, 8, 13), (1, 3, 33), (2, 3, 67), (1, 200, 1), (1, 400, 0), (0, 5, 0), (5, 5, 100)],
)
def test_percentage_rounds_half_up(correct, total, expected):
    assert round_half_up_percent(correct, total) == expected


@pytest.mark.parametrize(
    ("percentage", "message"),
    [(100, "Excellent work!"), (80, "Excellent work!"), (79, "Good effort!"), (50, "Good effort!"), (49, "Keep practicing!")],
)
def test_result_message(percentage, message):
    assert result_message(percentage) == message


def test_time_efficiency_clamps_to_budget():
    assert time_efficiency(450, 900) == 50
    assert time_efficiency(1200, 900) == 100
    assert time_efficiency(-5, 900) == 0
    with pytest.raises(InvalidInput):
        time_efficiency(10, 0)
