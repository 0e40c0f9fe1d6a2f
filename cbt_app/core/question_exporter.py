"""Utilities for exporting questions to the plain-text format used for imports."""

from __future__ import annotations

from pathlib import Path

from cbt_app.core.models import Question
from cbt_app.core.question_importer import CONTINUATION_PREFIX, OPTION_LETTERS


def save_questions_to_file(file_path: Path, questions: list[Question]) -> None:
    """Persist the provided questions to disk in the text import format."""

    if not questions:
        raise ValueError("Cannot export an empty question set.")

    file_path = file_path.resolve()
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(serialize_questions(questions), encoding="utf-8")


def serialize_questions(questions: list[Question]) -> str:
    blocks = [_serialize_question(question) for question in questions]
    return "\n\n---\n\n".join(blocks) + "\n"


def _serialize_question(question: Question) -> str:
    if len(question.options) > len(OPTION_LETTERS):
        raise ValueError(f"Question {question.id} has more options than the format supports.")

    lines = _section("Q", question.text)
    for letter, option_text in zip(OPTION_LETTERS, question.options):
        lines.extend(_section(letter, option_text))
    lines.append(f"CORRECT: {OPTION_LETTERS[question.correct_option_index]}")
    if question.explanation:
        lines.extend(_section("EXPLANATION", question.explanation))
    return "\n".join(lines)


def _section(marker: str, text: str) -> list[str]:
    # Continuation lines are always prefixed so blank lines and marker-like
    # text cannot end the block or start a new section.
    first, *rest = text.splitlines() or [""]
    lines = [f"{marker}: {first}"]
    lines.extend(f"{CONTINUATION_PREFIX} {line}" if line else CONTINUATION_PREFIX for line in rest)
    return lines
