"""Service for managing the validated question set of a test."""

from __future__ import annotations

from uuid import uuid4

from cbt_app.constants.cbt_constants import MAX_OPTIONS_PER_QUESTION, MIN_OPTIONS_PER_QUESTION
from cbt_app.core.errors import QuestionValidationError
from cbt_app.core.models import Question


class QuestionBank:
    """Holds the questions of one test. Everything stored here is already valid."""

    def __init__(self) -> None:
        self._questions: list[Question] = []

    def load_questions(self, questions: list[Question]) -> None:
        """Replace the current questions with a new list."""
        if not questions:
            raise QuestionValidationError("A test must contain at least one question.")
        prepared: list[Question] = []
        seen: set[str] = set()
        for question in questions:
            cleaned = self._prepare_question(question)
            if cleaned.id in seen:
                raise QuestionValidationError(f"Duplicate question id {cleaned.id!r}.")
            seen.add(cleaned.id)
            prepared.append(cleaned)
        self._questions = prepared

    def add_question(self, question: Question) -> Question:
        prepared = self._prepare_question(question)
        if any(existing.id == prepared.id for existing in self._questions):
            raise QuestionValidationError(f"Duplicate question id {prepared.id!r}.")
        self._questions.append(prepared)
        return prepared

    def add_questions(self, questions: list[Question]) -> list[Question]:
        """Validate a whole batch, then append all of it or none of it."""
        existing = {question.id for question in self._questions}
        prepared: list[Question] = []
        for question in questions:
            cleaned = self._prepare_question(question)
            if cleaned.id in existing:
                raise QuestionValidationError(f"Duplicate question id {cleaned.id!r}.")
            existing.add(cleaned.id)
            prepared.append(cleaned)
        self._questions.extend(prepared)
        return prepared

    def get_questions(self) -> list[Question]:
        """Return a copy of all stored questions, in order."""
        return list(self._questions)

    def has_questions(self) -> bool:
        return bool(self._questions)

    def get_question_count(self) -> int:
        return len(self._questions)

    def get_question_at_index(self, index: int) -> Question:
        if not 0 <= index < len(self._questions):
            raise IndexError(f"Question index {index} out of range")
        return self._questions[index]

    def delete_question(self, index: int) -> None:
        if not 0 <= index < len(self._questions):
            raise IndexError(f"Question index {index} out of range")
        self._questions.pop(index)

    def clear(self) -> None:
        self._questions = []

    def _prepare_question(self, question: Question) -> Question:
        """Validate and normalize a question before storage."""
        options = self._validate_options(question.options)
        if not isinstance(question.correct_option_index, int) or not (
            0 <= question.correct_option_index < len(options)
        ):
            raise QuestionValidationError(
                f"Correct option index must be between 0 and {len(options) - 1}."
            )

        cleaned_text = question.text.strip()
        if not cleaned_text:
            raise QuestionValidationError("Question text must not be empty.")

        explanation = (question.explanation or "").strip() or None
        question_id = str(question.id).strip() if question.id else uuid4().hex

        return Question(
            id=question_id,
            text=cleaned_text,
            options=options,
            correct_option_index=question.correct_option_index,
            explanation=explanation,
        )

    @staticmethod
    def _validate_options(options: list[str]) -> list[str]:
        if not MIN_OPTIONS_PER_QUESTION <= len(options) <= MAX_OPTIONS_PER_QUESTION:
            raise QuestionValidationError(
                f"Each question must have between {MIN_OPTIONS_PER_QUESTION} "
                f"and {MAX_OPTIONS_PER_QUESTION} options."
            )
        cleaned = [option.strip() for option in options]
        if any(not option for option in cleaned):
            raise QuestionValidationError("Option text cannot be empty.")
        return cleaned
