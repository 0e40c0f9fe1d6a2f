"""Utilities for importing test questions from a human-friendly text file.

File format (repeat blocks separated by blank lines or '---'):

    Q: Question text (may contain math markup). Additional lines until the
       next marker are treated as part of the question.
    A: First option text
    B: Second option text
    ...              (two to six options, lettered A-F in order)
    CORRECT: letter of the correct option
    EXPLANATION: optional text shown when reviewing answers

A line starting with "|" continues the current section verbatim (one space
after the bar is dropped). The exporter writes every extra line that way, so
blank lines and text such as "B: x" survive a round trip.

Example:

    Q: What is $2 + 2$?
    A: 3
    B: 4
    C: 5
    CORRECT: B
    EXPLANATION: Two plus two is four.

The parser only checks the layout; the returned questions still go through
``QuestionBank`` validation when they are attached to a test.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from cbt_app.constants.cbt_constants import MAX_OPTIONS_PER_QUESTION, MIN_OPTIONS_PER_QUESTION
from cbt_app.core.models import Question


class QuestionImportError(ValueError):
    """Raised when a question file cannot be parsed."""


@dataclass(slots=True)
class ImportedQuestions:
    """Container for imported questions and where they came from."""

    source_path: Path | None
    questions: list[Question]


OPTION_LETTERS = ("A", "B", "C", "D", "E", "F")[:MAX_OPTIONS_PER_QUESTION]
CONTINUATION_PREFIX = "|"


def load_questions_from_file(file_path: Path) -> ImportedQuestions:
    text = file_path.read_text(encoding="utf-8")
    return ImportedQuestions(source_path=file_path, questions=parse_questions_text(text))


def parse_questions_text(text: str) -> list[Question]:
    questions = [
        _parse_block(block, number)
        for number, block in enumerate(_split_blocks(text), start=1)
    ]
    if not questions:
        raise QuestionImportError("Question file did not contain any questions.")
    return questions


def _split_blocks(text: str) -> list[str]:
    blocks: list[str] = []
    current_block: list[str] = []
    for raw_line in text.splitlines():
        stripped = raw_line.strip()
        if stripped == "---" or not stripped:
            if current_block:
                blocks.append("\n".join(current_block).strip())
                current_block = []
            continue
        current_block.append(raw_line)
    if current_block:
        blocks.append("\n".join(current_block).strip())
    return [block for block in blocks if block]


def _parse_block(block: str, number: int) -> Question:
    question_lines: list[str] = []
    explanation_lines: list[str] = []
    options: dict[str, str] = {}
    correct_letter: str | None = None
    current_section: str | None = None

    for raw_line in block.splitlines():
        line = raw_line.strip()
        upper = line.upper()

        if line.startswith(CONTINUATION_PREFIX):
            # Prefixed lines never start a section, whatever they contain.
            line = line[len(CONTINUATION_PREFIX):]
            if line.startswith(" "):
                line = line[1:]
        elif upper.startswith("Q:"):
            question_lines = [line[2:].strip()]
            current_section = "Q"
            continue
        elif upper.startswith("CORRECT:"):
            correct_letter = line.split(":", 1)[1].strip().upper()
            current_section = None
            continue
        elif upper.startswith("EXPLANATION:"):
            explanation_lines = [line.split(":", 1)[1].strip()]
            current_section = "EXPLANATION"
            continue
        elif len(line) > 2 and line[0].upper() in OPTION_LETTERS and line[1] == ":":
            letter = line[0].upper()
            options[letter] = line[2:].strip()
            current_section = letter
            continue

        if current_section == "Q":
            question_lines.append(line)
        elif current_section == "EXPLANATION":
            explanation_lines.append(line)
        elif current_section in OPTION_LETTERS:
            options[current_section] = options[current_section] + f"\n{line}"
        else:
            raise QuestionImportError(
                f"Question {number}: encountered text outside of a known section: '{raw_line.strip()}'."
            )

    question_text = "\n".join(question_lines).strip()
    if not question_text:
        raise QuestionImportError(f"Question {number}: question text missing (Q: ...)")

    expected_letters = OPTION_LETTERS[: len(options)]
    if set(options) != set(expected_letters):
        raise QuestionImportError(
            f"Question {number}: options must be lettered consecutively from A."
        )
    if not MIN_OPTIONS_PER_QUESTION <= len(options) <= MAX_OPTIONS_PER_QUESTION:
        raise QuestionImportError(
            f"Question {number}: expected {MIN_OPTIONS_PER_QUESTION} to "
            f"{MAX_OPTIONS_PER_QUESTION} options, found {len(options)}."
        )
    option_list = [options[letter].strip() for letter in expected_letters]

    if correct_letter is None:
        raise QuestionImportError(f"Question {number}: CORRECT is required.")
    if correct_letter not in expected_letters:
        raise QuestionImportError(
            f"Question {number}: CORRECT must be one of {', '.join(expected_letters)}."
        )

    explanation = "\n".join(explanation_lines).strip() or None
    return Question(
        id=f"q{number}",
        text=question_text,
        options=option_list,
        correct_option_index=expected_letters.index(correct_letter),
        explanation=explanation,
    )
