"""Utilities for importing quiz questions from a human-friendly text file.

File format (repeat blocks separated by blank lines or '---'):

    Q: Question text. Additional lines until the next marker are treated
       as part of the question.
    A: First option text          (options make it a multiple-choice question)
    B: Second option text
    ...                            (up to H)
    CORRECT: B                     (multiple choice: one or more letters, e.g. "A, C")
    ANSWER: Paris | Paris, France  (free text: accepted answers separated by '|')
    CATEGORY: Geography            (optional)
    IMAGE: https://example.org/paris.png   (optional)

Example:

    Q: What is the capital of France?
    ANSWER: Paris
    CATEGORY: Geography

    ---

    Q: Which of these animals live at the North Pole?
    A: Penguin
    B: Polar bear
    C: Arctic fox
    CORRECT: B, C
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import re

from jolly_quiz.core.models import QuestionDraft, QuestionType


class QuizImportError(Exception):
    """Raised when a quiz definition cannot be parsed."""


@dataclass(slots=True)
class ImportedQuiz:
    """Container for imported quiz metadata and questions."""

    source_path: Path | None
    questions: list[QuestionDraft]


OPTION_LETTERS = ("A", "B", "C", "D", "E", "F", "G", "H")
_LETTER_SPLIT = re.compile(r"[\s,|]+")


def load_quiz_from_file(file_path: Path) -> ImportedQuiz:
    imported = load_quiz_from_text(file_path.read_text(encoding="utf-8"))
    imported.source_path = file_path
    return imported


def load_quiz_from_text(text: str) -> ImportedQuiz:
    questions = _parse_quiz_text(text)
    if not questions:
        raise QuizImportError("Quiz file did not contain any questions.")
    return ImportedQuiz(source_path=None, questions=questions)


def _parse_quiz_text(text: str) -> list[QuestionDraft]:
    blocks: list[str] = []
    current_block: list[str] = []
    for raw_line in text.splitlines():
        stripped = raw_line.strip()
        if stripped == "---":
            if current_block:
                blocks.append("\n".join(current_block).strip())
                current_block = []
            continue
        if stripped:
            current_block.append(raw_line)
        elif current_block:
            blocks.append("\n".join(current_block).strip())
            current_block = []
    if current_block:
        blocks.append("\n".join(current_block).strip())

    return [_parse_block(block) for block in blocks if block]


def _parse_block(block: str) -> QuestionDraft:
    question_lines: list[str] = []
    options: dict[str, str] = {}
    correct_letters: list[str] = []
    accepted_answers: list[str] = []
    category: str | None = None
    image_url: str | None = None
    current_section: str | None = None

    for raw_line in block.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        upper = line.upper()
        if upper.startswith("Q:"):
            question_lines = [line[2:].strip()]
            current_section = "Q"
            continue

        if upper.startswith("CORRECT:"):
            value = line.split(":", 1)[1].strip().upper()
            correct_letters = [letter for letter in _LETTER_SPLIT.split(value) if letter]
            current_section = None
            continue

        if upper.startswith("ANSWER:"):
            value = line.split(":", 1)[1]
            accepted_answers = [answer.strip() for answer in value.split("|") if answer.strip()]
            current_section = None
            continue

        if upper.startswith("CATEGORY:"):
            category = line.split(":", 1)[1].strip() or None
            current_section = None
            continue

        if upper.startswith("IMAGE:"):
            image_url = line.split(":", 1)[1].strip() or None
            current_section = None
            continue

        if len(line) > 2 and line[0].upper() in OPTION_LETTERS and line[1] == ":":
            letter = line[0].upper()
            options[letter] = line[2:].strip()
            current_section = letter
            continue

        if current_section == "Q":
            question_lines.append(line)
        elif current_section in OPTION_LETTERS:
            options[current_section] = options[current_section] + f"\n{line}"
        else:
            raise QuizImportError(f"Encountered text outside of a known section: '{line}'.")

    question_text = "\n".join(question_lines).strip()
    if not question_text:
        raise QuizImportError("Question text missing (Q: ...)")

    if not options:
        if correct_letters:
            raise QuizImportError("CORRECT needs options; use ANSWER for free-text questions.")
        if not accepted_answers:
            raise QuizImportError("Free-text questions need an ANSWER line.")
        return QuestionDraft(
            question_text=question_text,
            question_type=QuestionType.TEXT,
            correct_answers=accepted_answers,
            category=category,
            image_url=image_url,
        )

    letters = [letter for letter in OPTION_LETTERS if letter in options]
    if letters != list(OPTION_LETTERS[: len(letters)]):
        raise QuizImportError("Options must use consecutive letters starting at A.")
    option_list = [options[letter].strip() for letter in letters]
    if any(not option for option in option_list):
        raise QuizImportError("Option text cannot be empty.")
    if accepted_answers:
        raise QuizImportError("Multiple-choice questions use CORRECT, not ANSWER.")
    if not correct_letters:
        raise QuizImportError("Multiple-choice questions need a CORRECT line.")
    unknown = [letter for letter in correct_letters if letter not in options]
    if unknown:
        raise QuizImportError(f"CORRECT refers to missing options: {', '.join(unknown)}.")

    return QuestionDraft(
        question_text=question_text,
        question_type=QuestionType.MULTIPLE_CHOICE,
        options=option_list,
        correct_answers=[options[letter].strip() for letter in correct_letters],
        category=category,
        image_url=image_url,
    )
