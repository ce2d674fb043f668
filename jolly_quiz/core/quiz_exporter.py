"""Utilities for exporting quizzes to the plain-text format used for imports."""

from __future__ import annotations

from pathlib import Path

from jolly_quiz.core.models import Question, QuestionType
from jolly_quiz.core.quiz_importer import OPTION_LETTERS


def save_quiz_to_file(file_path: Path, questions: list[Question]) -> None:
    """Persist the provided questions to disk in the text import format."""
    file_path = file_path.resolve()
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(serialize_questions(questions), encoding="utf-8")


def serialize_questions(questions: list[Question]) -> str:
    if not questions:
        raise ValueError("Cannot export an empty quiz.")
    blocks = [_serialize_question(question) for question in questions]
    return "\n\n---\n\n".join(blocks) + "\n"


def _serialize_question(question: Question) -> str:
    lines: list[str] = []

    question_lines = question.question_text.splitlines() or [question.question_text]
    lines.append(f"Q: {question_lines[0]}")
    lines.extend(question_lines[1:])

    if question.question_type is QuestionType.MULTIPLE_CHOICE and question.options:
        if len(question.options) > len(OPTION_LETTERS):
            raise ValueError(f"Cannot export more than {len(OPTION_LETTERS)} options.")
        for letter, option_text in zip(OPTION_LETTERS, question.options):
            option_lines = option_text.splitlines() or [option_text]
            lines.append(f"{letter}: {option_lines[0]}")
            lines.extend(option_lines[1:])
        keys = [option.casefold() for option in question.options]
        letters = [
            OPTION_LETTERS[keys.index(answer.casefold())]
            for answer in question.correct_answers
            if answer.casefold() in keys
        ]
        lines.append(f"CORRECT: {', '.join(letters)}")
    else:
        lines.append(f"ANSWER: {' | '.join(question.correct_answers)}")

    if question.category:
        lines.append(f"CATEGORY: {question.category}")
    if question.image_url:
        lines.append(f"IMAGE: {question.image_url}")

    return "\n".join(lines)
