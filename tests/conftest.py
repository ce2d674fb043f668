from __future__ import annotations

import pytest

from jolly_quiz.core.avatars import AvatarAssigner
from jolly_quiz.core.models import QuestionDraft, QuestionType
from jolly_quiz.core.quiz_manager import QuizManager


def text_question(text: str, *answers: str) -> QuestionDraft:
    return QuestionDraft(question_text=text, question_type=QuestionType.TEXT, correct_answers=list(answers))


def choice_question(text: str, options: list[str], *answers: str) -> QuestionDraft:
    return QuestionDraft(
        question_text=text,
        question_type=QuestionType.MULTIPLE_CHOICE,
        options=options,
        correct_answers=list(answers),
    )


@pytest.fixture
def manager() -> QuizManager:
    return QuizManager(avatars=AvatarAssigner(seed=7))


@pytest.fixture
def make_quiz(manager):
    """Create a quiz with ``count`` free-text questions answered "answer N"."""

    def _make(count: int = 3, title: str = "Winter Quiz"):
        quiz = manager.repository.create_quiz(title)
        questions = [
            manager.repository.add_question(quiz.id, text_question(f"Question {i}", f"answer {i}"))
            for i in range(1, count + 1)
        ]
        return quiz, questions

    return _make
