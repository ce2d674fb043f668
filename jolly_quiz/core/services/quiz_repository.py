"""Service for authoring quizzes and their questions."""

from __future__ import annotations

from collections.abc import Iterable
import logging

from jolly_quiz.constants.game_constants import MIN_MULTIPLE_CHOICE_OPTIONS
from jolly_quiz.core.game_codes import generate_game_code, is_valid_game_code, normalize_game_code
from jolly_quiz.core.models import (
    PlayerStatus,
    Question,
    QuestionDraft,
    QuestionType,
    Quiz,
    QuizStatus,
    utc_now,
)
from jolly_quiz.core.store import RecordKind, RecordStore

logger = logging.getLogger(__name__)


class QuizRepository:
    """Manages the lifecycle and storage of quizzes and questions."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    # --- Quizzes ---

    def create_quiz(self, title: str, game_code: str | None = None) -> Quiz:
        cleaned_title = self._clean_title(title)
        with self._store.transaction():
            taken = {quiz.game_code for quiz in self._store.query_records(RecordKind.QUIZZES)}
            if game_code is None:
                code = generate_game_code(taken)
            else:
                code = normalize_game_code(game_code)
                if not is_valid_game_code(code):
                    raise ValueError("Game code must be 6 letters or digits.")
                if code in taken:
                    raise ValueError(f"Game code {code} is already in use.")
            quiz = self._store.create_record(
                RecordKind.QUIZZES,
                {
                    "title": cleaned_title,
                    "game_code": code,
                    "status": QuizStatus.WAITING,
                    "current_question_index": 0,
                    "created_at": utc_now(),
                },
            )
        logger.info("Created quiz %s (%s) with code %s", quiz.id, quiz.title, quiz.game_code)
        return quiz

    def list_quizzes(self) -> list[Quiz]:
        """Return all quizzes, newest first."""
        return self._store.query_records(RecordKind.QUIZZES, order_by="-created_at")

    def get_quiz(self, quiz_id: str) -> Quiz:
        return self._store.get_record(RecordKind.QUIZZES, quiz_id)

    def update_quiz(self, quiz_id: str, title: str) -> Quiz:
        return self._store.update_record(RecordKind.QUIZZES, quiz_id, {"title": self._clean_title(title)})

    def delete_quiz(self, quiz_id: str) -> None:
        """Delete the quiz together with its questions, players and answers."""
        with self._store.transaction():
            self.get_quiz(quiz_id)
            self._delete_session_records(quiz_id)
            self._store.delete_where(RecordKind.QUESTIONS, {"quiz_id": quiz_id})
            self._store.delete_record(RecordKind.QUIZZES, quiz_id)
        logger.info("Deleted quiz %s", quiz_id)

    def reset_quiz(self, quiz_id: str) -> Quiz:
        """Put the quiz back into the waiting state without any players or answers."""
        with self._store.transaction():
            self.get_quiz(quiz_id)
            removed = self._delete_session_records(quiz_id)
            quiz = self._store.update_record(
                RecordKind.QUIZZES,
                quiz_id,
                {"status": QuizStatus.WAITING, "current_question_index": 0},
            )
        logger.info("Reset quiz %s (removed %d players)", quiz_id, removed)
        return quiz

    # --- Questions ---

    def list_questions(self, quiz_id: str) -> list[Question]:
        return self._store.query_records(
            RecordKind.QUESTIONS, {"quiz_id": quiz_id}, order_by="order_index"
        )

    def get_question(self, question_id: str) -> Question:
        return self._store.get_record(RecordKind.QUESTIONS, question_id)

    def add_question(self, quiz_id: str, draft: QuestionDraft) -> Question:
        return self.add_questions(quiz_id, [draft])[0]

    def add_questions(self, quiz_id: str, drafts: Iterable[QuestionDraft]) -> list[Question]:
        """Add several questions; nothing is stored unless every draft is valid."""
        prepared = [(draft, self._prepare_question(draft)) for draft in drafts]
        with self._store.transaction():
            self.get_quiz(quiz_id)
            used = {question.order_index for question in self.list_questions(quiz_id)}
            planned = [
                (fields, self._claim_order_index(draft.order_index, used)) for draft, fields in prepared
            ]
            questions = [
                self._store.create_record(
                    RecordKind.QUESTIONS,
                    {**fields, "quiz_id": quiz_id, "order_index": order_index, "created_at": utc_now()},
                )
                for fields, order_index in planned
            ]
        for question in questions:
            logger.info("Added question %s to quiz %s at %d", question.id, quiz_id, question.order_index)
        return questions

    def update_question(self, question_id: str, draft: QuestionDraft) -> Question:
        """Replace a question's content. Its position and stored answers stay as they are."""
        fields = self._prepare_question(draft)
        return self._store.update_record(RecordKind.QUESTIONS, question_id, fields)

    def delete_question(self, question_id: str) -> None:
        with self._store.transaction():
            question = self.get_question(question_id)
            self._store.delete_where(RecordKind.ANSWERS, {"question_id": question_id})
            self._store.delete_record(RecordKind.QUESTIONS, question_id)
            self._clamp_player_progress(question.quiz_id)
        logger.info("Deleted question %s", question_id)

    def set_question_order(self, question_id: str, order_index: int) -> Question:
        """Give the question ``order_index``, swapping with whichever question held it."""
        if order_index < 0:
            raise ValueError("Order index must not be negative.")
        with self._store.transaction():
            question = self.get_question(question_id)
            holder = next(
                (
                    other
                    for other in self.list_questions(question.quiz_id)
                    if other.order_index == order_index and other.id != question_id
                ),
                None,
            )
            if holder is not None:
                self._store.update_record(
                    RecordKind.QUESTIONS, holder.id, {"order_index": question.order_index}
                )
            return self._store.update_record(
                RecordKind.QUESTIONS, question_id, {"order_index": order_index}
            )

    def move_question(self, question_id: str, offset: int) -> Question:
        """Swap the question with its neighbour ``offset`` places away."""
        with self._store.transaction():
            question = self.get_question(question_id)
            questions = self.list_questions(question.quiz_id)
            position = next(i for i, other in enumerate(questions) if other.id == question_id)
            target = position + offset
            if not 0 <= target < len(questions):
                raise ValueError("Question cannot be moved past the end of the quiz.")
            return self.set_question_order(question_id, questions[target].order_index)

    # --- Helpers ---

    def _clamp_player_progress(self, quiz_id: str) -> None:
        last_index = max(len(self.list_questions(quiz_id)) - 1, 0)
        for player in self._store.query_records(
            RecordKind.PLAYERS, {"quiz_id": quiz_id, "status": PlayerStatus.PLAYING}
        ):
            if player.current_question_index > last_index:
                self._store.update_record(
                    RecordKind.PLAYERS, player.id, {"current_question_index": last_index}
                )

    def _delete_session_records(self, quiz_id: str) -> int:
        players = self._store.query_records(RecordKind.PLAYERS, {"quiz_id": quiz_id})
        for player in players:
            self._store.delete_where(RecordKind.ANSWERS, {"player_id": player.id})
            self._store.delete_record(RecordKind.PLAYERS, player.id)
        return len(players)

    @staticmethod
    def _claim_order_index(requested: int | None, used: set[int]) -> int:
        if requested is None:
            order_index = max(used, default=-1) + 1
        elif requested < 0:
            raise ValueError("Order index must not be negative.")
        elif requested in used:
            raise ValueError(f"Order index {requested} is already used in this quiz.")
        else:
            order_index = requested
        used.add(order_index)
        return order_index

    @staticmethod
    def _clean_title(title: str) -> str:
        cleaned = title.strip()
        if not cleaned:
            raise ValueError("Quiz title must not be empty.")
        return cleaned

    def _prepare_question(self, draft: QuestionDraft) -> dict[str, object]:
        """Validate and normalize a question before storage."""
        cleaned_text = draft.question_text.strip()
        if not cleaned_text:
            raise ValueError("Question text must not be empty.")

        try:
            question_type = QuestionType(draft.question_type)
        except ValueError:
            raise ValueError(f"Unknown question type {draft.question_type!r}.") from None

        correct_answers = self._clean_answers(draft.correct_answers)
        if question_type is QuestionType.MULTIPLE_CHOICE:
            options = self._validate_options(draft.options or [])
            by_key = {option.casefold(): option for option in options}
            unknown = [answer for answer in correct_answers if answer.casefold() not in by_key]
            if unknown:
                raise ValueError(f"Correct answers must be among the options: {', '.join(unknown)}")
            correct_answers = [by_key[answer.casefold()] for answer in correct_answers]
        else:
            if draft.options:
                raise ValueError("Free-text questions cannot have options.")
            options = None

        return {
            "question_text": cleaned_text,
            "question_type": question_type,
            "options": options,
            "correct_answers": correct_answers,
            "image_url": self._optional_text(draft.image_url),
            "category": self._optional_text(draft.category),
        }

    @staticmethod
    def _clean_answers(answers: Iterable[str]) -> list[str]:
        cleaned: list[str] = []
        for answer in answers:
            stripped = answer.strip()
            if stripped and stripped not in cleaned:
                cleaned.append(stripped)
        if not cleaned:
            raise ValueError("At least one correct answer is required.")
        return cleaned

    @staticmethod
    def _validate_options(options: list[str]) -> list[str]:
        if len(options) < MIN_MULTIPLE_CHOICE_OPTIONS:
            raise ValueError(
                f"Multiple-choice questions need at least {MIN_MULTIPLE_CHOICE_OPTIONS} options."
            )
        cleaned = [option.strip() for option in options]
        if any(not option for option in cleaned):
            raise ValueError("Option text cannot be empty.")
        if len({option.casefold() for option in cleaned}) != len(cleaned):
            raise ValueError("Options must be distinct.")
        return cleaned

    @staticmethod
    def _optional_text(value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

