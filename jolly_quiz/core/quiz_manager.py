"""Facade wiring the quiz services to one record store."""

from __future__ import annotations

from dataclasses import dataclass

from jolly_quiz.core.avatars import AvatarAssigner
from jolly_quiz.core.models import Player, Question, Quiz, QuizStatus
from jolly_quiz.core.quiz_exporter import serialize_questions
from jolly_quiz.core.quiz_importer import load_quiz_from_text
from jolly_quiz.core.services.game_session import GameSession
from jolly_quiz.core.services.quiz_repository import QuizRepository
from jolly_quiz.core.services.scoreboard import Scoreboard
from jolly_quiz.core.store import InMemoryRecordStore, RecordStore


@dataclass(slots=True)
class GameState:
    """Everything a player screen needs to render one quiz."""

    quiz: Quiz
    players: list[Player]
    questions: list[Question]
    version: int


class QuizManager:
    """Facade for quiz services: Repository, GameSession and Scoreboard."""

    def __init__(self, store: RecordStore | None = None, avatars: AvatarAssigner | None = None) -> None:
        self.store = store or InMemoryRecordStore()
        self.repository = QuizRepository(self.store)
        self.session = GameSession(self.store, avatars=avatars)
        self.scoreboard = Scoreboard(self.session)

    def game_state(self, game_code: str) -> GameState:
        """Snapshot a quiz with its players, questions and the store version."""
        with self.store.transaction():
            version = self.store.changes.version
            quiz = self.session.get_quiz_by_code(game_code)
            return GameState(
                quiz=quiz,
                players=self.session.list_players(quiz.id),
                questions=self.session.list_questions(quiz.id),
                version=version,
            )

    def wait_for_game_state(self, game_code: str, since_version: int, timeout: float) -> GameState:
        """Long-poll: block until something changed after ``since_version`` or time runs out.

        Unknown game codes raise ``NotFoundError`` straight away.
        """
        self.session.get_quiz_by_code(game_code)
        self.store.changes.wait_for_change(since_version, timeout=timeout)
        state = self.game_state(game_code)
        # Pollers double as the fallback for a missed completion check.
        if self.session.reconcile_completion(state.quiz.id) and state.quiz.status is not QuizStatus.FINISHED:
            state = self.game_state(game_code)
        return state

    def import_questions(self, quiz_id: str, text: str) -> list[Question]:
        imported = load_quiz_from_text(text)
        return self.repository.add_questions(quiz_id, imported.questions)

    def export_questions(self, quiz_id: str) -> str:
        self.repository.get_quiz(quiz_id)
        return serialize_questions(self.repository.list_questions(quiz_id))
