"""Service running quiz sessions on top of the record store."""

from __future__ import annotations

import logging
import time

from jolly_quiz.constants.game_constants import (
    COMPLETION_RECONCILE_ATTEMPTS,
    COMPLETION_RECONCILE_DELAY_SECONDS,
)
from jolly_quiz.core import session_rules
from jolly_quiz.core.avatars import AvatarAssigner
from jolly_quiz.core.errors import AlreadyFinishedError, NotFoundError, StoreUnavailableError
from jolly_quiz.core.game_codes import normalize_game_code
from jolly_quiz.core.models import (
    AdvanceResult,
    Answer,
    Player,
    PlayerScore,
    PlayerStatus,
    Question,
    Quiz,
    QuizStatus,
    utc_now,
)
from jolly_quiz.core.store import RecordKind, RecordStore

logger = logging.getLogger(__name__)

_ANSWER_CONFLICT_KEYS = ("player_id", "question_id")


class GameSession:
    """Joins players, starts quizzes, records answers and moves players along."""

    def __init__(
        self,
        store: RecordStore,
        avatars: AvatarAssigner | None = None,
        reconcile_attempts: int = COMPLETION_RECONCILE_ATTEMPTS,
        reconcile_delay_seconds: float = COMPLETION_RECONCILE_DELAY_SECONDS,
    ) -> None:
        self._store = store
        self._avatars = avatars or AvatarAssigner()
        self._reconcile_attempts = max(1, reconcile_attempts)
        self._reconcile_delay_seconds = reconcile_delay_seconds

    # --- Read-through accessors ---

    def get_quiz(self, quiz_id: str) -> Quiz:
        return self._store.get_record(RecordKind.QUIZZES, quiz_id)

    def get_quiz_by_code(self, game_code: str) -> Quiz:
        matches = self._store.query_records(
            RecordKind.QUIZZES, {"game_code": normalize_game_code(game_code)}
        )
        if not matches:
            raise NotFoundError("Quiz not found. Please check the game code.")
        return matches[0]

    def get_player(self, player_id: str) -> Player:
        return self._store.get_record(RecordKind.PLAYERS, player_id)

    def get_question(self, question_id: str) -> Question:
        return self._store.get_record(RecordKind.QUESTIONS, question_id)

    def list_players(self, quiz_id: str) -> list[Player]:
        return self._store.query_records(RecordKind.PLAYERS, {"quiz_id": quiz_id}, order_by="joined_at")

    def list_questions(self, quiz_id: str) -> list[Question]:
        return self._store.query_records(
            RecordKind.QUESTIONS, {"quiz_id": quiz_id}, order_by="order_index"
        )

    def list_answers(self, player_id: str) -> list[Answer]:
        return self._store.query_records(RecordKind.ANSWERS, {"player_id": player_id}, order_by="answered_at")

    def list_quiz_answers(self, quiz_id: str) -> list[Answer]:
        answers: list[Answer] = []
        for player in self.list_players(quiz_id):
            answers.extend(self.list_answers(player.id))
        return answers

    def question_count(self, quiz_id: str) -> int:
        return len(self._store.query_records(RecordKind.QUESTIONS, {"quiz_id": quiz_id}))

    def current_question(self, player_id: str) -> Question | None:
        """Return the question the player is on, or None once they are done."""
        player = self.get_player(player_id)
        if player.status is PlayerStatus.FINISHED:
            return None
        questions = self.list_questions(player.quiz_id)
        if player.current_question_index < len(questions):
            return questions[player.current_question_index]
        return None

    # --- Transitions ---

    def join(self, game_code: str, display_name: str) -> Player:
        """Add a player to the quiz with ``game_code``.

        Raises ``NotFoundError`` for unknown codes and ``AlreadyFinishedError``
        when the quiz has ended.
        """
        name = session_rules.clean_display_name(display_name)
        with self._store.transaction():
            quiz = self.get_quiz_by_code(game_code)
            try:
                session_rules.check_can_join(quiz)
            except AlreadyFinishedError:
                logger.info("Rejected join of %r: quiz %s has finished", name, quiz.id)
                raise
            used_avatars = [player.avatar_id for player in self.list_players(quiz.id)]
            avatar = self._avatars.choose(used_avatars)
            player = self._store.create_record(
                RecordKind.PLAYERS,
                {
                    "quiz_id": quiz.id,
                    "name": name,
                    "avatar_id": avatar.id,
                    "status": PlayerStatus.PLAYING,
                    "current_question_index": 0,
                    "joined_at": utc_now(),
                },
            )
        logger.info("Player %s (%s) joined quiz %s as %s", player.id, name, quiz.id, avatar.id)
        return player

    def start(self, quiz_id: str) -> Quiz:
        """Move a waiting quiz to active. Raises ``InvalidStateError`` otherwise."""
        with self._store.transaction():
            quiz = self.get_quiz(quiz_id)
            changes = session_rules.start_changes(quiz, self.question_count(quiz_id))
            quiz = self._store.update_record(RecordKind.QUIZZES, quiz_id, changes)
        logger.info("Quiz %s started", quiz_id)
        return quiz

    def submit_answer(self, player_id: str, question_id: str, answer_text: str) -> Answer:
        """Record the player's answer, replacing any earlier one for the question.

        Correctness is decided here, once, and stored with the answer. The
        player's question index is left alone.
        """
        with self._store.transaction():
            player = self.get_player(player_id)
            question = self.get_question(question_id)
            if question.quiz_id != player.quiz_id:
                raise NotFoundError("Question does not belong to this quiz.")
            quiz = self.get_quiz(player.quiz_id)
            session_rules.check_can_answer(quiz, player)
            is_correct = session_rules.is_answer_correct(question, answer_text)
            answer = self._store.upsert_record(
                RecordKind.ANSWERS,
                _ANSWER_CONFLICT_KEYS,
                {
                    "player_id": player_id,
                    "question_id": question_id,
                    "answer_text": answer_text,
                    "is_correct": is_correct,
                    "answered_at": utc_now(),
                },
            )
        logger.debug("Player %s answered question %s (correct=%s)", player_id, question_id, is_correct)
        return answer

    def advance_player(self, player_id: str) -> AdvanceResult:
        """Move the player to their next question or mark them finished.

        When the player finishes, the quiz-wide completion check runs in the
        same transaction as the player's update. If the store fails during
        that check, the player's update stands and the check is retried on
        its own with bounded retries. Calling this again for a finished
        player only repeats the check.
        """
        quiz_finished: bool | None = None
        with self._store.transaction():
            player = self.get_player(player_id)
            quiz = self.get_quiz(player.quiz_id)
            decision = session_rules.advance(quiz, player, self.question_count(quiz.id))
            if decision.player_changes:
                player = self._store.update_record(RecordKind.PLAYERS, player_id, decision.player_changes)
            if decision.finished:
                try:
                    quiz_finished = self._finish_if_complete(quiz.id)
                except StoreUnavailableError:
                    logger.warning("Completion check for quiz %s failed; retrying on its own", quiz.id)

        if not decision.finished:
            logger.debug("Player %s moved to question index %d", player_id, player.current_question_index)
            return AdvanceResult(finished=False)

        logger.info("Player %s finished quiz %s", player_id, quiz.id)
        if quiz_finished is None:
            quiz_finished = self.reconcile_completion(quiz.id)
        return AdvanceResult(finished=True, quiz_finished=quiz_finished)

    def reconcile_completion(self, quiz_id: str) -> bool:
        """Finish the quiz if no player is still playing.

        Returns True when the quiz is finished after the call. Pollers may
        call this at any time to close out a quiz whose last player's
        completion check failed.
        """
        for attempt in range(1, self._reconcile_attempts + 1):
            try:
                return self._finish_if_complete(quiz_id)
            except StoreUnavailableError:
                if attempt == self._reconcile_attempts:
                    raise
                logger.warning(
                    "Completion check for quiz %s failed (attempt %d/%d); retrying",
                    quiz_id,
                    attempt,
                    self._reconcile_attempts,
                )
                time.sleep(self._reconcile_delay_seconds)
        return False

    def compute_score(self, player_id: str) -> PlayerScore:
        """Count the player's correct answers out of all questions in the quiz."""
        player = self.get_player(player_id)
        question_ids = {question.id for question in self.list_questions(player.quiz_id)}
        answers = [answer for answer in self.list_answers(player_id) if answer.question_id in question_ids]
        return PlayerScore(
            player=player,
            correct_answers=session_rules.count_correct(answers),
            total_questions=len(question_ids),
        )

    def _finish_if_complete(self, quiz_id: str) -> bool:
        with self._store.transaction():
            quiz = self.get_quiz(quiz_id)
            if quiz.status is QuizStatus.FINISHED:
                return True
            if not session_rules.should_finish_quiz(quiz, self.list_players(quiz_id)):
                return False
            self._store.update_record(RecordKind.QUIZZES, quiz_id, {"status": QuizStatus.FINISHED})
        logger.info("Quiz %s finished: no players left playing", quiz_id)
        return True
