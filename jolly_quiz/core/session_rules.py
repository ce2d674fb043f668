"""Pure decision rules of the quiz session state machine.

Nothing in this module touches storage. Each function takes the current
records and either raises a :mod:`jolly_quiz.core.errors` exception or
returns the field changes that have to be written. ``GameSession`` performs
the reads and writes around these rules.

Lifecycles::

    Quiz:   waiting --start--> active --[no player left playing]--> finished
    Player: playing --advance past last question--> finished

Neither entity ever leaves ``finished``; only the administrative reset
re-creates a waiting session.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from jolly_quiz.constants.game_constants import MAX_DISPLAY_NAME_LENGTH
from jolly_quiz.core.errors import AlreadyFinishedError, InvalidStateError
from jolly_quiz.core.models import Answer, Player, PlayerStatus, Question, Quiz, QuizStatus


@dataclass(slots=True)
class PlayerAdvance:
    """Field changes produced by advancing one player."""

    finished: bool
    player_changes: dict[str, object] = field(default_factory=dict)


def normalize_answer(text: str) -> str:
    return text.casefold()


def is_answer_correct(question: Question, answer_text: str) -> bool:
    accepted = {normalize_answer(answer) for answer in question.correct_answers}
    return normalize_answer(answer_text) in accepted


def clean_display_name(display_name: str) -> str:
    cleaned = display_name.strip()
    if not cleaned:
        raise ValueError("Display name must not be empty.")
    if len(cleaned) > MAX_DISPLAY_NAME_LENGTH:
        raise ValueError(f"Display name must be at most {MAX_DISPLAY_NAME_LENGTH} characters.")
    return cleaned


def check_can_join(quiz: Quiz) -> None:
    if quiz.status is QuizStatus.FINISHED:
        raise AlreadyFinishedError("This quiz has already ended.")


def start_changes(quiz: Quiz, question_count: int) -> dict[str, object]:
    """Return the quiz changes for ``start``; only a waiting quiz may start."""
    if quiz.status is not QuizStatus.WAITING:
        raise InvalidStateError(f"Quiz cannot be started while it is {quiz.status.value}.")
    if question_count <= 0:
        raise InvalidStateError("Quiz has no questions to play.")
    return {"status": QuizStatus.ACTIVE, "current_question_index": 0}


def check_can_answer(quiz: Quiz, player: Player) -> None:
    if quiz.status is not QuizStatus.ACTIVE:
        raise InvalidStateError(f"Answers are not accepted while the quiz is {quiz.status.value}.")
    if player.status is PlayerStatus.FINISHED:
        raise InvalidStateError("Player has already finished the quiz.")


def advance(quiz: Quiz, player: Player, total_questions: int) -> PlayerAdvance:
    """Decide how ``player`` moves on from their current question.

    A player that is already finished stays finished and no write is needed,
    which keeps repeated calls safe.
    """
    if player.status is PlayerStatus.FINISHED:
        return PlayerAdvance(finished=True)
    if quiz.status is not QuizStatus.ACTIVE:
        raise InvalidStateError(f"Players cannot advance while the quiz is {quiz.status.value}.")

    next_index = player.current_question_index + 1
    if next_index >= total_questions:
        return PlayerAdvance(finished=True, player_changes={"status": PlayerStatus.FINISHED})
    return PlayerAdvance(finished=False, player_changes={"current_question_index": next_index})


def should_finish_quiz(quiz: Quiz, players: Iterable[Player]) -> bool:
    """Return True when the last playing player is gone from an active quiz.

    An active quiz nobody has joined yet stays open.
    """
    if quiz.status is not QuizStatus.ACTIVE:
        return False
    players = list(players)
    return bool(players) and not any(player.status is PlayerStatus.PLAYING for player in players)


def count_correct(answers: Iterable[Answer]) -> int:
    return sum(1 for answer in answers if answer.is_correct)
