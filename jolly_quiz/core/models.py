"""Domain models for the quiz session service."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class QuizStatus(str, Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    FINISHED = "finished"


class PlayerStatus(str, Enum):
    PLAYING = "playing"
    FINISHED = "finished"


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    TEXT = "text"


@dataclass(slots=True)
class Quiz:
    """A quiz session that players join through its game code."""

    id: str
    title: str
    game_code: str
    status: QuizStatus = QuizStatus.WAITING
    current_question_index: int = 0
    created_at: datetime = field(default_factory=utc_now)


@dataclass(slots=True)
class Question:
    """A question in a quiz, ordered by ``order_index``.

    ``options`` is set only for multiple-choice questions. ``correct_answers``
    lists every accepted answer text.
    """

    id: str
    quiz_id: str
    question_text: str
    question_type: QuestionType
    correct_answers: list[str]
    order_index: int
    options: list[str] | None = None
    image_url: str | None = None
    category: str | None = None
    created_at: datetime = field(default_factory=utc_now)


@dataclass(slots=True)
class Player:
    """A participant moving through the questions at their own pace."""

    id: str
    quiz_id: str
    name: str
    avatar_id: str
    status: PlayerStatus = PlayerStatus.PLAYING
    current_question_index: int = 0
    joined_at: datetime = field(default_factory=utc_now)


@dataclass(slots=True)
class Answer:
    """The latest answer a player gave to a question."""

    id: str
    player_id: str
    question_id: str
    answer_text: str
    is_correct: bool
    answered_at: datetime = field(default_factory=utc_now)


@dataclass(slots=True)
class PlayerScore:
    """Score snapshot returned to consumers."""

    player: Player
    correct_answers: int
    total_questions: int


@dataclass(slots=True, frozen=True)
class AdvanceResult:
    finished: bool
    quiz_finished: bool = False


@dataclass(slots=True)
class QuestionDraft:
    """Unvalidated question input from the admin tools or a quiz file."""

    question_text: str
    question_type: QuestionType | str
    correct_answers: list[str]
    options: list[str] | None = None
    image_url: str | None = None
    category: str | None = None
    order_index: int | None = None
