"""Record store interface used by the session services."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from contextlib import AbstractContextManager
from enum import Enum
from typing import Any

from jolly_quiz.core.models import Answer, Player, Question, Quiz
from jolly_quiz.core.store.changes import ChangeFeed


class RecordKind(str, Enum):
    QUIZZES = "quizzes"
    QUESTIONS = "questions"
    PLAYERS = "players"
    ANSWERS = "answers"


MODEL_BY_KIND: dict[RecordKind, type] = {
    RecordKind.QUIZZES: Quiz,
    RecordKind.QUESTIONS: Question,
    RecordKind.PLAYERS: Player,
    RecordKind.ANSWERS: Answer,
}


class RecordStore(ABC):
    """Linearizable record storage keyed by record id.

    Records are the dataclasses from :mod:`jolly_quiz.core.models`. Returned
    records are copies; mutating them never changes stored state. Missing
    ids raise ``NotFoundError`` and transient failures raise
    ``StoreUnavailableError``.
    """

    def __init__(self) -> None:
        self.changes = ChangeFeed()

    @abstractmethod
    def create_record(self, kind: RecordKind, fields: Mapping[str, Any]) -> Any:
        """Store a new record and return it with its generated id."""

    @abstractmethod
    def get_record(self, kind: RecordKind, record_id: str) -> Any:
        """Return the record with ``record_id``."""

    @abstractmethod
    def query_records(
        self,
        kind: RecordKind,
        where: Mapping[str, Any] | None = None,
        order_by: str | None = None,
    ) -> list[Any]:
        """Return records whose fields equal every value in ``where``."""

    @abstractmethod
    def update_record(self, kind: RecordKind, record_id: str, changes: Mapping[str, Any]) -> Any:
        """Apply ``changes`` to a record and return the updated record."""

    @abstractmethod
    def delete_record(self, kind: RecordKind, record_id: str) -> None:
        """Delete a record."""

    @abstractmethod
    def upsert_record(
        self,
        kind: RecordKind,
        conflict_keys: Sequence[str],
        fields: Mapping[str, Any],
    ) -> Any:
        """Overwrite the record matching ``fields`` on ``conflict_keys`` or create one."""

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """Group several calls so other callers observe them atomically."""

    def delete_where(self, kind: RecordKind, where: Mapping[str, Any]) -> int:
        deleted = 0
        for record in self.query_records(kind, where):
            self.delete_record(kind, record.id)
            deleted += 1
        return deleted
