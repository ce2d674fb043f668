"""Record storage for quizzes, questions, players and answers."""

from .base import RecordKind, RecordStore
from .changes import ChangeEvent, ChangeFeed
from .memory import InMemoryRecordStore

__all__ = [
    "ChangeEvent",
    "ChangeFeed",
    "InMemoryRecordStore",
    "RecordKind",
    "RecordStore",
]
