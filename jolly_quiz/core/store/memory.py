"""Thread-safe in-process record store."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
import copy
from dataclasses import fields as dataclass_fields, replace
import logging
from threading import RLock
from typing import Any
from uuid import uuid4

from jolly_quiz.core.errors import NotFoundError
from jolly_quiz.core.store.base import MODEL_BY_KIND, RecordKind, RecordStore

logger = logging.getLogger(__name__)


class InMemoryRecordStore(RecordStore):
    """Keeps every record in process memory behind one re-entrant lock.

    Each call is atomic on its own; :meth:`transaction` holds the lock across
    several calls so a read inside it always sees the writes made before it.
    Change events are published after the write has released the lock, so
    observers only run under it when the write happened inside a transaction.
    """

    def __init__(self) -> None:
        super().__init__()
        self._lock = RLock()
        self._tables: dict[RecordKind, dict[str, Any]] = {kind: {} for kind in RecordKind}

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            yield

    def create_record(self, kind: RecordKind, fields: Mapping[str, Any]) -> Any:
        kind = RecordKind(kind)
        model = MODEL_BY_KIND[kind]
        values = copy.deepcopy(dict(fields))
        values.pop("id", None)
        with self._lock:
            record = model(id=uuid4().hex, **values)
            self._tables[kind][record.id] = record
        logger.debug("Created %s record %s", kind.value, record.id)
        self.changes.publish(kind.value, "created", copy.deepcopy(record))
        return copy.deepcopy(record)

    def get_record(self, kind: RecordKind, record_id: str) -> Any:
        kind = RecordKind(kind)
        with self._lock:
            return copy.deepcopy(self._require(kind, record_id))

    def query_records(
        self,
        kind: RecordKind,
        where: Mapping[str, Any] | None = None,
        order_by: str | None = None,
    ) -> list[Any]:
        kind = RecordKind(kind)
        criteria = dict(where or {})
        with self._lock:
            matches = [
                copy.deepcopy(record)
                for record in self._tables[kind].values()
                if all(getattr(record, name) == value for name, value in criteria.items())
            ]
        if order_by is not None:
            descending = order_by.startswith("-")
            attribute = order_by.lstrip("-")
            matches.sort(key=lambda record: getattr(record, attribute), reverse=descending)
        return matches

    def update_record(self, kind: RecordKind, record_id: str, changes: Mapping[str, Any]) -> Any:
        kind = RecordKind(kind)
        values = copy.deepcopy(dict(changes))
        values.pop("id", None)
        with self._lock:
            current = self._require(kind, record_id)
            updated = replace(current, **values)
            self._tables[kind][record_id] = updated
        self.changes.publish(kind.value, "updated", copy.deepcopy(updated))
        return copy.deepcopy(updated)

    def delete_record(self, kind: RecordKind, record_id: str) -> None:
        kind = RecordKind(kind)
        with self._lock:
            record = self._require(kind, record_id)
            del self._tables[kind][record_id]
        self.changes.publish(kind.value, "deleted", copy.deepcopy(record))

    def upsert_record(
        self,
        kind: RecordKind,
        conflict_keys: Sequence[str],
        fields: Mapping[str, Any],
    ) -> Any:
        kind = RecordKind(kind)
        known = {field.name for field in dataclass_fields(MODEL_BY_KIND[kind])}
        missing = [key for key in conflict_keys if key not in fields or key not in known]
        if missing:
            raise ValueError(f"Upsert conflict keys missing from fields: {', '.join(missing)}")

        with self._lock:
            existing = next(
                (
                    record
                    for record in self._tables[kind].values()
                    if all(getattr(record, key) == fields[key] for key in conflict_keys)
                ),
                None,
            )
            if existing is None:
                return self.create_record(kind, fields)
            return self.update_record(kind, existing.id, fields)

    def _require(self, kind: RecordKind, record_id: str) -> Any:
        record = self._tables[kind].get(record_id)
        if record is None:
            raise NotFoundError(f"No {kind.value} record with id {record_id!r}.")
        return record
