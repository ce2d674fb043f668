"""Change notifications for record sets.

Observers can either register a callback (push) or block on
:meth:`ChangeFeed.wait_for_change` with the last version they saw (poll).
The session logic does not care which one a client uses.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
import logging
from threading import Condition
from typing import Any

logger = logging.getLogger(__name__)

ChangeCallback = Callable[["ChangeEvent"], None]


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    version: int
    kind: str
    action: str
    record: Any


@dataclass(slots=True)
class _Observer:
    kind: str
    callback: ChangeCallback
    where: Mapping[str, Any] | None


def _matches(record: Any, where: Mapping[str, Any] | None) -> bool:
    if not where:
        return True
    return all(getattr(record, name, None) == value for name, value in where.items())


class ChangeFeed:
    """Versioned stream of record changes."""

    def __init__(self) -> None:
        self._condition = Condition()
        self._version = 0
        self._observers: dict[int, _Observer] = {}
        self._next_token = 0

    @property
    def version(self) -> int:
        with self._condition:
            return self._version

    def observe(
        self,
        kind: str,
        callback: ChangeCallback,
        where: Mapping[str, Any] | None = None,
    ) -> Callable[[], None]:
        """Call ``callback`` for every change to ``kind`` records matching ``where``.

        Returns a function that removes the observer again.
        """
        with self._condition:
            token = self._next_token
            self._next_token += 1
            self._observers[token] = _Observer(kind=kind, callback=callback, where=dict(where or {}))

        def unsubscribe() -> None:
            with self._condition:
                self._observers.pop(token, None)

        return unsubscribe

    def publish(self, kind: str, action: str, record: Any) -> ChangeEvent:
        with self._condition:
            self._version += 1
            event = ChangeEvent(version=self._version, kind=kind, action=action, record=record)
            observers = list(self._observers.values())
            self._condition.notify_all()

        for observer in observers:
            if observer.kind != kind or not _matches(record, observer.where):
                continue
            try:
                observer.callback(event)
            except Exception:
                logger.exception("Change observer failed for %s %s", kind, action)
        return event

    def wait_for_change(self, since_version: int, timeout: float | None = None) -> int:
        """Block until the version moves past ``since_version`` or ``timeout`` expires.

        Returns the version current at wake-up.
        """
        with self._condition:
            self._condition.wait_for(lambda: self._version > since_version, timeout=timeout)
            return self._version
