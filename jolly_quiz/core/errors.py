"""Errors raised by the quiz session core.

``NotFoundError``, ``AlreadyFinishedError`` and ``InvalidStateError`` are
terminal for the call that raised them and carry a message suitable for
players. ``StoreUnavailableError`` marks a transient storage failure; every
core operation is read-only or idempotent, so callers may retry it.
"""

from __future__ import annotations


class QuizSessionError(Exception):
    """Base class for all session errors."""


class NotFoundError(QuizSessionError):
    """Raised when a join code or record id does not resolve."""


class AlreadyFinishedError(QuizSessionError):
    """Raised when a player tries to join a session that has ended."""


class InvalidStateError(QuizSessionError):
    """Raised when an operation is not allowed from the current state."""


class StoreUnavailableError(QuizSessionError):
    """Raised when the record store cannot serve a request right now."""
