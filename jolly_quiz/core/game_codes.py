"""Join-code generation and normalization."""

from __future__ import annotations

from collections.abc import Container
import secrets

from jolly_quiz.constants.game_constants import (
    GAME_CODE_ALPHABET,
    GAME_CODE_LENGTH,
    GAME_CODE_MAX_ATTEMPTS,
)


def normalize_game_code(code: str) -> str:
    return code.strip().upper()


def is_valid_game_code(code: str) -> bool:
    return len(code) == GAME_CODE_LENGTH and all(char in GAME_CODE_ALPHABET for char in code)


def generate_game_code(taken: Container[str] = ()) -> str:
    """Return a random code that is not in ``taken``."""
    for _ in range(GAME_CODE_MAX_ATTEMPTS):
        code = "".join(secrets.choice(GAME_CODE_ALPHABET) for _ in range(GAME_CODE_LENGTH))
        if code not in taken:
            return code
    raise RuntimeError("Unable to generate a unique game code.")
