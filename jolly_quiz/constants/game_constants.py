"""Game-related constants shared across the core and server layers."""

import string

GAME_CODE_LENGTH: int = 6
GAME_CODE_ALPHABET: str = string.ascii_uppercase + string.digits
GAME_CODE_MAX_ATTEMPTS: int = 50

MAX_DISPLAY_NAME_LENGTH: int = 32
MIN_MULTIPLE_CHOICE_OPTIONS: int = 2

# Bounded retries for the last-player-finishes check.
COMPLETION_RECONCILE_ATTEMPTS: int = 3
COMPLETION_RECONCILE_DELAY_SECONDS: float = 0.05

DEFAULT_ADMIN_USERNAME: str = "admin"
DEFAULT_ADMIN_PASSWORD: str = "admin"
