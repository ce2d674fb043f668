"""Network configuration constants for the quiz service."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 8080
MAX_LONG_POLL_SECONDS: float = 25.0
