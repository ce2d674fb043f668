"""Runtime settings, read from the environment on top of the static constants."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from jolly_quiz.constants.game_constants import DEFAULT_ADMIN_PASSWORD, DEFAULT_ADMIN_USERNAME
from jolly_quiz.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT


class Settings(BaseSettings):
    """Process-wide settings. Every field can be set as ``JOLLY_QUIZ_<NAME>``."""

    model_config = SettingsConfigDict(
        env_prefix="JOLLY_QUIZ_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = "INFO"

    admin_username: str = DEFAULT_ADMIN_USERNAME
    admin_password: str = DEFAULT_ADMIN_PASSWORD


@lru_cache
def get_settings() -> Settings:
    return Settings()
