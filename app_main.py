"""Application entry point for the Jolly Quiz server."""

from __future__ import annotations

from jolly_quiz.config import get_settings
from jolly_quiz.core.quiz_manager import QuizManager
from jolly_quiz.server.api_server import run_api_server
from jolly_quiz.utils.logging_config import configure_logging


def main() -> None:
    """Initialize logging and serve the API until interrupted."""
    settings = get_settings()
    logger = configure_logging(settings.log_level.upper())
    logger.info("Starting Jolly Quiz on %s:%d", settings.host, settings.port)

    quiz_manager = QuizManager()
    run_api_server(quiz_manager=quiz_manager, settings=settings)


if __name__ == "__main__":
    main()
