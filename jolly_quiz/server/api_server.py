"""FastAPI server exposing the player and admin endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
import secrets

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from pydantic import BaseModel, Field
import uvicorn

from jolly_quiz.config import Settings, get_settings
from jolly_quiz.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION
from jolly_quiz.constants.network_constants import MAX_LONG_POLL_SECONDS
from jolly_quiz.core.avatars import get_avatar
from jolly_quiz.core.errors import (
    AlreadyFinishedError,
    InvalidStateError,
    NotFoundError,
    QuizSessionError,
    StoreUnavailableError,
)
from jolly_quiz.core.models import (
    Answer,
    Player,
    PlayerScore,
    Question,
    QuestionDraft,
    QuestionType,
    Quiz,
)
from jolly_quiz.core.quiz_importer import QuizImportError
from jolly_quiz.core.quiz_manager import GameState, QuizManager
from jolly_quiz.core.services.scoreboard import LeaderboardRow

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: dict[type[QuizSessionError], int] = {
    NotFoundError: 404,
    AlreadyFinishedError: 409,
    InvalidStateError: 409,
    StoreUnavailableError: 503,
}


class JoinPayload(BaseModel):
    """Payload schema for joining a game."""

    name: str


class AnswerPayload(BaseModel):
    """Payload schema for submitted answers."""

    question_id: str
    answer_text: str


class QuizCreatePayload(BaseModel):
    title: str
    game_code: str | None = None


class QuizUpdatePayload(BaseModel):
    title: str


class QuestionPayload(BaseModel):
    """Payload schema for creating or replacing a question."""

    question_text: str
    question_type: QuestionType
    correct_answers: list[str] = Field(min_length=1)
    options: list[str] | None = None
    order_index: int | None = None
    image_url: str | None = None
    category: str | None = None

    def to_draft(self) -> QuestionDraft:
        return QuestionDraft(
            question_text=self.question_text,
            question_type=self.question_type,
            correct_answers=list(self.correct_answers),
            options=list(self.options) if self.options is not None else None,
            order_index=self.order_index,
            image_url=self.image_url,
            category=self.category,
        )


class OrderPayload(BaseModel):
    order_index: int = Field(ge=0)


class ImportPayload(BaseModel):
    text: str


def _iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _quiz_payload(quiz: Quiz) -> dict[str, object]:
    return {
        "id": quiz.id,
        "title": quiz.title,
        "game_code": quiz.game_code,
        "status": quiz.status.value,
        "current_question_index": quiz.current_question_index,
        "created_at": _iso(quiz.created_at),
    }


def _question_payload(question: Question, include_answers: bool) -> dict[str, object]:
    payload: dict[str, object] = {
        "id": question.id,
        "quiz_id": question.quiz_id,
        "question_text": question.question_text,
        "question_type": question.question_type.value,
        "options": question.options,
        "order_index": question.order_index,
        "image_url": question.image_url,
        "category": question.category,
    }
    # Players only see correctness through their stored answers.
    if include_answers:
        payload["correct_answers"] = list(question.correct_answers)
        payload["created_at"] = _iso(question.created_at)
    return payload


def _player_payload(player: Player) -> dict[str, object]:
    avatar = get_avatar(player.avatar_id)
    return {
        "id": player.id,
        "quiz_id": player.quiz_id,
        "name": player.name,
        "avatar_id": player.avatar_id,
        "avatar_emoji": avatar.emoji if avatar else None,
        "status": player.status.value,
        "current_question_index": player.current_question_index,
        "joined_at": _iso(player.joined_at),
    }


def _answer_payload(answer: Answer) -> dict[str, object]:
    return {
        "id": answer.id,
        "player_id": answer.player_id,
        "question_id": answer.question_id,
        "answer_text": answer.answer_text,
        "is_correct": answer.is_correct,
        "answered_at": _iso(answer.answered_at),
    }


def _score_payload(score: PlayerScore) -> dict[str, object]:
    return {
        "player": _player_payload(score.player),
        "correct": score.correct_answers,
        "total": score.total_questions,
    }


def _leaderboard_payload(row: LeaderboardRow) -> dict[str, object]:
    return {"rank": row.rank, **_score_payload(row.score)}


def _state_payload(state: GameState) -> dict[str, object]:
    return {
        "quiz": _quiz_payload(state.quiz),
        "players": [_player_payload(player) for player in state.players],
        "questions": [_question_payload(question, include_answers=False) for question in state.questions],
        "version": state.version,
    }


def _get_quiz_manager_dependency(quiz_manager: QuizManager):
    def dependency() -> QuizManager:
        return quiz_manager

    return dependency


def _admin_dependency(settings: Settings):
    security = HTTPBasic()

    def require_admin(credentials: HTTPBasicCredentials = Depends(security)) -> str:
        username_ok = secrets.compare_digest(
            credentials.username.encode("utf-8"), settings.admin_username.encode("utf-8")
        )
        password_ok = secrets.compare_digest(
            credentials.password.encode("utf-8"), settings.admin_password.encode("utf-8")
        )
        if not (username_ok and password_ok):
            logger.warning("Rejected admin credentials for %r", credentials.username)
            raise HTTPException(
                status_code=401,
                detail="Invalid admin credentials.",
                headers={"WWW-Authenticate": "Basic"},
            )
        return credentials.username

    return require_admin


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(QuizSessionError)
    async def handle_session_error(request: Request, exc: QuizSessionError) -> JSONResponse:
        status_code = next(
            (code for error_type, code in _STATUS_BY_ERROR.items() if isinstance(exc, error_type)),
            400,
        )
        if status_code >= 500:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    @app.exception_handler(QuizImportError)
    async def handle_import_error(request: Request, exc: QuizImportError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def handle_value_error(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})


def _create_player_router(manager_dep) -> APIRouter:
    router = APIRouter(prefix="/api")

    @router.post("/games/{game_code}/players", status_code=201)
    def join_game(
        game_code: str,
        payload: JoinPayload,
        manager: QuizManager = Depends(manager_dep),
    ) -> dict[str, object]:
        player = manager.session.join(game_code, payload.name)
        return _player_payload(player)

    @router.get("/games/{game_code}")
    def get_game_state(
        game_code: str,
        since: int | None = Query(default=None, ge=0),
        wait: float = Query(default=0.0, ge=0.0),
        manager: QuizManager = Depends(manager_dep),
    ) -> dict[str, object]:
        if since is None or wait <= 0:
            return _state_payload(manager.game_state(game_code))
        timeout = min(wait, MAX_LONG_POLL_SECONDS)
        return _state_payload(manager.wait_for_game_state(game_code, since, timeout))

    @router.post("/games/{game_code}/start")
    def start_game(game_code: str, manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        quiz = manager.session.get_quiz_by_code(game_code)
        return _quiz_payload(manager.session.start(quiz.id))

    @router.get("/games/{game_code}/leaderboard")
    def get_leaderboard(game_code: str, manager: QuizManager = Depends(manager_dep)) -> list[dict[str, object]]:
        quiz = manager.session.get_quiz_by_code(game_code)
        return [_leaderboard_payload(row) for row in manager.scoreboard.leaderboard(quiz.id)]

    @router.get("/players/{player_id}")
    def get_player(player_id: str, manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        player = manager.session.get_player(player_id)
        question = manager.session.current_question(player_id)
        return {
            "player": _player_payload(player),
            "current_question": (
                _question_payload(question, include_answers=False) if question is not None else None
            ),
            "answers": [_answer_payload(answer) for answer in manager.session.list_answers(player_id)],
        }

    @router.post("/players/{player_id}/answers", status_code=201)
    def submit_answer(
        player_id: str,
        payload: AnswerPayload,
        manager: QuizManager = Depends(manager_dep),
    ) -> dict[str, object]:
        answer = manager.session.submit_answer(player_id, payload.question_id, payload.answer_text)
        return _answer_payload(answer)

    @router.post("/players/{player_id}/advance")
    def advance_player(player_id: str, manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        result = manager.session.advance_player(player_id)
        return {"finished": result.finished, "quiz_finished": result.quiz_finished}

    @router.get("/players/{player_id}/score")
    def get_score(player_id: str, manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        score = manager.session.compute_score(player_id)
        return {"correct": score.correct_answers, "total": score.total_questions}

    return router


def _create_admin_router(manager_dep, admin_dep) -> APIRouter:
    router = APIRouter(prefix="/api/admin", dependencies=[Depends(admin_dep)])

    @router.get("/quizzes")
    def list_quizzes(manager: QuizManager = Depends(manager_dep)) -> list[dict[str, object]]:
        return [_quiz_payload(quiz) for quiz in manager.repository.list_quizzes()]

    @router.post("/quizzes", status_code=201)
    def create_quiz(payload: QuizCreatePayload, manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        return _quiz_payload(manager.repository.create_quiz(payload.title, payload.game_code))

    @router.get("/quizzes/{quiz_id}")
    def get_quiz(quiz_id: str, manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        return _quiz_payload(manager.repository.get_quiz(quiz_id))

    @router.put("/quizzes/{quiz_id}")
    def update_quiz(
        quiz_id: str,
        payload: QuizUpdatePayload,
        manager: QuizManager = Depends(manager_dep),
    ) -> dict[str, object]:
        return _quiz_payload(manager.repository.update_quiz(quiz_id, payload.title))

    @router.delete("/quizzes/{quiz_id}", status_code=204)
    def delete_quiz(quiz_id: str, manager: QuizManager = Depends(manager_dep)) -> Response:
        manager.repository.delete_quiz(quiz_id)
        return Response(status_code=204)

    @router.post("/quizzes/{quiz_id}/reset")
    def reset_quiz(quiz_id: str, manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        return _quiz_payload(manager.repository.reset_quiz(quiz_id))

    @router.get("/quizzes/{quiz_id}/questions")
    def list_questions(quiz_id: str, manager: QuizManager = Depends(manager_dep)) -> list[dict[str, object]]:
        manager.repository.get_quiz(quiz_id)
        return [
            _question_payload(question, include_answers=True)
            for question in manager.repository.list_questions(quiz_id)
        ]

    @router.post("/quizzes/{quiz_id}/questions", status_code=201)
    def create_question(
        quiz_id: str,
        payload: QuestionPayload,
        manager: QuizManager = Depends(manager_dep),
    ) -> dict[str, object]:
        question = manager.repository.add_question(quiz_id, payload.to_draft())
        return _question_payload(question, include_answers=True)

    @router.get("/quizzes/{quiz_id}/export", response_class=PlainTextResponse)
    def export_quiz(quiz_id: str, manager: QuizManager = Depends(manager_dep)) -> str:
        return manager.export_questions(quiz_id)

    @router.post("/quizzes/{quiz_id}/import", status_code=201)
    def import_quiz(
        quiz_id: str,
        payload: ImportPayload,
        manager: QuizManager = Depends(manager_dep),
    ) -> list[dict[str, object]]:
        questions = manager.import_questions(quiz_id, payload.text)
        return [_question_payload(question, include_answers=True) for question in questions]

    @router.put("/questions/{question_id}")
    def update_question(
        question_id: str,
        payload: QuestionPayload,
        manager: QuizManager = Depends(manager_dep),
    ) -> dict[str, object]:
        question = manager.repository.update_question(question_id, payload.to_draft())
        return _question_payload(question, include_answers=True)

    @router.delete("/questions/{question_id}", status_code=204)
    def delete_question(question_id: str, manager: QuizManager = Depends(manager_dep)) -> Response:
        manager.repository.delete_question(question_id)
        return Response(status_code=204)

    @router.put("/questions/{question_id}/order")
    def update_question_order(
        question_id: str,
        payload: OrderPayload,
        manager: QuizManager = Depends(manager_dep),
    ) -> dict[str, object]:
        question = manager.repository.set_question_order(question_id, payload.order_index)
        return _question_payload(question, include_answers=True)

    return router


def create_api_app(quiz_manager: QuizManager, settings: Settings | None = None) -> FastAPI:
    """Create a FastAPI application wired to the provided quiz manager."""
    settings = settings or get_settings()
    app = FastAPI(
        title=f"{APP_NAME} API",
        version=APP_VERSION,
        description=APP_ABOUT_TEXT,
        license_info={"name": APP_LICENSE},
    )
    quiz_manager_dep = _get_quiz_manager_dependency(quiz_manager)

    _register_error_handlers(app)
    app.include_router(_create_player_router(quiz_manager_dep))
    app.include_router(_create_admin_router(quiz_manager_dep, _admin_dependency(settings)))
    return app


def run_api_server(quiz_manager: QuizManager, settings: Settings | None = None) -> None:
    """Serve the API with uvicorn until the process is stopped."""
    settings = settings or get_settings()
    app = create_api_app(quiz_manager, settings)
    config = uvicorn.Config(
        app=app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
    server = uvicorn.Server(config)
    server.run()
