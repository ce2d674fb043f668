"""HTTP client for the admin endpoints."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from jolly_quiz.client.auth_context import AdminAuthContext

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = httpx.Timeout(10.0)


class ApiError(Exception):
    """Raised when the server rejects an admin request."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(ApiError):
    """Raised when the server answers 401; the stored credentials are cleared."""


class AdminApiClient:
    """Wraps the admin API; authentication comes from the injected context."""

    def __init__(self, http_client: httpx.Client, auth: AdminAuthContext) -> None:
        self._http = http_client
        self._auth = auth

    @classmethod
    def connect(cls, base_url: str, auth: AdminAuthContext | None = None) -> "AdminApiClient":
        return cls(httpx.Client(base_url=base_url, timeout=DEFAULT_TIMEOUT), auth or AdminAuthContext())

    # --- Session ---

    def login(self, username: str, password: str) -> bool:
        """Store the credentials and keep them only if the server accepts them."""
        self._auth.set_credentials(username, password)
        try:
            self.list_quizzes()
        except ApiError as exc:
            logger.info("Admin login failed: %s", exc)
            self._auth.clear()
            return False
        return True

    def logout(self) -> None:
        self._auth.clear()

    def is_authenticated(self) -> bool:
        return self._auth.has_credentials()

    # --- Quizzes ---

    def list_quizzes(self) -> list[dict[str, Any]]:
        return self._request("GET", "/api/admin/quizzes")

    def get_quiz(self, quiz_id: str) -> dict[str, Any]:
        return self._request("GET", f"/api/admin/quizzes/{quiz_id}")

    def create_quiz(self, title: str, game_code: str | None = None) -> dict[str, Any]:
        return self._request("POST", "/api/admin/quizzes", json={"title": title, "game_code": game_code})

    def update_quiz(self, quiz_id: str, title: str) -> dict[str, Any]:
        return self._request("PUT", f"/api/admin/quizzes/{quiz_id}", json={"title": title})

    def delete_quiz(self, quiz_id: str) -> None:
        self._request("DELETE", f"/api/admin/quizzes/{quiz_id}")

    def reset_quiz(self, quiz_id: str) -> dict[str, Any]:
        return self._request("POST", f"/api/admin/quizzes/{quiz_id}/reset")

    # --- Questions ---

    def list_questions(self, quiz_id: str) -> list[dict[str, Any]]:
        return self._request("GET", f"/api/admin/quizzes/{quiz_id}/questions")

    def create_question(self, quiz_id: str, question: dict[str, Any]) -> dict[str, Any]:
        return self._request("POST", f"/api/admin/quizzes/{quiz_id}/questions", json=question)

    def update_question(self, question_id: str, question: dict[str, Any]) -> dict[str, Any]:
        return self._request("PUT", f"/api/admin/questions/{question_id}", json=question)

    def delete_question(self, question_id: str) -> None:
        self._request("DELETE", f"/api/admin/questions/{question_id}")

    def update_question_order(self, question_id: str, order_index: int) -> dict[str, Any]:
        return self._request(
            "PUT", f"/api/admin/questions/{question_id}/order", json={"order_index": order_index}
        )

    def import_questions(self, quiz_id: str, text: str) -> list[dict[str, Any]]:
        return self._request("POST", f"/api/admin/quizzes/{quiz_id}/import", json={"text": text})

    def export_questions(self, quiz_id: str) -> str:
        return self._request("GET", f"/api/admin/quizzes/{quiz_id}/export")

    def _request(self, method: str, path: str, json: Any = None) -> Any:
        if not self._auth.has_credentials():
            raise AuthenticationError(401, "Not authenticated")

        response = self._http.request(method, path, json=json, headers=self._auth.authorization_header())

        if response.status_code == 401:
            self._auth.clear()
            raise AuthenticationError(401, "Unauthorized")
        if response.is_error:
            raise ApiError(response.status_code, _error_message(response))
        if response.status_code == 204:
            return None
        if response.headers.get("content-type", "").startswith("text/plain"):
            return response.text
        return response.json()


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return "Request failed"
    if isinstance(body, dict) and isinstance(body.get("detail"), str):
        return body["detail"]
    return "Request failed"
