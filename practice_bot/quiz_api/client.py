"""Async client for the quiz practice API."""
import asyncio
import logging
from typing import Any, Dict, Optional, Tuple

import aiohttp

from practice_bot.config import settings
from .exceptions import (
    InvalidResponseError, NetworkError, NoQuestionsError,
    QuizAPIError, SessionCompletedError, SessionNotFoundError,
)
from .models import (
    AnswerResult, CompletionSummary, PracticeSessionData, SessionMode,
    answer_result_from_payload, normalize_mode, normalize_time_limit,
    session_from_payload, summary_from_payload,
)

logger = logging.getLogger(__name__)


class QuizClient:
    """Async client for the quiz practice API via aiohttp."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[int] = None,
        max_retries: Optional[int] = None,
        retry_backoff: Optional[float] = None,
    ):
        """
        Args:
            base_url: API root, e.g. https://example.org/api/quiz
            token: Bearer token sent with every request
            timeout: Per-request timeout in seconds
            max_retries: Extra attempts for an answer submission after NetworkError
            retry_backoff: First retry delay in seconds, doubled per attempt
        """
        self.base_url = (base_url or settings.QUIZ_API_BASE_URL).rstrip("/")
        self.token = token if token is not None else settings.QUIZ_API_TOKEN
        self.timeout = timeout or settings.QUIZ_API_TIMEOUT
        self.max_retries = settings.SUBMIT_MAX_RETRIES if max_retries is None else max_retries
        self.retry_backoff = settings.SUBMIT_RETRY_BACKOFF if retry_backoff is None else retry_backoff
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            headers = {"Accept": "application/json"}
            if self.token:
                headers["Authorization"] = f"Bearer {self.token}"
            self._session = aiohttp.ClientSession(
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self._session

    async def _request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Tuple[int, Dict[str, Any]]:
        """Send a request and return (status, decoded JSON body)."""
        url = f"{self.base_url}{path}"
        try:
            async with self._get_session().request(method, url, json=payload) as resp:
                try:
                    data = await resp.json(content_type=None)
                except ValueError:
                    data = None
                status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise NetworkError(f"Сервис недоступен: {e}")

        if status >= 500:
            raise NetworkError(f"Ошибка сервера {status}: {_error_text(data)}")
        if data is None or not isinstance(data, dict):
            raise InvalidResponseError(f"Некорректный ответ {status} на {method} {path}")
        return status, data

    async def start_session(
        self,
        question_count: int = 10,
        time_limit: int = 60,
        mode: SessionMode = SessionMode.PACED,
        category: Optional[str] = None,
        difficulty: Optional[str] = None,
    ) -> str:
        """
        Создать новую тренировочную сессию.

        Returns:
            Идентификатор созданной сессии
        """
        body = {
            "question_count": question_count,
            "time_limit": normalize_time_limit(time_limit),
            "mode": normalize_mode(mode).value,
            "category": category,
            "difficulty": difficulty,
        }
        status, data = await self._request("POST", "/practice/start", body)

        if status == 404:
            raise NoQuestionsError(_error_text(data) or "No questions found")
        if status >= 400:
            raise QuizAPIError(_error_text(data))

        session = data.get("session") or {}
        if not session.get("id"):
            raise InvalidResponseError("Ответ без идентификатора сессии")

        logger.info("Practice session %s created (%d questions)",
                    session["id"], len(data.get("questions") or []))
        return str(session["id"])

    async def get_session(self, session_id: str) -> PracticeSessionData:
        """
        Получить вопросы и настройки сессии.

        Raises:
            SessionNotFoundError: сессии нет
            NoQuestionsError: в сессии нет вопросов
        """
        status, data = await self._request("GET", f"/practice/{session_id}")

        if status == 404 and not _has_empty_questions(data):
            raise SessionNotFoundError(_error_text(data) or "Practice session not found")
        if status >= 400 and not _has_empty_questions(data):
            raise QuizAPIError(_error_text(data))

        session = session_from_payload(session_id, data)
        if not session.questions:
            raise NoQuestionsError(data.get("message") or "No questions found for this session")
        return session

    async def submit_answer(
        self,
        session_id: str,
        question_id: str,
        selected_answer: str,
        time_taken_seconds: int,
    ) -> AnswerResult:
        """
        Отправить ответ на вопрос.

        Пустой selected_answer означает пропуск или истечение времени.
        NetworkError повторяется max_retries раз с экспоненциальной паузой.

        Raises:
            SessionCompletedError: сессия уже завершена
            NetworkError: сервис недоступен после всех попыток
        """
        body = {
            "question_id": question_id,
            "selected_answer": selected_answer,
            "time_taken_seconds": time_taken_seconds,
        }
        delay = self.retry_backoff
        attempt = 0
        while True:
            try:
                status, data = await self._request(
                    "POST", f"/practice/{session_id}/answer", body
                )
                break
            except NetworkError:
                if attempt >= self.max_retries:
                    raise
                attempt += 1
                logger.info("Retrying answer for question %s (attempt %d) in %.1fs",
                            question_id, attempt + 1, delay)
                await asyncio.sleep(delay)
                delay *= 2

        if status == 400 and "already completed" in _error_text(data).lower():
            raise SessionCompletedError(_error_text(data))
        if status == 404:
            raise SessionNotFoundError(_error_text(data))
        if status >= 400:
            raise QuizAPIError(_error_text(data))

        return answer_result_from_payload(data)

    async def complete_session(self, session_id: str) -> CompletionSummary:
        """Завершить сессию и получить итоговую сводку."""
        status, data = await self._request("POST", f"/practice/{session_id}/complete")

        if status == 404:
            raise SessionNotFoundError(_error_text(data))
        if status >= 400:
            raise QuizAPIError(_error_text(data))

        return summary_from_payload(data)

    async def close(self):
        """Close the underlying HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None


def _error_text(data: Optional[Dict[str, Any]]) -> str:
    if not data:
        return ""
    return str(data.get("error") or data.get("details") or data.get("message") or "")


def _has_empty_questions(data: Dict[str, Any]) -> bool:
    """The 'session exists but has no questions' response shape."""
    return isinstance(data.get("questions"), list) and not data["questions"]


# Global client instance (closed in run.py on shutdown)
_client: Optional[QuizClient] = None


def get_client() -> QuizClient:
    """Get or create the global quiz API client."""
    global _client
    if _client is None:
        _client = QuizClient()
    return _client


async def close_client():
    """Close the global quiz API client."""
    global _client
    if _client:
        await _client.close()
        _client = None
