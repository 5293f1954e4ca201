"""Общие фикстуры для тестов тренировочного бота."""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from practice_bot.engine.session import PracticeSession
from practice_bot.quiz_api.client import QuizClient
from practice_bot.quiz_api.models import (
    AnswerResult, Explanation, PracticeSessionData, Question, SessionMode,
)


@pytest.fixture
def sample_questions():
    """Три вопроса с вариантами A–D."""
    return [
        Question(
            question_id=f"q{i}",
            question_text=f"Вопрос номер {i}",
            options={"A": "Первый", "B": "Второй", "C": "Третий", "D": "Четвёртый"},
            difficulty="medium",
        )
        for i in range(1, 4)
    ]


@pytest.fixture
def correct_result():
    """Ответ сервиса: верно, с пояснением."""
    return AnswerResult(
        is_correct=True,
        correct_answer="B",
        explanation=Explanation(text="Потому что B."),
        points=10,
    )


@pytest.fixture
def wrong_result():
    """Ответ сервиса: неверно, правильный ответ B."""
    return AnswerResult(
        is_correct=False,
        correct_answer="B",
        explanation=Explanation(text="Правильный ответ B."),
    )


@pytest.fixture
def make_client(sample_questions, correct_result):
    """Фабрика мок-клиента API с заданными режимом и лимитом."""

    def _make(mode=SessionMode.PACED, time_limit=60, questions=None):
        client = MagicMock(spec=QuizClient)
        client.get_session = AsyncMock(return_value=PracticeSessionData(
            session_id="s1",
            questions=sample_questions if questions is None else questions,
            time_limit_seconds=time_limit,
            mode=mode,
        ))
        client.submit_answer = AsyncMock(return_value=correct_result)
        client.complete_session = AsyncMock()
        return client

    return _make


@pytest.fixture
def blocking_submit(correct_result):
    """submit_answer, который ждёт release.set(): для гонок двойной отправки."""
    release = asyncio.Event()
    calls = []

    async def _submit(session_id, question_id, selected_answer, time_taken_seconds):
        calls.append((question_id, selected_answer, time_taken_seconds))
        await release.wait()
        return correct_result

    _submit.release = release
    _submit.calls = calls
    return _submit


@pytest.fixture
async def make_session(make_client):
    """
    Фабрика загруженной тренировки.

    Таймер тикает раз в час, так что тесты двигают его вручную через
    session.timer.tick(); автопереход срабатывает без паузы.
    """
    created = []

    async def _make(mode=SessionMode.PACED, time_limit=60, questions=None, client=None, **kwargs):
        client = client or make_client(mode=mode, time_limit=time_limit, questions=questions)
        kwargs.setdefault("tick_interval", 3600)
        kwargs.setdefault("auto_advance_delay", 0)
        session = PracticeSession("s1", client, **kwargs)
        created.append(session)
        await session.load()
        return session

    yield _make

    for session in created:
        session.close()
