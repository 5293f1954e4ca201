"""Тесты истории тренировок в SQLite."""
import pytest

from practice_bot.config import settings
from practice_bot.db.database import close_db, get_db
from practice_bot.db.queries import ensure_user, get_user_history, save_practice_result
from practice_bot.quiz_api.models import CompletionSummary


@pytest.fixture
async def db(tmp_path, monkeypatch):
    """Отдельная база во временной папке."""
    monkeypatch.setattr(settings, "DATABASE_PATH", str(tmp_path / "data" / "test.db"))
    conn = await get_db()
    yield conn
    await close_db()


def _summary(correct, total=10):
    return CompletionSummary(
        total_questions=total,
        correct_answers=correct,
        incorrect_answers=total - correct,
        unanswered=0,
        accuracy=correct * 100.0 / total,
        total_score=correct * 10,
    )


class TestPracticeHistory:
    """Сохранение и чтение результатов."""

    async def test_save_and_read(self, db):
        await ensure_user(1, "user", "Имя")
        await save_practice_result(1, "s1", _summary(7), mode="paced", time_limit=60)

        history = await get_user_history(1)

        assert len(history) == 1
        assert history[0]["session_id"] == "s1"
        assert history[0]["correct_answers"] == 7
        assert history[0]["mode"] == "paced"
        assert history[0]["time_limit"] == 60

    async def test_same_session_saved_once(self, db):
        """Повторное сохранение той же сессии заменяет запись."""
        await save_practice_result(1, "s1", _summary(5))
        await save_practice_result(1, "s1", _summary(6))

        history = await get_user_history(1)

        assert len(history) == 1
        assert history[0]["correct_answers"] == 6

    async def test_history_per_user_and_limit(self, db):
        for i in range(5):
            await save_practice_result(1, f"s{i}", _summary(i + 1))
        await save_practice_result(2, "other", _summary(3))

        history = await get_user_history(1, limit=3)

        assert len(history) == 3
        assert all(row["session_id"] != "other" for row in history)
        assert history[0]["session_id"] == "s4"
