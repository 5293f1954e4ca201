"""Тесты перемещения между вопросами."""
from unittest.mock import MagicMock

import pytest

from practice_bot.engine.answer_store import AnswerStore
from practice_bot.engine.models import AnswerOutcome, SessionCursor
from practice_bot.engine.navigation import NavigationController
from practice_bot.engine.timer import CountdownTimer
from practice_bot.quiz_api.models import Explanation, SessionMode


def _answered(position, remaining=40):
    return AnswerOutcome(
        position=position,
        question_id=f"q{position + 1}",
        selected_answer="A",
        is_correct=True,
        correct_answer="A",
        explanation=Explanation(text="..."),
        time_taken_seconds=60 - remaining,
        time_remaining_seconds=remaining,
    )


@pytest.fixture
def timer():
    return MagicMock(spec=CountdownTimer)


def _controller(timer, store=None, mode=SessionMode.PACED, total=3):
    cursor = SessionCursor()
    store = store or AnswerStore()
    return NavigationController(cursor, store, timer, total, 60, mode), cursor, store


class TestNavigationController:
    """Вход в вопрос, переход вперёд и назад."""

    def test_enter_unanswered_starts_full(self, timer):
        """Неотвеченный вопрос: новый отсчёт с полного лимита."""
        nav, cursor, _ = _controller(timer)
        nav.enter_current()

        timer.start.assert_called_once_with(60, 0)
        assert cursor.timer_seconds_remaining == 60
        assert cursor.is_explanation_visible is False

    def test_rewind_restores_without_timer(self, timer):
        """Назад к отвеченному: показ сохранённого времени, без отсчёта."""
        nav, cursor, store = _controller(timer)
        store.record(_answered(0, remaining=40))
        nav.advance()
        timer.reset_mock()

        assert nav.rewind() is True

        assert cursor.position == 0
        timer.start.assert_not_called()
        timer.show.assert_called_once_with(40)
        assert cursor.timer_seconds_remaining == 40
        assert cursor.is_explanation_visible is True

    def test_rewind_continuous_hides_explanation(self, timer):
        """В режиме без остановок разбор при возврате не показывается."""
        nav, cursor, store = _controller(timer, mode=SessionMode.CONTINUOUS)
        store.record(_answered(0))
        nav.advance()
        nav.rewind()

        assert cursor.is_explanation_visible is False

    def test_rewind_at_first(self, timer):
        """С первого вопроса назад некуда."""
        nav, cursor, _ = _controller(timer)

        assert nav.rewind() is False
        assert cursor.position == 0

    def test_advance_enters_once(self, timer):
        """Явный переход не вызывает повторного восстановления из подписки."""
        nav, cursor, _ = _controller(timer)

        assert nav.advance() is False

        assert cursor.position == 1
        timer.start.assert_called_once_with(60, 1)

    def test_forward_into_answered_restores(self, timer):
        """Вперёд к уже отвеченному: тоже восстановление, а не новый отсчёт."""
        store = AnswerStore()
        store.record(_answered(1, remaining=25))
        nav, cursor, _ = _controller(timer, store=store)

        nav.jump_to_next()

        timer.start.assert_not_called()
        timer.show.assert_called_once_with(25)
        assert cursor.timer_seconds_remaining == 25

    def test_advance_on_last_is_terminal(self, timer):
        """На последнем вопросе advance() сообщает о конце."""
        nav, cursor, _ = _controller(timer, total=1)

        assert nav.advance() is True
        assert cursor.position == 0

    def test_external_move_restores(self, timer):
        """Смена позиции в обход контроллера тоже восстанавливает вопрос."""
        nav, cursor, store = _controller(timer)
        store.record(_answered(2, remaining=7))

        cursor.move_to(2)

        timer.show.assert_called_once_with(7)
        assert cursor.timer_seconds_remaining == 7
