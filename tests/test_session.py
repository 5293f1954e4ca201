"""Тесты движка тренировки целиком."""
import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from practice_bot.engine.errors import SessionUnavailable, SubmissionFailed
from practice_bot.engine.interrupt_guard import BACK_BLOCKED_WARNING, InterruptGuard
from practice_bot.engine.models import EngineState, SessionPhase
from practice_bot.engine.session import PracticeSession
from practice_bot.quiz_api.client import QuizClient
from practice_bot.quiz_api.exceptions import NetworkError, SessionCompletedError
from practice_bot.quiz_api.models import PracticeSessionData, SessionMode


def _run_out(session):
    """Прокрутить таймер текущего вопроса до нуля."""
    for _ in range(session.time_limit):
        session.timer.tick()


# ============================================================================
# ЗАГРУЗКА
# ============================================================================


class TestLoad:
    """Загрузка вопросов и настроек."""

    async def test_load_starts_first_question(self, make_session):
        """После загрузки показан первый вопрос с полным таймером."""
        session = await make_session(time_limit=45)

        assert session.state == EngineState.ACTIVE
        assert session.phase == SessionPhase.AWAITING_ANSWER
        assert session.position == 0
        assert session.current_question.question_id == "q1"
        assert session.cursor.timer_seconds_remaining == 45
        assert session.timer.is_running
        assert session.guard.armed

    async def test_load_failure(self, make_client):
        """Сервис недоступен: SessionUnavailable, сессия остаётся в загрузке."""
        client = make_client()
        client.get_session = AsyncMock(side_effect=NetworkError("down"))
        session = PracticeSession("s1", client, tick_interval=3600)

        with pytest.raises(SessionUnavailable):
            await session.load()

        assert session.state == EngineState.LOADING
        assert not session.guard.armed
        assert session.current_question is None

    async def test_load_no_questions(self, make_client):
        """Пустой список вопросов: тоже SessionUnavailable."""
        client = make_client()
        client.get_session = AsyncMock(return_value=PracticeSessionData("s1", []))
        session = PracticeSession("s1", client, tick_interval=3600)

        with pytest.raises(SessionUnavailable):
            await session.load()
        assert session.state == EngineState.LOADING

    async def test_guard_blocks_back_while_active(self, make_session):
        """Во время тренировки назад нельзя, после завершения: можно."""
        session = await make_session()
        assert session.intercept_back() is True
        assert session.confirm_leave() is True

        session.exit()

        assert session.intercept_back() is False
        assert session.confirm_leave() is False

    async def test_guard_warning_reaches_observer(self, make_session):
        """Предупреждение охранника уходит в on_warning сессии."""
        on_warning = MagicMock()
        session = await make_session(on_warning=on_warning)

        session.intercept_back()

        on_warning.assert_called_once_with(BACK_BLOCKED_WARNING)
        assert session.guard.last_warning == BACK_BLOCKED_WARNING


# ============================================================================
# РЕЖИМЫ
# ============================================================================


class TestPacedMode:
    """Режим с разбором после каждого ответа."""

    async def test_answer_shows_explanation(self, make_session):
        """Ответ → разбор, таймер стоит, время сохранено."""
        session = await make_session()

        outcome = await session.answer("B", time_taken=20)

        assert outcome.time_remaining_seconds == 40
        assert session.phase == SessionPhase.SHOWING_EXPLANATION
        assert session.cursor.is_explanation_visible
        assert session.cursor.timer_seconds_remaining == 40
        assert not session.timer.is_running
        assert session.position == 0

    async def test_next_starts_fresh_timer(self, make_session):
        """«Дальше» открывает следующий вопрос с полным лимитом."""
        session = await make_session()
        await session.answer("B", time_taken=20)

        assert session.next_question() is True

        assert session.position == 1
        assert session.phase == SessionPhase.AWAITING_ANSWER
        assert not session.cursor.is_explanation_visible
        assert session.cursor.timer_seconds_remaining == 60
        assert session.timer.is_running

    async def test_next_requires_answer(self, make_session):
        """Без ответа «Дальше» не работает."""
        session = await make_session()

        assert session.next_question() is False
        assert session.position == 0

    async def test_default_time_taken_from_timer(self, make_session):
        """Без явного времени берётся прошедшее по таймеру."""
        session = await make_session()
        for _ in range(7):
            session.timer.tick()

        outcome = await session.answer("A")

        assert outcome.time_taken_seconds == 7
        assert outcome.time_remaining_seconds == 53

    async def test_last_question_completes_once(self, make_session):
        """После разбора последнего вопроса: результаты, ровно один раз."""
        on_complete = MagicMock()
        session = await make_session(on_complete=on_complete)

        for _ in range(2):
            await session.answer("B", time_taken=5)
            session.next_question()
        await session.answer("B", time_taken=5)
        assert session.is_active

        session.next_question()
        session.next_question()
        session.exit()

        assert session.is_completed
        on_complete.assert_called_once_with("s1")


class TestContinuousMode:
    """Режим без остановок."""

    async def test_auto_advance(self, make_session):
        """После ответа через паузу открывается следующий вопрос, без разбора."""
        session = await make_session(mode=SessionMode.CONTINUOUS)

        await session.answer("A", time_taken=10)
        assert session.phase == SessionPhase.SUBMITTING
        assert not session.cursor.is_explanation_visible

        await session.join()

        assert session.position == 1
        assert session.phase == SessionPhase.AWAITING_ANSWER
        assert not session.cursor.is_explanation_visible
        assert session.cursor.timer_seconds_remaining == 60
        assert session.timer.is_running

    async def test_last_answer_completes(self, make_session):
        """Ответ на последний вопрос сразу завершает тренировку."""
        on_complete = MagicMock()
        session = await make_session(mode=SessionMode.CONTINUOUS, on_complete=on_complete)

        for _ in range(3):
            await session.answer("A", time_taken=1)
            await session.join()

        assert session.is_completed
        assert len(session.store) == 3
        on_complete.assert_called_once_with("s1")

    async def test_rewind_blocked_during_delay(self, make_session):
        """Пока идёт пауза, отправка занята: назад не уходим."""
        session = await make_session(mode=SessionMode.CONTINUOUS, auto_advance_delay=3600)
        await session.answer("A", time_taken=1)

        assert session.rewind() is False
        assert session.position == 0

        session.close()
        await session.join()


# ============================================================================
# ТАЙМЕР
# ============================================================================


class TestTimeout:
    """Истечение времени."""

    async def test_timeout_submits_empty_answer(self, make_session):
        """На нуле отправляется пустой ответ с полным временем."""
        session = await make_session()
        _run_out(session)
        assert session.phase == SessionPhase.SUBMITTING

        await session.join()

        outcome = session.outcome(0)
        assert outcome.is_timeout
        assert outcome.is_skipped
        assert outcome.time_taken_seconds == 60
        assert outcome.time_remaining_seconds == 0
        session.client.submit_answer.assert_awaited_once_with("s1", "q1", "", 60)
        assert session.phase == SessionPhase.SHOWING_EXPLANATION

    async def test_answer_during_timeout_submission_dropped(self, make_session):
        """Клик в момент истечения не даёт второй отправки."""
        session = await make_session()
        _run_out(session)

        assert await session.answer("A") is None
        await session.join()

        assert session.client.submit_answer.await_count == 1
        assert session.outcome(0).is_timeout

    async def test_double_click(self, make_session, make_client, blocking_submit):
        """Двойной клик: один запрос, записан первый ответ."""
        client = make_client()
        client.submit_answer = AsyncMock(side_effect=blocking_submit)
        session = await make_session(client=client)

        first = asyncio.create_task(session.answer("A", time_taken=3))
        await asyncio.sleep(0)
        assert await session.answer("C", time_taken=4) is None

        blocking_submit.release.set()
        outcome = await first

        assert outcome.selected_answer == "A"
        assert len(blocking_submit.calls) == 1

    async def test_no_ticks_after_answer(self, make_session):
        """После ответа тики не идут и время не меняется."""
        session = await make_session()
        await session.answer("A", time_taken=10)

        session.timer.tick()

        assert session.cursor.timer_seconds_remaining == 50


# ============================================================================
# НАВИГАЦИЯ
# ============================================================================


class TestRewind:
    """Возврат к отвеченным вопросам."""

    async def test_rewind_restores_saved_time(self, make_session):
        """Назад к отвеченному: сохранённое время, разбор, без отсчёта."""
        session = await make_session()
        await session.answer("B", time_taken=20)
        session.next_question()

        assert session.rewind() is True

        assert session.position == 0
        assert session.cursor.timer_seconds_remaining == 40
        assert session.cursor.is_explanation_visible
        assert not session.timer.is_running
        assert session.phase == SessionPhase.SHOWING_EXPLANATION

    async def test_forward_after_rewind_restores(self, make_session):
        """Вперёд к отвеченному после возврата: снова восстановление."""
        session = await make_session()
        await session.answer("B", time_taken=20)
        session.next_question()
        await session.answer("C", time_taken=35)
        recorded = session.outcome(1)
        session.rewind()

        session.next_question()

        assert session.position == 1
        assert session.outcome(1) is recorded
        assert session.outcome(1).selected_answer == "C"
        assert session.cursor.timer_seconds_remaining == 25
        assert not session.timer.is_running
        assert session.client.submit_answer.await_count == 2

    async def test_rewind_to_answered_cannot_answer_again(self, make_session):
        """Отвеченный вопрос нельзя переответить."""
        session = await make_session()
        await session.answer("B", time_taken=20)
        session.next_question()
        session.rewind()

        assert await session.answer("A") is None
        assert session.outcome(0).selected_answer == "B"


# ============================================================================
# ОШИБКИ И ЗАВЕРШЕНИЕ
# ============================================================================


class TestFailures:
    """Сбой отправки и повтор."""

    async def test_failed_answer_can_be_retried(self, make_session, make_client, correct_result):
        """Сбой сети: ответ не записан, повтор отправляет то же самое."""
        client = make_client()
        client.submit_answer = AsyncMock(side_effect=[NetworkError("down"), correct_result])
        session = await make_session(client=client)

        with pytest.raises(SubmissionFailed):
            await session.answer("D", time_taken=10)

        assert session.last_failure.selected_answer == "D"
        assert session.phase == SessionPhase.AWAITING_ANSWER
        assert session.outcome(0) is None

        outcome = await session.retry()

        assert outcome.selected_answer == "D"
        assert session.last_failure is None
        assert client.submit_answer.await_args_list[1].args == ("s1", "q1", "D", 10)

    async def test_failed_timeout_retry(self, make_session, make_client, correct_result):
        """Неудачная отправка по таймауту ждёт повтора, таймер стоит."""
        client = make_client()
        client.submit_answer = AsyncMock(side_effect=[NetworkError("down"), correct_result])
        session = await make_session(client=client)

        _run_out(session)
        await session.join()

        assert session.last_failure.is_timeout
        assert session.phase == SessionPhase.AWAITING_ANSWER
        assert not session.timer.is_running

        outcome = await session.retry()
        assert outcome.is_timeout
        assert outcome.time_taken_seconds == 60

    async def test_already_completed_routes_to_results(self, make_session, make_client):
        """Сервис говорит «уже завершена»: сразу к результатам."""
        on_complete = MagicMock()
        client = make_client()
        client.submit_answer = AsyncMock(side_effect=SessionCompletedError("already completed"))
        session = await make_session(client=client, on_complete=on_complete)

        assert await session.answer("A") is None

        assert session.is_completed
        on_complete.assert_called_once_with("s1")

    async def test_malformed_verdict_can_be_retried(self, make_session, make_client):
        """Ответ сервиса неожиданной формы: вопрос не зависает, повтор доступен."""
        api = QuizClient(base_url="http://quiz.test", max_retries=0, retry_backoff=0)
        responses = [
            (200, {"isCorrect": True, "explanation": ["x"]}),
            (200, {"isCorrect": True, "correctAnswer": "A", "explanation": {"text": "ok"}}),
        ]
        client = make_client()
        session = await make_session(client=client)
        client.submit_answer = api.submit_answer

        with patch.object(api, "_request", new=AsyncMock(side_effect=responses)):
            with pytest.raises(SubmissionFailed):
                await session.answer("A", time_taken=5)

            assert session.phase == SessionPhase.AWAITING_ANSWER
            assert session.last_failure is not None

            outcome = await session.retry()

        assert outcome.is_correct
        assert session.phase == SessionPhase.SHOWING_EXPLANATION

    async def test_unexpected_error_resets_phase(self, make_session, make_client, correct_result):
        """Непредвиденная ошибка пробрасывается, но вопрос снова принимает ответ."""
        client = make_client()
        client.submit_answer = AsyncMock(side_effect=[RuntimeError("boom"), correct_result])
        session = await make_session(client=client)

        with pytest.raises(RuntimeError):
            await session.answer("A", time_taken=5)

        assert session.phase == SessionPhase.AWAITING_ANSWER
        assert await session.skip() is not None

    async def test_unexpected_error_on_timeout(self, make_session, make_client):
        """Сбой отправки по таймауту не оставляет вопрос в отправке."""
        client = make_client()
        client.submit_answer = AsyncMock(side_effect=RuntimeError("boom"))
        session = await make_session(client=client)

        _run_out(session)
        await session.join()

        assert session.phase == SessionPhase.AWAITING_ANSWER
        assert session.outcome(0) is None
        assert session.is_active


class TestCompletion:
    """Выход и неизменность после завершения."""

    async def test_skip_is_answered(self, make_session):
        """Пропуск записывается пустым ответом; остальные вопросы не тронуты."""
        session = await make_session()

        outcome = await session.skip()

        assert outcome.is_skipped
        assert not outcome.is_timeout
        assert session.outcome(0) is outcome
        assert session.outcome(1) is None

    async def test_exit_routes_once(self, make_session):
        """Выход посреди тренировки: результаты один раз, охранник снят."""
        on_complete = MagicMock()
        guard = InterruptGuard()
        session = await make_session(on_complete=on_complete, guard=guard)
        await session.answer("A", time_taken=3)

        session.exit()
        session.exit()

        assert session.is_completed
        assert guard.released
        on_complete.assert_called_once_with("s1")

    async def test_completed_is_immutable(self, make_session):
        """После завершения ответы и переходы ничего не меняют."""
        session = await make_session()
        session.exit()
        calls = session.client.submit_answer.await_count

        assert await session.answer("A") is None
        assert await session.skip() is None
        assert session.next_question() is False
        assert session.rewind() is False
        session.timer.tick()

        assert session.client.submit_answer.await_count == calls
        assert len(session.store) == 0
        assert session.timer.is_closed

    async def test_close_is_idempotent(self, make_session):
        """close() можно вызывать повторно, поздние тики безопасны."""
        on_complete = MagicMock()
        session = await make_session(on_complete=on_complete)

        session.close()
        session.close()
        session.timer.tick()

        assert not session.is_active
        on_complete.assert_not_called()
