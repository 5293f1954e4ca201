"""Running practice session: renders the engine into one chat message."""
import asyncio
import logging
from typing import Dict, Optional, Set, Tuple

from aiogram import Router, F
from aiogram.exceptions import TelegramBadRequest
from aiogram.types import CallbackQuery, InlineKeyboardMarkup, Message
from aiogram.fsm.context import FSMContext

from practice_bot.config import settings
from practice_bot.engine.errors import SessionUnavailable, SubmissionFailed
from practice_bot.engine.interrupt_guard import InterruptGuard
from practice_bot.engine.models import SessionPhase
from practice_bot.engine.session import PracticeSession
from practice_bot.keyboards.main_menu import main_menu_keyboard
from practice_bot.keyboards.practice_kb import (
    answered_keyboard, exit_confirm_keyboard, question_keyboard,
    retry_keyboard, waiting_keyboard,
)
from practice_bot.middleware.interrupt import register_guard, unregister_guard
from practice_bot.quiz_api.client import get_client
from practice_bot.services.formatting import format_session_view
from practice_bot.states.practice_states import PracticeFlow

logger = logging.getLogger(__name__)

router = Router()

# Активные тренировки и их сообщения: одна на пользователя
_active_sessions: Dict[int, PracticeSession] = {}
_views: Dict[int, "SessionView"] = {}
# Ссылки на фоновые задачи, чтобы их не собрал GC
_background_tasks: Set[asyncio.Task] = set()


def _spawn(coro) -> asyncio.Task:
    task = asyncio.get_running_loop().create_task(coro)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


# ============================================================================
# ОТОБРАЖЕНИЕ
# ============================================================================

class SessionView:
    """The chat message that shows the session; edited in place."""

    def __init__(self, message: Message):
        self.message = message
        self.confirming_exit = False
        self.session: Optional[PracticeSession] = None
        # Предупреждение охранника, показывается до следующего изменения
        self.warning: Optional[str] = None
        self._lock = asyncio.Lock()

    def schedule(self, session: PracticeSession) -> None:
        self.warning = None
        _spawn(self.render(session))

    def warn(self, text: str) -> None:
        self.warning = text
        if self.session is not None:
            _spawn(self.render(self.session))

    def on_tick(self, session: PracticeSession) -> None:
        remaining = session.cursor.timer_seconds_remaining
        if remaining <= 5 or remaining % settings.TIMER_REFRESH_SECONDS == 0:
            self.schedule(session)

    async def render(self, session: PracticeSession) -> None:
        async with self._lock:
            text = format_session_view(session)
            if self.warning and session.is_active:
                text = f"{text}\n\n{self.warning}"
            markup = self.keyboard_for(session)
            try:
                await self.message.edit_text(text, parse_mode="HTML", reply_markup=markup)
            except TelegramBadRequest as e:
                if "message is not modified" not in str(e):
                    logger.warning("Failed to render practice message: %s", e)

    def keyboard_for(self, session: PracticeSession) -> Optional[InlineKeyboardMarkup]:
        if not session.is_active:
            return None
        if self.confirming_exit:
            return exit_confirm_keyboard()

        position = session.position
        if session.phase == SessionPhase.SUBMITTING:
            return waiting_keyboard()
        if session.current_outcome is not None:
            return answered_keyboard(position, session.is_last)
        if session.last_failure is not None:
            return retry_keyboard(position)
        return question_keyboard(session.current_question, position)


def _parse_callback_data(data: str) -> Optional[Tuple[str, Optional[int], Optional[str]]]:
    """
    Парсит callback_data тренировки.

    'ans:2:B' → ('ans', 2, 'B'); 'prac:back:2' → ('back', 2, None);
    'prac:exit' → ('exit', None, None). Невалидные данные → None.
    """
    parts = data.split(":")
    try:
        if parts[0] == "ans" and len(parts) == 3 and parts[2]:
            return "ans", int(parts[1]), parts[2]
        if parts[0] == "prac" and len(parts) == 2:
            return parts[1], None, None
        if parts[0] == "prac" and len(parts) == 3:
            return parts[1], int(parts[2]), None
    except ValueError:
        return None
    return None


# ============================================================================
# ЖИЗНЕННЫЙ ЦИКЛ
# ============================================================================

async def begin_session(message: Message, state: FSMContext, user_id: int, session_id: str):
    """Load a practice session and start showing its first question."""
    previous = _active_sessions.pop(user_id, None)
    _views.pop(user_id, None)
    if previous is not None:
        previous.close()

    view = SessionView(message)
    guard = InterruptGuard(
        on_arm=lambda g: register_guard(user_id, g),
        on_disarm=lambda g: unregister_guard(user_id, g),
    )
    session = PracticeSession(
        session_id,
        get_client(),
        guard=guard,
        on_change=view.schedule,
        on_tick=view.on_tick,
        on_complete=lambda sid: _spawn(_finish_session(message, state, user_id, sid)),
        on_warning=view.warn,
    )
    view.session = session
    _active_sessions[user_id] = session
    _views[user_id] = view

    try:
        await session.load()
    except SessionUnavailable as e:
        logger.warning("Practice session %s for user %d not started: %s", session_id, user_id, e)
        _active_sessions.pop(user_id, None)
        _views.pop(user_id, None)
        session.close()
        await state.clear()
        await message.edit_text(
            "😞 Не удалось загрузить тренировку: в ней нет вопросов или сервис недоступен.\n\n"
            "Начни новую тренировку.",
            reply_markup=main_menu_keyboard(),
        )
        return

    await state.set_state(PracticeFlow.in_session)
    await state.update_data(session_id=session_id)


async def _finish_session(message: Message, state: FSMContext, user_id: int, session_id: str):
    session = _active_sessions.get(user_id)
    mode = time_limit = None
    if session is not None and session.session_id == session_id:
        _active_sessions.pop(user_id, None)
        _views.pop(user_id, None)
        session.close()
        mode, time_limit = session.mode, session.time_limit

    from practice_bot.handlers.results import show_results
    await show_results(message, state, user_id, session_id, mode=mode, time_limit=time_limit)


# ============================================================================
# ОБРАБОТЧИКИ
# ============================================================================

def _is_session_message(callback: CallbackQuery, view: Optional[SessionView]) -> bool:
    """Buttons act only on the message that shows the running session."""
    if view is None or callback.message is None:
        return False
    return callback.message.message_id == view.message.message_id


async def _resolve(callback: CallbackQuery) -> Optional[Tuple[PracticeSession, Tuple]]:
    """Find the caller's running session; reject stale and malformed buttons."""
    parsed = _parse_callback_data(callback.data or "")
    session = _active_sessions.get(callback.from_user.id)
    view = _views.get(callback.from_user.id)

    if (
        parsed is None
        or session is None
        or not session.is_active
        # Кнопка из сообщения прошлой тренировки
        or not _is_session_message(callback, view)
    ):
        await callback.answer("Тренировка уже завершена")
        return None

    _, position, _ = parsed
    if position is not None and position != session.position:
        # Кнопка со старого состояния сообщения: попытка вернуться по истории
        if session.intercept_back():
            await callback.answer(session.guard.last_warning)
        else:
            await callback.answer()
        return None

    return session, parsed


@router.callback_query(F.data.startswith("ans:"))
async def answer_selected(callback: CallbackQuery):
    resolved = await _resolve(callback)
    if resolved is None:
        return
    session, (_, _, key) = resolved

    await callback.answer()
    try:
        await session.answer(key)
    except SubmissionFailed as e:
        logger.warning("Answer from user %d not recorded: %s", callback.from_user.id, e)


@router.callback_query(F.data.startswith("prac:"))
async def session_action(callback: CallbackQuery):
    resolved = await _resolve(callback)
    if resolved is None:
        return
    session, (action, _, _) = resolved
    view = _views.get(callback.from_user.id)

    if action == "skip":
        await callback.answer()
        try:
            await session.skip()
        except SubmissionFailed as e:
            logger.warning("Skip from user %d not recorded: %s", callback.from_user.id, e)
    elif action == "retry":
        await callback.answer()
        try:
            await session.retry()
        except SubmissionFailed as e:
            logger.warning("Retry from user %d failed again: %s", callback.from_user.id, e)
    elif action == "back":
        if session.rewind():
            await callback.answer()
        else:
            await callback.answer("Сейчас вернуться нельзя")
    elif action == "next":
        session.next_question()
        await callback.answer()
    elif action == "exit":
        if session.confirm_leave() and view is not None:
            view.confirming_exit = True
            view.schedule(session)
            await callback.answer("Завершить тренировку?")
        else:
            session.exit()
            await callback.answer()
    elif action == "exit_yes":
        await callback.answer()
        session.exit()
    elif action == "exit_no":
        if view is not None:
            view.confirming_exit = False
            view.schedule(session)
        await callback.answer()
    else:
        await callback.answer()


