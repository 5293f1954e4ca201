import logging
from typing import Optional

import aiosqlite
from aiogram import Router
from aiogram.types import Message
from aiogram.fsm.context import FSMContext

from practice_bot.db.queries import save_practice_result
from practice_bot.keyboards.main_menu import main_menu_keyboard
from practice_bot.quiz_api.client import get_client
from practice_bot.quiz_api.exceptions import QuizAPIError
from practice_bot.quiz_api.models import SessionMode
from practice_bot.services.formatting import format_results
from practice_bot.states.practice_states import PracticeFlow

logger = logging.getLogger(__name__)

router = Router()


async def show_results(
    message: Message,
    state: FSMContext,
    user_id: int,
    session_id: str,
    mode: Optional[SessionMode] = None,
    time_limit: Optional[int] = None,
):
    """Finish the session on the server and show the final results."""
    await state.set_state(PracticeFlow.viewing_results)

    try:
        summary = await get_client().complete_session(session_id)
    except QuizAPIError as e:
        logger.error("Failed to load results for session %s: %s", session_id, e)
        await state.clear()
        await message.answer(
            "😞 Не удалось загрузить результаты. Попробуй открыть их позже в «Мои результаты».",
            reply_markup=main_menu_keyboard(),
        )
        return

    text = format_results(summary, mode)

    try:
        await save_practice_result(
            user_id,
            session_id,
            summary,
            mode=mode.value if mode else None,
            time_limit=time_limit,
        )
    except (aiosqlite.Error, OSError):
        logger.exception("Failed to save practice result for user %d", user_id)

    await state.clear()
    await message.answer(text, reply_markup=main_menu_keyboard())
