import logging

from aiogram import Router, F
from aiogram.types import CallbackQuery
from aiogram.fsm.context import FSMContext

from practice_bot.keyboards.main_menu import main_menu_keyboard
from practice_bot.keyboards.setup_kb import mode_keyboard, time_limit_keyboard, question_count_keyboard
from practice_bot.quiz_api.client import get_client
from practice_bot.quiz_api.exceptions import NoQuestionsError, QuizAPIError
from practice_bot.quiz_api.models import SessionMode, normalize_mode, normalize_time_limit
from practice_bot.states.practice_states import PracticeFlow

logger = logging.getLogger(__name__)

router = Router()

MODE_PROMPT = (
    "🎛 Выбери режим тренировки:\n\n"
    "📖 С разбором — после каждого ответа покажу объяснение\n"
    "⚡ Без остановок — сразу следующий вопрос, разбор в конце"
)


@router.callback_query(F.data == "start_practice")
async def start_practice(callback: CallbackQuery, state: FSMContext):
    await state.clear()
    await state.set_state(PracticeFlow.choosing_mode)
    await callback.message.edit_text(MODE_PROMPT, reply_markup=mode_keyboard())
    await callback.answer()


@router.callback_query(F.data == "back_to_mode")
async def back_to_mode(callback: CallbackQuery, state: FSMContext):
    await state.set_state(PracticeFlow.choosing_mode)
    await callback.message.edit_text(MODE_PROMPT, reply_markup=mode_keyboard())
    await callback.answer()


@router.callback_query(PracticeFlow.choosing_mode, F.data.startswith("mode:"))
async def mode_selected(callback: CallbackQuery, state: FSMContext):
    mode = normalize_mode(callback.data.split(":", 1)[1])
    await state.update_data(mode=mode.value)
    await state.set_state(PracticeFlow.choosing_time_limit)
    await callback.message.edit_text(
        "⏱ Сколько секунд на один вопрос?",
        reply_markup=time_limit_keyboard(),
    )
    await callback.answer()


@router.callback_query(F.data == "back_to_limit")
async def back_to_limit(callback: CallbackQuery, state: FSMContext):
    await state.set_state(PracticeFlow.choosing_time_limit)
    await callback.message.edit_text(
        "⏱ Сколько секунд на один вопрос?",
        reply_markup=time_limit_keyboard(),
    )
    await callback.answer()


@router.callback_query(PracticeFlow.choosing_time_limit, F.data.startswith("limit:"))
async def time_limit_selected(callback: CallbackQuery, state: FSMContext):
    limit = normalize_time_limit(callback.data.split(":", 1)[1])
    await state.update_data(time_limit=limit)
    await state.set_state(PracticeFlow.choosing_question_count)
    await callback.message.edit_text(
        f"⏱ {limit} секунд на вопрос\n\nСколько вопросов в тренировке?",
        reply_markup=question_count_keyboard(),
    )
    await callback.answer()


@router.callback_query(PracticeFlow.choosing_question_count, F.data.startswith("count:"))
async def count_selected(callback: CallbackQuery, state: FSMContext):
    count = int(callback.data.split(":")[1])
    data = await state.get_data()
    mode = normalize_mode(data.get("mode", SessionMode.PACED.value))
    limit = normalize_time_limit(data.get("time_limit"))

    await state.set_state(PracticeFlow.starting_session)
    await callback.message.edit_text("⏳ Подбираю вопросы...")
    await callback.answer()

    try:
        session_id = await get_client().start_session(
            question_count=count,
            time_limit=limit,
            mode=mode,
        )
    except NoQuestionsError:
        await state.clear()
        await callback.message.edit_text(
            "📭 Подходящих вопросов пока нет. Попробуй позже.",
            reply_markup=main_menu_keyboard(),
        )
        return
    except QuizAPIError as e:
        logger.error("Failed to start practice session: %s", e)
        await state.clear()
        await callback.message.edit_text(
            "😞 Не удалось начать тренировку. Сервис временно недоступен.",
            reply_markup=main_menu_keyboard(),
        )
        return

    # Импортируем здесь, чтобы избежать циклических импортов
    from practice_bot.handlers.practice import begin_session

    await begin_session(callback.message, state, callback.from_user.id, session_id)
