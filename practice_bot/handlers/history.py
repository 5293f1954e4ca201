from aiogram import Router, F
from aiogram.types import CallbackQuery
from aiogram.fsm.context import FSMContext

from practice_bot.keyboards.main_menu import main_menu_keyboard
from practice_bot.services.progress_tracker import format_history

router = Router()


@router.callback_query(F.data == "my_results")
async def show_history(callback: CallbackQuery, state: FSMContext):
    await state.clear()

    text = await format_history(callback.from_user.id)

    await callback.message.edit_text(text, reply_markup=main_menu_keyboard())
    await callback.answer()
