from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton


def main_menu_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="📝 Начать тренировку", callback_data="start_practice")],
        [InlineKeyboardButton(text="📈 Мои результаты", callback_data="my_results")],
    ])
