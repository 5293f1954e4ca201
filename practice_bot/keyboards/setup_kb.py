from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton

from practice_bot.quiz_api.models import SessionMode, VALID_TIME_LIMITS

QUESTION_COUNTS = [5, 10, 20, 50]


def mode_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(
            text="📖 С разбором после каждого вопроса",
            callback_data=f"mode:{SessionMode.PACED.value}",
        )],
        [InlineKeyboardButton(
            text="⚡ Без остановок",
            callback_data=f"mode:{SessionMode.CONTINUOUS.value}",
        )],
        [InlineKeyboardButton(text="🏠 Главное меню", callback_data="go_home")],
    ])


def time_limit_keyboard() -> InlineKeyboardMarkup:
    row = [
        InlineKeyboardButton(text=f"{limit} с", callback_data=f"limit:{limit}")
        for limit in VALID_TIME_LIMITS
    ]
    return InlineKeyboardMarkup(inline_keyboard=[
        row,
        [InlineKeyboardButton(text="🔙 Назад к выбору режима", callback_data="back_to_mode")],
    ])


def question_count_keyboard() -> InlineKeyboardMarkup:
    buttons = []
    for count in QUESTION_COUNTS:
        buttons.append([InlineKeyboardButton(
            text=f"{count} вопросов",
            callback_data=f"count:{count}",
        )])
    buttons.append([InlineKeyboardButton(text="🔙 Назад к выбору времени", callback_data="back_to_limit")])
    return InlineKeyboardMarkup(inline_keyboard=buttons)
