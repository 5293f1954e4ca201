from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton

from practice_bot.quiz_api.models import Question


def _nav_row(position: int) -> list[InlineKeyboardButton]:
    row = []
    if position > 0:
        row.append(InlineKeyboardButton(text="⬅️ Назад", callback_data=f"prac:back:{position}"))
    row.append(InlineKeyboardButton(text="⏹ Завершить", callback_data="prac:exit"))
    return row


def question_keyboard(question: Question, position: int) -> InlineKeyboardMarkup:
    """Answer options plus skip/back/exit for an unanswered question."""
    buttons = []
    for key in question.options:
        buttons.append([InlineKeyboardButton(
            text=key,
            callback_data=f"ans:{position}:{key}",
        )])
    buttons.append([InlineKeyboardButton(text="⏭ Пропустить", callback_data=f"prac:skip:{position}")])
    buttons.append(_nav_row(position))
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def answered_keyboard(position: int, is_last: bool) -> InlineKeyboardMarkup:
    """Shown on an answered question: explanation view or a revisited one."""
    next_text = "🏁 Завершить и посмотреть результат" if is_last else "➡️ Дальше"
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text=next_text, callback_data=f"prac:next:{position}")],
        _nav_row(position),
    ])


def waiting_keyboard() -> InlineKeyboardMarkup:
    """Continuous mode: answer recorded, moving on shortly."""
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="⏹ Завершить", callback_data="prac:exit")],
    ])


def retry_keyboard(position: int) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="🔄 Отправить ещё раз", callback_data=f"prac:retry:{position}")],
        [InlineKeyboardButton(text="⏹ Завершить", callback_data="prac:exit")],
    ])


def exit_confirm_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [
            InlineKeyboardButton(text="✅ Да, завершить", callback_data="prac:exit_yes"),
            InlineKeyboardButton(text="↩️ Продолжить", callback_data="prac:exit_no"),
        ],
    ])
