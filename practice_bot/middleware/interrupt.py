import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from aiogram import BaseMiddleware
from aiogram.types import Message, CallbackQuery, TelegramObject

from practice_bot.engine.interrupt_guard import InterruptGuard

logger = logging.getLogger(__name__)

# Армированные охранники активных тренировок.
# Ключ: Telegram user_id; запись живёт от загрузки вопросов до завершения сессии.
_armed_guards: Dict[int, InterruptGuard] = {}


def register_guard(user_id: int, guard: InterruptGuard) -> None:
    _armed_guards[user_id] = guard


def unregister_guard(user_id: int, guard: InterruptGuard) -> None:
    """Remove the guard, unless a newer session already replaced it."""
    if _armed_guards.get(user_id) is guard:
        del _armed_guards[user_id]


def get_armed_guard(user_id: int) -> Optional[InterruptGuard]:
    return _armed_guards.get(user_id)


class InterruptGuardMiddleware(BaseMiddleware):
    """Drops anything but session actions while a practice session runs."""

    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        user = getattr(event, "from_user", None)
        if user is None:
            return await handler(event, data)

        guard = get_armed_guard(user.id)
        if guard is None or self._is_session_action(event):
            return await handler(event, data)

        if not guard.intercept_back():
            return await handler(event, data)

        logger.debug("Blocked %s from user %s during practice", type(event).__name__, user.id)
        await self._warn(event, guard.last_warning)

    def _is_session_action(self, event: TelegramObject) -> bool:
        if isinstance(event, CallbackQuery):
            return event.data is not None and (
                event.data.startswith("ans:") or event.data.startswith("prac:")
            )
        return False

    async def _warn(self, event: TelegramObject, text: Optional[str]) -> None:
        """Non-blocking warning: a toast for buttons, a short reply for messages."""
        if isinstance(event, CallbackQuery):
            await event.answer(text)
        elif isinstance(event, Message) and text:
            await event.answer(text)
