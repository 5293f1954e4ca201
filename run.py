import asyncio
import logging
import sys

from aiogram import Bot, Dispatcher
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.types import BotCommand

from practice_bot.config import settings
from practice_bot.handlers import start, setup, practice, results, history
from practice_bot.middleware.interrupt import InterruptGuardMiddleware


def _configure_logging():
    handlers = [logging.StreamHandler(sys.stdout)]
    if settings.LOG_FILE:
        handlers.append(logging.FileHandler(settings.LOG_FILE, encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


async def main():
    if not settings.BOT_TOKEN:
        print("Ошибка: BOT_TOKEN не задан. Создайте файл .env на основе .env.example")
        sys.exit(1)

    _configure_logging()
    logger = logging.getLogger(__name__)

    # Инициализируем базу данных
    from practice_bot.db.database import get_db, close_db
    await get_db()

    bot = Bot(token=settings.BOT_TOKEN)
    dp = Dispatcher(storage=MemoryStorage())

    # Во время тренировки пропускаем только действия самой тренировки
    dp.message.outer_middleware(InterruptGuardMiddleware())
    dp.callback_query.outer_middleware(InterruptGuardMiddleware())

    dp.include_router(start.router)
    dp.include_router(setup.router)
    dp.include_router(practice.router)
    dp.include_router(results.router)
    dp.include_router(history.router)

    await bot.set_my_commands([
        BotCommand(command="start", description="Главное меню"),
    ])

    logger.info("Practice bot started, quiz API at %s", settings.QUIZ_API_BASE_URL)

    try:
        await dp.start_polling(bot)
    finally:
        from practice_bot.quiz_api.client import close_client
        await close_client()
        await close_db()
        await bot.session.close()
        logger.info("Practice bot stopped")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
