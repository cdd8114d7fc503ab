"""
Fairway — charity golf tournament registration & live scoring.
Entry point: loads state, wires the services into the organizer bot, handles graceful shutdown.
"""
import asyncio
import logging
import signal
import sys

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.types import ErrorEvent

from fairway.config import WorkflowConfig, settings
from fairway.handlers import organizer_router
from fairway.middlewares import AdminMiddleware, ServiceMiddleware
from fairway.models.base import engine
from fairway.services import (
    HttpPaymentGateway,
    LiveScoringService,
    RegistrationService,
    SqlAlchemyStorage,
    TelegramNotifier,
    create_tables,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


async def prepare_database() -> None:
    try:
        await create_tables()
        logger.info("Database tables ready.")
    except Exception as e:
        logger.critical(
            "❌ Cannot connect to database!\n"
            "   URL: %s\n"
            "   Error: %s\n\n"
            "   → Locally: start PostgreSQL or use SQLite "
            "(DATABASE_URL=sqlite+aiosqlite:///./fairway.db)",
            settings.DATABASE_URL.split("@")[-1],   # hide credentials in log
            e,
        )
        sys.exit(1)


def build_dispatcher(
    registrations: RegistrationService,
    scoring: LiveScoringService,
) -> Dispatcher:
    dp = Dispatcher()

    @dp.errors()
    async def handle_error(event: ErrorEvent) -> None:
        logger.exception("Unhandled error: %s", event.exception)

    dp.update.middleware(ServiceMiddleware(registrations, scoring))
    dp.update.middleware(AdminMiddleware())

    dp.include_router(organizer_router)
    return dp


async def main() -> None:
    if not settings.telegram_enabled:
        logger.critical("BOT_TOKEN is not set; the organizer bot cannot start.")
        sys.exit(1)

    logger.info("Starting Fairway…")
    await prepare_database()

    bot = Bot(
        token=settings.BOT_TOKEN,
        default=DefaultBotProperties(parse_mode=ParseMode.MARKDOWN),
    )
    storage = SqlAlchemyStorage()

    registrations = RegistrationService(
        storage,
        HttpPaymentGateway(),
        TelegramNotifier(bot, settings.ORGANIZER_CHAT_ID),
        config=WorkflowConfig.from_settings(),
    )
    scoring = LiveScoringService(storage)
    await registrations.load()
    await scoring.load()

    dp = build_dispatcher(registrations, scoring)

    # ── Graceful shutdown on SIGTERM (Docker) ─────────────────────────────────
    loop = asyncio.get_running_loop()

    def _handle_signal():
        logger.info("Received shutdown signal, stopping…")
        asyncio.ensure_future(dp.stop_polling())

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, _handle_signal)
        except NotImplementedError:
            # Windows does not support add_signal_handler
            pass

    try:
        logger.info("Bot is running. Press Ctrl+C to stop.")
        await dp.start_polling(
            bot,
            allowed_updates=dp.resolve_used_update_types(),
            handle_signals=False,
        )
    finally:
        logger.info("Shutting down…")
        await bot.session.close()
        await engine.dispose()
        logger.info("Shutdown complete.")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
