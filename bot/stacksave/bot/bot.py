"""StackSave - Telegram Bot Entry Point"""

import logging
import sys

from aiohttp import web

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.webhook.aiohttp_server import SimpleRequestHandler, setup_application

from stacksave.core import settings
from stacksave.bot.handlers.router import router
from stacksave.llm.message_agent import create_message_agent
from stacksave.services.defi import DefiService, create_defi_service

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


async def on_startup(bot: Bot, defi_service: DefiService) -> None:
    """Report configuration and set webhook on startup"""
    logger.info(f"Starting {settings.BOT_NAME}...")

    if defi_service.is_configured():
        logger.info("Staking contract configured - DeFi features enabled")
    else:
        logger.warning("Staking contract not configured - DeFi commands will reply with maintenance notices")

    # Set webhook
    webhook_url = f"{settings.WEBHOOK_BASE_URL}{settings.WEBHOOK_PATH}"
    logger.info(f"Setting webhook to: {webhook_url}")

    await bot.set_webhook(
        webhook_url,
        secret_token=settings.TELEGRAM_WEBHOOK_SECRET or None,
    )
    logger.info("Webhook set successfully")


async def on_shutdown(bot: Bot, defi_service: DefiService) -> None:
    """Cleanup on shutdown"""
    logger.info("Shutting down...")
    await defi_service.close()
    logger.info("RPC connection closed")


def build_dispatcher(defi_service: DefiService) -> Dispatcher:
    """Dispatcher with long-lived services injected into every handler"""
    dp = Dispatcher()
    dp["defi_service"] = defi_service
    dp["agent"] = create_message_agent(settings, gateway=defi_service)

    # Attach routers
    dp.include_router(router)

    # Register startup/shutdown hooks
    dp.startup.register(on_startup)
    dp.shutdown.register(on_shutdown)
    return dp


def main() -> None:
    """Main entry point"""
    logger.info("=" * 50)
    logger.info(settings.BOT_NAME)
    logger.info("=" * 50)

    bot = Bot(
        token=settings.TELEGRAM_BOT_TOKEN,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )
    dp = build_dispatcher(create_defi_service(settings))

    # Create aiohttp web application
    app = web.Application()

    # Create webhook request handler
    webhook_requests_handler = SimpleRequestHandler(
        dispatcher=dp,
        bot=bot,
        secret_token=settings.TELEGRAM_WEBHOOK_SECRET or None,
    )

    # Register webhook handler
    webhook_requests_handler.register(app, path=settings.WEBHOOK_PATH)

    async def handle_health(request: web.Request) -> web.Response:
        defi_service: DefiService = dp["defi_service"]
        return web.json_response({
            "status": "ok",
            "bot": settings.BOT_NAME,
            "defiConfigured": defi_service.is_configured(),
        })

    app.router.add_get("/health", handle_health)

    # Mount dispatcher hooks to aiohttp application
    setup_application(app, dp, bot=bot)

    # Start web server
    logger.info(f"Starting server on 0.0.0.0:{settings.PORT}")
    web.run_app(app, host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    main()
