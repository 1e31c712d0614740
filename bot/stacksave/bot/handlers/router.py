"""Telegram bot handlers - commands and natural-language chat"""

import logging

from aiogram import Router, F
from aiogram.enums import ChatType
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import CommandStart, Command
from aiogram.types import Message

from stacksave.core import settings
from stacksave.llm.intents import Intent
from stacksave.llm.message_agent import ERROR_REPLY, MessageAgent, should_process
from stacksave.services.defi import DefiService

logger = logging.getLogger(__name__)
router = Router()


async def safe_answer(message: Message, text: str, **kwargs) -> None:
    """Send a reply and swallow Telegram 'chat not found' errors (blocked/invalid chat)."""
    try:
        # Replies may contain model-generated text, so never parse it as HTML
        kwargs.setdefault("parse_mode", None)
        await message.answer(text, **kwargs)
    except TelegramBadRequest as exc:
        logger.warning("Failed to send message to chat %s: %s", message.chat.id, exc)


def accepts(message: Message) -> bool:
    """Private chats only, never the bot's own messages"""
    from_user = message.from_user
    is_from_self = from_user is None or from_user.is_bot or from_user.id == message.bot.id
    return should_process(
        is_group=message.chat.type != ChatType.PRIVATE,
        is_from_self=is_from_self,
    )


def is_admin(message: Message) -> bool:
    user = message.from_user
    if user is None:
        return False
    allowed = set(settings.admin_ids)
    return str(user.id) in allowed or bool(user.username and user.username in allowed)


# ============================================================================
# Command Handlers
# ============================================================================

@router.message(CommandStart())
async def command_start_handler(message: Message, agent: MessageAgent) -> None:
    """Handle /start command - greet with the feature overview"""
    if not accepts(message):
        return
    await command_help_handler(message, agent)


@router.message(Command("help"))
async def command_help_handler(message: Message, agent: MessageAgent) -> None:
    """Handle /help command"""
    if not accepts(message):
        return
    try:
        text = await agent.dispatcher.renderer.render(Intent.HELP)
    except Exception:
        logger.exception("Help rendering failed")
        text = ERROR_REPLY
    await safe_answer(message, text)


@router.message(Command("balance"))
async def command_balance_handler(message: Message, agent: MessageAgent) -> None:
    """Handle /balance command"""
    if not accepts(message):
        return
    user_id = str(message.from_user.id)
    try:
        text = await agent.dispatcher.check_balance(user_id)
    except Exception:
        logger.exception(f"[{user_id}] Balance command failed")
        text = ERROR_REPLY
    await safe_answer(message, text)


@router.message(Command("gas"))
async def command_gas_handler(message: Message, defi_service: DefiService) -> None:
    """Handle /gas command - current network gas price (admins only)"""
    if not accepts(message):
        return
    if not is_admin(message):
        await safe_answer(message, "⛔ This command is only available to admins.")
        return

    try:
        gas_price = await defi_service.get_gas_price()
        await safe_answer(message, f"⛽ Current gas price: {gas_price} gwei")
    except Exception as e:
        logger.error(f"Gas price fetch failed: {e}")
        await safe_answer(message, "❌ Failed to fetch gas price. Please try again later.")


# ============================================================================
# Text Message Handler (Natural Language)
# ============================================================================

@router.message(F.text)
async def text_message_handler(message: Message, agent: MessageAgent) -> None:
    """Handle regular text messages through the intent pipeline"""
    if not accepts(message):
        return

    try:
        await message.bot.send_chat_action(message.chat.id, "typing")
    except TelegramBadRequest as exc:
        logger.warning("Failed to send typing action to chat %s: %s", message.chat.id, exc)

    reply = await agent.handle(message.text, str(message.from_user.id))
    await safe_answer(message, reply)
