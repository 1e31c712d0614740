"""Reply rendering - generated natural language with fixed template fallback"""

import logging
from typing import Optional

from stacksave.llm.intents import (
    BalanceContext,
    EmptyContext,
    Intent,
    MutationContext,
    RenderContext,
    format_amount,
)
from stacksave.services.generation import TextGenerator

logger = logging.getLogger(__name__)

PERSONA_PROMPT = (
    "You are StackSave, a friendly DeFi savings assistant on chat. "
    "Keep responses short, natural, and conversational. Use emojis sparingly."
)


def _mutation(context: RenderContext) -> MutationContext:
    if not isinstance(context, MutationContext):
        raise TypeError(f"expected MutationContext, got {type(context).__name__}")
    return context


def _balance(context: RenderContext) -> BalanceContext:
    if not isinstance(context, BalanceContext):
        raise TypeError(f"expected BalanceContext, got {type(context).__name__}")
    return context


def build_prompt(intent: Intent, context: RenderContext) -> str:
    """Intent-specific instruction for the generation path"""
    if intent == Intent.DEPOSIT:
        ctx = _mutation(context)
        return (
            "Generate a friendly, casual chat message (in Indonesian or English, match user's language) "
            f"for a deposit transaction. Amount: {format_amount(ctx.amount)}, Success: {ctx.success}, "
            f"Tx Hash: {ctx.tx_hash or 'none'}. Keep it short and natural."
        )
    if intent == Intent.WITHDRAW:
        ctx = _mutation(context)
        return (
            f"Generate a friendly chat message for a withdrawal. Amount: {format_amount(ctx.amount)}, "
            f"Success: {ctx.success}, Tx Hash: {ctx.tx_hash or 'none'}. Keep it conversational."
        )
    if intent == Intent.CHECK_BALANCE:
        ctx = _balance(context)
        return (
            f"Generate a friendly chat message showing balance. Balance: {ctx.balance}, "
            f"Staked: {ctx.staked or '0'}. Make it casual and clear."
        )
    if intent == Intent.STAKE:
        ctx = _mutation(context)
        return (
            f"Generate a friendly chat message for staking. Amount: {format_amount(ctx.amount)}, "
            f"Success: {ctx.success}, Tx Hash: {ctx.tx_hash or 'none'}. Sound excited if successful!"
        )
    if intent == Intent.UNSTAKE:
        ctx = _mutation(context)
        return (
            f"Generate a friendly chat message for unstaking. Amount: {format_amount(ctx.amount)}, "
            f"Success: {ctx.success}, Tx Hash: {ctx.tx_hash or 'none'}. Keep it simple."
        )
    if intent == Intent.HELP:
        return (
            "Generate a helpful chat message explaining StackSave, a DeFi savings bot. "
            "Features: deposit, withdraw, stake, unstake, check balance. Make it welcoming and easy to understand."
        )
    if intent == Intent.UNKNOWN:
        return (
            "Generate a polite chat message asking the user to clarify. "
            "Suggest they can ask about balance, deposit, withdraw, or stake."
        )
    raise ValueError(f"Unhandled intent: {intent}")


HELP_TEXT = (
    "👋 Welcome to StackSave!\n\n"
    "I'm your DeFi assistant ready to help you manage your crypto savings. Here's what I can do:\n\n"
    "💰 Deposit - Add funds to start saving\n"
    "📤 Withdraw - Take out funds anytime\n"
    "📊 Check Balance - View your balance and investments\n"
    "📈 Stake - Invest funds to earn rewards\n"
    "📉 Unstake - Withdraw your staked funds\n\n"
    "Examples:\n"
    '• "Deposit 100 USDC"\n'
    '• "Check balance"\n'
    '• "Withdraw 50"\n\n'
    "How can I help you? 😊"
)

UNKNOWN_TEXT = (
    "🤔 Hmm, I'm not sure what you mean...\n\n"
    "Try asking about:\n"
    "• Check balance\n"
    "• Deposit funds\n"
    "• Withdraw funds\n"
    "• Staking\n\n"
    'Or type "help" for more info!'
)


def render_template(intent: Intent, context: RenderContext) -> str:
    """Fixed reply for an intent; success and failure variants for transactions"""
    if intent == Intent.DEPOSIT:
        ctx = _mutation(context)
        if ctx.success:
            return (
                f"✅ Deposit successful!\n\nAmount: {format_amount(ctx.amount)}\nTx Hash: {ctx.tx_hash}\n\n"
                "Your funds are now ready to be invested! 🚀"
            )
        return "❌ Sorry, deposit failed. Please try again or contact support if the issue persists."

    if intent == Intent.WITHDRAW:
        ctx = _mutation(context)
        if ctx.success:
            return (
                f"✅ Withdrawal successful!\n\nAmount: {format_amount(ctx.amount)}\nTx Hash: {ctx.tx_hash}\n\n"
                "Funds have been sent to your wallet! 💰"
            )
        return "❌ Withdrawal failed. Please ensure you have sufficient balance and try again."

    if intent == Intent.CHECK_BALANCE:
        ctx = _balance(context)
        return (
            "💰 Balance Information\n\n"
            f"📊 Available Balance: {ctx.balance}\n"
            f"🔒 Staked Amount: {ctx.staked or '0'}\n\n"
            "Want to deposit more or withdraw? Just let me know! 😊"
        )

    if intent == Intent.STAKE:
        ctx = _mutation(context)
        if ctx.success:
            return (
                f"🎉 Successfully staked!\n\nAmount: {format_amount(ctx.amount)}\nTx Hash: {ctx.tx_hash}\n\n"
                "Your funds are now earning rewards! 📈\n"
                'Check progress anytime by typing "check balance"'
            )
        return "❌ Staking failed. Please try again later!"

    if intent == Intent.UNSTAKE:
        ctx = _mutation(context)
        if ctx.success:
            return (
                f"✅ Unstake successful!\n\nAmount: {format_amount(ctx.amount)}\nTx Hash: {ctx.tx_hash}\n\n"
                "Funds are back in your main balance and ready to withdraw! 💵"
            )
        return "❌ Unstake failed. Please try again in a few moments."

    if intent == Intent.HELP:
        return HELP_TEXT

    if intent == Intent.UNKNOWN:
        return UNKNOWN_TEXT

    raise ValueError(f"Unhandled intent: {intent}")


class ResponseRenderer:
    """
    Turns an intent plus its outcome context into reply text.

    The generator is tried first when available; an unavailable generator,
    an error or an empty reply all fall back to `render_template`.
    """

    def __init__(self, generator: Optional[TextGenerator] = None) -> None:
        self.generator = generator

    @property
    def llm_enabled(self) -> bool:
        return self.generator is not None and self.generator.available

    async def render(self, intent: Intent, context: Optional[RenderContext] = None) -> str:
        context = context if context is not None else EmptyContext()
        fallback = render_template(intent, context)

        if not self.llm_enabled:
            logger.debug("LLM not available, using default response")
            return fallback

        try:
            generated = await self.generator.generate(PERSONA_PROMPT, build_prompt(intent, context))
            if generated:
                logger.info("Generated LLM response")
                return generated
        except Exception as e:
            logger.error(f"Error generating LLM response: {e}")

        return fallback
