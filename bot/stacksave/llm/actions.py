import logging
import math
from typing import Awaitable, Callable, Dict, Optional, Protocol

from stacksave.llm.intents import (
    BalanceContext,
    BalanceSnapshot,
    ClassificationResult,
    EmptyContext,
    Intent,
    MUTATING_INTENTS,
    MutationContext,
    OperationOutcome,
)
from stacksave.llm.renderer import ResponseRenderer

logger = logging.getLogger(__name__)


class FinancialGateway(Protocol):
    def is_configured(self) -> bool: ...

    async def deposit(self, phone_number: str, amount: float) -> OperationOutcome: ...

    async def withdraw(self, phone_number: str, amount: float) -> OperationOutcome: ...

    async def stake(self, phone_number: str, amount: float) -> OperationOutcome: ...

    async def unstake(self, phone_number: str, amount: float) -> OperationOutcome: ...

    async def get_balance(self, phone_number: str) -> BalanceSnapshot: ...


INVALID_AMOUNT_MESSAGES = {
    Intent.DEPOSIT: 'Please specify a valid amount to deposit. For example: "Deposit 100 USDC"',
    Intent.WITHDRAW: 'Please specify a valid amount to withdraw. For example: "Withdraw 50 USDC"',
    Intent.STAKE: 'Please specify a valid amount to stake. For example: "Stake 100 USDC"',
    Intent.UNSTAKE: 'Please specify a valid amount to unstake. For example: "Unstake 50 USDC"',
}

MAINTENANCE_MESSAGES = {
    Intent.DEPOSIT: "Deposit feature is currently under maintenance. Please try again later.",
    Intent.WITHDRAW: "Withdrawal feature is currently under maintenance. Please try again later.",
    Intent.STAKE: "Staking feature is currently under maintenance. Please try again later.",
    Intent.UNSTAKE: "Unstaking feature is currently under maintenance. Please try again later.",
}

BALANCE_DISABLED_MESSAGE = (
    "Balance checking is currently disabled. "
    "Please configure your blockchain settings to use DeFi features."
)
BALANCE_UNAVAILABLE_MESSAGE = "Unable to retrieve your balance at the moment. Please try again later."


def is_valid_amount(amount: Optional[float]) -> bool:
    return amount is not None and math.isfinite(amount) and amount > 0


class ActionDispatcher:
    """
    Executes a classified intent and returns the reply text.

    Transactions need a positive amount and a configured gateway; when either
    is missing a fixed message is returned and the gateway is never called.
    """

    def __init__(self, gateway: FinancialGateway, renderer: ResponseRenderer) -> None:
        self.gateway = gateway
        self.renderer = renderer

    def _operation(self, intent: Intent) -> Callable[[str, float], Awaitable[OperationOutcome]]:
        operations: Dict[Intent, Callable[[str, float], Awaitable[OperationOutcome]]] = {
            Intent.DEPOSIT: self.gateway.deposit,
            Intent.WITHDRAW: self.gateway.withdraw,
            Intent.STAKE: self.gateway.stake,
            Intent.UNSTAKE: self.gateway.unstake,
        }
        return operations[intent]

    async def dispatch(self, phone_number: str, classification: ClassificationResult) -> str:
        intent = classification.intent

        if intent in MUTATING_INTENTS:
            return await self._handle_transaction(intent, phone_number, classification.amount)
        if intent == Intent.CHECK_BALANCE:
            return await self.check_balance(phone_number)
        if intent in (Intent.HELP, Intent.UNKNOWN):
            return await self.renderer.render(intent, EmptyContext())

        raise ValueError(f"Unhandled intent: {intent}")

    async def _handle_transaction(self, intent: Intent, phone_number: str, amount: Optional[float]) -> str:
        if not is_valid_amount(amount):
            return INVALID_AMOUNT_MESSAGES[intent]

        if not self.gateway.is_configured():
            return MAINTENANCE_MESSAGES[intent]

        outcome = await self._operation(intent)(phone_number, amount)
        if not outcome.success:
            logger.warning(f"[{phone_number}] {intent.value} failed: {outcome.error}")

        return await self.renderer.render(intent, MutationContext(
            amount=amount,
            success=outcome.success,
            tx_hash=outcome.tx_hash,
            error=outcome.error,
        ))

    async def check_balance(self, phone_number: str) -> str:
        if not self.gateway.is_configured():
            return BALANCE_DISABLED_MESSAGE

        try:
            snapshot = await self.gateway.get_balance(phone_number)
        except Exception as e:
            logger.error(f"[{phone_number}] Balance fetch failed: {e}")
            return BALANCE_UNAVAILABLE_MESSAGE

        return await self.renderer.render(Intent.CHECK_BALANCE, BalanceContext(
            balance=snapshot.balance,
            staked=snapshot.staked_amount,
            wallet_address=snapshot.wallet_address,
        ))
