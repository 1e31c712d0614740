import sys
import unittest
from pathlib import Path

repo_root = Path(__file__).resolve().parents[2]
sys.path.append(str(repo_root / "bot"))

from stacksave.llm.actions import (
    BALANCE_DISABLED_MESSAGE,
    BALANCE_UNAVAILABLE_MESSAGE,
    INVALID_AMOUNT_MESSAGES,
    MAINTENANCE_MESSAGES,
    ActionDispatcher,
)
from stacksave.llm.intents import BalanceSnapshot, ClassificationResult, Intent, OperationOutcome
from stacksave.llm.renderer import HELP_TEXT, UNKNOWN_TEXT, ResponseRenderer

TX_HASH = "0x" + "cd" * 32


class _FakeGateway:
    """Records every gateway call"""

    def __init__(self, configured: bool = True, succeed: bool = True, balance_error: Exception = None):
        self.configured = configured
        self.succeed = succeed
        self.balance_error = balance_error
        self.calls = []

    def is_configured(self) -> bool:
        return self.configured

    async def _op(self, name: str, phone_number: str, amount: float) -> OperationOutcome:
        self.calls.append((name, phone_number, amount))
        if self.succeed:
            return OperationOutcome(success=True, tx_hash=TX_HASH, amount=str(amount))
        return OperationOutcome(success=False, error="execution reverted")

    async def deposit(self, phone_number, amount):
        return await self._op("deposit", phone_number, amount)

    async def withdraw(self, phone_number, amount):
        return await self._op("withdraw", phone_number, amount)

    async def stake(self, phone_number, amount):
        return await self._op("stake", phone_number, amount)

    async def unstake(self, phone_number, amount):
        return await self._op("unstake", phone_number, amount)

    async def get_balance(self, phone_number):
        self.calls.append(("get_balance", phone_number, None))
        if self.balance_error:
            raise self.balance_error
        return BalanceSnapshot(
            phone_number=phone_number,
            wallet_address="0x" + "11" * 20,
            balance="12.5",
            staked_amount="3",
        )


def _classified(intent: Intent, amount=None) -> ClassificationResult:
    return ClassificationResult(intent=intent, amount=amount, confidence=0.8)


class ActionDispatcherTests(unittest.IsolatedAsyncioTestCase):
    def _dispatcher(self, gateway: _FakeGateway) -> ActionDispatcher:
        return ActionDispatcher(gateway, ResponseRenderer(generator=None))

    async def test_missing_or_non_positive_amount_skips_gateway(self):
        gateway = _FakeGateway()
        dispatcher = self._dispatcher(gateway)

        for amount in (None, 0, -5, float("nan"), float("inf")):
            reply = await dispatcher.dispatch("628123", _classified(Intent.DEPOSIT, amount))
            self.assertEqual(reply, INVALID_AMOUNT_MESSAGES[Intent.DEPOSIT])

        self.assertEqual(gateway.calls, [])

    async def test_unconfigured_gateway_returns_maintenance(self):
        gateway = _FakeGateway(configured=False)
        dispatcher = self._dispatcher(gateway)

        for intent in (Intent.DEPOSIT, Intent.WITHDRAW, Intent.STAKE, Intent.UNSTAKE):
            reply = await dispatcher.dispatch("628123", _classified(intent, 10))
            self.assertEqual(reply, MAINTENANCE_MESSAGES[intent])

        self.assertEqual(gateway.calls, [])

    async def test_each_mutation_calls_matching_operation_once(self):
        for intent, name in (
            (Intent.DEPOSIT, "deposit"),
            (Intent.WITHDRAW, "withdraw"),
            (Intent.STAKE, "stake"),
            (Intent.UNSTAKE, "unstake"),
        ):
            gateway = _FakeGateway()
            reply = await self._dispatcher(gateway).dispatch("628123", _classified(intent, 7))

            self.assertEqual(gateway.calls, [(name, "628123", 7)])
            self.assertIn(TX_HASH, reply)
            self.assertIn("Amount: 7", reply)

    async def test_failed_mutation_renders_failure(self):
        gateway = _FakeGateway(succeed=False)
        reply = await self._dispatcher(gateway).dispatch("628123", _classified(Intent.WITHDRAW, 50))

        self.assertEqual(len(gateway.calls), 1)
        self.assertIn("Withdrawal failed", reply)
        self.assertNotIn("0x", reply)

    async def test_balance_disabled_when_unconfigured(self):
        gateway = _FakeGateway(configured=False)
        reply = await self._dispatcher(gateway).dispatch("628123", _classified(Intent.CHECK_BALANCE))
        self.assertEqual(reply, BALANCE_DISABLED_MESSAGE)
        self.assertEqual(gateway.calls, [])

    async def test_balance_read_failure_is_recovered(self):
        gateway = _FakeGateway(balance_error=RuntimeError("rpc down"))
        reply = await self._dispatcher(gateway).dispatch("628123", _classified(Intent.CHECK_BALANCE))
        self.assertEqual(reply, BALANCE_UNAVAILABLE_MESSAGE)

    async def test_balance_rendered(self):
        gateway = _FakeGateway()
        reply = await self._dispatcher(gateway).dispatch("628123", _classified(Intent.CHECK_BALANCE))
        self.assertIn("12.5", reply)
        self.assertIn("Staked Amount: 3", reply)

    async def test_help_and_unknown_need_no_gateway(self):
        gateway = _FakeGateway(configured=False)
        dispatcher = self._dispatcher(gateway)

        self.assertEqual(await dispatcher.dispatch("628123", _classified(Intent.HELP)), HELP_TEXT)
        self.assertEqual(await dispatcher.dispatch("628123", _classified(Intent.UNKNOWN)), UNKNOWN_TEXT)
        self.assertEqual(gateway.calls, [])


if __name__ == "__main__":
    unittest.main()
