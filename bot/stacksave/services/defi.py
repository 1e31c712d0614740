"""Staking contract gateway for deposits, withdrawals, staking and balances"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from web3 import AsyncHTTPProvider, AsyncWeb3, Web3

from stacksave.core import Settings, settings as default_settings
from stacksave.llm.intents import BalanceSnapshot, OperationOutcome, format_amount
from stacksave.services.custody import KeyCustody, OperatorKeyCustody

logger = logging.getLogger(__name__)

# Amounts on the staking contract use 18-decimal fixed point (ether-style)
BASE_UNIT = "ether"
BASE_UNIT_DECIMALS = 18

STAKING_ABI: List[Dict[str, Any]] = [
    {
        "name": "deposit",
        "type": "function",
        "stateMutability": "payable",
        "inputs": [],
        "outputs": [],
    },
    {
        "name": "withdraw",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "amount", "type": "uint256"}],
        "outputs": [],
    },
    {
        "name": "stake",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "amount", "type": "uint256"}],
        "outputs": [],
    },
    {
        "name": "unstake",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "amount", "type": "uint256"}],
        "outputs": [],
    },
    {
        "name": "balanceOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "stakedBalanceOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]


class BalanceUnavailableError(RuntimeError):
    """Raised when on-chain balances cannot be read"""


class TransactionRevertedError(RuntimeError):
    """Raised when a mined transaction reports failure status"""


def to_base_units(amount: float) -> int:
    """Exact conversion; amounts finer than one base unit are rejected, never truncated"""
    value = Decimal(str(amount))
    if not value.is_finite() or value <= 0:
        raise ValueError(f"Invalid amount: {amount}")
    if value.normalize().as_tuple().exponent < -BASE_UNIT_DECIMALS:
        raise ValueError(f"Amount {format_amount(amount)} has more than {BASE_UNIT_DECIMALS} decimal places")
    return Web3.to_wei(value, BASE_UNIT)


def from_base_units(value: int) -> str:
    formatted = Web3.from_wei(value, BASE_UNIT)
    return format(Decimal(formatted).normalize(), "f")


class DefiService:
    """Handles all staking contract interactions"""

    def __init__(
        self,
        w3: AsyncWeb3,
        contract_address: Optional[str] = None,
        custody: Optional[KeyCustody] = None,
        confirmation_timeout: float = 120.0,
    ) -> None:
        self.w3 = w3
        self.custody = custody
        self.confirmation_timeout = confirmation_timeout
        self.contract = None

        if contract_address and custody is not None:
            self.contract = self.w3.eth.contract(
                address=Web3.to_checksum_address(contract_address),
                abi=STAKING_ABI,
            )

    def is_configured(self) -> bool:
        """True when both a contract and a signing identity are available"""
        return self.contract is not None and self.custody is not None

    async def get_wallet_address(self, phone_number: str) -> str:
        signer = await self.custody.signer_for(phone_number)
        return signer.address

    async def get_balance(self, phone_number: str) -> BalanceSnapshot:
        """Read free and staked balances for the user's wallet"""
        try:
            if not self.is_configured():
                raise RuntimeError("Staking contract not configured")

            wallet_address = await self.get_wallet_address(phone_number)
            balance_wei = await self.contract.functions.balanceOf(wallet_address).call()
            staked_wei = await self.contract.functions.stakedBalanceOf(wallet_address).call()

            return BalanceSnapshot(
                phone_number=phone_number,
                wallet_address=wallet_address,
                balance=from_base_units(balance_wei),
                staked_amount=from_base_units(staked_wei),
            )
        except Exception as e:
            logger.error(f"Failed to get balance for {phone_number}: {e}")
            raise BalanceUnavailableError("Failed to retrieve balance") from e

    async def deposit(self, phone_number: str, amount: float) -> OperationOutcome:
        return await self._transact("deposit", phone_number, amount)

    async def withdraw(self, phone_number: str, amount: float) -> OperationOutcome:
        return await self._transact("withdraw", phone_number, amount)

    async def stake(self, phone_number: str, amount: float) -> OperationOutcome:
        return await self._transact("stake", phone_number, amount)

    async def unstake(self, phone_number: str, amount: float) -> OperationOutcome:
        return await self._transact("unstake", phone_number, amount)

    async def _transact(self, method: str, phone_number: str, amount: float) -> OperationOutcome:
        """Sign, send and confirm one contract call; failures become outcomes"""
        try:
            if not self.is_configured():
                raise RuntimeError("Staking contract not configured")

            signer = await self.custody.signer_for(phone_number)
            amount_wei = to_base_units(amount)

            if method == "deposit":
                call = self.contract.functions.deposit()
                value = amount_wei
            else:
                call = getattr(self.contract.functions, method)(amount_wei)
                value = 0

            nonce = await self.w3.eth.get_transaction_count(signer.address, "pending")
            tx = await call.build_transaction({
                "from": signer.address,
                "value": value,
                "nonce": nonce,
            })
            signed = signer.sign_transaction(tx)
            tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
            tx_hash_hex = Web3.to_hex(tx_hash)
            logger.info(f"[{phone_number}] {method} {amount} submitted: {tx_hash_hex}")

            receipt = await self.w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=self.confirmation_timeout,
            )
            if receipt["status"] != 1:
                raise TransactionRevertedError(f"Transaction {tx_hash_hex} reverted")

            return OperationOutcome(
                success=True,
                tx_hash=tx_hash_hex,
                amount=format_amount(amount),
            )
        except Exception as e:
            logger.error(f"{method.capitalize()} error for {phone_number}: {e}")
            return OperationOutcome(
                success=False,
                error=str(e) or f"{method.capitalize()} failed",
            )

    async def get_gas_price(self) -> str:
        """Current gas price in gwei"""
        gas_price = await self.w3.eth.gas_price
        return format(Decimal(Web3.from_wei(gas_price, "gwei")).normalize(), "f")

    async def close(self) -> None:
        disconnect = getattr(self.w3.provider, "disconnect", None)
        if disconnect is None:
            return
        try:
            await disconnect()
        except Exception as e:
            logger.warning(f"Failed to close RPC provider: {e}")


def create_defi_service(config: Optional[Settings] = None) -> DefiService:
    """Build the gateway from settings; missing key or contract leaves it unconfigured"""
    config = config or default_settings
    w3 = AsyncWeb3(AsyncHTTPProvider(config.RPC_URL))

    if not config.blockchain_configured:
        logger.warning("⚠️  Private key or staking contract not configured - DeFi features will be disabled")
        return DefiService(w3, confirmation_timeout=config.TX_CONFIRMATION_TIMEOUT_SECONDS)

    try:
        custody = OperatorKeyCustody(config.PRIVATE_KEY)
        return DefiService(
            w3,
            contract_address=config.STAKING_CONTRACT_ADDRESS,
            custody=custody,
            confirmation_timeout=config.TX_CONFIRMATION_TIMEOUT_SECONDS,
        )
    except Exception as e:
        # Never echo the key itself
        logger.error(f"Invalid blockchain configuration, DeFi features disabled: {type(e).__name__}")
        return DefiService(w3, confirmation_timeout=config.TX_CONFIRMATION_TIMEOUT_SECONDS)
