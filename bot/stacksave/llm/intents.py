from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator

SUPPORTED_COINS = ("USDC", "ETH", "BTC", "USDT", "DAI")


class Intent(str, Enum):
  """User goals the bot can act on."""

  DEPOSIT = "deposit"
  WITHDRAW = "withdraw"
  CHECK_BALANCE = "check_balance"
  STAKE = "stake"
  UNSTAKE = "unstake"
  HELP = "help"
  UNKNOWN = "unknown"


MUTATING_INTENTS = frozenset({Intent.DEPOSIT, Intent.WITHDRAW, Intent.STAKE, Intent.UNSTAKE})


def format_amount(amount: float) -> str:
  """100.0 -> "100", 100.5 -> "100.5", 1e-19 -> "0.0000000000000000001" """
  return format(Decimal(str(amount)).normalize(), "f")


class ClassificationResult(BaseModel):
  """Structured output of intent classification."""

  intent: Intent = Field(..., description="The classified user goal")
  amount: Optional[float] = Field(default=None, description="Requested amount as parsed; validated by the dispatcher")
  coin: Optional[str] = Field(default=None, description="Currency symbol from the supported list")
  confidence: float = Field(..., ge=0.0, le=1.0, description="Confidence score 0-1")
  explanation: Optional[str] = Field(default=None, description="Brief explanation of classification")

  @field_validator("coin")
  @classmethod
  def _supported_coin(cls, value: Optional[str]) -> Optional[str]:
    if value is None:
      return None
    if value not in SUPPORTED_COINS:
      raise ValueError(f"unsupported coin: {value}")
    return value


class OperationOutcome(BaseModel):
  """Result of a state-changing gateway call."""

  success: bool
  amount: Optional[str] = None
  tx_hash: Optional[str] = None
  error: Optional[str] = None


class BalanceSnapshot(BaseModel):
  phone_number: str
  wallet_address: str
  balance: str
  staked_amount: str


class MutationContext(BaseModel):
  """Render context for deposit, withdraw, stake and unstake."""

  amount: float
  success: bool
  tx_hash: Optional[str] = None
  error: Optional[str] = None


class BalanceContext(BaseModel):
  balance: str
  staked: str = "0"
  wallet_address: Optional[str] = None


class EmptyContext(BaseModel):
  pass


RenderContext = Union[MutationContext, BalanceContext, EmptyContext]
