from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings
from pydantic import AliasChoices, Field, ConfigDict
from dotenv import load_dotenv

# Load root .env file (parent of bot directory)
root_env = Path(__file__).parent.parent.parent.parent / ".env"
load_dotenv(root_env)

PLACEHOLDER_PRIVATE_KEY = "your_private_key_here"


class Settings(BaseSettings):
    """Application settings - uses root .env file"""

    model_config = ConfigDict(
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
    )

    # Telegram Bot
    TELEGRAM_BOT_TOKEN: str = Field(default="")
    TELEGRAM_WEBHOOK_SECRET: str = Field(default="")
    WEBHOOK_BASE_URL: str = Field(default="http://localhost:3001")

    # Server
    PORT: int = Field(default=3001)
    WEBHOOK_PATH: str = Field(default="/webhook")

    # Bot identity
    BOT_NAME: str = Field(default="StackSave Bot")
    ADMIN_IDS: str = Field(default="", validation_alias=AliasChoices("ADMIN_IDS", "ADMIN_PHONE_NUMBERS"))

    # LLM
    LLM_PROVIDER: str = Field(default="openai")  # google, openai, anthropic or custom
    LLM_MODEL: str = Field(default="")
    LLM_INTENT_DETECTION: bool = Field(default=False)
    LLM_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)
    GOOGLE_AI_API_KEY: str = Field(default="")
    OPENAI_API_KEY: str = Field(default="")
    OPENAI_BASE_URL: str = Field(default="")
    ANTHROPIC_API_KEY: str = Field(default="")
    CUSTOM_LLM_URL: str = Field(default="")

    # Blockchain (Base Sepolia by default)
    RPC_URL: str = Field(
        default="https://sepolia.base.org",
        validation_alias=AliasChoices("RPC_URL", "BASE_SEPOLIA_RPC_URL"),
    )
    PRIVATE_KEY: str = Field(default="")
    STAKING_CONTRACT_ADDRESS: str = Field(default="")
    TX_CONFIRMATION_TIMEOUT_SECONDS: float = Field(default=120.0, gt=0)

    @property
    def admin_ids(self) -> List[str]:
        return [item.strip() for item in self.ADMIN_IDS.split(",") if item.strip()]

    @property
    def blockchain_configured(self) -> bool:
        """True when both the signing key and the staking contract are set"""
        key = self.PRIVATE_KEY.strip()
        return bool(key and key != PLACEHOLDER_PRIVATE_KEY and self.STAKING_CONTRACT_ADDRESS.strip())


settings = Settings()
