"""Text-generation service shared by the intent classifier and the response renderer"""

import asyncio
import logging
from typing import Any, Optional

import httpx
from langchain_core.language_models import BaseChatModel

from stacksave.core import Settings, settings as default_settings

logger = logging.getLogger(__name__)

DEFAULT_MODELS = {
    "google": "gemini-2.0-flash",
    "openai": "gpt-3.5-turbo",
    "anthropic": "claude-3-5-sonnet-20241022",
}


class GenerationUnavailableError(RuntimeError):
    """Raised when no text-generation backend is configured"""


class TextGenerator:
    """
    Wraps one chat model behind `generate(system_instruction, user_text)`.

    A generator built without a model is valid and reports `available=False`;
    callers check that and go straight to their deterministic path.
    """

    def __init__(self, llm: Optional[Any] = None, timeout: float = 30.0) -> None:
        self.llm = llm
        self.timeout = timeout

    @property
    def available(self) -> bool:
        return self.llm is not None

    async def generate(self, system_instruction: str, user_text: str) -> str:
        if not self.available:
            raise GenerationUnavailableError("No text-generation service configured")
        content = await asyncio.wait_for(
            self._complete(system_instruction, user_text),
            timeout=self.timeout,
        )
        return (content or "").strip()

    async def _complete(self, system_instruction: str, user_text: str) -> str:
        # Run synchronously inside a thread to avoid event-loop init errors from the SDK
        response = await asyncio.to_thread(
            self.llm.invoke,
            [("system", system_instruction), ("human", user_text)],
        )
        content = getattr(response, "content", response)
        if isinstance(content, list):
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part) for part in content
            )
        return str(content)


class CustomEndpointGenerator(TextGenerator):
    """Self-hosted model reachable at a plain HTTP endpoint taking {system, message}"""

    def __init__(self, url: str, timeout: float = 30.0) -> None:
        super().__init__(llm=None, timeout=timeout)
        self.url = url

    @property
    def available(self) -> bool:
        return bool(self.url)

    async def _complete(self, system_instruction: str, user_text: str) -> str:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                self.url,
                json={"system": system_instruction, "message": user_text},
            )
            response.raise_for_status()
            data = response.json()
        return data.get("response") or data.get("content") or ""


SUPPORTED_PROVIDERS = ("google", "openai", "anthropic", "custom")


def _create_chat_model(config: Settings, temperature: float, max_tokens: int) -> Optional[BaseChatModel]:
    provider = config.LLM_PROVIDER.strip().lower()
    model = config.LLM_MODEL or DEFAULT_MODELS.get(provider, "")

    if provider == "google":
        if not config.GOOGLE_AI_API_KEY:
            return None
        from langchain_google_genai import ChatGoogleGenerativeAI

        return ChatGoogleGenerativeAI(
            model=model,
            google_api_key=config.GOOGLE_AI_API_KEY,
            temperature=temperature,
            max_output_tokens=max_tokens,
        )

    if provider == "openai":
        if not config.OPENAI_API_KEY:
            return None
        from langchain_openai import ChatOpenAI

        return ChatOpenAI(
            model=model,
            api_key=config.OPENAI_API_KEY,
            # Support custom base URL (OpenAI-compatible gateways)
            base_url=config.OPENAI_BASE_URL or None,
            temperature=temperature,
            max_tokens=max_tokens,
        )

    if provider == "anthropic":
        if not config.ANTHROPIC_API_KEY:
            return None
        from langchain_anthropic import ChatAnthropic

        return ChatAnthropic(
            model=model,
            api_key=config.ANTHROPIC_API_KEY,
            temperature=temperature,
            max_tokens=max_tokens,
        )

    return None


def create_text_generator(
    config: Optional[Settings] = None,
    temperature: float = 0.7,
    max_tokens: int = 150,
) -> TextGenerator:
    """Build the generator for the configured provider; unknown or unconfigured providers yield an unavailable one"""
    config = config or default_settings
    provider = config.LLM_PROVIDER.strip().lower()
    timeout = config.LLM_TIMEOUT_SECONDS

    if provider not in SUPPORTED_PROVIDERS:
        logger.warning(f"Unknown LLM provider '{config.LLM_PROVIDER}' - using templates")
        return TextGenerator(timeout=timeout)

    if provider == "custom":
        generator: TextGenerator = CustomEndpointGenerator(config.CUSTOM_LLM_URL, timeout=timeout)
    else:
        generator = TextGenerator(_create_chat_model(config, temperature, max_tokens), timeout=timeout)

    if generator.available:
        logger.info(f"Text generation enabled (provider={provider}, temperature={temperature})")
    else:
        logger.warning(f"Text generation not configured for provider '{provider}' - using templates")
    return generator
