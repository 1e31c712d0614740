"""
Intent classifier - model-based detection with a deterministic keyword fallback.

Flow:
  classify → [llm_classify → parse JSON] OR keyword_classify
  (any model failure drops back to keyword_classify)
"""

import json
import logging
import math
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from stacksave.llm.extractor import extract_amount_and_coin
from stacksave.llm.intents import SUPPORTED_COINS, ClassificationResult, Intent
from stacksave.services.generation import TextGenerator

logger = logging.getLogger(__name__)


class IntentParseError(ValueError):
    """Model reply could not be turned into a ClassificationResult"""


# ============================================================================
# Keyword-based fallback classification
# ============================================================================

GREETING_PATTERN = re.compile(r"^(hi|hello|hey|halo|hai|hei|pagi|siang|malam|selamat)")
STAKE_PATTERN = re.compile(r"\b(stake|staking|invest|investasi)\b")


def _matches(pattern: str) -> Callable[[str], bool]:
    compiled = re.compile(pattern)
    return lambda text: compiled.search(text) is not None


def _is_stake(text: str) -> bool:
    return STAKE_PATTERN.search(text) is not None and "unstake" not in text


# Order matters: first match wins. Greetings come first so "hi" never reads as
# a transaction, and stake runs before unstake with "unstake" texts excluded.
# (intent, matcher on lowercased text, confidence, extract amount/coin)
KEYWORD_RULES: List[Tuple[Intent, Callable[[str], bool], float, bool]] = [
    (Intent.HELP, lambda text: GREETING_PATTERN.match(text) is not None, 0.95, False),
    (Intent.DEPOSIT, _matches(r"(deposit|depo|setor|tabung|nabung|simpan|add|save|put in|masukkan)"), 0.8, True),
    (Intent.WITHDRAW, _matches(r"(withdraw|tarik|ambil|take out|remove|get|keluarkan)"), 0.8, True),
    (Intent.CHECK_BALANCE, _matches(r"(balance|saldo|cek|check|how much|berapa|lihat)"), 0.85, False),
    (Intent.STAKE, _is_stake, 0.75, True),
    (Intent.UNSTAKE, _matches(r"(unstake|unstaking|cabut stake|hentikan staking)"), 0.75, True),
    (Intent.HELP, _matches(r"(help|bantuan|panduan|guide|how|cara|fitur|feature|what can|apa saja|bisa apa)"), 0.9, False),
]


def keyword_classify(user_input: str) -> ClassificationResult:
    """Fallback keyword-based classification (English and Indonesian)"""
    text_lower = user_input.lower()
    for intent, matches, confidence, with_amount in KEYWORD_RULES:
        if matches(text_lower):
            extras = extract_amount_and_coin(user_input) if with_amount else {}
            return ClassificationResult(intent=intent, confidence=confidence, **extras)
    return ClassificationResult(intent=Intent.UNKNOWN, confidence=0.5)


# ============================================================================
# Model-based classification
# ============================================================================

INTENT_SYSTEM_PROMPT = """You are an intent classifier for a DeFi savings chatbot called StackSave.
Analyze user messages and classify them into one of these intents:
- DEPOSIT: User wants to deposit money
- WITHDRAW: User wants to withdraw money
- CHECK_BALANCE: User wants to check their balance
- STAKE: User wants to stake their funds
- UNSTAKE: User wants to unstake their funds
- HELP: User needs help or information
- UNKNOWN: Cannot determine intent

Extract any mentioned amounts and coin types (e.g., USDC, ETH, BTC).
Respond ONLY in valid JSON format:
{
  "intent": "INTENT_TYPE",
  "amount": number or null,
  "coin": "string or null",
  "confidence": 0.0-1.0,
  "explanation": "brief explanation"
}"""

JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")


def _parse_intent(raw: Any) -> Intent:
    if not isinstance(raw, str):
        raise IntentParseError(f"intent must be a string, got {raw!r}")
    if raw in Intent.__members__:
        return Intent[raw]
    try:
        return Intent(raw)
    except ValueError:
        raise IntentParseError(f"unknown intent: {raw!r}")


def _parse_amount(raw: Any) -> Optional[float]:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        amount = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(amount) or amount <= 0:
        return None
    return amount


def _parse_coin(raw: Any) -> Optional[str]:
    if not isinstance(raw, str):
        return None
    coin = raw.strip().upper()
    return coin if coin in SUPPORTED_COINS else None


def _parse_confidence(raw: Any) -> float:
    try:
        confidence = float(raw)
    except (TypeError, ValueError):
        return 0.5
    if not math.isfinite(confidence):
        return 0.5
    return min(max(confidence, 0.0), 1.0)


def parse_intent_response(content: str) -> ClassificationResult:
    """Extract the first brace-delimited JSON object from a model reply"""
    match = JSON_OBJECT_PATTERN.search(content or "")
    if not match:
        raise IntentParseError("No JSON found in LLM response")

    try:
        parsed: Dict[str, Any] = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise IntentParseError(f"Malformed JSON in LLM response: {e}") from e

    if not isinstance(parsed, dict):
        raise IntentParseError("LLM response JSON is not an object")

    explanation = parsed.get("explanation")
    return ClassificationResult(
        intent=_parse_intent(parsed.get("intent")),
        amount=_parse_amount(parsed.get("amount")),
        coin=_parse_coin(parsed.get("coin")),
        confidence=_parse_confidence(parsed.get("confidence")),
        explanation=str(explanation) if explanation is not None else None,
    )


class IntentClassifier:
    """
    Maps raw chat text to a ClassificationResult.

    With `use_llm=False` (the default deployment) only the keyword rules run.
    With `use_llm=True` the generator is asked first and any failure falls
    back to the keyword rules, so `classify` never raises.
    """

    def __init__(self, generator: Optional[TextGenerator] = None, use_llm: bool = False) -> None:
        self.generator = generator
        self.use_llm = use_llm

    @property
    def llm_enabled(self) -> bool:
        return bool(self.use_llm and self.generator is not None and self.generator.available)

    async def classify(self, text: str) -> ClassificationResult:
        if self.llm_enabled:
            try:
                result = await self.llm_classify(text)
                logger.info(f"LLM classified: {result.intent.value} (conf={result.confidence:.2f})")
                return result
            except Exception as e:
                logger.error(f"LLM intent detection failed, using keyword fallback: {e}")

        return keyword_classify(text)

    async def llm_classify(self, text: str) -> ClassificationResult:
        content = await self.generator.generate(INTENT_SYSTEM_PROMPT, text)
        return parse_intent_response(content)
