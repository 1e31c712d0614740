import asyncio
import sys
import unittest
from pathlib import Path

repo_root = Path(__file__).resolve().parents[2]
sys.path.append(str(repo_root / "bot"))

from stacksave.llm.classifier import (
    IntentClassifier,
    IntentParseError,
    keyword_classify,
    parse_intent_response,
)
from stacksave.llm.extractor import extract_amount_and_coin
from stacksave.llm.intents import Intent


class _FakeGenerator:
    """Stands in for TextGenerator; replays a canned reply or raises"""

    def __init__(self, reply: str = "", error: Exception = None, available: bool = True):
        self.reply = reply
        self.error = error
        self.available = available
        self.calls = []

    async def generate(self, system_instruction: str, user_text: str) -> str:
        self.calls.append((system_instruction, user_text))
        if self.error:
            raise self.error
        return self.reply


class ExtractorTests(unittest.TestCase):
    def test_first_number_and_coin(self):
        self.assertEqual(
            extract_amount_and_coin("Deposit 100.5 USDC now"),
            {"amount": 100.5, "coin": "USDC"},
        )

    def test_only_first_number_is_used(self):
        self.assertEqual(extract_amount_and_coin("withdraw 20 then 30")["amount"], 20.0)

    def test_nothing_found(self):
        self.assertEqual(extract_amount_and_coin("deposit please"), {})

    def test_coin_is_case_insensitive_and_priority_ordered(self):
        self.assertEqual(extract_amount_and_coin("stake 5 dai or eth")["coin"], "ETH")
        self.assertEqual(extract_amount_and_coin("send usdt")["coin"], "USDT")


class KeywordClassifierTests(unittest.TestCase):
    def test_greetings_are_help(self):
        for text in ["hi", "Hello there", "hey, deposit 100", "halo", "selamat pagi"]:
            result = keyword_classify(text)
            self.assertEqual(result.intent, Intent.HELP, text)
            self.assertEqual(result.confidence, 0.95, text)

    def test_deposit_with_amount_and_coin(self):
        result = keyword_classify("Deposit 100 USDC")
        self.assertEqual(result.intent, Intent.DEPOSIT)
        self.assertEqual(result.amount, 100.0)
        self.assertEqual(result.coin, "USDC")
        self.assertEqual(result.confidence, 0.8)

    def test_indonesian_deposit(self):
        result = keyword_classify("mau nabung 50")
        self.assertEqual(result.intent, Intent.DEPOSIT)
        self.assertEqual(result.amount, 50.0)

    def test_withdraw(self):
        result = keyword_classify("withdraw 25.5 ETH")
        self.assertEqual(result.intent, Intent.WITHDRAW)
        self.assertEqual(result.amount, 25.5)
        self.assertEqual(result.coin, "ETH")

    def test_balance_has_no_amount(self):
        result = keyword_classify("check balance 2")
        self.assertEqual(result.intent, Intent.CHECK_BALANCE)
        self.assertEqual(result.confidence, 0.85)
        self.assertIsNone(result.amount)

    def test_stake(self):
        result = keyword_classify("stake 10 USDC")
        self.assertEqual(result.intent, Intent.STAKE)
        self.assertEqual(result.confidence, 0.75)
        self.assertEqual(result.amount, 10.0)

    def test_unstake_never_reads_as_stake(self):
        for text in ["unstake 10", "I want to stake less, unstake 5", "unstaking please"]:
            self.assertEqual(keyword_classify(text).intent, Intent.UNSTAKE, text)

    def test_help_keywords(self):
        result = keyword_classify("what can this bot do")
        self.assertEqual(result.intent, Intent.HELP)
        self.assertEqual(result.confidence, 0.9)

    def test_unknown(self):
        result = keyword_classify("asdkjasd")
        self.assertEqual(result.intent, Intent.UNKNOWN)
        self.assertEqual(result.confidence, 0.5)


class ParseIntentResponseTests(unittest.TestCase):
    def test_json_embedded_in_prose(self):
        result = parse_intent_response(
            'Sure! {"intent": "STAKE", "amount": 5, "coin": "eth", "confidence": 0.9, "explanation": "stake"} done'
        )
        self.assertEqual(result.intent, Intent.STAKE)
        self.assertEqual(result.amount, 5.0)
        self.assertEqual(result.coin, "ETH")
        self.assertEqual(result.confidence, 0.9)
        self.assertEqual(result.explanation, "stake")

    def test_untrusted_values_are_sanitized(self):
        result = parse_intent_response('{"intent": "DEPOSIT", "amount": -5, "coin": "SOL", "confidence": 7}')
        self.assertIsNone(result.amount)
        self.assertIsNone(result.coin)
        self.assertEqual(result.confidence, 1.0)

    def test_missing_json(self):
        with self.assertRaises(IntentParseError):
            parse_intent_response("I think they want to deposit")

    def test_malformed_json(self):
        with self.assertRaises(IntentParseError):
            parse_intent_response('{"intent": "DEPOSIT", amount: }')

    def test_unknown_intent_name(self):
        with self.assertRaises(IntentParseError):
            parse_intent_response('{"intent": "TRANSFER", "confidence": 0.9}')


class IntentClassifierTests(unittest.IsolatedAsyncioTestCase):
    async def test_llm_disabled_never_calls_generator(self):
        generator = _FakeGenerator(reply='{"intent": "STAKE", "confidence": 1}')
        classifier = IntentClassifier(generator=generator, use_llm=False)

        result = await classifier.classify("Deposit 100 USDC")

        self.assertEqual(result.intent, Intent.DEPOSIT)
        self.assertEqual(generator.calls, [])

    async def test_llm_path_used_when_enabled(self):
        generator = _FakeGenerator(
            reply='{"intent": "WITHDRAW", "amount": 3, "coin": "DAI", "confidence": 0.7, "explanation": "x"}'
        )
        classifier = IntentClassifier(generator=generator, use_llm=True)

        result = await classifier.classify("take out three dai")

        self.assertEqual(result.intent, Intent.WITHDRAW)
        self.assertEqual(result.amount, 3.0)
        self.assertEqual(len(generator.calls), 1)
        self.assertEqual(generator.calls[0][1], "take out three dai")

    async def test_malformed_reply_falls_back_to_keywords(self):
        classifier = IntentClassifier(generator=_FakeGenerator(reply="no json here"), use_llm=True)
        result = await classifier.classify("unstake 4")
        self.assertEqual(result.intent, Intent.UNSTAKE)
        self.assertEqual(result.amount, 4.0)

    async def test_provider_error_falls_back_to_keywords(self):
        generator = _FakeGenerator(error=asyncio.TimeoutError())
        classifier = IntentClassifier(generator=generator, use_llm=True)
        result = await classifier.classify("asdkjasd")
        self.assertEqual(result.intent, Intent.UNKNOWN)
        self.assertEqual(result.confidence, 0.5)

    async def test_unavailable_generator_is_skipped(self):
        generator = _FakeGenerator(reply='{"intent": "STAKE", "confidence": 1}', available=False)
        classifier = IntentClassifier(generator=generator, use_llm=True)
        result = await classifier.classify("hello")
        self.assertEqual(result.intent, Intent.HELP)
        self.assertEqual(generator.calls, [])


if __name__ == "__main__":
    unittest.main()
