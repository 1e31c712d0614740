"""Amount and coin extraction from free text"""

import re
from typing import Optional, TypedDict

from stacksave.llm.intents import SUPPORTED_COINS

AMOUNT_PATTERN = re.compile(r"(\d+(?:\.\d+)?)")


class Extraction(TypedDict, total=False):
    amount: float
    coin: str


def first_number(text: str) -> Optional[float]:
    match = AMOUNT_PATTERN.search(text)
    return float(match.group(1)) if match else None


def find_coin(text: str) -> Optional[str]:
    """First supported coin found in the text, checked in priority order"""
    upper = text.upper()
    for coin in SUPPORTED_COINS:
        if coin in upper:
            return coin
    return None


def extract_amount_and_coin(text: str) -> Extraction:
    """
    Pull the first number and the first supported coin symbol out of text.

    Keys are omitted when nothing was found, so the result can be splatted
    straight into a ClassificationResult.
    """
    result: Extraction = {}

    amount = first_number(text)
    if amount is not None:
        result["amount"] = amount

    coin = find_coin(text)
    if coin is not None:
        result["coin"] = coin

    return result
