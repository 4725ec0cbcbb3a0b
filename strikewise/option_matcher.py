"""
Inline option contract recognition, e.g. '2 CIFR $14 Put 1/19'.

Pure function. Runs over single text lines independently of the paragraph path.
"""

import re

from strikewise.models import BuySell, OptionMatch, OptionRight
from strikewise.ocr_parser import normalize_ticker, parse_number

# [Buy|Sell] [qty] TICKER [$]strike Call|Put date [qty]
OPTION_PATTERN = re.compile(
    r'(?:^|\s)'
    r'(?:(?P<side>(?i:buy|sell))\s+)?'
    r'(?:(?P<quantity>\d{1,3})\s+)?'
    r'(?P<ticker>[A-Z]{1,6})\s+'
    r'\$?(?P<strike>\d+(?:\.\d+)?)\s+'
    r'(?P<right>(?i:call|put))\s+'
    r'(?P<expiration>\d{4}-\d{2}-\d{2}|\d{1,2}/\d{1,2}(?:/\d{2,4})?)'
    r'(?:\s+(?P<trailing_quantity>\d{1,3})(?![\d.,/]))?'
)


def parse_option_contract(text: str | None) -> OptionMatch | None:
    """
    Match an option description in a line of text.

    Quantity comes from a leading count, else a trailing one. The expiration is kept
    as written ('1/19', '02/16/2026', '2025-01-17'). Returns None when nothing matches
    or the ticker is a label word.
    """
    if not text:
        return None
    match = OPTION_PATTERN.search(text)
    if not match:
        return None

    ticker = normalize_ticker(match.group('ticker'))
    strike = parse_number(match.group('strike'))
    expiration = (match.group('expiration') or '').strip()
    if not ticker or strike is None or not expiration:
        return None

    quantity = parse_number(match.group('quantity') or match.group('trailing_quantity'))
    side = match.group('side')
    return OptionMatch(
        ticker=ticker,
        strike=strike,
        right=OptionRight.PUT if match.group('right').lower() == 'put' else OptionRight.CALL,
        expiration=expiration,
        quantity=quantity,
        buy_sell=BuySell(side.lower()) if side else None,
    )
