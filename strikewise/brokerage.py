"""Brokerage detection from screenshot text."""

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class BrokerageOption:
    value: str
    label: str
    keywords: tuple[str, ...]


# Checked in order; the first keyword hit wins
BROKERAGE_OPTIONS = (
    BrokerageOption('fidelity', 'Fidelity', ('fidelity',)),
    BrokerageOption('vanguard', 'Vanguard', ('vanguard',)),
    BrokerageOption('robinhood', 'Robinhood', ('robinhood',)),
    BrokerageOption('schwab', 'Charles Schwab', ('schwab', 'charles schwab')),
    BrokerageOption('trowe', 'T. Rowe Price', ('t rowe', 't. rowe', 'rowe price')),
    BrokerageOption('etrade', 'E*TRADE', ('etrade', 'e-trade')),
    BrokerageOption('tdameritrade', 'TD Ameritrade', ('td ameritrade', 'ameritrade')),
    BrokerageOption('merrill', 'Merrill', ('merrill', 'merrill edge')),
    BrokerageOption('interactivebrokers', 'Interactive Brokers', ('interactive brokers', 'ibkr')),
    BrokerageOption('webull', 'Webull', ('webull',)),
    BrokerageOption('sofi', 'SoFi', ('sofi',)),
    BrokerageOption('public', 'Public', ('public.com', 'public')),
    BrokerageOption('ally', 'Ally Invest', ('ally invest', 'ally')),
    BrokerageOption('m1', 'M1 Finance', ('m1 finance', 'm1')),
    BrokerageOption('stash', 'Stash', ('stash',)),
    BrokerageOption('acorns', 'Acorns', ('acorns',)),
)


def _normalize(text: str) -> str:
    return re.sub(r'[^a-z0-9]+', ' ', text.lower()).strip()


def detect_brokerage(text: str | None) -> BrokerageOption | None:
    """
    First brokerage whose keyword appears in text, matched on whole words
    after lowercasing and collapsing punctuation.
    """
    if not text:
        return None
    normalized = f" {_normalize(text)} "
    if not normalized.strip():
        return None
    for option in BROKERAGE_OPTIONS:
        for keyword in option.keywords:
            if f" {_normalize(keyword)} " in normalized:
                return option
    return None


def resolve_broker_label(value: str | None) -> str:
    if not value:
        return 'Unknown'
    for option in BROKERAGE_OPTIONS:
        if option.value == value:
            return option.label
    return value
