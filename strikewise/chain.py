"""
Option chain decoding and filtering.

Pure functions for:
- Decoding expiration, side and strike from OCC-style contract symbols
- Validating raw chain payloads into OptionContract records
- Narrowing a chain to one expiration date
"""

import math
import numbers
from datetime import date
from typing import Any, Iterable

from strikewise.models import OptionContract, OptionRight


def get_expiration_from_symbol(symbol: str, ticker: str) -> str:
    """
    Decode the YYYY-MM-DD expiration embedded in an OCC symbol.

    Assumes the ticker is immediately followed by YYMMDD, e.g. 'AAPL250117C00200000'.
    Symbols that do not follow that layout decode to garbage rather than raising.
    """
    date_part = symbol[len(ticker):len(ticker) + 6]
    year = f"20{date_part[0:2]}"
    month = date_part[2:4]
    day = date_part[4:6]
    return f"{year}-{month}-{day}"


def parse_expiration(iso: str) -> date | None:
    """Parse a decoded YYYY-MM-DD string, returning None when it is not a real date."""
    try:
        return date.fromisoformat(iso)
    except ValueError:
        return None


def get_strike_from_symbol(symbol: str) -> float | None:
    """Strike is the trailing 8 digits divided by 1000."""
    strike_part = symbol[-8:]
    if len(strike_part) != 8 or not strike_part.isdigit():
        return None
    return int(strike_part) / 1000


def get_right_from_symbol(symbol: str) -> OptionRight | None:
    """Side letter sits just before the 8 strike digits."""
    if len(symbol) < 9:
        return None
    letter = symbol[-9].upper()
    if letter == 'C':
        return OptionRight.CALL
    if letter == 'P':
        return OptionRight.PUT
    return None


def _to_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str) and value.strip():
        try:
            return _to_float(float(value))
        except ValueError:
            return None
    return None


def option_contract_from_raw(raw: Any, symbol: str | None = None) -> OptionContract | None:
    """
    Validate one raw chain entry into an OptionContract.

    Accepts the upstream snapshot shape::

        {'symbol': ..., 'strike_price': ..., 'latestQuote': {'bp', 'ap'},
         'greeks': {'delta', 'theta', 'gamma', 'vega'}, 'impliedVolatility': ...}

    and a flat shape with bid/ask/delta/... keys (CSV rows, fixtures).
    Returns None for anything without a string symbol or a resolvable strike.
    """
    if isinstance(raw, OptionContract):
        return raw
    if not isinstance(raw, dict):
        return None

    symbol = symbol if symbol is not None else raw.get('symbol')
    if not isinstance(symbol, str) or not symbol:
        return None

    strike = _to_float(raw.get('strike_price', raw.get('strike')))
    if strike is None:
        strike = get_strike_from_symbol(symbol)
    if strike is None:
        return None

    quote = raw.get('latestQuote') if isinstance(raw.get('latestQuote'), dict) else {}
    greeks = raw.get('greeks') if isinstance(raw.get('greeks'), dict) else {}

    def pick(*values):
        for value in values:
            parsed = _to_float(value)
            if parsed is not None:
                return parsed
        return None

    return OptionContract(
        symbol=symbol,
        strike_price=strike,
        bid=pick(quote.get('bp'), raw.get('bid')),
        ask=pick(quote.get('ap'), raw.get('ask')),
        delta=pick(greeks.get('delta'), raw.get('delta')),
        theta=pick(greeks.get('theta'), raw.get('theta')),
        gamma=pick(greeks.get('gamma'), raw.get('gamma')),
        vega=pick(greeks.get('vega'), raw.get('vega')),
        implied_volatility=pick(
            raw.get('impliedVolatility'),
            raw.get('implied_volatility'),
            greeks.get('iv'),
        ),
    )


def contracts_from_snapshots(snapshots: dict[str, Any]) -> list[OptionContract]:
    """
    Map an upstream {symbol: snapshot} payload into contracts.

    Strike comes from the symbol's trailing digits. Entries that fail validation are dropped.
    """
    contracts = []
    for symbol, snapshot in snapshots.items():
        contract = option_contract_from_raw(
            {**(snapshot if isinstance(snapshot, dict) else {}), 'strike_price': get_strike_from_symbol(symbol)},
            symbol=symbol,
        )
        if contract is not None:
            contracts.append(contract)
    return contracts


def coerce_chain(chain: Iterable[Any]) -> list[OptionContract]:
    """Validate every entry of a mixed chain, silently skipping unusable ones."""
    contracts = []
    for entry in chain:
        contract = option_contract_from_raw(entry)
        if contract is not None:
            contracts.append(contract)
    return contracts


def filter_by_expiration(
    chain: Iterable[OptionContract],
    ticker: str,
    expiration_date: date,
) -> list[OptionContract]:
    """
    Return the contracts whose symbol-decoded expiration equals expiration_date.

    Comparison is by YYYY-MM-DD string, so time of day never matters.
    """
    target = expiration_date.isoformat()
    return [
        contract for contract in chain
        if get_expiration_from_symbol(contract.symbol, ticker) == target
    ]
