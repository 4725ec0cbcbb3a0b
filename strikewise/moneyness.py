"""
Moneyness selection for option contracts.

Pure functions. Picks a handful of contracts for an ITM/ATM/OTM request, preferring
delta bands and degrading to strike distance when the feed omits greeks.
"""

import logging

from strikewise.config import CALL_DELTA_BANDS, PUT_DELTA_BANDS
from strikewise.models import Moneyness, OptionContract, OptionRight

logger = logging.getLogger(__name__)


def _delta_band(right: OptionRight, moneyness: Moneyness) -> tuple[float, float, float]:
    bands = CALL_DELTA_BANDS if right == OptionRight.CALL else PUT_DELTA_BANDS
    return bands[moneyness.value]


def _select_by_delta(
    contracts: list[OptionContract],
    right: OptionRight,
    moneyness: Moneyness,
    count: int,
) -> list[OptionContract]:
    low, high, target = _delta_band(right, moneyness)
    with_delta = [c for c in contracts if c.delta is not None]
    in_band = [c for c in with_delta if low <= c.delta <= high]
    if not in_band:
        logger.debug(f"No {right.value} deltas in [{low}, {high}] for {moneyness.value}, ranking all")
        in_band = with_delta
    ranked = sorted(in_band, key=lambda c: abs(c.delta - target))
    return ranked[:count]


def _select_by_strike(
    contracts: list[OptionContract],
    current_price: float,
    right: OptionRight,
    moneyness: Moneyness,
    count: int,
) -> list[OptionContract]:
    if moneyness == Moneyness.ATM:
        ranked = sorted(contracts, key=lambda c: abs(c.strike_price - current_price))
        return ranked[:count]

    by_strike = sorted(contracts, key=lambda c: c.strike_price)
    below = [c for c in by_strike if c.strike_price <= current_price]
    above = [c for c in by_strike if c.strike_price > current_price]

    # Calls are OTM above the price, puts below; the closest strike comes first either way
    wants_below = (right == OptionRight.CALL) == (moneyness == Moneyness.ITM)
    if wants_below:
        return list(reversed(below))[:count]
    return above[:count]


def select_by_moneyness(
    contracts: list[OptionContract],
    current_price: float,
    moneyness: Moneyness,
    count: int,
    right: OptionRight = OptionRight.CALL,
) -> list[OptionContract]:
    """
    Select up to count contracts for a moneyness bucket.

    Delta path: used when at least count contracts carry a delta. Contracts inside the
    bucket's delta band are ranked by distance to the band target; an empty band
    falls back to every delta-bearing contract.

    Strike path: otherwise. OTM calls take the lowest strikes above the price, ITM calls
    the highest strikes at or below it. Puts mirror that (OTM put = strike <= price).
    ATM ranks every contract by distance to the price.

    Never returns more than count contracts and never raises on empty input.
    """
    if count <= 0 or not contracts:
        return []

    moneyness = Moneyness(moneyness)
    right = OptionRight(right)

    with_delta = sum(1 for c in contracts if c.delta is not None)
    if with_delta >= count:
        return _select_by_delta(contracts, right, moneyness, count)

    logger.warning(
        f"Only {with_delta}/{len(contracts)} {right.value} contracts carry delta, "
        f"using strike distance for {moneyness.value}"
    )
    return _select_by_strike(contracts, current_price, right, moneyness, count)


def select_calls_by_moneyness(
    contracts: list[OptionContract],
    current_price: float,
    moneyness: Moneyness,
    count: int,
) -> list[OptionContract]:
    return select_by_moneyness(contracts, current_price, moneyness, count, OptionRight.CALL)


def select_puts_by_moneyness(
    contracts: list[OptionContract],
    current_price: float,
    moneyness: Moneyness,
    count: int,
) -> list[OptionContract]:
    return select_by_moneyness(contracts, current_price, moneyness, count, OptionRight.PUT)
