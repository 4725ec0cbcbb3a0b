"""
Suggestion service: fetch, pick expiration, filter, select, build.

One entry point per strategy plus a name-based dispatcher. Price, chain and logo are
fetched in parallel. A missing chain, expiration or contract set raises
SuggestionNotFound (a 404 equivalent); upstream failures propagate unchanged.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Any

from strikewise.chain import filter_by_expiration
from strikewise.config import (
    DEFAULT_OTM_FACTORS,
    MAX_SUGGESTION_COUNT,
    MIN_SUGGESTION_COUNT,
    STRATEGY_DEFAULTS,
)
from strikewise.expirations import normalize_selection, pick_expiration_date
from strikewise.market.protocol import MarketDataProtocol
from strikewise.models import ExpiryMode, ExpirySelection, Moneyness, OptionRight, SuggestionResult
from strikewise.moneyness import select_by_moneyness
from strikewise.suggestions import (
    build_cash_secured_put_suggestions,
    build_covered_call_suggestions,
    build_long_call_suggestions,
    build_long_put_suggestions,
)

logger = logging.getLogger(__name__)


class SuggestionNotFound(LookupError):
    """No chain, no suitable expiration, or no contracts at the chosen expiration."""


def clamp_count(count: Any, default: int = 3) -> int:
    """Requested contract count clamped to [1, 5]; unparseable values use default."""
    try:
        value = int(float(count))
    except (TypeError, ValueError, OverflowError):
        value = default
    return max(MIN_SUGGESTION_COUNT, min(value, MAX_SUGGESTION_COUNT))


def parse_moneyness(value: Any, default: Moneyness) -> Moneyness:
    if isinstance(value, Moneyness):
        return value
    try:
        return Moneyness(str(value).upper())
    except ValueError:
        return default


def _fetch_market(market: MarketDataProtocol, ticker: str, right: OptionRight):
    """Latest price, one side of the chain and the logo URL, fetched concurrently."""
    with ThreadPoolExecutor(max_workers=3) as executor:
        price_future = executor.submit(market.get_underlying_price, ticker)
        chain_future = executor.submit(market.get_option_chain, ticker, right)
        logo_future = executor.submit(market.get_logo_url, ticker)
        return price_future.result(), chain_future.result(), logo_future.result()


def _contracts_at_expiration(chain, ticker: str, selection: ExpirySelection,
                             fallback_days_ahead: int, today: date | None):
    if not chain:
        raise SuggestionNotFound(
            f"Could not retrieve options chain for {ticker}. The ticker may be invalid or have no options."
        )
    expiration = pick_expiration_date(chain, ticker, selection, fallback_days_ahead, today=today)
    if expiration is None:
        raise SuggestionNotFound(f"No suitable expiration date found for {ticker}.")
    contracts = filter_by_expiration(chain, ticker, expiration)
    if not contracts:
        raise SuggestionNotFound(f"No contracts found for {ticker} expiring {expiration.isoformat()}.")
    logger.info(f"{ticker}: {len(contracts)} contracts expiring {expiration.isoformat()}")
    return expiration, contracts


def _resolve_selection(selection: Any, days_ahead: int) -> ExpirySelection:
    fallback = ExpirySelection(mode=ExpiryMode.CUSTOM, days_ahead=days_ahead)
    if selection is None:
        return fallback
    return normalize_selection(selection, fallback)


def suggest_covered_calls(
    market: MarketDataProtocol,
    ticker: str,
    selection: Any = None,
    otm_factors: tuple[float, ...] = DEFAULT_OTM_FACTORS,
    days_ahead: int = STRATEGY_DEFAULTS['covered-calls']['days_ahead'],
    today: date | None = None,
) -> SuggestionResult:
    ticker = ticker.upper()
    price, chain, logo_url = _fetch_market(market, ticker, OptionRight.CALL)
    expiration, calls = _contracts_at_expiration(
        chain, ticker, _resolve_selection(selection, days_ahead), days_ahead, today,
    )
    return SuggestionResult(
        ticker=ticker,
        current_price=price,
        selected_expiration=expiration.isoformat(),
        suggestions=build_covered_call_suggestions(price, calls, expiration, otm_factors, today=today),
        logo_url=logo_url,
    )


def suggest_long_calls(
    market: MarketDataProtocol,
    ticker: str,
    selection: Any = None,
    moneyness: Any = Moneyness.ATM,
    count: Any = 3,
    days_ahead: int = STRATEGY_DEFAULTS['long-calls']['days_ahead'],
    today: date | None = None,
) -> SuggestionResult:
    ticker = ticker.upper()
    price, chain, logo_url = _fetch_market(market, ticker, OptionRight.CALL)
    expiration, calls = _contracts_at_expiration(
        chain, ticker, _resolve_selection(selection, days_ahead), days_ahead, today,
    )
    selected = select_by_moneyness(
        calls, price, parse_moneyness(moneyness, Moneyness.ATM), clamp_count(count), OptionRight.CALL,
    )
    return SuggestionResult(
        ticker=ticker,
        current_price=price,
        selected_expiration=expiration.isoformat(),
        suggestions=build_long_call_suggestions(price, selected, expiration, today=today),
        logo_url=logo_url,
    )


def suggest_long_puts(
    market: MarketDataProtocol,
    ticker: str,
    selection: Any = None,
    moneyness: Any = Moneyness.ATM,
    count: Any = 3,
    days_ahead: int = STRATEGY_DEFAULTS['long-puts']['days_ahead'],
    today: date | None = None,
) -> SuggestionResult:
    ticker = ticker.upper()
    price, chain, logo_url = _fetch_market(market, ticker, OptionRight.PUT)
    expiration, puts = _contracts_at_expiration(
        chain, ticker, _resolve_selection(selection, days_ahead), days_ahead, today,
    )
    selected = select_by_moneyness(
        puts, price, parse_moneyness(moneyness, Moneyness.ATM), clamp_count(count), OptionRight.PUT,
    )
    return SuggestionResult(
        ticker=ticker,
        current_price=price,
        selected_expiration=expiration.isoformat(),
        suggestions=build_long_put_suggestions(price, selected, expiration, today=today),
        logo_url=logo_url,
    )


def suggest_cash_secured_puts(
    market: MarketDataProtocol,
    ticker: str,
    selection: Any = None,
    moneyness: Any = Moneyness.OTM,
    count: Any = 3,
    days_ahead: int = STRATEGY_DEFAULTS['cash-secured-puts']['days_ahead'],
    today: date | None = None,
) -> SuggestionResult:
    ticker = ticker.upper()
    price, chain, logo_url = _fetch_market(market, ticker, OptionRight.PUT)
    expiration, puts = _contracts_at_expiration(
        chain, ticker, _resolve_selection(selection, days_ahead), days_ahead, today,
    )
    selected = select_by_moneyness(
        puts, price, parse_moneyness(moneyness, Moneyness.OTM), clamp_count(count), OptionRight.PUT,
    )
    return SuggestionResult(
        ticker=ticker,
        current_price=price,
        selected_expiration=expiration.isoformat(),
        suggestions=build_cash_secured_put_suggestions(selected, expiration, today=today),
        logo_url=logo_url,
    )


STRATEGIES = {
    'covered-calls': suggest_covered_calls,
    'long-calls': suggest_long_calls,
    'long-puts': suggest_long_puts,
    'cash-secured-puts': suggest_cash_secured_puts,
}


def suggest(
    strategy: str,
    market: MarketDataProtocol,
    ticker: str,
    selection: Any = None,
    moneyness: Any = None,
    count: Any = None,
    defaults: dict[str, dict] | None = None,
    today: date | None = None,
) -> SuggestionResult:
    """
    Run a strategy by name with per-strategy defaults (see config.load_strategy_defaults).

    Raises:
        ValueError: unknown strategy name
        SuggestionNotFound: nothing to suggest for this ticker
    """
    if strategy not in STRATEGIES:
        raise ValueError(f"Unknown strategy '{strategy}'. Choose from: {', '.join(STRATEGIES)}")
    settings = (defaults or STRATEGY_DEFAULTS)[strategy]
    days_ahead = settings.get('days_ahead', STRATEGY_DEFAULTS[strategy]['days_ahead'])

    if strategy == 'covered-calls':
        return suggest_covered_calls(market, ticker, selection, days_ahead=days_ahead, today=today)

    return STRATEGIES[strategy](
        market,
        ticker,
        selection,
        moneyness=moneyness if moneyness is not None else settings.get('moneyness'),
        count=count if count is not None else settings.get('count', 3),
        days_ahead=days_ahead,
        today=today,
    )
