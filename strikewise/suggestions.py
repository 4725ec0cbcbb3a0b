"""
Suggestion builders for the four option strategies.

Contains pure functions for:
- Premium from bid/ask with graceful degradation
- Days-to-expiration and annualization
- Covered call, long call, long put and cash-secured put rows
- Tabular export of suggestion rows
"""

import math
from dataclasses import asdict
from datetime import date

import pandas as pd

from strikewise.config import CONTRACT_MULTIPLIER, COVERED_CALL_STRIKE_STEP, DEFAULT_OTM_FACTORS
from strikewise.expirations import round_half_up
from strikewise.models import (
    CashSecuredPutSuggestion,
    CoveredCallSuggestion,
    LongCallSuggestion,
    LongPutSuggestion,
    OptionContract,
)


def premium_from_quote(contract: OptionContract) -> float:
    """Mid of bid/ask when both are quoted, else whichever side exists, else 0."""
    if contract.bid is not None and contract.ask is not None:
        return (contract.bid + contract.ask) / 2
    if contract.ask is not None:
        return contract.ask
    if contract.bid is not None:
        return contract.bid
    return 0.0


def days_to_expiration(expiration: date, today: date | None = None) -> int:
    """Calendar days until expiration. Not clamped; a past date is negative."""
    today = today or date.today()
    return (expiration - today).days


def annualize(percent: float, dte: int) -> float:
    return percent * (365 / max(1, dte))


def round_to_step(value: float, step: int = COVERED_CALL_STRIKE_STEP) -> float:
    """Round half-up to the nearest multiple of step."""
    return math.floor(value / step + 0.5) * step


def _greeks(contract: OptionContract) -> dict:
    return {
        'delta': contract.delta,
        'theta': contract.theta,
        'gamma': contract.gamma,
        'vega': contract.vega,
        'implied_volatility': contract.implied_volatility,
    }


def build_covered_call_suggestions(
    current_price: float,
    calls: list[OptionContract],
    expiration: date,
    otm_factors: tuple[float, ...] = DEFAULT_OTM_FACTORS,
    today: date | None = None,
) -> list[CoveredCallSuggestion]:
    """
    One suggestion per OTM factor.

    The target strike (price x factor) is snapped to a multiple of 5 and matched to the
    closest listed strike; the first contract wins a tie. otm_percent reports the
    requested factor, so it can differ from the matched strike's real distance.
    """
    if not calls or current_price <= 0:
        return []

    dte = days_to_expiration(expiration, today)
    suggestions = []
    for factor in otm_factors:
        target_strike = round_to_step(current_price * factor)
        closest = calls[0]
        for contract in calls[1:]:
            if abs(contract.strike_price - target_strike) < abs(closest.strike_price - target_strike):
                closest = contract

        premium = premium_from_quote(closest)
        yield_monthly = premium / current_price * 100
        suggestions.append(CoveredCallSuggestion(
            otm_percent=round_half_up((factor - 1) * 100),
            strike=closest.strike_price,
            premium=premium,
            yield_monthly=round(yield_monthly, 2),
            yield_annualized=round(annualize(yield_monthly, dte), 2),
            expiration=expiration.isoformat(),
            dte=dte,
            **_greeks(closest),
        ))
    return suggestions


def build_long_call_suggestions(
    current_price: float,
    calls: list[OptionContract],
    expiration: date,
    today: date | None = None,
) -> list[LongCallSuggestion]:
    dte = days_to_expiration(expiration, today)
    suggestions = []
    for contract in calls:
        premium = premium_from_quote(contract)
        intrinsic = max(current_price - contract.strike_price, 0)
        suggestions.append(LongCallSuggestion(
            strike=contract.strike_price,
            premium=premium,
            intrinsic=intrinsic,
            extrinsic=max(premium - intrinsic, 0),
            breakeven=contract.strike_price + premium,
            cost=round(premium * CONTRACT_MULTIPLIER, 2),
            expiration=expiration.isoformat(),
            dte=dte,
            **_greeks(contract),
        ))
    return suggestions


def build_long_put_suggestions(
    current_price: float,
    puts: list[OptionContract],
    expiration: date,
    today: date | None = None,
) -> list[LongPutSuggestion]:
    dte = days_to_expiration(expiration, today)
    suggestions = []
    for contract in puts:
        premium = premium_from_quote(contract)
        intrinsic = max(contract.strike_price - current_price, 0)
        suggestions.append(LongPutSuggestion(
            strike=contract.strike_price,
            premium=premium,
            intrinsic=intrinsic,
            extrinsic=max(premium - intrinsic, 0),
            breakeven=contract.strike_price - premium,
            cost=round(premium * CONTRACT_MULTIPLIER, 2),
            expiration=expiration.isoformat(),
            dte=dte,
            **_greeks(contract),
        ))
    return suggestions


def build_cash_secured_put_suggestions(
    puts: list[OptionContract],
    expiration: date,
    today: date | None = None,
) -> list[CashSecuredPutSuggestion]:
    """
    Return on collateral for selling each put.

    assign_prob is |delta| x 100 rounded half up, a rough proxy rather than a probability model.
    """
    dte = days_to_expiration(expiration, today)
    suggestions = []
    for contract in puts:
        premium = premium_from_quote(contract)
        strike = contract.strike_price
        return_pct = premium / strike * 100 if strike > 0 else 0.0
        assign_prob = round_half_up(abs(contract.delta) * 100) if contract.delta is not None else None
        suggestions.append(CashSecuredPutSuggestion(
            strike=strike,
            premium=premium,
            return_pct=round(return_pct, 2),
            annualized_pct=round(annualize(return_pct, dte), 2),
            cash_required=round(strike * CONTRACT_MULTIPLIER - premium * CONTRACT_MULTIPLIER, 2),
            breakeven=strike - premium,
            expiration=expiration.isoformat(),
            dte=dte,
            assign_prob=assign_prob,
            **_greeks(contract),
        ))
    return suggestions


def suggestions_to_frame(suggestions: list) -> pd.DataFrame:
    """One row per suggestion, columns in dataclass field order."""
    if not suggestions:
        return pd.DataFrame()
    return pd.DataFrame([asdict(s) for s in suggestions])
