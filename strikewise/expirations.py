"""
Expiration selection for option chains.

Pure functions that turn a user's horizon preference (N weeks/months/years, or an
explicit day count) into a target date, and pick the chain expiration closest to it.
Malformed preferences never raise; they fall back to defaults.
"""

import math
from datetime import date, timedelta
from typing import Any, Iterable, Mapping

from strikewise.chain import get_expiration_from_symbol, parse_expiration
from strikewise.config import (
    DEFAULT_DAYS_AHEAD,
    DEFAULT_EXPIRY_COUNT,
    DEFAULT_EXPIRY_MODE,
    DERIVE_WINDOWS,
    MODE_INTERVAL_DAYS,
)
from strikewise.models import ExpiryMode, ExpirySelection, OptionContract

DEFAULT_EXPIRY_SELECTION = ExpirySelection(
    mode=ExpiryMode(DEFAULT_EXPIRY_MODE),
    count=DEFAULT_EXPIRY_COUNT,
)


def _to_number(value: Any) -> float | None:
    """Finite float from an int/float/str, else None. Booleans are not numbers."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    return float(value)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _parse_mode(value: Any) -> ExpiryMode | None:
    if isinstance(value, ExpiryMode):
        return value
    try:
        return ExpiryMode(value)
    except ValueError:
        return None


def sanitize_count(count: Any, fallback: int = 1) -> int:
    """Floor count to a positive integer, or return fallback."""
    number = _to_number(count)
    if number is None:
        return fallback
    floored = math.floor(number)
    return floored if floored > 0 else fallback


def normalize_selection(
    value: Any,
    fallback: ExpirySelection = DEFAULT_EXPIRY_SELECTION,
) -> ExpirySelection:
    """
    Clean a raw expiration preference.

    - A bare positive number means 'custom, that many days ahead'.
    - An ExpirySelection or a dict with a known mode is cleaned: count floored to a
      positive int (default 1), custom days rounded (default: fallback's days, then 35).
    - Anything else returns the fallback.
    """
    number = _to_number(value) if not isinstance(value, str) else None
    if number is not None:
        if number > 0:
            return ExpirySelection(mode=ExpiryMode.CUSTOM, days_ahead=round_half_up(number))
        return fallback

    if isinstance(value, ExpirySelection):
        mode, count, days_ahead = value.mode, value.count, value.days_ahead
    elif isinstance(value, Mapping):
        mode = _parse_mode(value.get('mode'))
        count = value.get('count')
        days_ahead = value.get('days_ahead', value.get('daysAhead'))
    else:
        return fallback

    if mode is None:
        return fallback

    if mode == ExpiryMode.CUSTOM:
        days = _to_number(days_ahead)
        if days is not None and days > 0:
            return ExpirySelection(mode=mode, days_ahead=round_half_up(days))
        return ExpirySelection(mode=mode, days_ahead=fallback.days_ahead or DEFAULT_DAYS_AHEAD)

    return ExpirySelection(mode=mode, count=sanitize_count(count, fallback.count or 1))


def selection_to_days_ahead(
    selection: ExpirySelection | None,
    default_days_ahead: int = DEFAULT_DAYS_AHEAD,
) -> int:
    """
    Horizon in days. Calendar modes use count x a fixed interval
    (weekly=7, monthly=30, yearly=365), which is an approximation.
    """
    if selection is None:
        return default_days_ahead
    if selection.mode == ExpiryMode.CUSTOM:
        days = selection.days_ahead or default_days_ahead
        return days if days > 0 else default_days_ahead
    interval = MODE_INTERVAL_DAYS[selection.mode.value]
    target = interval * sanitize_count(selection.count, DEFAULT_EXPIRY_COUNT)
    return target if target > 0 else default_days_ahead


def selection_to_target_date(
    selection: ExpirySelection | None,
    base_date: date | None = None,
) -> date:
    base_date = base_date or date.today()
    return base_date + timedelta(days=selection_to_days_ahead(selection))


def extract_expiration_dates(
    chain: Iterable[OptionContract],
    ticker: str,
    include_past: bool = False,
    today: date | None = None,
) -> list[date]:
    """
    Unique expirations decoded from contract symbols, sorted ascending.

    Dates on or before today are dropped unless include_past is set.
    Undecodable symbols are skipped.
    """
    today = today or date.today()
    seen = set()
    expirations = []
    for contract in chain:
        iso = get_expiration_from_symbol(contract.symbol, ticker)
        if iso in seen:
            continue
        seen.add(iso)
        parsed = parse_expiration(iso)
        if parsed is None:
            continue
        if not include_past and parsed <= today:
            continue
        expirations.append(parsed)
    return sorted(expirations)


def closest_expiration(
    expirations: list[date],
    target: date,
    today: date | None = None,
) -> date | None:
    """
    Future expiration nearest to target. On a tie the first one in list order wins,
    which for a sorted list is the earlier date.
    """
    today = today or date.today()
    future = [d for d in expirations if d > today]
    if not future:
        return None
    return min(future, key=lambda d: abs((d - target).days))


def pick_expiration_date(
    chain: Iterable[OptionContract],
    ticker: str,
    selection: ExpirySelection | None,
    fallback_days_ahead: int = DEFAULT_DAYS_AHEAD,
    today: date | None = None,
) -> date | None:
    """
    Pick the chain expiration closest to the selection's target date.

    Returns None when the chain has no future expirations; callers treat that as
    'no suitable expiration'. Retries once against today + fallback_days_ahead.
    """
    today = today or date.today()
    expirations = extract_expiration_dates(chain, ticker, today=today)
    if not expirations:
        return None

    target = selection_to_target_date(selection, today)
    picked = closest_expiration(expirations, target, today=today)
    if picked is not None:
        return picked

    fallback_target = today + timedelta(days=fallback_days_ahead)
    return closest_expiration(expirations, fallback_target, today=today)


def next_expiration_for_chain(
    chain: Iterable[OptionContract],
    ticker: str,
    days_ahead: int = DEFAULT_DAYS_AHEAD,
    today: date | None = None,
) -> date | None:
    """Shortcut for a plain 'N days ahead' request."""
    selection = ExpirySelection(mode=ExpiryMode.CUSTOM, days_ahead=days_ahead)
    return pick_expiration_date(chain, ticker, selection, days_ahead, today=today)


def derive_selection_from_days(days_ahead: Any) -> ExpirySelection:
    """
    Map a legacy day count onto the closest calendar mode.

    Weeks win within 2 days (1-12 weeks), then months within 5 days (1-12 months),
    then years within 45 days (1-5 years); otherwise custom.
    """
    number = _to_number(days_ahead)
    if number is None or number <= 0:
        return DEFAULT_EXPIRY_SELECTION

    rounded = round_half_up(number)
    for mode_name in ('weekly', 'monthly', 'yearly'):
        interval = MODE_INTERVAL_DAYS[mode_name]
        max_count, tolerance = DERIVE_WINDOWS[mode_name]
        count = round_half_up(rounded / interval)
        if 1 <= count <= max_count and abs(count * interval - rounded) <= tolerance:
            return ExpirySelection(mode=ExpiryMode(mode_name), count=count)

    return ExpirySelection(mode=ExpiryMode.CUSTOM, days_ahead=rounded)


def selection_to_query_params(
    selection: ExpirySelection,
    include_legacy_days_ahead: bool = True,
) -> dict[str, str]:
    """Serialize a selection for a query string, optionally with the legacy daysAhead."""
    normalized = normalize_selection(selection)
    params = {'expiryMode': normalized.mode.value}
    if normalized.mode == ExpiryMode.CUSTOM:
        params['expiryDaysAhead'] = str(normalized.days_ahead or DEFAULT_DAYS_AHEAD)
    else:
        params['expiryCount'] = str(normalized.count or 1)
    if include_legacy_days_ahead:
        params['daysAhead'] = str(selection_to_days_ahead(normalized))
    return params


def parse_selection_from_params(
    params: Mapping[str, str],
    fallback: ExpirySelection = DEFAULT_EXPIRY_SELECTION,
) -> ExpirySelection:
    """Inverse of selection_to_query_params. Accepts legacy daysAhead-only params."""
    mode = _parse_mode(params.get('expiryMode'))
    legacy_days = params.get('daysAhead')

    if mode is not None:
        if mode == ExpiryMode.CUSTOM:
            raw_days = params.get('expiryDaysAhead') or legacy_days or DEFAULT_DAYS_AHEAD
            return normalize_selection({'mode': mode, 'days_ahead': raw_days}, fallback)

        raw_count = _to_number(params.get('expiryCount'))
        if raw_count is not None and raw_count > 0:
            return normalize_selection({'mode': mode, 'count': raw_count}, fallback)
        if legacy_days:
            return derive_selection_from_days(legacy_days)
        return normalize_selection({'mode': mode, 'count': fallback.count or 1}, fallback)

    if legacy_days:
        return derive_selection_from_days(legacy_days)
    return fallback
