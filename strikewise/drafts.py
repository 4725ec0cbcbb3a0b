"""
Draft row reconciliation and post-processing.

Contains pure functions for:
- Merging partial observations of the same holding (detail beats list, then
  confidence with hysteresis)
- Deriving per-share cost basis from totals and from holding history
- Readiness checks and display helpers
- Mapping drafts to and from the snake_case records of the holdings store
"""

import math
from dataclasses import replace
from typing import Any, Iterable, Mapping

from strikewise.config import COST_BASIS_OUTLIER_RATIO, MERGE_CONFIDENCE_HYSTERESIS
from strikewise.models import (
    AssetType,
    BuySell,
    CostBasisSource,
    DraftRow,
    Holding,
    OptionRight,
    ParseMode,
    ViewType,
    new_draft_id,
)
from strikewise.ocr_parser import parse_number

VIEW_RANK = {
    ViewType.UNKNOWN: 0,
    ViewType.LIST: 1,
    ViewType.DETAIL: 2,
}

# Numeric fields merged one by one when two rows are in the same tier
MERGED_FIELDS = ('shares', 'contracts', 'option_strike', 'cost_basis', 'market_value')


def grouping_key(draft: DraftRow) -> str:
    """Identity of a holding: ticker and asset type, plus strike/expiration/right for options."""
    key = f"{draft.ticker.upper()}|{draft.asset_type.value}"
    if draft.asset_type == AssetType.OPTION:
        strike = f"{draft.option_strike:g}" if draft.option_strike is not None else ''
        right = draft.option_right.value if draft.option_right else ''
        key += f"|{strike}|{draft.option_expiration or ''}|{right}"
    return key


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------

def merge_draft_row(existing: DraftRow | None, incoming: DraftRow) -> DraftRow:
    """
    Reconcile two observations of the same holding. Never fails.

    1. No existing row: incoming as-is.
    2. Existing list view, incoming detail view: incoming data wins; existing id and
       selected flag are kept; confidence is the max of both.
    3. Existing detail view, incoming list view: incoming is discarded.
    4. Otherwise field by field: a missing field is filled from incoming; a conflicting
       field changes only when incoming confidence beats existing by more than 0.05.
       Source text changes only when incoming is strictly more confident.
    """
    if existing is None:
        return incoming

    if existing.view_type == ViewType.LIST and incoming.view_type == ViewType.DETAIL:
        return replace(
            incoming,
            id=existing.id,
            selected=existing.selected,
            confidence=max(existing.confidence, incoming.confidence),
        )

    if existing.view_type == ViewType.DETAIL and incoming.view_type == ViewType.LIST:
        return existing

    incoming_wins = incoming.confidence > existing.confidence + MERGE_CONFIDENCE_HYSTERESIS

    def choose(current, new):
        if new is None:
            return current
        if current is None:
            return new
        return new if incoming_wins else current

    merged = {name: choose(getattr(existing, name), getattr(incoming, name)) for name in MERGED_FIELDS}

    if merged['cost_basis'] is not None and merged['cost_basis'] == incoming.cost_basis:
        cost_basis_source = incoming.cost_basis_source or existing.cost_basis_source
    else:
        cost_basis_source = existing.cost_basis_source or incoming.cost_basis_source

    view_type = max(existing.view_type, incoming.view_type, key=lambda v: VIEW_RANK[v])
    more_confident = incoming.confidence > existing.confidence

    return replace(
        existing,
        **merged,
        asset_type=incoming.asset_type or existing.asset_type,
        option_expiration=incoming.option_expiration or existing.option_expiration,
        option_right=incoming.option_right or existing.option_right,
        buy_sell=incoming.buy_sell or existing.buy_sell,
        cost_basis_source=cost_basis_source,
        view_type=view_type,
        confidence=max(existing.confidence, incoming.confidence),
        source=incoming.source if more_confident and incoming.source else existing.source,
        parse_mode=existing.parse_mode or incoming.parse_mode,
    )


def merge_draft_rows(
    existing: Mapping[str, DraftRow],
    incoming: Iterable[DraftRow],
) -> dict[str, DraftRow]:
    """Fold incoming rows, in order, into a copy of existing keyed by grouping_key."""
    merged = dict(existing)
    for draft in incoming:
        key = grouping_key(draft)
        merged[key] = merge_draft_row(merged.get(key), draft)
    return merged


def merge_draft_row_list(drafts: Iterable[DraftRow]) -> list[DraftRow]:
    return list(merge_draft_rows({}, drafts).values())


# ---------------------------------------------------------------------------
# Cost basis
# ---------------------------------------------------------------------------

def _positive(value: float | None) -> bool:
    return value is not None and math.isfinite(value) and value > 0


def derive_cost_basis_per_share(
    cost_basis: float | None,
    market_value: float | None,
    shares: float | None,
) -> float | None:
    """
    Per-share cost basis, cross-checked against totals.

    When the stored cost is more than 5x what market_value / shares implies, the
    stored figure is assumed to be a total misread as per-share and the implied
    value wins. With no stored cost, the implied value is used.
    """
    per_share = None
    if _positive(shares) and market_value is not None:
        per_share = market_value / shares

    if _positive(cost_basis) and _positive(per_share) and cost_basis > per_share * COST_BASIS_OUTLIER_RATIO:
        return per_share
    if _positive(cost_basis):
        return cost_basis
    if _positive(per_share):
        return per_share
    return cost_basis


def apply_derived_cost_basis(drafts: Iterable[DraftRow]) -> list[DraftRow]:
    """Replace cost basis with the derived value where it differs, marking it 'derived'."""
    result = []
    for draft in drafts:
        derived = derive_cost_basis_per_share(draft.cost_basis, draft.market_value, draft.shares)
        if derived == draft.cost_basis:
            result.append(draft)
            continue
        result.append(replace(
            draft,
            cost_basis=derived,
            cost_basis_source=draft.cost_basis_source or CostBasisSource.DERIVED,
        ))
    return result


def merge_cost_basis_from_history(
    drafts: Iterable[DraftRow],
    holdings: list[Holding],
) -> list[DraftRow]:
    """
    Fill gaps in drafts from previously saved holdings of the same ticker.

    Cost basis preference: derived from the draft's totals, then the draft's own
    figure, then history. Market value falls back to cost x shares, then history.
    """
    drafts = list(drafts)
    if not holdings:
        return drafts

    history = {holding.ticker.upper(): holding for holding in holdings if holding.ticker}
    result = []
    for draft in drafts:
        previous = history.get(draft.ticker.upper())
        if previous is None:
            result.append(draft)
            continue

        derived = derive_cost_basis_per_share(draft.cost_basis, draft.market_value, draft.shares)
        cost_basis = derived if derived is not None else previous.cost_basis

        market_value = draft.market_value
        if market_value is None:
            if cost_basis and draft.shares:
                market_value = cost_basis * draft.shares
            else:
                market_value = previous.market_value

        if draft.cost_basis_source:
            source = draft.cost_basis_source
        elif draft.cost_basis:
            source = CostBasisSource.OCR
        elif previous.cost_basis:
            source = CostBasisSource.HISTORY
        else:
            source = None

        result.append(replace(
            draft,
            option_strike=draft.option_strike if draft.option_strike is not None else previous.option_strike,
            option_expiration=draft.option_expiration or previous.option_expiration,
            option_right=draft.option_right or previous.option_right,
            cost_basis=cost_basis,
            cost_basis_source=source,
            market_value=market_value,
        ))
    return result


# ---------------------------------------------------------------------------
# Review helpers
# ---------------------------------------------------------------------------

def is_draft_ready(draft: DraftRow) -> bool:
    """A draft can be saved once it has a ticker, a positive quantity and, for options, a strike."""
    if not draft.ticker:
        return False
    if not _positive(draft.shares):
        return False
    if draft.asset_type == AssetType.OPTION and not _positive(draft.option_strike):
        return False
    return True


def format_confidence(confidence: float | None) -> str:
    if confidence is None:
        return '—'
    return f"{round(confidence * 100)}%"


def calculate_holding_stats(holdings: Iterable[Holding]) -> dict[str, float]:
    """Total market value, total cost and gain across holdings."""
    total_value = 0.0
    total_cost = 0.0
    for holding in holdings:
        total_value += holding.market_value or 0
        total_cost += (holding.cost_basis or 0) * (holding.shares or 0)
    return {
        'total_value': total_value,
        'total_cost': total_cost,
        'total_gain': total_value - total_cost,
    }


# ---------------------------------------------------------------------------
# Store records
# ---------------------------------------------------------------------------

def _record_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    return parse_number(str(value)) if value is not None else None


def _enum_or_none(enum_cls, value):
    try:
        return enum_cls(value) if value else None
    except ValueError:
        return None


def draft_from_record(record: Mapping[str, Any]) -> DraftRow:
    """
    Build a draft from a stored snake_case record.

    Options keep their contract count in share_qty.
    """
    asset_type = _enum_or_none(AssetType, record.get('asset_type')) or AssetType.EQUITY
    quantity = _record_number(record.get('share_qty'))
    contracts = _record_number(record.get('contract_qty'))
    if asset_type == AssetType.OPTION and contracts is None:
        contracts = quantity
    confidence = _record_number(record.get('confidence'))
    selected = record.get('selected')

    return DraftRow(
        id=record.get('id') or new_draft_id(),
        ticker=(record.get('ticker') or '').upper(),
        shares=quantity,
        contracts=contracts,
        asset_type=asset_type,
        option_strike=_record_number(record.get('option_strike')),
        option_expiration=record.get('option_expiration') or None,
        option_right=_enum_or_none(OptionRight, record.get('option_right')),
        buy_sell=_enum_or_none(BuySell, record.get('buy_sell')),
        cost_basis=_record_number(record.get('cost_basis')),
        cost_basis_source=_enum_or_none(CostBasisSource, record.get('cost_basis_source')),
        market_value=_record_number(record.get('market_value')),
        view_type=_enum_or_none(ViewType, record.get('view_type')) or ViewType.UNKNOWN,
        confidence=confidence if confidence is not None else 0.5,
        source=record.get('source') or '',
        selected=True if selected is None else bool(selected),
        parse_mode=_enum_or_none(ParseMode, record.get('parse_mode')),
    )


def draft_to_record(draft: DraftRow) -> dict[str, Any]:
    is_option = draft.asset_type == AssetType.OPTION
    share_qty = draft.contracts if is_option and draft.contracts is not None else draft.shares
    return {
        'id': draft.id,
        'ticker': draft.ticker,
        'share_qty': share_qty,
        'contract_qty': draft.contracts if is_option else None,
        'buy_sell': draft.buy_sell.value if draft.buy_sell else None,
        'asset_type': draft.asset_type.value,
        'option_strike': draft.option_strike,
        'option_expiration': draft.option_expiration,
        'option_right': draft.option_right.value if draft.option_right else None,
        'cost_basis': draft.cost_basis,
        'cost_basis_source': draft.cost_basis_source.value if draft.cost_basis_source else None,
        'market_value': draft.market_value,
        'view_type': draft.view_type.value,
        'confidence': draft.confidence,
        'source': draft.source,
        'selected': draft.selected,
        'parse_mode': draft.parse_mode.value if draft.parse_mode else None,
    }
