"""Tests for strikewise/drafts.py — draft reconciliation and cost basis cleanup.

Covers:
- grouping_key for equities and options
- merge_draft_row: detail-beats-list in both orders, hysteresis, gap filling
- merge_draft_rows: fold semantics, input not mutated
- derive_cost_basis_per_share / apply_derived_cost_basis
- merge_cost_basis_from_history
- readiness, display and record mapping helpers
"""

import pytest

from strikewise.drafts import (
    apply_derived_cost_basis,
    calculate_holding_stats,
    derive_cost_basis_per_share,
    draft_from_record,
    draft_to_record,
    format_confidence,
    grouping_key,
    is_draft_ready,
    merge_cost_basis_from_history,
    merge_draft_row,
    merge_draft_row_list,
    merge_draft_rows,
)
from strikewise.models import (
    AssetType,
    BuySell,
    CostBasisSource,
    DraftRow,
    Holding,
    OptionRight,
    ParseMode,
    ViewType,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_draft(ticker='AAPL', shares=10.0, confidence=0.5, view_type=ViewType.LIST, **kwargs):
    return DraftRow(ticker=ticker, shares=shares, confidence=confidence, view_type=view_type, **kwargs)


def _make_option(ticker='CIFR', strike=14.0, expiration='1/19', right=OptionRight.PUT, contracts=2.0, **kwargs):
    return DraftRow(
        ticker=ticker,
        shares=contracts,
        contracts=contracts,
        asset_type=AssetType.OPTION,
        option_strike=strike,
        option_expiration=expiration,
        option_right=right,
        **kwargs,
    )


class TestGroupingKey:
    def test_equity(self):
        assert grouping_key(_make_draft('aapl')) == 'AAPL|equity'

    def test_option(self):
        assert grouping_key(_make_option()) == 'CIFR|option|14|1/19|put'

    def test_option_fractional_strike(self):
        assert grouping_key(_make_option('ASST', 0.5, '02/16/2026', OptionRight.CALL)) == 'ASST|option|0.5|02/16/2026|call'

    def test_equity_and_option_differ(self):
        assert grouping_key(_make_draft('CIFR')) != grouping_key(_make_option('CIFR'))


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------

class TestMergeDraftRow:
    def test_no_existing(self):
        incoming = _make_draft()
        assert merge_draft_row(None, incoming) is incoming

    def test_detail_beats_list(self):
        listed = _make_draft(shares=10, confidence=0.5, view_type=ViewType.LIST, selected=False)
        detail = _make_draft(shares=12, confidence=0.6, view_type=ViewType.DETAIL)
        merged = merge_draft_row(listed, detail)
        assert merged.shares == 12
        assert merged.view_type == ViewType.DETAIL
        assert merged.id == listed.id
        assert merged.selected is False
        assert merged.confidence == 0.6

    def test_detail_beats_list_reverse_order(self):
        listed = _make_draft(shares=10, confidence=0.5, view_type=ViewType.LIST)
        detail = _make_draft(shares=12, confidence=0.6, view_type=ViewType.DETAIL)
        merged = merge_draft_row(detail, listed)
        assert merged.shares == 12
        assert merged.view_type == ViewType.DETAIL

    def test_detail_wins_even_with_lower_confidence(self):
        listed = _make_draft(shares=10, confidence=0.9, view_type=ViewType.LIST)
        detail = _make_draft(shares=12, confidence=0.6, view_type=ViewType.DETAIL)
        merged = merge_draft_row(listed, detail)
        assert merged.shares == 12
        assert merged.confidence == 0.9

    def test_hysteresis_keeps_existing(self):
        existing = _make_draft(shares=10, confidence=0.70, cost_basis=150.0)
        incoming = _make_draft(shares=12, confidence=0.72, cost_basis=155.0)
        merged = merge_draft_row(existing, incoming)
        assert merged.shares == 10
        assert merged.cost_basis == 150.0
        assert merged.confidence == 0.72

    def test_clear_confidence_win_replaces(self):
        existing = _make_draft(shares=10, confidence=0.60)
        incoming = _make_draft(shares=12, confidence=0.80)
        assert merge_draft_row(existing, incoming).shares == 12

    def test_missing_fields_filled_regardless_of_confidence(self):
        existing = _make_draft(shares=10, confidence=0.9, market_value=None)
        incoming = _make_draft(shares=None, confidence=0.3, market_value=1500.0)
        merged = merge_draft_row(existing, incoming)
        assert merged.shares == 10
        assert merged.market_value == 1500.0

    def test_cost_basis_source_follows_chosen_value(self):
        existing = _make_draft(confidence=0.9, cost_basis=None)
        incoming = _make_draft(confidence=0.5, cost_basis=150.0, cost_basis_source=CostBasisSource.OCR)
        merged = merge_draft_row(existing, incoming)
        assert merged.cost_basis == 150.0
        assert merged.cost_basis_source == CostBasisSource.OCR

    def test_source_only_from_more_confident(self):
        existing = _make_draft(confidence=0.6, source='AAPL 10')
        merged = merge_draft_row(existing, _make_draft(confidence=0.62, source='AAPL 10 shares'))
        assert merged.source == 'AAPL 10 shares'
        merged = merge_draft_row(existing, _make_draft(confidence=0.5, source='AAPL'))
        assert merged.source == 'AAPL 10'

    def test_unknown_then_list_upgrades_view(self):
        existing = _make_draft(view_type=ViewType.UNKNOWN)
        merged = merge_draft_row(existing, _make_draft(view_type=ViewType.LIST))
        assert merged.view_type == ViewType.LIST

    def test_keeps_existing_parse_mode(self):
        existing = _make_draft(parse_mode=ParseMode.STRUCTURED)
        merged = merge_draft_row(existing, _make_draft(parse_mode=ParseMode.HYBRID))
        assert merged.parse_mode == ParseMode.STRUCTURED


class TestMergeDraftRows:
    def test_fold_in_order(self):
        rows = [
            _make_draft('AAPL', shares=10, confidence=0.5),
            _make_draft('MSFT', shares=5, confidence=0.5),
            _make_draft('AAPL', shares=12, confidence=0.9),
        ]
        merged = merge_draft_rows({}, rows)
        assert set(merged) == {'AAPL|equity', 'MSFT|equity'}
        assert merged['AAPL|equity'].shares == 12

    def test_existing_not_mutated(self):
        existing = {'AAPL|equity': _make_draft(shares=10, confidence=0.5)}
        merged = merge_draft_rows(existing, [_make_draft(shares=20, confidence=0.9)])
        assert existing['AAPL|equity'].shares == 10
        assert merged['AAPL|equity'].shares == 20
        assert merged is not existing

    def test_options_keep_separate_contracts(self):
        rows = [_make_option(strike=14.0), _make_option(strike=15.0), _make_option(strike=14.0)]
        assert len(merge_draft_row_list(rows)) == 2


# ---------------------------------------------------------------------------
# Cost basis
# ---------------------------------------------------------------------------

class TestDeriveCostBasis:
    def test_total_misread_as_per_share(self):
        # 1000 shares worth $870; a $870 'cost' is the total, not per share
        assert derive_cost_basis_per_share(870.0, 870.0, 1000.0) == pytest.approx(0.87)

    def test_plausible_cost_kept(self):
        assert derive_cost_basis_per_share(1.11, 870.0, 1000.0) == 1.11

    def test_missing_cost_uses_implied(self):
        assert derive_cost_basis_per_share(None, 1500.0, 10.0) == 150.0

    def test_nothing_to_derive(self):
        assert derive_cost_basis_per_share(None, None, 10.0) is None
        assert derive_cost_basis_per_share(None, 1500.0, 0) is None

    def test_apply_marks_derived(self):
        drafts = [
            _make_draft(shares=10, cost_basis=None, market_value=1500.0),
            _make_draft('MSFT', shares=5, cost_basis=300.0, market_value=1500.0,
                        cost_basis_source=CostBasisSource.OCR),
        ]
        result = apply_derived_cost_basis(drafts)
        assert result[0].cost_basis == 150.0
        assert result[0].cost_basis_source == CostBasisSource.DERIVED
        assert result[1] is drafts[1]


class TestMergeCostBasisFromHistory:
    def test_fills_from_history(self):
        drafts = [_make_draft(shares=10, cost_basis=None, market_value=None)]
        history = [Holding(ticker='aapl', shares=10, cost_basis=140.0, market_value=1450.0)]
        [result] = merge_cost_basis_from_history(drafts, history)
        assert result.cost_basis == 140.0
        assert result.cost_basis_source == CostBasisSource.HISTORY
        assert result.market_value == 1400.0

    def test_draft_figures_preferred(self):
        drafts = [_make_draft(shares=10, cost_basis=150.0, market_value=1600.0)]
        history = [Holding(ticker='AAPL', cost_basis=140.0)]
        [result] = merge_cost_basis_from_history(drafts, history)
        assert result.cost_basis == 150.0
        assert result.cost_basis_source == CostBasisSource.OCR
        assert result.market_value == 1600.0

    def test_option_fields_from_history(self):
        drafts = [_make_option(strike=None, expiration=None, right=None)]
        history = [Holding(ticker='CIFR', asset_type=AssetType.OPTION, option_strike=14.0,
                           option_expiration='1/19', option_right=OptionRight.PUT)]
        [result] = merge_cost_basis_from_history(drafts, history)
        assert result.option_strike == 14.0
        assert result.option_expiration == '1/19'
        assert result.option_right == OptionRight.PUT

    def test_unknown_ticker_untouched(self):
        drafts = [_make_draft('MSFT')]
        assert merge_cost_basis_from_history(drafts, [Holding(ticker='AAPL')])[0] is drafts[0]

    def test_no_history(self):
        drafts = [_make_draft()]
        assert merge_cost_basis_from_history(drafts, []) == drafts


# ---------------------------------------------------------------------------
# Review helpers
# ---------------------------------------------------------------------------

class TestReviewHelpers:
    def test_ready_equity(self):
        assert is_draft_ready(_make_draft(shares=10))
        assert not is_draft_ready(_make_draft(shares=0))
        assert not is_draft_ready(_make_draft(ticker='', shares=10))

    def test_ready_option_needs_strike(self):
        assert is_draft_ready(_make_option())
        assert not is_draft_ready(_make_option(strike=None))

    def test_format_confidence(self):
        assert format_confidence(0.876) == '88%'
        assert format_confidence(None) == '—'

    def test_holding_stats(self):
        stats = calculate_holding_stats([
            Holding('AAPL', shares=10, cost_basis=150.0, market_value=2000.0),
            Holding('S', shares=1000, cost_basis=1.11, market_value=870.0),
        ])
        assert stats['total_value'] == 2870.0
        assert stats['total_cost'] == pytest.approx(2610.0)
        assert stats['total_gain'] == pytest.approx(260.0)


class TestRecords:
    def test_option_round_trip(self):
        draft = _make_option(buy_sell=BuySell.SELL, cost_basis=1.25,
                             cost_basis_source=CostBasisSource.OCR, parse_mode=ParseMode.HYBRID)
        record = draft_to_record(draft)
        assert record['share_qty'] == 2.0
        assert record['option_right'] == 'put'
        assert record['buy_sell'] == 'sell'
        assert draft_from_record(record) == draft

    def test_from_loose_record(self):
        draft = draft_from_record({
            'ticker': 'aapl', 'share_qty': '10', 'cost_basis': '$150.00',
            'view_type': 'sideways', 'selected': None,
        })
        assert draft.ticker == 'AAPL'
        assert draft.shares == 10.0
        assert draft.cost_basis == 150.0
        assert draft.view_type == ViewType.UNKNOWN
        assert draft.selected is True
        assert draft.confidence == 0.5
        assert draft.id
