"""Tests for strikewise/cli.py — suggest, ocr and resolve commands."""

import argparse
import json
from datetime import date, timedelta
from unittest.mock import MagicMock

import pandas as pd
import pytest

from strikewise.cli import build_parser, build_selection, main
from strikewise.market.alpaca_client import MarketDataError
from strikewise.market.mock_market import MockMarketData
from strikewise.models import ExpiryMode


def _symbol(ticker, expiration, right, strike):
    return f"{ticker}{expiration:%y%m%d}{right}{int(round(strike * 1000)):08d}"


@pytest.fixture
def chain_file(tmp_path):
    """AAPL chain 30 days out: calls and puts at 95/100/105/110, quoted 2.00/2.00."""
    expiration = date.today() + timedelta(days=30)
    contracts = [
        {'symbol': _symbol('AAPL', expiration, right, strike), 'bid': 2.0, 'ask': 2.0}
        for right in ('C', 'P')
        for strike in (95, 100, 105, 110)
    ]
    path = tmp_path / 'chain.json'
    path.write_text(json.dumps(contracts))
    return str(path)


def _namespace(mode=None, count=None, days_ahead=None):
    return argparse.Namespace(mode=mode, count=count, days_ahead=days_ahead)


class TestBuildSelection:
    def test_no_flags(self):
        assert build_selection(_namespace()) is None

    def test_days_ahead_only(self):
        assert build_selection(_namespace(days_ahead=20)) == {'mode': ExpiryMode.CUSTOM, 'days_ahead': 20}

    def test_mode(self):
        assert build_selection(_namespace('monthly', 2)) == {'mode': 'monthly', 'count': 2, 'days_ahead': None}


class TestParser:
    def test_moneyness_case_insensitive(self):
        args = build_parser().parse_args(['suggest', 'long-calls', 'AAPL', '--moneyness', 'otm'])
        assert args.moneyness == 'OTM'

    def test_unknown_strategy(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(['suggest', 'iron-condors', 'AAPL'])


# ---------------------------------------------------------------------------
# suggest
# ---------------------------------------------------------------------------

class TestSuggestCommand:
    def test_long_calls_to_csv(self, chain_file, tmp_path, capsys):
        out_path = tmp_path / 'out' / 'calls.csv'
        code = main([
            'suggest', 'long-calls', 'aapl', '--chain-file', chain_file, '--price', '100',
            '--days-ahead', '30', '--moneyness', 'OTM', '--contracts', '2', '--csv', str(out_path),
        ])
        assert code == 0
        assert sorted(pd.read_csv(out_path)['strike']) == [105.0, 110.0]
        out = capsys.readouterr().out
        assert 'AAPL @ $100.00' in out
        assert 'Saved 2 rows' in out

    def test_cash_secured_puts(self, chain_file, tmp_path):
        out_path = tmp_path / 'puts.csv'
        code = main([
            'suggest', 'cash-secured-puts', 'AAPL', '--chain-file', chain_file, '--price', '100',
            '--contracts', '2', '--csv', str(out_path),
        ])
        assert code == 0
        assert list(pd.read_csv(out_path)['strike']) == [100.0, 95.0]

    def test_config_overrides_count(self, chain_file, tmp_path):
        config = tmp_path / 'strategies.yaml'
        config.write_text('long-puts:\n  count: 1\n  moneyness: ITM\n')
        out_path = tmp_path / 'puts.csv'
        code = main([
            'suggest', 'long-puts', 'AAPL', '--chain-file', chain_file, '--price', '100',
            '--config', str(config), '--csv', str(out_path),
        ])
        assert code == 0
        assert list(pd.read_csv(out_path)['strike']) == [105.0]

    def test_chain_file_requires_price(self, chain_file, capsys):
        assert main(['suggest', 'long-calls', 'AAPL', '--chain-file', chain_file]) == 2
        assert '--price is required' in capsys.readouterr().out

    def test_nothing_found(self, tmp_path, capsys):
        path = tmp_path / 'empty.json'
        path.write_text('[]')
        code = main(['suggest', 'covered-calls', 'AAPL', '--chain-file', str(path), '--price', '100'])
        assert code == 1
        assert 'Could not retrieve options chain for AAPL' in capsys.readouterr().out


# ---------------------------------------------------------------------------
# ocr
# ---------------------------------------------------------------------------

class TestOcrCommand:
    def test_text_capture(self, tmp_path, capsys):
        capture = tmp_path / 'robinhood.txt'
        capture.write_text('Robinhood\nAAPL\n10 shares\n$1,500.00\n')
        assert main(['ocr', str(capture)]) == 0
        out = capsys.readouterr().out
        assert 'robinhood.txt: robinhood' in out
        assert 'AAPL' in out
        assert '150.00' in out

    def test_history_fills_cost_basis(self, tmp_path, capsys):
        capture = tmp_path / 'capture.json'
        capture.write_text(json.dumps({'text': '', 'holdings': [{'ticker': 'MSFT', 'shares': 5, 'confidence': 0.9}]}))
        history = tmp_path / 'history.csv'
        history.write_text('ticker,shares,cost_basis,market_value\nMSFT,5,310.25,\n')
        assert main(['ocr', str(capture), '--history', str(history)]) == 0
        assert '310.25' in capsys.readouterr().out

    def test_failed_capture(self, tmp_path, capsys):
        assert main(['ocr', str(tmp_path / 'missing.json')]) == 1
        out = capsys.readouterr().out
        assert 'missing.json' in out
        assert 'No holdings found.' in out


# ---------------------------------------------------------------------------
# resolve
# ---------------------------------------------------------------------------

ASSETS = [
    {'symbol': 'AAPL', 'name': 'Apple Inc. Common Stock'},
    {'symbol': 'CIFR', 'name': 'Cipher Mining Inc.'},
]


class TestResolveCommand:
    def test_names_to_tickers(self, monkeypatch, capsys):
        market = MockMarketData(assets=ASSETS, snapshots={'AAPL': {}, 'CIFR': {}})
        monkeypatch.setattr('strikewise.cli.AlpacaClient', lambda: market)
        assert main(['resolve', 'Apple Inc', 'Cipher Mining']) == 0
        out = capsys.readouterr().out
        assert 'Apple Inc → AAPL' in out
        assert 'Cipher Mining → CIFR' in out

    def test_unknown_name(self, monkeypatch, capsys):
        market = MockMarketData(assets=ASSETS, snapshots={'AAPL': {}})
        monkeypatch.setattr('strikewise.cli.AlpacaClient', lambda: market)
        assert main(['resolve', 'Apple', 'Totally Unknown Holdings']) == 1
        out = capsys.readouterr().out
        assert 'Apple → AAPL' in out
        assert 'Totally Unknown Holdings: no matching ticker' in out

    def test_asset_list_unavailable(self, monkeypatch, capsys):
        market = MagicMock()
        market.list_assets.side_effect = MarketDataError('Alpaca credentials missing')
        monkeypatch.setattr('strikewise.cli.AlpacaClient', lambda: market)
        assert main(['resolve', 'Apple Inc']) == 1
        assert 'Alpaca credentials missing' in capsys.readouterr().out
