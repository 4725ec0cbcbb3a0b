#!/usr/bin/env python3
"""
strikewise command line.

  strikewise suggest covered-calls AAPL --mode monthly --count 1
  strikewise suggest long-puts SPY --moneyness ITM --contracts 5 --csv out/puts.csv
  strikewise suggest cash-secured-puts AAPL --chain-file chain.json --price 100
  strikewise ocr capture1.json capture2.txt --history holdings.csv
  strikewise ocr screenshot.png --vision
  strikewise resolve "Apple Inc" "Cipher Mining"
"""

import argparse
import logging
import os
import sys

from dotenv import load_dotenv

from strikewise.chain import get_right_from_symbol
from strikewise.config import load_strategy_defaults
from strikewise.data_loader import load_holdings_csv, load_ocr_result, load_option_chain, save_suggestions_csv
from strikewise.drafts import format_confidence, merge_cost_basis_from_history
from strikewise.market.alpaca_client import AlpacaClient, MarketDataError
from strikewise.market.mock_market import MockMarketData
from strikewise.models import AssetType, ExpiryMode
from strikewise.service import STRATEGIES, SuggestionNotFound, suggest
from strikewise.suggestions import suggestions_to_frame
from strikewise.ticker_lookup import TtlCache, resolve_ticker_from_name
from strikewise.uploads import process_uploads
from strikewise.vision import GoogleVisionClient

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def build_selection(args: argparse.Namespace) -> dict | None:
    """Expiry selection from --mode/--count/--days-ahead, or None for strategy defaults."""
    if args.mode is None:
        if args.days_ahead is not None:
            return {'mode': ExpiryMode.CUSTOM, 'days_ahead': args.days_ahead}
        return None
    return {'mode': args.mode, 'count': args.count, 'days_ahead': args.days_ahead}


def offline_market(ticker: str, chain_file: str, price: float) -> MockMarketData:
    """Market data backed by a saved chain file and a fixed price."""
    contracts = load_option_chain(chain_file)
    chains = {(ticker, 'call'): [], (ticker, 'put'): []}
    for contract in contracts:
        right = get_right_from_symbol(contract.symbol)
        if right is not None:
            chains[(ticker, right.value)].append(contract)
    logger.info(f"Loaded {len(contracts)} contracts from {chain_file}")
    return MockMarketData(prices={ticker: price}, chains=chains)


def run_suggest(args: argparse.Namespace) -> int:
    ticker = args.ticker.upper()
    if args.chain_file:
        if args.price is None:
            print('--price is required with --chain-file')
            return 2
        market = offline_market(ticker, args.chain_file, args.price)
    else:
        market = AlpacaClient()

    try:
        result = suggest(
            args.strategy,
            market,
            ticker,
            selection=build_selection(args),
            moneyness=args.moneyness,
            count=args.contracts,
            defaults=load_strategy_defaults(args.config),
        )
    except SuggestionNotFound as e:
        print(f"❌ {e}")
        return 1
    except MarketDataError as e:
        logger.error(f"Market data unavailable: {e}")
        print(f"❌ {e}")
        return 1

    print(f"\n{result.ticker} @ ${result.current_price:.2f}  expiring {result.selected_expiration}")
    if result.logo_url:
        print(f"Logo: {result.logo_url}")
    if not result.suggestions:
        print('No suggestions.')
        return 0

    print(suggestions_to_frame(result.suggestions).to_string(index=False))
    if args.csv:
        save_suggestions_csv(result.suggestions, args.csv)
        print(f"\n✅ Saved {len(result.suggestions)} rows to {args.csv}")
    return 0


def run_ocr_files(args: argparse.Namespace) -> int:
    images = [(path, path) for path in args.files]
    analyze = GoogleVisionClient().analyze_file if args.vision else load_ocr_result

    batch = process_uploads(images, analyze, max_workers=args.workers)
    drafts = batch.drafts
    if args.history:
        drafts = merge_cost_basis_from_history(drafts, load_holdings_csv(args.history))

    for name, error in batch.errors:
        print(f"❌ {os.path.basename(name)}: {error}")
    for name, brokerage in batch.brokerages.items():
        print(f"🏦 {os.path.basename(name)}: {brokerage}")

    if not drafts:
        print('No holdings found.')
        return 1 if batch.errors else 0

    print(f"\n{'TICKER':<8} {'TYPE':<7} {'QTY':>10} {'COST':>10} {'VALUE':>12} {'CONF':>5}  VIEW")
    for draft in drafts:
        qty = draft.contracts if draft.asset_type == AssetType.OPTION else draft.shares
        label = draft.ticker
        if draft.option_strike is not None and draft.option_right is not None:
            label = f"{draft.ticker} {draft.option_strike:g}{draft.option_right.value[0].upper()}"
        print(
            f"{label:<8} {draft.asset_type.value:<7} "
            f"{_fmt(qty):>10} {_fmt(draft.cost_basis):>10} {_fmt(draft.market_value):>12} "
            f"{format_confidence(draft.confidence):>5}  {draft.view_type.value}"
        )
    return 0


def run_resolve(args: argparse.Namespace) -> int:
    market = AlpacaClient()
    cache = TtlCache()
    missing = 0
    for name in args.names:
        try:
            ticker = resolve_ticker_from_name(name, market, cache)
        except MarketDataError as e:
            logger.error(f"Asset list unavailable: {e}")
            print(f"❌ {e}")
            return 1
        if ticker is None:
            missing += 1
            print(f"❌ {name}: no matching ticker")
        else:
            print(f"✅ {name} → {ticker}")
    return 1 if missing else 0


def _fmt(value: float | None) -> str:
    return '-' if value is None else f"{value:,.2f}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Options strategy suggestions and portfolio screenshot parsing',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    suggest_parser = subparsers.add_parser('suggest', help='Suggest contracts for a strategy')
    suggest_parser.add_argument('strategy', choices=list(STRATEGIES))
    suggest_parser.add_argument('ticker')
    suggest_parser.add_argument('--mode', choices=[m.value for m in ExpiryMode], default=None,
                                help='Expiry horizon unit (default: strategy days ahead)')
    suggest_parser.add_argument('--count', type=int, default=None,
                                help='Number of weeks/months/years for --mode')
    suggest_parser.add_argument('--days-ahead', type=int, default=None,
                                help='Days ahead for custom mode')
    suggest_parser.add_argument('--moneyness', choices=['ITM', 'ATM', 'OTM'], default=None,
                                type=str.upper)
    suggest_parser.add_argument('--contracts', type=int, default=None,
                                help='Contracts to return, clamped to 1-5')
    suggest_parser.add_argument('--chain-file', default=None,
                                help='Saved option chain (.json or .csv) instead of Alpaca')
    suggest_parser.add_argument('--price', type=float, default=None,
                                help='Underlying price, required with --chain-file')
    suggest_parser.add_argument('--csv', default=None, help='Write suggestions to CSV')
    suggest_parser.add_argument('--config', default=None, help='YAML file with strategy defaults')
    suggest_parser.set_defaults(func=run_suggest)

    ocr_parser = subparsers.add_parser('ocr', help='Parse holdings from portfolio captures')
    ocr_parser.add_argument('files', nargs='+',
                            help='Saved OCR results (.json / .txt), or images with --vision')
    ocr_parser.add_argument('--vision', action='store_true', help='Send images to Google Vision')
    ocr_parser.add_argument('--history', default=None, help='Holdings CSV used for cost basis')
    ocr_parser.add_argument('--workers', type=int, default=4)
    ocr_parser.set_defaults(func=run_ocr_files)

    resolve_parser = subparsers.add_parser('resolve', help='Look up tickers for company names')
    resolve_parser.add_argument('names', nargs='+', help='Company names, e.g. "Apple Inc"')
    resolve_parser.set_defaults(func=run_resolve)

    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=LOG_FORMAT,
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
