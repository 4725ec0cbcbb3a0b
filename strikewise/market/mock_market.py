"""
Mock market data for testing and offline runs. Returns canned data without network access.
"""

from typing import Any

from strikewise.market.alpaca_client import MarketDataError
from strikewise.models import OptionContract, OptionRight


class MockMarketData:
    """Mock market data source that satisfies MarketDataProtocol."""

    def __init__(self, prices: dict[str, float] | None = None,
                 chains: dict[tuple[str, str], list[OptionContract]] | None = None,
                 assets: list[dict[str, Any]] | None = None,
                 snapshots: dict[str, dict[str, Any]] | None = None,
                 logo_base: str | None = None):
        """
        Args:
            prices: ticker -> latest price
            chains: (ticker, 'call' | 'put') -> contracts
            assets: asset dicts with 'symbol' and 'name'
            snapshots: symbol -> stock snapshot; symbols without one fail verification
        """
        self._prices = prices if prices is not None else {'AAPL': 200.00, 'SPY': 605.50}
        self._chains = chains or {}
        self._assets = assets or []
        self._snapshots = snapshots or {}
        self._logo_base = logo_base
        self.calls: list[tuple[str, str]] = []

    def get_underlying_price(self, ticker: str) -> float:
        self.calls.append(('price', ticker))
        if ticker not in self._prices:
            raise MarketDataError(f"Missing latest trade price for {ticker}")
        return self._prices[ticker]

    def get_option_chain(self, ticker: str, right: OptionRight = OptionRight.CALL) -> list[OptionContract]:
        right = OptionRight(right)
        self.calls.append(('chain', f"{ticker}:{right.value}"))
        return list(self._chains.get((ticker, right.value), []))

    def get_logo_url(self, ticker: str) -> str | None:
        if not self._logo_base:
            return None
        return f"{self._logo_base}/{ticker.upper()}"

    def list_assets(self) -> list[dict[str, Any]]:
        self.calls.append(('assets', ''))
        return list(self._assets)

    def get_stock_snapshot(self, symbol: str) -> dict[str, Any]:
        self.calls.append(('snapshot', symbol))
        if symbol not in self._snapshots:
            raise MarketDataError(f"No snapshot for {symbol}")
        return dict(self._snapshots[symbol])
