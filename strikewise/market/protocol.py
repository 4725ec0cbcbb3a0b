"""
Market data protocol for abstracting quote and chain lookups.

AlpacaClient satisfies this interface. MockMarketData provides canned data for tests.
"""

from typing import Any, Protocol

from strikewise.models import OptionContract, OptionRight


class MarketDataProtocol(Protocol):
    """Protocol that any market data source must satisfy."""

    def get_underlying_price(self, ticker: str) -> float:
        """Latest trade price for a stock. Raises when unavailable."""
        ...

    def get_option_chain(self, ticker: str, right: OptionRight = OptionRight.CALL) -> list[OptionContract]:
        """Every listed contract of one side for a ticker, across expirations."""
        ...

    def get_logo_url(self, ticker: str) -> str | None:
        """Logo image URL for a ticker, or None when not configured."""
        ...

    def list_assets(self) -> list[dict[str, Any]]:
        """Active tradable assets as dicts with at least 'symbol' and 'name'."""
        ...

    def get_stock_snapshot(self, symbol: str) -> dict[str, Any]:
        """Latest snapshot for a stock. Raises when the symbol is unknown."""
        ...
