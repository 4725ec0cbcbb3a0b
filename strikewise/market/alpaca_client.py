"""
Alpaca market data client.

Handles latest trade prices, paginated option chain snapshots, the asset list and
stock snapshots over Alpaca's REST API.
"""

import logging
from typing import Any
from urllib.parse import quote

import requests

from strikewise.chain import contracts_from_snapshots
from strikewise.config import (
    ALPACA_DATA_URL_V1BETA1,
    ALPACA_DATA_URL_V2,
    ALPACA_PAGE_LIMIT,
    HTTP_TIMEOUT,
    LOGO_DEV_URL,
    get_alpaca_credentials,
    get_alpaca_trading_url,
    get_logo_token,
    mask_secret,
)
from strikewise.models import OptionContract, OptionRight

logger = logging.getLogger(__name__)


class MarketDataError(RuntimeError):
    """Missing credentials or an unusable response from the market data API."""


class AlpacaClient:
    """Alpaca REST client satisfying MarketDataProtocol."""

    def __init__(self, key_id: str | None = None, secret_key: str | None = None,
                 trading_url: str | None = None, logo_token: str | None = None,
                 session: requests.Session | None = None, timeout: float = HTTP_TIMEOUT):
        """
        Args:
            key_id, secret_key: API credentials (default: ALPACA_API_KEY_ID / ALPACA_SECRET_KEY)
            trading_url: trading API base used for the asset list
            logo_token: logo.dev publishable token for logo URLs
            session: requests session, injectable for tests
        """
        env_key, env_secret = get_alpaca_credentials()
        self.key_id = key_id or env_key
        self.secret_key = secret_key or env_secret
        self.trading_url = (trading_url or get_alpaca_trading_url()).rstrip('/')
        self.logo_token = logo_token if logo_token is not None else get_logo_token()
        self.session = session or requests.Session()
        self.timeout = timeout

    def has_credentials(self) -> bool:
        return bool(self.key_id and self.secret_key)

    def _headers(self) -> dict[str, str]:
        if not self.has_credentials():
            raise MarketDataError(
                'Alpaca API credentials are not configured. '
                'Set ALPACA_API_KEY_ID and ALPACA_SECRET_KEY.'
            )
        return {
            'Apca-Api-Key-Id': self.key_id,
            'Apca-Api-Secret-Key': self.secret_key,
        }

    def _get(self, url: str, params: dict[str, Any] | None = None) -> Any:
        headers = self._headers()
        logger.debug(f"GET {url} params={params} key={mask_secret(self.key_id)}")
        try:
            response = self.session.get(url, headers=headers, params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Alpaca request failed: {url}: {e}")
            raise
        return response.json()

    # --- Prices ---

    def get_underlying_price(self, ticker: str) -> float:
        data = self._get(f"{ALPACA_DATA_URL_V2}/stocks/{quote(ticker)}/trades/latest")
        trade = data.get('trade') if isinstance(data, dict) else None
        price = trade.get('p') if isinstance(trade, dict) else None
        if isinstance(price, bool) or not isinstance(price, (int, float)):
            keys = list(data.keys()) if isinstance(data, dict) else []
            logger.warning(f"Unexpected latest trade shape for {ticker}: keys={keys}")
            raise MarketDataError(f"Missing latest trade price for {ticker}")
        return float(price)

    # --- Option chains ---

    def get_option_chain(self, ticker: str, right: OptionRight = OptionRight.CALL) -> list[OptionContract]:
        """
        All snapshots for one side of a ticker's chain, following next_page_token.

        Raises MarketDataError when a page comes back without snapshots.
        """
        right = OptionRight(right)
        url = f"{ALPACA_DATA_URL_V1BETA1}/options/snapshots/{quote(ticker)}"
        contracts: list[OptionContract] = []
        page_token = None

        while True:
            params = {'type': right.value, 'limit': ALPACA_PAGE_LIMIT}
            if page_token:
                params['page_token'] = page_token
            data = self._get(url, params)

            snapshots = data.get('snapshots') if isinstance(data, dict) else None
            if not snapshots:
                keys = list(data.keys()) if isinstance(data, dict) else []
                logger.warning(f"No option snapshots for {ticker} ({right.value}): keys={keys}")
                raise MarketDataError(f"No option snapshots returned for {ticker}")

            contracts.extend(contracts_from_snapshots(snapshots))
            page_token = data.get('next_page_token')
            if not page_token:
                break

        logger.info(f"Fetched {len(contracts)} {right.value} contracts for {ticker}")
        if contracts:
            logger.debug(f"Sample contract: {contracts[0]}")
        return contracts

    # --- Assets ---

    def list_assets(self) -> list[dict[str, Any]]:
        data = self._get(f"{self.trading_url}/v2/assets", {'status': 'active'})
        if not isinstance(data, list):
            raise MarketDataError('Unexpected asset list response')
        return data

    def get_stock_snapshot(self, symbol: str) -> dict[str, Any]:
        return self._get(f"{ALPACA_DATA_URL_V2}/stocks/{quote(symbol)}/snapshot", {'feed': 'iex'})

    # --- Logos ---

    def get_logo_url(self, ticker: str) -> str | None:
        if not self.logo_token:
            logger.warning('logo.dev token missing, skipping logo')
            return None
        return f"{LOGO_DEV_URL}/{quote(ticker.upper())}?token={self.logo_token}"
