"""
Company name to ticker resolution against the market's asset list.

The asset list is cached in an explicit TtlCache owned by the caller.
"""

import logging
import re
import time
from typing import Any, Callable

from strikewise.config import ASSET_CACHE_TTL_SECONDS, TICKER_MATCH_THRESHOLD
from strikewise.market.protocol import MarketDataProtocol

logger = logging.getLogger(__name__)

ASSETS_CACHE_KEY = 'assets'

CORPORATE_SUFFIX_PATTERN = re.compile(
    r'\b(incorporated|inc|corp|corporation|co|company|ltd|plc|class)\b'
)


class TtlCache:
    """Key/value cache whose entries expire ttl_seconds after they are stored."""

    def __init__(self, ttl_seconds: float = ASSET_CACHE_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = (self._clock(), value)

    def clear(self) -> None:
        self._entries.clear()


def normalize_name(value: str) -> str:
    """Lowercase, drop punctuation and corporate suffixes ('Inc', 'Corp', 'Class', ...)."""
    value = re.sub(r'[.,()]', ' ', value.lower())
    value = CORPORATE_SUFFIX_PATTERN.sub(' ', value)
    value = re.sub(r'[^a-z0-9]+', ' ', value)
    return re.sub(r'\s+', ' ', value).strip()


def score_match(query: str, candidate: str) -> float:
    """1 for equal names, 0.9 when the candidate contains the query, else token overlap ratio."""
    if not query or not candidate:
        return 0.0
    if query == candidate:
        return 1.0
    if query in candidate:
        return 0.9
    query_tokens = set(query.split())
    candidate_tokens = set(candidate.split())
    if not query_tokens or not candidate_tokens:
        return 0.0
    overlap = len(query_tokens & candidate_tokens)
    return overlap / max(len(query_tokens), len(candidate_tokens))


def load_assets(market: MarketDataProtocol, cache: TtlCache) -> list[dict[str, str]]:
    """Active assets with a symbol and a name, served from cache while fresh."""
    cached = cache.get(ASSETS_CACHE_KEY)
    if cached:
        return cached
    assets = [
        {'symbol': str(asset['symbol']).upper(), 'name': str(asset['name'])}
        for asset in market.list_assets() or []
        if asset.get('symbol') and asset.get('name')
    ]
    cache.set(ASSETS_CACHE_KEY, assets)
    logger.info(f"Cached {len(assets)} assets for name lookup")
    return assets


def resolve_ticker_from_name(
    name: str,
    market: MarketDataProtocol,
    cache: TtlCache,
    threshold: float = TICKER_MATCH_THRESHOLD,
) -> str | None:
    """
    Best-scoring asset symbol for a company name, or None.

    A match must score at least threshold and the symbol must return a stock snapshot.
    """
    query = normalize_name(name or '')
    if not query:
        return None

    best_symbol = None
    best_score = 0.0
    for asset in load_assets(market, cache):
        score = score_match(query, normalize_name(asset['name']))
        if score > best_score:
            best_symbol, best_score = asset['symbol'], score

    if best_symbol is None or best_score < threshold:
        return None

    try:
        market.get_stock_snapshot(best_symbol)
    except Exception as e:
        logger.warning(f"Ticker verification failed for '{name}' -> {best_symbol}: {e}")
        return None
    return best_symbol
