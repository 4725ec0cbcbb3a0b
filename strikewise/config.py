"""
Centralized business constants for the strikewise options and portfolio tools.

All hardcoded values that drive selection, suggestion and OCR logic are defined here.
Import from this module instead of hardcoding values in business logic.
"""

import os

import yaml


# --- Expiration Selection ---

# Fallback horizon when a selection is missing or unusable
DEFAULT_DAYS_AHEAD = 35

# Approximate interval per expiry mode. Not calendar-accurate on purpose.
MODE_INTERVAL_DAYS = {
    'weekly': 7,
    'monthly': 30,
    'yearly': 365,
}

# Selection used when user input cannot be normalized
DEFAULT_EXPIRY_MODE = 'weekly'
DEFAULT_EXPIRY_COUNT = 5

# derive_selection_from_days: (max count, allowed distance in days) per mode
DERIVE_WINDOWS = {
    'weekly': (12, 2),
    'monthly': (12, 5),
    'yearly': (5, 45),
}


# --- Moneyness Selection ---

# Delta bands per moneyness bucket: (low, high, target). Puts use the negated bands.
CALL_DELTA_BANDS = {
    'OTM': (0.25, 0.45, 0.35),
    'ATM': (0.45, 0.55, 0.50),
    'ITM': (0.55, 0.80, 0.65),
}
PUT_DELTA_BANDS = {
    'OTM': (-0.45, -0.25, -0.35),
    'ATM': (-0.55, -0.45, -0.50),
    'ITM': (-0.80, -0.55, -0.65),
}

# Requested contract counts are clamped to this range at the service boundary
MIN_SUGGESTION_COUNT = 1
MAX_SUGGESTION_COUNT = 5


# --- Suggestions ---

# Covered calls: strike targets at 10/15/20% above the current price
DEFAULT_OTM_FACTORS = (1.10, 1.15, 1.20)

# Covered call strike targets snap to this increment before matching a real strike
COVERED_CALL_STRIKE_STEP = 5

# Shares per option contract
CONTRACT_MULTIPLIER = 100

# Per-strategy request defaults: days ahead, moneyness bucket, contract count
STRATEGY_DEFAULTS = {
    'covered-calls': {'days_ahead': 35, 'moneyness': 'OTM', 'count': 3},
    'long-calls': {'days_ahead': 45, 'moneyness': 'ATM', 'count': 3},
    'long-puts': {'days_ahead': 45, 'moneyness': 'ATM', 'count': 3},
    'cash-secured-puts': {'days_ahead': 35, 'moneyness': 'OTM', 'count': 3},
}


# --- OCR Parsing ---

# Table/column header words; a paragraph made mostly of these is not a holding
HEADER_KEYWORDS = frozenset({
    'TICKER', 'SYMBOL', 'NAME', 'SHARE', 'SHARES', 'QTY', 'QUANTITY',
    'PRICE', 'COST', 'BASIS', 'AVG', 'AVERAGE', 'TRADE', 'MARKET',
    'VALUE', 'TOTAL', 'CHANGE',
})

# Share of distinct uppercase words that must be header keywords
HEADER_KEYWORD_RATIO = 0.6

# Words that look like tickers but never are. Listed symbols such as COST, ALL,
# DAY and GAIN stay out of this set even though they appear in headers.
TICKER_BLACKLIST = frozenset({
    'TICKER', 'SYMBOL', 'NAME', 'SHARE', 'SHARES', 'QTY', 'QUANTITY',
    'PRICE', 'BASIS', 'AVG', 'AVERAGE', 'TRADE', 'MARKET', 'VALUE', 'TOTAL',
    'CHANGE', 'CASH', 'EQUITY', 'USD', 'CALL', 'PUT', 'BUY', 'SELL', 'YOUR',
    'TODAY', 'RETURN', 'LOSS',
})

# Raw-text patterns that only appear on single-position detail pages
DETAIL_VIEW_PATTERNS = (
    r'AVERAGE\s+COST',
    r'EQUITY\s+VALUE',
    r'MARKET\s+VALUE',
    r"TODAY'?S\s+RETURN",
    r'TOTAL\s+RETURN',
    r'PORTFOLIO\s+DIVERSITY',
)

# More distinct tickers than this in one capture means a list view
LIST_VIEW_MIN_TICKERS = 4

# Token window after a cost/basis header that may hold its value
HEADER_VALUE_WINDOW = 6

# Plausible share counts
SHARE_COUNT_RANGE = (1, 1_000_000)

# Lines after a label line searched for its value
LABEL_LOOKAHEAD_LINES = 2

# Label patterns on single-position detail pages
DETAIL_LABELS = {
    'market_value': r'(?:market|equity)\s+value',
    'cost_basis': r'(?:average|avg\.?)\s+cost',
    'shares': r'^(?:your\s+)?(?:shares|quantity|qty)\b',
}

# Structured holdings replace heuristic rows entirely when this is set
STRUCTURED_ONLY_ENV = 'OCR_USE_STRUCTURED_ONLY'


# --- Draft Confidence & Merge ---

# Incoming draft must beat existing confidence by more than this to replace a field
MERGE_CONFIDENCE_HYSTERESIS = 0.05

# Paragraph draft confidence floor and completeness boosts
PARAGRAPH_CONFIDENCE_FLOOR = 0.35
SHARES_FOUND_BOOST = 0.15
VALUE_FOUND_BOOST = 0.10
OPTION_FOUND_BOOST = 0.05

# Plain-text draft base confidences
PLAIN_EQUITY_CONFIDENCE = 0.55
PLAIN_OPTION_CONFIDENCE = 0.50
CURRENCY_FOUND_BOOST = 0.15
SECONDARY_FOUND_BOOST = 0.10

# Labeled detail-page extraction
DETAIL_CONFIDENCE = 0.95
DETAIL_PARTIAL_CONFIDENCE = 0.80

# Structured (LLM) holdings are trusted at or above this average confidence
STRUCTURED_MIN_CONFIDENCE = 0.75

# Stored cost more than this multiple of the totals-implied cost is treated as an OCR slip
COST_BASIS_OUTLIER_RATIO = 5


# --- Ticker Lookup ---

ASSET_CACHE_TTL_SECONDS = 24 * 60 * 60
TICKER_MATCH_THRESHOLD = 0.85


# --- Uploads ---

MAX_OCR_WORKERS = 4


# --- External APIs ---

ALPACA_DATA_URL_V1BETA1 = 'https://data.alpaca.markets/v1beta1'
ALPACA_DATA_URL_V2 = 'https://data.alpaca.markets/v2'
ALPACA_TRADING_URL = 'https://api.alpaca.markets'
ALPACA_PAGE_LIMIT = 1000
GOOGLE_VISION_URL = 'https://vision.googleapis.com/v1/images:annotate'
LOGO_DEV_URL = 'https://img.logo.dev/ticker'
HTTP_TIMEOUT = 15


def get_alpaca_credentials() -> tuple[str | None, str | None]:
    """Return (key_id, secret_key) from the environment."""
    key_id = os.getenv('ALPACA_API_KEY_ID')
    secret_key = os.getenv('ALPACA_SECRET_KEY') or os.getenv('ALPACA_API_SECRET_KEY')
    return key_id, secret_key


def get_alpaca_trading_url() -> str:
    return (
        os.getenv('ALPACA_TRADING_API_URL')
        or os.getenv('ALPACA_API_BASE_URL')
        or ALPACA_TRADING_URL
    )


def get_vision_api_key() -> str | None:
    return os.getenv('GOOGLE_VISION_API_KEY')


def get_logo_token() -> str | None:
    return os.getenv('LOGO_DEV_PUBLISHABLE_KEY') or os.getenv('NEXT_PUBLIC_LOGO_DEV_TOKEN')


def mask_secret(value: str | None) -> str:
    """Shorten a secret for log output."""
    if not value:
        return ''
    if len(value) <= 6:
        return '***'
    return f"{value[:3]}...{value[-3:]}"


def load_strategy_defaults(path: str | None = None) -> dict[str, dict]:
    """
    Return per-strategy request defaults, optionally overridden from a YAML file.

    The YAML file maps strategy names to partial dicts, e.g.::

        long-calls:
          days_ahead: 60
          count: 5

    Unknown strategies in the file are ignored.
    """
    defaults = {name: dict(values) for name, values in STRATEGY_DEFAULTS.items()}
    if not path or not os.path.exists(path):
        return defaults

    with open(path, 'r') as f:
        overrides = yaml.safe_load(f) or {}

    for name, values in overrides.items():
        if name in defaults and isinstance(values, dict):
            defaults[name].update(values)
    return defaults


def structured_only_enabled() -> bool:
    return os.getenv(STRUCTURED_ONLY_ENV, '').strip().lower() in ('1', 'true', 'yes')
