"""
Domain models for the strikewise options and portfolio tools.

Dataclasses replacing ad-hoc dicts for typed, self-documenting data flow.
Closed string enums stand in for the moneyness, asset type and view type tags.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ExpiryMode(str, Enum):
    WEEKLY = 'weekly'
    MONTHLY = 'monthly'
    YEARLY = 'yearly'
    CUSTOM = 'custom'


class Moneyness(str, Enum):
    ITM = 'ITM'
    ATM = 'ATM'
    OTM = 'OTM'


class OptionRight(str, Enum):
    CALL = 'call'
    PUT = 'put'


class AssetType(str, Enum):
    EQUITY = 'equity'
    OPTION = 'option'


class ViewType(str, Enum):
    LIST = 'list'
    DETAIL = 'detail'
    UNKNOWN = 'unknown'


class BuySell(str, Enum):
    BUY = 'buy'
    SELL = 'sell'


class CostBasisSource(str, Enum):
    OCR = 'ocr'
    MANUAL = 'manual'
    HISTORY = 'history'
    DERIVED = 'derived'


class ParseMode(str, Enum):
    HEURISTIC = 'heuristic'
    STRUCTURED = 'structured'
    HYBRID = 'hybrid'


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExpirySelection:
    """User expiration preference. count is used by calendar modes, days_ahead by custom."""
    mode: ExpiryMode
    count: int | None = None
    days_ahead: int | None = None


@dataclass(frozen=True)
class OptionContract:
    """One contract from an option chain snapshot. Expiration is decoded from symbol."""
    symbol: str                  # OCC style, e.g. 'AAPL250117C00200000'
    strike_price: float
    bid: float | None = None
    ask: float | None = None
    delta: float | None = None
    theta: float | None = None
    gamma: float | None = None
    vega: float | None = None
    implied_volatility: float | None = None


@dataclass(frozen=True)
class CoveredCallSuggestion:
    otm_percent: int             # from the requested factor, not the matched strike
    strike: float
    premium: float
    yield_monthly: float         # premium / current price, percent
    yield_annualized: float
    expiration: str              # YYYY-MM-DD
    dte: int
    delta: float | None = None
    theta: float | None = None
    gamma: float | None = None
    vega: float | None = None
    implied_volatility: float | None = None


@dataclass(frozen=True)
class LongCallSuggestion:
    strike: float
    premium: float
    intrinsic: float
    extrinsic: float
    breakeven: float             # strike + premium
    cost: float                  # premium per contract
    expiration: str
    dte: int
    delta: float | None = None
    theta: float | None = None
    gamma: float | None = None
    vega: float | None = None
    implied_volatility: float | None = None


@dataclass(frozen=True)
class LongPutSuggestion:
    strike: float
    premium: float
    intrinsic: float
    extrinsic: float
    breakeven: float             # strike - premium
    cost: float
    expiration: str
    dte: int
    delta: float | None = None
    theta: float | None = None
    gamma: float | None = None
    vega: float | None = None
    implied_volatility: float | None = None


@dataclass(frozen=True)
class CashSecuredPutSuggestion:
    strike: float
    premium: float
    return_pct: float            # premium / strike, percent
    annualized_pct: float
    cash_required: float         # collateral net of premium, per contract
    breakeven: float
    expiration: str
    dte: int
    assign_prob: int | None = None   # |delta| * 100 rounded half up, a rough proxy
    delta: float | None = None
    theta: float | None = None
    gamma: float | None = None
    vega: float | None = None
    implied_volatility: float | None = None


@dataclass
class SuggestionResult:
    """Payload returned by the suggestion service for one ticker."""
    ticker: str
    current_price: float
    selected_expiration: str
    suggestions: list = field(default_factory=list)
    logo_url: str | None = None


# ---------------------------------------------------------------------------
# OCR input
# ---------------------------------------------------------------------------

@dataclass
class OcrWord:
    text: str
    confidence: float | None = None
    bounding_box: dict | None = None


@dataclass
class OcrParagraph:
    text: str
    confidence: float | None = None
    words: list[OcrWord] = field(default_factory=list)
    tokens: list[OcrWord] = field(default_factory=list)
    bounding_box: dict | None = None


@dataclass
class OcrResult:
    """Text-extraction output for one image: full text plus paragraph geometry."""
    text: str
    paragraphs: list[OcrParagraph] = field(default_factory=list)
    raw: Any = None
    structured: list[dict] | None = None   # holdings from an upstream structured extractor, if any


@dataclass(frozen=True)
class OcrTokenCandidate:
    raw: str
    text: str
    confidence: float
    index: int
    bounding_box: dict | None = None


@dataclass(frozen=True)
class OcrNumericCandidate:
    raw: str
    text: str
    value: float
    confidence: float
    index: int
    bounding_box: dict | None = None


@dataclass(frozen=True)
class OptionMatch:
    """An inline option description such as '2 CIFR $14 Put 1/19'."""
    ticker: str
    strike: float
    right: OptionRight
    expiration: str
    quantity: float | None = None
    buy_sell: BuySell | None = None


# ---------------------------------------------------------------------------
# Drafts & holdings
# ---------------------------------------------------------------------------

def new_draft_id() -> str:
    return str(uuid.uuid4())


@dataclass
class DraftRow:
    """A candidate holding recovered from OCR or manual entry, pending review."""
    ticker: str
    shares: float | None = None
    contracts: float | None = None
    asset_type: AssetType = AssetType.EQUITY
    option_strike: float | None = None
    option_expiration: str | None = None
    option_right: OptionRight | None = None
    buy_sell: BuySell | None = None
    cost_basis: float | None = None
    cost_basis_source: CostBasisSource | None = None
    market_value: float | None = None
    view_type: ViewType = ViewType.UNKNOWN
    confidence: float = 0.5
    source: str = ''
    selected: bool = True
    parse_mode: ParseMode | None = None
    id: str = field(default_factory=new_draft_id)


@dataclass
class Holding:
    """A persisted holding, used as cost-basis history for new drafts."""
    ticker: str
    shares: float | None = None
    cost_basis: float | None = None
    market_value: float | None = None
    asset_type: AssetType = AssetType.EQUITY
    option_strike: float | None = None
    option_expiration: str | None = None
    option_right: OptionRight | None = None


@dataclass
class UploadBatchResult:
    """Merged drafts from a batch of screenshots plus per-image failures."""
    drafts: list[DraftRow] = field(default_factory=list)
    errors: list[tuple[str, str]] = field(default_factory=list)   # (image name, message)
    brokerages: dict[str, str] = field(default_factory=dict)
