"""
OCR to draft holdings.

Pure functions. Turns one OcrResult into DraftRows through three layered paths:
- paragraph geometry (token positions inside each OCR paragraph)
- plain-text ticker blocks (line runs starting at a bare ticker or an option line)
- labeled detail-page fields ('Your market value', 'Your average cost', 'Shares')
and reconciles them with optional structured holdings from an upstream extractor.

A capture with nothing usable yields an empty list, never an exception.
"""

import math
import re
from dataclasses import replace
from typing import Any, Mapping

from strikewise.config import (
    CURRENCY_FOUND_BOOST,
    DETAIL_CONFIDENCE,
    DETAIL_LABELS,
    DETAIL_PARTIAL_CONFIDENCE,
    DETAIL_VIEW_PATTERNS,
    LIST_VIEW_MIN_TICKERS,
    OPTION_FOUND_BOOST,
    PARAGRAPH_CONFIDENCE_FLOOR,
    PLAIN_EQUITY_CONFIDENCE,
    PLAIN_OPTION_CONFIDENCE,
    SECONDARY_FOUND_BOOST,
    SHARES_FOUND_BOOST,
    STRUCTURED_MIN_CONFIDENCE,
    VALUE_FOUND_BOOST,
    structured_only_enabled,
)
from strikewise.drafts import merge_draft_row_list
from strikewise.field_extractor import (
    extract_currency_value,
    extract_secondary_value,
    extract_shares_from_lines,
    find_labeled_currency,
    find_labeled_number,
    pick_next_numeric,
    pick_numeric_near_header,
    pick_shares_candidate,
)
from strikewise.models import (
    AssetType,
    CostBasisSource,
    DraftRow,
    OcrParagraph,
    OcrResult,
    OptionRight,
    ParseMode,
    ViewType,
)
from strikewise.ocr_parser import (
    has_magnitude_suffix,
    is_header_paragraph,
    normalize_ticker,
    parse_number,
    split_lines,
    tokenize_numeric,
    tokenize_paragraph,
)
from strikewise.option_matcher import OPTION_PATTERN, parse_option_contract

COST_HEADER_PATTERN = re.compile(r'COST|BASIS|AVG|TRADE')


def _amount(value: float | None) -> float | None:
    """Drop negative or non-finite quantities and amounts."""
    if value is None or not math.isfinite(value) or value < 0:
        return None
    return value


def _strike(value: float | None) -> float | None:
    if value is None or not math.isfinite(value) or value <= 0:
        return None
    return value


# ---------------------------------------------------------------------------
# Paragraph path
# ---------------------------------------------------------------------------

def build_draft_row_from_paragraph(paragraph: OcrParagraph) -> DraftRow | None:
    """
    One draft from one OCR paragraph, or None for headers and paragraphs without a ticker.

    Shares are the best integer-looking number after the ticker. Cost comes from a
    cost/basis/avg header window when present, else the best number after the shares;
    market value is the best number after the cost. A lone K/M/B-suffixed amount with
    known shares is read as a total market value instead of a per-share cost.
    """
    if not paragraph.text or is_header_paragraph(paragraph):
        return None
    tokens = tokenize_paragraph(paragraph)
    if not tokens:
        return None

    option = parse_option_contract(paragraph.text)
    ticker_token = None
    if option:
        ticker_token = next((t for t in tokens if t.text.upper() == option.ticker), None)
    if ticker_token is None:
        ticker_token = next((t for t in tokens if normalize_ticker(t.text)), None)
    ticker = option.ticker if option else normalize_ticker(ticker_token.text if ticker_token else None)
    if not ticker:
        return None

    numeric = tokenize_numeric(tokens)
    if option:
        # Strike, expiration and quantity already belong to the option description
        option_parts = set(option_text_tokens(paragraph.text))
        numeric = [c for c in numeric if c.raw not in option_parts]
    if not numeric and not option:
        return None

    ticker_index = ticker_token.index if ticker_token else 0
    shares_candidate = None
    if ticker_token is not None and not option:
        shares_candidate = pick_shares_candidate(numeric, ticker_index)
    if option:
        shares_value = option.quantity
    else:
        shares_value = shares_candidate.value if shares_candidate else None

    header_index = next(
        (t.index for t in tokens if t is not ticker_token and COST_HEADER_PATTERN.search(t.text.upper())),
        None,
    )
    cost_candidate = pick_numeric_near_header(numeric, header_index) if header_index is not None else None
    if cost_candidate is None:
        after = shares_candidate.index if shares_candidate else ticker_index
        cost_candidate = pick_next_numeric(numeric, after, prefer_currency=True)
    market_after = (
        cost_candidate.index if cost_candidate
        else shares_candidate.index if shares_candidate
        else ticker_index
    )
    market_candidate = pick_next_numeric(numeric, market_after, prefer_currency=True)

    cost_basis = cost_candidate.value if cost_candidate else None
    market_value = market_candidate.value if market_candidate else None
    if (
        cost_candidate
        and shares_value
        and has_magnitude_suffix(cost_candidate.raw)
        and market_candidate is None
    ):
        market_value = cost_candidate.value
        cost_basis = None

    used = [
        ticker_token.confidence if ticker_token else None,
        shares_candidate.confidence if shares_candidate else None,
        cost_candidate.confidence if cost_candidate else None,
        market_candidate.confidence if market_candidate else None,
        paragraph.confidence,
    ]
    used = [c for c in used if c is not None]
    average = sum(used) / len(used) if used else 0.5
    boost = (
        (SHARES_FOUND_BOOST if shares_value and shares_value > 0 else 0)
        + (VALUE_FOUND_BOOST if cost_candidate or market_candidate else 0)
        + (OPTION_FOUND_BOOST if option else 0)
    )
    confidence = min(1.0, max(PARAGRAPH_CONFIDENCE_FLOOR, average + boost))

    cost_basis = _amount(cost_basis)
    return DraftRow(
        ticker=ticker,
        shares=_amount(shares_value),
        contracts=_amount(option.quantity) if option else None,
        asset_type=AssetType.OPTION if option else AssetType.EQUITY,
        option_strike=_strike(option.strike) if option else None,
        option_expiration=option.expiration if option else None,
        option_right=option.right if option else None,
        buy_sell=option.buy_sell if option else None,
        cost_basis=cost_basis,
        cost_basis_source=CostBasisSource.OCR if cost_basis is not None else None,
        market_value=_amount(market_value),
        confidence=confidence,
        source=paragraph.text,
    )


def option_text_tokens(text: str) -> list[str]:
    """Whitespace tokens of the option description inside text, if any."""
    match = OPTION_PATTERN.search(text)
    return match.group(0).split() if match else []


def parse_holdings_from_paragraphs(result: OcrResult) -> list[DraftRow]:
    rows = []
    for paragraph in result.paragraphs:
        row = build_draft_row_from_paragraph(paragraph)
        if row is not None:
            rows.append(row)
    return rows


# ---------------------------------------------------------------------------
# Plain-text path
# ---------------------------------------------------------------------------

def collect_context_lines(lines: list[str], start: int) -> tuple[str, int]:
    """
    Lines belonging to the block that starts at lines[start].

    The block ends before the next bare ticker or option line.
    Returns the joined source text and the index just past the block.
    """
    context = []
    pointer = start
    while pointer < len(lines):
        line = lines[pointer]
        if pointer != start and (normalize_ticker(line) or parse_option_contract(line)):
            break
        context.append(line)
        pointer += 1
    return ' '.join(context), pointer


def parse_holdings_from_plain_text(text: str | None) -> list[DraftRow]:
    """
    Ticker blocks over the capture's full text.

    An option line opens an option block; a line that is only a ticker opens an
    equity block, which is kept only when a positive share count is found.
    """
    lines = split_lines(text)
    rows = []
    index = 0
    while index < len(lines):
        line = lines[index]
        option = parse_option_contract(line)
        if option:
            source, end = collect_context_lines(lines, index)
            context = lines[index + 1:end]
            quantity = option.quantity if option.quantity is not None else extract_shares_from_lines(context)
            currency_value = _amount(extract_currency_value(context))
            rows.append(DraftRow(
                ticker=option.ticker,
                shares=_amount(quantity),
                contracts=_amount(quantity),
                asset_type=AssetType.OPTION,
                option_strike=_strike(option.strike),
                option_expiration=option.expiration,
                option_right=option.right,
                buy_sell=option.buy_sell,
                cost_basis=currency_value,
                cost_basis_source=CostBasisSource.OCR if currency_value is not None else None,
                market_value=currency_value,
                confidence=min(1.0, PLAIN_OPTION_CONFIDENCE + (CURRENCY_FOUND_BOOST if currency_value else 0)),
                source=source,
            ))
            index = end
            continue

        ticker = normalize_ticker(line)
        if not ticker:
            index += 1
            continue

        source, end = collect_context_lines(lines, index)
        context = lines[index:end]
        shares = extract_shares_from_lines(context)
        if shares is None or shares <= 0:
            index = end
            continue

        currency_value = _amount(extract_currency_value(context))
        secondary_value = _amount(extract_secondary_value(context, shares))
        confidence = (
            PLAIN_EQUITY_CONFIDENCE
            + (CURRENCY_FOUND_BOOST if currency_value else 0)
            + (SECONDARY_FOUND_BOOST if secondary_value else 0)
        )
        rows.append(DraftRow(
            ticker=ticker,
            shares=shares,
            cost_basis=secondary_value,
            cost_basis_source=CostBasisSource.OCR if secondary_value is not None else None,
            market_value=currency_value if currency_value is not None else secondary_value,
            confidence=min(1.0, confidence),
            source=source,
        ))
        index = end

    return rows


# ---------------------------------------------------------------------------
# View classification & detail path
# ---------------------------------------------------------------------------

def classify_view_type(candidates: list[DraftRow], raw_text: str | None) -> ViewType:
    """
    'list' for more than three distinct tickers; 'detail' for exactly one ticker on
    a page showing detail labels such as AVERAGE COST; otherwise 'unknown'.
    """
    tickers = {c.ticker for c in candidates if c.ticker}
    if len(tickers) >= LIST_VIEW_MIN_TICKERS:
        return ViewType.LIST
    if len(tickers) == 1:
        upper = (raw_text or '').upper()
        if any(re.search(pattern, upper) for pattern in DETAIL_VIEW_PATTERNS):
            return ViewType.DETAIL
    return ViewType.UNKNOWN


def extract_detail_row(lines: list[str], ticker: str, fallback: DraftRow | None = None) -> DraftRow | None:
    """
    Labeled fields from a single-position page.

    Missing labels are filled from fallback (the heuristic row for the same ticker).
    Returns None when no label yields a value.
    """
    market_value = _amount(find_labeled_currency(lines, DETAIL_LABELS['market_value']))
    cost_basis = _amount(find_labeled_currency(lines, DETAIL_LABELS['cost_basis']))
    shares = _amount(find_labeled_number(lines, DETAIL_LABELS['shares']))

    found = [value for value in (market_value, cost_basis, shares) if value is not None]
    if not found:
        return None
    confidence = DETAIL_CONFIDENCE if len(found) == 3 else DETAIL_PARTIAL_CONFIDENCE

    if fallback is not None:
        shares = shares if shares is not None else fallback.shares
        cost_basis = cost_basis if cost_basis is not None else fallback.cost_basis
        market_value = market_value if market_value is not None else fallback.market_value

    return DraftRow(
        ticker=ticker,
        shares=shares,
        cost_basis=cost_basis,
        cost_basis_source=CostBasisSource.OCR if cost_basis is not None else None,
        market_value=market_value,
        view_type=ViewType.DETAIL,
        confidence=confidence,
        source=' '.join(lines),
    )


def parse_holdings_from_vision(result: OcrResult) -> list[DraftRow]:
    """
    Heuristic drafts for one capture, merged by grouping key.

    Paragraph rows come first, then plain-text rows. On a detail page the equity rows
    are replaced by the labeled detail row. Every row is tagged with the capture's view type.
    """
    candidates = parse_holdings_from_paragraphs(result) + parse_holdings_from_plain_text(result.text)
    view_type = classify_view_type(candidates, result.text)

    if view_type == ViewType.DETAIL:
        ticker = candidates[0].ticker
        equities = [c for c in candidates if c.asset_type == AssetType.EQUITY]
        fallback = max(equities, key=lambda c: c.confidence) if equities else None
        detail = extract_detail_row(split_lines(result.text), ticker, fallback)
        if detail is not None:
            candidates = [c for c in candidates if c.asset_type == AssetType.OPTION] + [detail]

    tagged = [replace(c, view_type=view_type) for c in candidates]
    return merge_draft_row_list(tagged)


# ---------------------------------------------------------------------------
# Structured holdings
# ---------------------------------------------------------------------------

def _first(holding: Mapping[str, Any], *keys):
    for key in keys:
        value = holding.get(key)
        if value is not None and value != '':
            return value
    return None


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    return parse_number(str(value))


def draft_from_structured_holding(holding: Any) -> DraftRow | None:
    """Draft from one structured holding dict (camelCase or snake_case keys). Non-dict entries give None."""
    if not isinstance(holding, Mapping):
        return None
    ticker = normalize_ticker(str(holding.get('ticker') or '').strip().upper())
    if not ticker:
        return None

    asset_type = AssetType.OPTION if _first(holding, 'assetType', 'asset_type') == 'option' else AssetType.EQUITY
    right = _first(holding, 'optionRight', 'option_right')
    shares = _amount(_number(_first(holding, 'shares', 'quantity')))
    cost_basis = _amount(_number(_first(holding, 'costBasis', 'cost_basis')))
    confidence = _number(holding.get('confidence'))

    return DraftRow(
        ticker=ticker,
        shares=shares,
        contracts=shares if asset_type == AssetType.OPTION else None,
        asset_type=asset_type,
        option_strike=_strike(_number(_first(holding, 'optionStrike', 'option_strike'))),
        option_expiration=_first(holding, 'optionExpiration', 'option_expiration'),
        option_right=OptionRight(right.lower()) if isinstance(right, str) and right.lower() in ('call', 'put') else None,
        cost_basis=cost_basis,
        cost_basis_source=CostBasisSource.OCR if cost_basis is not None else None,
        market_value=_amount(_number(_first(holding, 'marketValue', 'market_value'))),
        confidence=min(1.0, max(0.0, confidence)) if confidence is not None else 0.0,
        source=str(_first(holding, 'sourceText', 'source_text', 'source') or ''),
        parse_mode=ParseMode.STRUCTURED,
    )


def drafts_from_structured_holdings(
    structured: list[Any] | None,
    heuristic: list[DraftRow],
    min_confidence: float = STRUCTURED_MIN_CONFIDENCE,
    structured_only: bool = False,
) -> list[DraftRow]:
    """
    Combine structured holdings with heuristic drafts.

    - structured_only: only the structured rows, however confident.
    - Average structured confidence >= min_confidence: structured rows, plus heuristic
      rows for tickers they missed (tagged 'hybrid').
    - Otherwise: heuristic rows only (tagged 'heuristic').
    """
    rows = [row for row in (draft_from_structured_holding(h) for h in structured or []) if row is not None]
    if structured_only:
        return rows

    heuristic_rows = [replace(row, parse_mode=ParseMode.HEURISTIC) for row in heuristic]
    if not rows:
        return heuristic_rows

    average = sum(row.confidence for row in rows) / len(rows)
    if average < min_confidence:
        return heuristic_rows

    covered = {row.ticker for row in rows}
    gaps = [replace(row, parse_mode=ParseMode.HYBRID) for row in heuristic if row.ticker not in covered]
    return merge_draft_row_list(rows) + gaps


def parse_holdings(result: OcrResult, structured_only: bool | None = None) -> list[DraftRow]:
    """Drafts for one capture, using its structured holdings when present."""
    if structured_only is None:
        structured_only = structured_only_enabled()
    heuristic = parse_holdings_from_vision(result)
    return drafts_from_structured_holdings(result.structured, heuristic, structured_only=structured_only)
