"""
Field-window extraction for OCR holdings.

Scored pickers over positional numeric candidates (paragraph path) and label or
line based searches over plain text (plain-text and detail paths).
Every picker returns None instead of raising when nothing fits.
"""

import re

from strikewise.config import HEADER_VALUE_WINDOW, LABEL_LOOKAHEAD_LINES, SHARE_COUNT_RANGE
from strikewise.models import OcrNumericCandidate
from strikewise.ocr_parser import has_currency_symbol, has_percent, parse_number

CURRENCY_VALUE_PATTERN = re.compile(r'\$\s*-?(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d+)?(?:[kmb]\b)?', re.IGNORECASE)
GROUPED_NUMBER_PATTERN = re.compile(r'(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d+)?')
SECONDARY_VALUE_PATTERN = re.compile(r'(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d+)?(?:[kmb]\b)?', re.IGNORECASE)
SHARE_WORD_PATTERN = re.compile(r'share', re.IGNORECASE)


def _best(scored: list[tuple[float, OcrNumericCandidate]]) -> OcrNumericCandidate | None:
    """Highest score wins, then the lowest token index."""
    if not scored:
        return None
    scored.sort(key=lambda item: (-item[0], item[1].index))
    return scored[0][1]


# ---------------------------------------------------------------------------
# Positional pickers (paragraph tokens)
# ---------------------------------------------------------------------------

def pick_numeric_near_header(
    numeric: list[OcrNumericCandidate],
    header_index: int,
) -> OcrNumericCandidate | None:
    """
    Value for a header such as 'Avg cost' within the next few tokens.

    Scores currency +3, decimal point +1, immediately following the header +1.
    """
    scored = []
    for candidate in numeric:
        if not (header_index - 1 < candidate.index <= header_index + HEADER_VALUE_WINDOW):
            continue
        score = (
            (3 if has_currency_symbol(candidate.raw) else 0)
            + (1 if '.' in candidate.raw else 0)
            + (1 if candidate.index == header_index + 1 else 0)
        )
        scored.append((score, candidate))
    return _best(scored)


def pick_shares_candidate(
    numeric: list[OcrNumericCandidate],
    ticker_index: int,
) -> OcrNumericCandidate | None:
    """
    Share count after the ticker: no currency or percent sign.

    Scores whole number +2, no decimal point +1, within the plausible share range +1.
    Falls back to the first number after the ticker.
    """
    low, high = SHARE_COUNT_RANGE
    scored = []
    for candidate in numeric:
        if candidate.index <= ticker_index:
            continue
        if has_currency_symbol(candidate.raw) or has_percent(candidate.raw):
            continue
        score = (
            (2 if float(candidate.value).is_integer() else 0)
            + (0 if '.' in candidate.raw else 1)
            + (1 if low <= candidate.value <= high else 0)
        )
        scored.append((score, candidate))

    best = _best(scored)
    if best is not None:
        return best
    return next((c for c in numeric if c.index > ticker_index), None)


def pick_next_numeric(
    numeric: list[OcrNumericCandidate],
    after_index: int,
    prefer_currency: bool = False,
) -> OcrNumericCandidate | None:
    """Best number after a token. Scores currency +2 (when preferred), decimal +1, non-negative +0.5."""
    following = [c for c in numeric if c.index > after_index]
    scored = []
    for candidate in following:
        score = (
            (2 if prefer_currency and has_currency_symbol(candidate.raw) else 0)
            + (1 if '.' in candidate.raw else 0)
            + (0.5 if candidate.value >= 0 else 0)
        )
        scored.append((score, candidate))
    return _best(scored)


# ---------------------------------------------------------------------------
# Label searches (plain text lines)
# ---------------------------------------------------------------------------

def _label_window(lines: list[str], label: str) -> list[str]:
    pattern = re.compile(label, re.IGNORECASE)
    for index, line in enumerate(lines):
        if pattern.search(line):
            return lines[index:index + 1 + LABEL_LOOKAHEAD_LINES]
    return []


def find_labeled_currency(lines: list[str], label: str) -> float | None:
    """
    Dollar amount for a label: the label's own line first, then the next two lines.

    >>> find_labeled_currency(['Your average cost', '$1.11'], r'average\\s+cost')
    1.11
    """
    for line in _label_window(lines, label):
        match = CURRENCY_VALUE_PATTERN.search(line)
        if match:
            value = parse_number(match.group(0).replace('$', ''))
            if value is not None:
                return value
    return None


def find_labeled_number(lines: list[str], label: str) -> float | None:
    """Bare number for a label. Lines with a currency or percent sign are skipped."""
    for line in _label_window(lines, label):
        if has_currency_symbol(line) or has_percent(line):
            continue
        match = GROUPED_NUMBER_PATTERN.search(line)
        if match:
            value = parse_number(match.group(0))
            if value is not None:
                return value
    return None


# ---------------------------------------------------------------------------
# Ticker-block searches (plain text lines)
# ---------------------------------------------------------------------------

def extract_shares_from_lines(lines: list[str]) -> float | None:
    """
    Share count in a block: a line mentioning 'share' first, then the first line
    without currency or percent signs.
    """
    for line in lines:
        if not SHARE_WORD_PATTERN.search(line):
            continue
        match = GROUPED_NUMBER_PATTERN.search(line)
        value = parse_number(match.group(0)) if match else None
        if value is not None and value > 0:
            return value

    for line in lines:
        if has_currency_symbol(line) or has_percent(line):
            continue
        match = GROUPED_NUMBER_PATTERN.search(line)
        value = parse_number(match.group(0)) if match else None
        if value is not None and value > 0:
            return value
    return None


def extract_currency_value(lines: list[str]) -> float | None:
    """First dollar amount in a block, honoring K/M/B suffixes."""
    for line in lines:
        if not has_currency_symbol(line):
            continue
        match = CURRENCY_VALUE_PATTERN.search(line)
        if match:
            value = parse_number(match.group(0).replace('$', ''))
            if value is not None:
                return value
    return None


def extract_secondary_value(lines: list[str], shares: float | None) -> float | None:
    """First number in a block that is not the share count, skipping percent lines."""
    for line in lines:
        if has_percent(line):
            continue
        for raw in SECONDARY_VALUE_PATTERN.findall(line):
            value = parse_number(raw)
            if value is not None and value != shares:
                return value
    return None
