"""
Token-level parsing of OCR output.

Pure functions for:
- Parsing numbers with thousands separators and K/M/B suffixes
- Recognizing ticker-like tokens
- Tokenizing OCR paragraphs into positional candidates
- Spotting table header paragraphs
"""

import re

from strikewise.config import HEADER_KEYWORD_RATIO, HEADER_KEYWORDS, TICKER_BLACKLIST
from strikewise.models import OcrNumericCandidate, OcrParagraph, OcrTokenCandidate, OcrWord

NUMBER_PATTERN = re.compile(r'(-?\d+(?:\.\d+)?)([kmb])?', re.IGNORECASE)
TICKER_PATTERN = re.compile(r'^[A-Z]{1,6}$')
TOKEN_EDGE_PATTERN = re.compile(r'^[^A-Za-z0-9$%.-]+|[^A-Za-z0-9$%.-]+$')
CURRENCY_PATTERN = re.compile(r'\$|USD|US\$', re.IGNORECASE)
DOLLAR_AMOUNT_PATTERN = re.compile(r'\$\s*-?\d')
MAGNITUDE_SUFFIX_PATTERN = re.compile(r'[kmb]\b', re.IGNORECASE)

SUFFIX_MULTIPLIERS = {'k': 1_000, 'm': 1_000_000, 'b': 1_000_000_000}

DEFAULT_TOKEN_CONFIDENCE = 0.5


def parse_number(value: str | None) -> float | None:
    """
    First number in a string, with commas removed and a K/M/B suffix applied.

    >>> parse_number('$1,234.50')
    1234.5
    >>> parse_number('1.2K')
    1200.0
    """
    if not value:
        return None
    cleaned = value.replace(',', '').strip()
    match = NUMBER_PATTERN.search(cleaned)
    if not match:
        return None
    number = float(match.group(1))
    suffix = (match.group(2) or '').lower()
    return number * SUFFIX_MULTIPLIERS.get(suffix, 1)


def normalize_ticker(text: str | None) -> str | None:
    """Return text when it is 1-6 uppercase letters and not a known label word."""
    if not text:
        return None
    text = text.strip()
    if not TICKER_PATTERN.match(text):
        return None
    if text in TICKER_BLACKLIST:
        return None
    return text


def has_currency_symbol(raw: str | None) -> bool:
    return bool(raw) and CURRENCY_PATTERN.search(raw) is not None


def has_percent(raw: str | None) -> bool:
    return bool(raw) and '%' in raw


def has_magnitude_suffix(raw: str | None) -> bool:
    return bool(raw) and MAGNITUDE_SUFFIX_PATTERN.search(raw) is not None


def clean_token_text(raw: str) -> str:
    """Trim punctuation from token edges, keeping $ % . - ; never returns empty for non-empty raw."""
    return TOKEN_EDGE_PATTERN.sub('', raw) or raw


def _paragraph_words(paragraph: OcrParagraph) -> list[OcrWord]:
    if paragraph.tokens:
        return paragraph.tokens
    if paragraph.words:
        return paragraph.words
    return [OcrWord(text=part) for part in paragraph.text.split()]


def tokenize_paragraph(paragraph: OcrParagraph) -> list[OcrTokenCandidate]:
    """
    Positional token candidates for a paragraph.

    Uses the paragraph's tokens, then its words, then a whitespace split of its text.
    Confidence falls back to the paragraph's, then 0.5.
    """
    candidates = []
    for index, word in enumerate(_paragraph_words(paragraph)):
        if not word.text:
            continue
        confidence = word.confidence
        if confidence is None:
            confidence = paragraph.confidence if paragraph.confidence is not None else DEFAULT_TOKEN_CONFIDENCE
        candidates.append(OcrTokenCandidate(
            raw=word.text,
            text=clean_token_text(word.text),
            confidence=confidence,
            index=index,
            bounding_box=word.bounding_box,
        ))
    return candidates


def tokenize_numeric(tokens: list[OcrTokenCandidate]) -> list[OcrNumericCandidate]:
    """Tokens that carry a number, keeping their original index."""
    numeric = []
    for token in tokens:
        value = parse_number(token.raw)
        if value is None:
            continue
        numeric.append(OcrNumericCandidate(
            raw=token.raw,
            text=token.text,
            value=value,
            confidence=token.confidence,
            index=token.index,
            bounding_box=token.bounding_box,
        ))
    return numeric


def is_header_paragraph(paragraph: OcrParagraph) -> bool:
    """
    True when at least 60% of the distinct alphabetic words are column header keywords.

    A paragraph with a dollar amount is a data row, never a header.
    """
    if not paragraph.text or DOLLAR_AMOUNT_PATTERN.search(paragraph.text):
        return False
    words = {word for word in re.split(r'[^A-Z]+', paragraph.text.upper()) if word}
    if not words:
        return False
    matches = sum(1 for word in words if word in HEADER_KEYWORDS)
    return matches >= len(words) * HEADER_KEYWORD_RATIO


def split_lines(text: str | None) -> list[str]:
    """Non-empty, stripped lines of OCR text."""
    if not text:
        return []
    return [line.strip() for line in text.splitlines() if line.strip()]
