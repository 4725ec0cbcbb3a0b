"""Tests for strikewise/ocr_parser.py and strikewise/option_matcher.py — token-level OCR parsing."""

import pytest

from strikewise.models import BuySell, OcrParagraph, OcrWord, OptionMatch, OptionRight
from strikewise.ocr_parser import (
    clean_token_text,
    has_currency_symbol,
    has_magnitude_suffix,
    has_percent,
    is_header_paragraph,
    normalize_ticker,
    parse_number,
    split_lines,
    tokenize_numeric,
    tokenize_paragraph,
)
from strikewise.option_matcher import parse_option_contract


class TestParseNumber:
    @pytest.mark.parametrize('raw,expected', [
        ('$1,234.50', 1234.5),
        ('12', 12.0),
        ('-3.5%', -3.5),
        ('1.2K', 1200.0),
        ('2.5m', 2_500_000.0),
        ('1B', 1_000_000_000.0),
        ('Total: 870.00', 870.0),
    ])
    def test_values(self, raw, expected):
        assert parse_number(raw) == pytest.approx(expected)

    @pytest.mark.parametrize('raw', [None, '', 'AAPL', '$'])
    def test_no_number(self, raw):
        assert parse_number(raw) is None


class TestNormalizeTicker:
    def test_valid(self):
        assert normalize_ticker('AAPL') == 'AAPL'
        assert normalize_ticker(' S ') == 'S'

    @pytest.mark.parametrize('text', ['aapl', 'TOOLONGX', 'BRK.B', '123', '', None])
    def test_rejects_shape(self, text):
        assert normalize_ticker(text) is None

    @pytest.mark.parametrize('text', ['SHARES', 'TOTAL', 'CASH', 'USD', 'CALL'])
    def test_rejects_label_words(self, text):
        assert normalize_ticker(text) is None

    @pytest.mark.parametrize('text', ['COST', 'ALL', 'DAY', 'GAIN'])
    def test_listed_symbols_that_look_like_labels(self, text):
        assert normalize_ticker(text) == text


class TestTokenHelpers:
    def test_currency(self):
        assert has_currency_symbol('$12.00')
        assert has_currency_symbol('12 USD')
        assert not has_currency_symbol('12.00')
        assert not has_currency_symbol(None)

    def test_percent(self):
        assert has_percent('+1.5%')
        assert not has_percent('1.5')

    def test_magnitude_suffix(self):
        assert has_magnitude_suffix('$1.2K')
        assert not has_magnitude_suffix('$1.20')

    def test_clean_token_text(self):
        assert clean_token_text('(AAPL)') == 'AAPL'
        assert clean_token_text('$1,234.50,') == '$1,234.50'
        assert clean_token_text('***') == '***'

    def test_split_lines(self):
        assert split_lines('  AAPL \n\n 10 shares\n') == ['AAPL', '10 shares']
        assert split_lines(None) == []


class TestTokenizeParagraph:
    def test_prefers_tokens_and_keeps_index(self):
        paragraph = OcrParagraph(
            text='AAPL 10 $2,000.00',
            confidence=0.8,
            tokens=[OcrWord('AAPL', 0.99), OcrWord('10'), OcrWord('$2,000.00', 0.9)],
        )
        tokens = tokenize_paragraph(paragraph)
        assert [t.text for t in tokens] == ['AAPL', '10', '$2,000.00']
        assert [t.index for t in tokens] == [0, 1, 2]
        assert tokens[1].confidence == 0.8

    def test_falls_back_to_text_split(self):
        tokens = tokenize_paragraph(OcrParagraph(text='MSFT 5'))
        assert [t.text for t in tokens] == ['MSFT', '5']
        assert tokens[0].confidence == 0.5

    def test_numeric_candidates(self):
        tokens = tokenize_paragraph(OcrParagraph(text='AAPL 10 $2,000.00 +1.5%'))
        numeric = tokenize_numeric(tokens)
        assert [(n.value, n.index) for n in numeric] == [(10.0, 1), (2000.0, 2), (1.5, 3)]


class TestHeaderParagraph:
    def test_header(self):
        assert is_header_paragraph(OcrParagraph(text='TICKER SHARES PRICE VALUE'))

    def test_mostly_header(self):
        assert is_header_paragraph(OcrParagraph(text='Symbol Qty Avg Cost Market Value Gain'))

    def test_holding_row_is_not_header(self):
        assert not is_header_paragraph(OcrParagraph(text='AAPL 10 shares $2,000.00'))

    def test_header_word_ticker_with_amount_is_not_header(self):
        assert not is_header_paragraph(OcrParagraph(text='COST $900.00'))

    def test_empty(self):
        assert not is_header_paragraph(OcrParagraph(text=''))
        assert not is_header_paragraph(OcrParagraph(text='123 456'))


# ---------------------------------------------------------------------------
# Inline option contracts
# ---------------------------------------------------------------------------

class TestParseOptionContract:
    def test_leading_quantity(self):
        assert parse_option_contract('2 CIFR $14 Put 1/19') == OptionMatch(
            ticker='CIFR', strike=14.0, right=OptionRight.PUT, expiration='1/19', quantity=2.0,
        )

    def test_trailing_quantity(self):
        match = parse_option_contract('ASST $5 Call 2/20/2026 3')
        assert match.ticker == 'ASST'
        assert match.right == OptionRight.CALL
        assert match.expiration == '2/20/2026'
        assert match.quantity == 3.0

    def test_sell_side(self):
        match = parse_option_contract('Sell 1 AAPL 200 Call 2025-01-17')
        assert match.buy_sell == BuySell.SELL
        assert match.quantity == 1.0
        assert match.strike == 200.0
        assert match.expiration == '2025-01-17'

    def test_buy_side_uppercase(self):
        match = parse_option_contract('BUY 3 TSLA 250.5 PUT 12/20/24')
        assert match.buy_sell == BuySell.BUY
        assert match.strike == 250.5

    def test_price_after_date_is_not_quantity(self):
        match = parse_option_contract('AAPL 200 Call 1/17 250.00')
        assert match.quantity is None

    def test_no_quantity(self):
        assert parse_option_contract('NVDA $120 Call 3/21').quantity is None

    def test_ticker_that_is_also_a_word(self):
        assert parse_option_contract('2 ALL $200 Call 1/19') == OptionMatch(
            ticker='ALL', strike=200.0, right=OptionRight.CALL, expiration='1/19', quantity=2.0,
        )

    @pytest.mark.parametrize('text', [
        None, '', 'AAPL 10 shares $2,000.00', 'cifr 14 put 1/19', 'CIFR Put 1/19',
    ])
    def test_no_match(self, text):
        assert parse_option_contract(text) is None
