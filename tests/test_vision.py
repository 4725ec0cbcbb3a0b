"""Tests for strikewise/vision.py — Vision response parsing and the REST client."""

import base64
from unittest.mock import MagicMock

import pytest
import requests

from strikewise.vision import (
    GoogleVisionClient,
    VisionError,
    build_paragraph,
    build_word_text,
    normalize_base64,
    parse_annotation,
)


def _word(text, break_type='SPACE', confidence=0.9):
    symbols = [{'text': ch} for ch in text]
    if break_type:
        symbols[-1]['property'] = {'detectedBreak': {'type': break_type}}
    return {'symbols': symbols, 'confidence': confidence}


def _response(*paragraph_words, text='AAPL 10'):
    paragraphs = [{'confidence': 0.8, 'words': words} for words in paragraph_words]
    return {
        'fullTextAnnotation': {
            'text': text,
            'pages': [{'blocks': [{'paragraphs': paragraphs}]}],
        }
    }


def _make_session(payload):
    session = MagicMock()
    session.post.return_value.json.return_value = payload
    return session


class TestWordText:
    def test_trailing_break_stripped(self):
        assert build_word_text(_word('AAPL')) == 'AAPL'

    def test_inner_breaks(self):
        word = {'symbols': [
            {'text': 'A', 'property': {'detectedBreak': {'type': 'SURE_SPACE'}}},
            {'text': 'B', 'property': {'detectedBreak': {'type': 'LINE_BREAK'}}},
            {'text': 'C'},
        ]}
        assert build_word_text(word) == 'A B\nC'

    def test_empty_symbols_skipped(self):
        assert build_word_text({'symbols': [{'text': ''}, {'text': '1'}]}) == '1'
        assert build_word_text({}) == ''


class TestParagraph:
    def test_words_and_tokens(self):
        paragraph = build_paragraph({
            'confidence': 0.8,
            'words': [_word('AAPL', confidence=None), _word('10'), {'symbols': []}],
        })
        assert paragraph.text == 'AAPL 10'
        assert [w.text for w in paragraph.words] == ['AAPL', '10']
        # token confidence falls back to the paragraph's
        assert paragraph.tokens[0].confidence == 0.8
        assert paragraph.tokens[1].confidence == 0.9

    def test_multi_part_word_splits_tokens(self):
        word = {'symbols': [
            {'text': 'A', 'property': {'detectedBreak': {'type': 'SPACE'}}},
            {'text': 'B'},
        ]}
        paragraph = build_paragraph({'words': [word]})
        assert [t.text for t in paragraph.tokens] == ['A', 'B']


class TestParseAnnotation:
    def test_full_response(self):
        result = parse_annotation(_response([_word('AAPL'), _word('10')], [_word('MSFT')]))
        assert result.text == 'AAPL 10'
        assert [p.text for p in result.paragraphs] == ['AAPL 10', 'MSFT']

    def test_empty_paragraphs_dropped(self):
        result = parse_annotation(_response([], [_word('AAPL')]))
        assert len(result.paragraphs) == 1

    def test_no_annotation(self):
        result = parse_annotation({})
        assert result.text == ''
        assert result.paragraphs == []


class TestNormalizeBase64:
    def test_data_url(self):
        assert normalize_base64('data:image/png;base64,QUJD') == 'QUJD'

    def test_plain(self):
        assert normalize_base64('QUJD') == 'QUJD'


class TestGoogleVisionClient:
    def test_analyze_content(self):
        session = _make_session({'responses': [_response([_word('AAPL')], text='AAPL')]})
        client = GoogleVisionClient(api_key='key', session=session)
        result = client.analyze(content='data:image/png;base64,QUJD')

        assert result.text == 'AAPL'
        kwargs = session.post.call_args.kwargs
        assert kwargs['params'] == {'key': 'key'}
        request = kwargs['json']['requests'][0]
        assert request['image'] == {'content': 'QUJD'}
        assert request['features'][0]['type'] == 'DOCUMENT_TEXT_DETECTION'

    def test_analyze_uri(self):
        session = _make_session({'responses': [{}]})
        GoogleVisionClient(api_key='key', session=session).analyze(image_uri='gs://bucket/a.png')
        request = session.post.call_args.kwargs['json']['requests'][0]
        assert request['image'] == {'source': {'imageUri': 'gs://bucket/a.png'}}

    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv('GOOGLE_VISION_API_KEY', raising=False)
        session = _make_session({})
        with pytest.raises(VisionError):
            GoogleVisionClient(session=session).analyze(content='QUJD')
        session.post.assert_not_called()

    def test_missing_input(self):
        with pytest.raises(VisionError):
            GoogleVisionClient(api_key='key', session=_make_session({})).analyze()

    def test_no_responses(self):
        with pytest.raises(VisionError, match='no responses'):
            GoogleVisionClient(api_key='key', session=_make_session({'responses': []})).analyze(content='QUJD')

    def test_api_error_message(self):
        session = _make_session({'responses': [{'error': {'message': 'Bad image data.'}}]})
        with pytest.raises(VisionError, match='Bad image data.'):
            GoogleVisionClient(api_key='key', session=session).analyze(content='QUJD')

    def test_http_error_propagates(self):
        session = MagicMock()
        session.post.return_value.raise_for_status.side_effect = requests.HTTPError('500 Server Error')
        with pytest.raises(requests.HTTPError):
            GoogleVisionClient(api_key='key', session=session).analyze(content='QUJD')

    def test_analyze_file(self, tmp_path):
        image = tmp_path / 'shot.png'
        image.write_bytes(b'ABC')
        session = _make_session({'responses': [{}]})
        GoogleVisionClient(api_key='key', session=session).analyze_file(image)
        request = session.post.call_args.kwargs['json']['requests'][0]
        assert request['image'] == {'content': base64.b64encode(b'ABC').decode('ascii')}
