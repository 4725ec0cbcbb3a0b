"""
Google Cloud Vision text extraction.

GoogleVisionClient posts one image to the images:annotate REST endpoint with
DOCUMENT_TEXT_DETECTION; parse_annotation flattens the response into an OcrResult
(full text plus paragraphs with word and token geometry).
"""

import base64
import logging
import re
from pathlib import Path
from typing import Any

import requests

from strikewise.config import GOOGLE_VISION_URL, HTTP_TIMEOUT, get_vision_api_key
from strikewise.models import OcrParagraph, OcrResult, OcrWord

logger = logging.getLogger(__name__)

SPACE_BREAKS = {'SPACE', 'SURE_SPACE'}
LINE_BREAKS = {'EOL_SURE_SPACE', 'LINE_BREAK'}


class VisionError(RuntimeError):
    """Missing API key, empty response, or an error reported by the Vision API."""


def build_word_text(word: dict[str, Any]) -> str:
    """Join a word's symbols, honoring the detected space and line breaks."""
    parts = []
    for symbol in word.get('symbols') or []:
        text = symbol.get('text')
        if not text:
            continue
        parts.append(text)
        break_type = ((symbol.get('property') or {}).get('detectedBreak') or {}).get('type')
        if break_type in SPACE_BREAKS:
            parts.append(' ')
        elif break_type in LINE_BREAKS:
            parts.append('\n')
    return ''.join(parts).strip()


def build_paragraph(paragraph: dict[str, Any]) -> OcrParagraph:
    confidence = paragraph.get('confidence')
    words = []
    for word in paragraph.get('words') or []:
        text = build_word_text(word)
        if text:
            words.append(OcrWord(text=text, confidence=word.get('confidence'),
                                 bounding_box=word.get('boundingBox')))

    tokens = []
    for word in words:
        for part in word.text.split():
            tokens.append(OcrWord(
                text=part,
                confidence=word.confidence if word.confidence is not None else confidence,
                bounding_box=word.bounding_box,
            ))

    text = re.sub(r'\s+', ' ', ' '.join(w.text for w in words)).strip()
    return OcrParagraph(
        text=text,
        confidence=confidence,
        words=words,
        tokens=tokens,
        bounding_box=paragraph.get('boundingBox'),
    )


def parse_annotation(response: dict[str, Any]) -> OcrResult:
    """OcrResult from one AnnotateImageResponse. Paragraphs without text are dropped."""
    annotation = response.get('fullTextAnnotation') or {}
    paragraphs = []
    for page in annotation.get('pages') or []:
        for block in page.get('blocks') or []:
            for paragraph in block.get('paragraphs') or []:
                info = build_paragraph(paragraph)
                if info.text:
                    paragraphs.append(info)
    return OcrResult(text=annotation.get('text') or '', paragraphs=paragraphs, raw=response)


def normalize_base64(content: str) -> str:
    """Strip a data-URL prefix such as 'data:image/png;base64,'."""
    match = re.search(r'base64,(.*)$', content, re.DOTALL)
    return match.group(1) if match else content


class GoogleVisionClient:
    """Google Cloud Vision REST client."""

    def __init__(self, api_key: str | None = None, session: requests.Session | None = None,
                 timeout: float = HTTP_TIMEOUT):
        self.api_key = api_key or get_vision_api_key()
        self.session = session or requests.Session()
        self.timeout = timeout

    def analyze(self, content: str | None = None, image_uri: str | None = None) -> OcrResult:
        """
        Run document text detection on base64 content or an image URI.

        Raises VisionError for a missing key, an empty response or an API error.
        HTTP failures propagate as requests exceptions.
        """
        if not self.api_key:
            logger.error('GOOGLE_VISION_API_KEY is not set')
            raise VisionError('Google Vision API key is not set')
        if not content and not image_uri:
            raise VisionError('No image content or URI given')

        image = {'content': normalize_base64(content)} if content else {'source': {'imageUri': image_uri}}
        payload = {
            'requests': [{
                'features': [{'type': 'DOCUMENT_TEXT_DETECTION', 'model': 'builtin/latest'}],
                'image': image,
                'imageContext': {'languageHints': ['en']},
            }]
        }

        try:
            response = self.session.post(
                GOOGLE_VISION_URL, params={'key': self.api_key}, json=payload, timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Vision request failed: {e}")
            raise

        responses = (response.json() or {}).get('responses') or []
        if not responses:
            raise VisionError('Vision API returned no responses')
        first = responses[0]
        message = (first.get('error') or {}).get('message')
        if message:
            raise VisionError(message)
        return parse_annotation(first)

    def analyze_file(self, path: str | Path) -> OcrResult:
        data = Path(path).read_bytes()
        logger.info(f"Analyzing {path} ({len(data)} bytes)")
        return self.analyze(content=base64.b64encode(data).decode('ascii'))
