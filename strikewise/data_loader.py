"""
Loading chains, OCR captures and holdings from disk; saving suggestion tables.

JSON chains may be a raw snapshot page ({'snapshots': {...}}) or a list of contract
dicts. CSV files are read with pandas.
"""

import json
import os

import pandas as pd

from strikewise.chain import coerce_chain, contracts_from_snapshots
from strikewise.models import AssetType, Holding, OcrParagraph, OcrResult, OcrWord, OptionContract, OptionRight
from strikewise.suggestions import suggestions_to_frame
from strikewise.vision import parse_annotation


def _require(filepath: str, kind: str) -> None:
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"{kind} not found: {filepath}")


def load_option_chain_json(filepath: str) -> list[OptionContract]:
    """
    Load an option chain from JSON.

    Raises:
        FileNotFoundError: If the file doesn't exist.
    """
    _require(filepath, 'Option chain')
    with open(filepath, 'r') as f:
        data = json.load(f)

    if isinstance(data, dict) and isinstance(data.get('snapshots'), dict):
        return contracts_from_snapshots(data['snapshots'])
    if isinstance(data, dict):
        return contracts_from_snapshots(data)
    if isinstance(data, list):
        return coerce_chain(data)
    return []


def load_option_chain_csv(filepath: str) -> list[OptionContract]:
    """
    Load an option chain from CSV.

    Expected columns: symbol, strike (or strike_price), bid, ask and optionally
    delta, theta, gamma, vega, implied_volatility. Rows without a usable symbol are skipped.
    """
    _require(filepath, 'Option chain')
    df = pd.read_csv(filepath)
    return coerce_chain(df.to_dict('records'))


def load_option_chain(filepath: str) -> list[OptionContract]:
    if filepath.lower().endswith('.csv'):
        return load_option_chain_csv(filepath)
    return load_option_chain_json(filepath)


def _words(items) -> list[OcrWord]:
    words = []
    for item in items or []:
        if isinstance(item, str):
            words.append(OcrWord(text=item))
        elif isinstance(item, dict) and item.get('text'):
            words.append(OcrWord(
                text=item['text'],
                confidence=item.get('confidence'),
                bounding_box=item.get('boundingBox', item.get('bounding_box')),
            ))
    return words


def ocr_result_from_dict(data: dict) -> OcrResult:
    """OcrResult from a raw Vision response or the flattened {text, paragraphs} shape."""
    if 'fullTextAnnotation' in data:
        result = parse_annotation(data)
    else:
        paragraphs = [
            OcrParagraph(
                text=p.get('text', ''),
                confidence=p.get('confidence'),
                words=_words(p.get('words')),
                tokens=_words(p.get('tokens')),
                bounding_box=p.get('boundingBox', p.get('bounding_box')),
            )
            for p in data.get('paragraphs') or []
            if isinstance(p, dict)
        ]
        result = OcrResult(text=data.get('text') or '', paragraphs=paragraphs, raw=data)

    structured = data.get('structured', data.get('holdings'))
    if isinstance(structured, list):
        result.structured = structured
    return result


def load_ocr_result(filepath: str) -> OcrResult:
    """
    Load a saved OCR capture. .json files hold a Vision response or a flattened
    result; any other file is read as plain OCR text.

    Raises:
        FileNotFoundError: If the file doesn't exist.
    """
    _require(filepath, 'OCR capture')
    if filepath.lower().endswith('.json'):
        with open(filepath, 'r') as f:
            return ocr_result_from_dict(json.load(f))
    with open(filepath, 'r') as f:
        return OcrResult(text=f.read())


def load_holdings_csv(filepath: str) -> list[Holding]:
    """
    Load saved holdings used as cost-basis history.

    Expected columns: ticker, shares, cost_basis, market_value (asset_type and option columns optional).
    """
    _require(filepath, 'Holdings file')
    df = pd.read_csv(filepath)
    df = df.astype(object).where(pd.notna(df), None)

    holdings = []
    for row in df.to_dict('records'):
        if not row.get('ticker'):
            continue
        holdings.append(Holding(
            ticker=str(row['ticker']).upper(),
            shares=row.get('shares'),
            cost_basis=row.get('cost_basis'),
            market_value=row.get('market_value'),
            asset_type=AssetType(row.get('asset_type') or 'equity'),
            option_strike=row.get('option_strike'),
            option_expiration=row.get('option_expiration'),
            option_right=OptionRight(row['option_right']) if row.get('option_right') in ('call', 'put') else None,
        ))
    return holdings


def save_suggestions_csv(suggestions: list, filepath: str) -> str:
    """Write suggestion rows to CSV and return the path."""
    directory = os.path.dirname(filepath)
    if directory:
        os.makedirs(directory, exist_ok=True)
    suggestions_to_frame(suggestions).to_csv(filepath, index=False)
    return filepath
