"""
Batch processing of portfolio screenshots.

OCR calls run in parallel; the resulting drafts are merged sequentially in upload order
once every call has finished. A failed image is reported and never discards its siblings.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Mapping, Sequence

from strikewise.brokerage import detect_brokerage
from strikewise.config import MAX_OCR_WORKERS
from strikewise.drafts import apply_derived_cost_basis, merge_draft_rows
from strikewise.holdings import parse_holdings
from strikewise.models import DraftRow, OcrResult, UploadBatchResult

logger = logging.getLogger(__name__)


def run_ocr(
    images: Sequence[tuple[str, Any]],
    analyze: Callable[[Any], OcrResult],
    max_workers: int = MAX_OCR_WORKERS,
) -> tuple[list[OcrResult | None], list[tuple[str, str]]]:
    """
    Call analyze on every image payload in parallel.

    Returns results in upload order (None for failures) and (name, message) pairs for the
    failed images, also in upload order. Names need not be unique.
    """
    results: list[OcrResult | None] = [None] * len(images)
    failures: dict[int, str] = {}
    if not images:
        return results, []

    logger.info(f"Running OCR on {len(images)} images with {max_workers} workers")
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {executor.submit(analyze, payload): idx for idx, (_, payload) in enumerate(images)}
        for future in as_completed(futures):
            idx = futures[future]
            name = images[idx][0]
            try:
                results[idx] = future.result()
            except Exception as e:
                logger.warning(f"OCR failed for {name}: {e}")
                failures[idx] = str(e)
    return results, [(images[idx][0], failures[idx]) for idx in sorted(failures)]


def process_uploads(
    images: Sequence[tuple[str, Any]],
    analyze: Callable[[Any], OcrResult],
    existing: Mapping[str, DraftRow] | None = None,
    max_workers: int = MAX_OCR_WORKERS,
    structured_only: bool | None = None,
) -> UploadBatchResult:
    """
    OCR a batch of (name, payload) images and reconcile their drafts.

    Drafts are folded into existing (keyed by grouping key) image by image in upload
    order, then cost basis is cross-checked against totals.
    """
    results, errors = run_ocr(images, analyze, max_workers)

    merged = dict(existing or {})
    brokerages = {}
    for (name, _), result in zip(images, results):
        if result is None:
            continue
        drafts = parse_holdings(result, structured_only=structured_only)
        logger.info(f"{name}: {len(drafts)} draft rows")
        merged = merge_draft_rows(merged, drafts)

        brokerage = detect_brokerage(result.text)
        if brokerage is not None:
            brokerages[name] = brokerage.value

    processed = len(images) - len(errors)
    logger.info(f"Processed {processed}/{len(images)} images, {len(merged)} holdings")
    return UploadBatchResult(
        drafts=apply_derived_cost_basis(merged.values()),
        errors=errors,
        brokerages=brokerages,
    )
