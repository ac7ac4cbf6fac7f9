"""Parse recognized receipt tokens into a structured ReceiptDocument."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import date
from typing import Any, TypeVar

from tillroll.domain.receipt import ReceiptDocument, Token

from .ocr_helpers import tokens_from_recognition
from .ocr_parser import (
    DEFAULT_PARSER_CONFIG,
    ParserConfig,
    _extract_date,
    _extract_discounts,
    _extract_items,
    _extract_items_with_bbox,
    _extract_payment_method,
    _extract_store,
    _extract_subtotal,
    _extract_tax,
    _extract_time,
    _extract_total,
    _extract_transaction_id,
    joined_text,
    normalize_tokens_text,
    sort_reading_order,
)

_log = logging.getLogger(__name__)

R = TypeVar("R")

# Failures a single detector may hit on odd input; anything else is a bug
DETECTOR_ERRORS = (ValueError, ArithmeticError, IndexError, KeyError, TypeError)


def _run_detector(name: str, detector: Callable[[], R], default: R, log: logging.Logger) -> R:
    """Run one detector, logging and omitting its field if it fails."""
    try:
        return detector()
    except DETECTOR_ERRORS:
        log.warning("Detector %s failed; field omitted", name, exc_info=True)
        return default


def parse_receipt(
    tokens: Sequence[Token],
    *,
    config: ParserConfig = DEFAULT_PARSER_CONFIG,
    logger: logging.Logger | None = None,
    today: date | None = None,
    image_size: tuple[int, int] | None = None,
) -> ReceiptDocument:
    """
    Parse recognized tokens into a ReceiptDocument.

    This is a best-effort parser - results should be manually reviewed.
    Never raises on odd input: a field that cannot be found is absent.

    Args:
        tokens: Recognized lines with normalized top-left-origin boxes
        config: Heuristic thresholds
        logger: Where detector decisions are logged (DEBUG)
        today: Date used to complete month-day dates without a year
        image_size: Source image (width, height), carried through to the document

    Returns:
        ReceiptDocument with every detected field
    """
    log = logger or _log
    today = today or date.today()

    ordered = normalize_tokens_text(sort_reading_order(tokens, config))
    text = joined_text(ordered)
    log.debug("Parsing %d tokens", len(ordered))

    store = _run_detector("store", lambda: _extract_store(ordered, config, log), None, log)
    receipt_date = _run_detector("date", lambda: _extract_date(text, today, log), None, log)
    receipt_time = _run_detector("time", lambda: _extract_time(text, log), None, log)
    payment = _run_detector("payment_method", lambda: _extract_payment_method(text, log), None, log)
    transaction_id = _run_detector("transaction_id", lambda: _extract_transaction_id(text, log), None, log)
    subtotal = _run_detector("subtotal", lambda: _extract_subtotal(text, log), None, log)
    tax = _run_detector("tax", lambda: _extract_tax(text, log), None, log)
    total = _run_detector("total", lambda: _extract_total(text, config, log), None, log)

    items = _run_detector("line_items", lambda: _extract_items_with_bbox(ordered, config, log), [], log)
    # Fall back to text-window parsing if geometry didn't find items
    if not items:
        items = _run_detector("line_items_fallback", lambda: _extract_items(text, config, log), [], log)

    discounts = _run_detector("discounts", lambda: _extract_discounts(text, log), [], log)

    return ReceiptDocument(
        raw_text=text,
        tokens=tuple(tokens),
        store=store,
        date=receipt_date,
        time=receipt_time,
        payment_method=payment,
        transaction_id=transaction_id,
        subtotal=subtotal,
        tax=tax,
        total=total,
        line_items=tuple(items),
        additional_fields=tuple(discounts),
        source_image_size=image_size,
    )


def parse_recognition_payload(
    payload: dict[str, Any],
    *,
    config: ParserConfig = DEFAULT_PARSER_CONFIG,
    logger: logging.Logger | None = None,
    today: date | None = None,
) -> ReceiptDocument:
    """
    Parse a raw recognition payload (see `tokens_from_recognition`).

    Raises:
        ValueError: if the payload itself is malformed
    """
    tokens, size = tokens_from_recognition(payload)
    return parse_receipt(tokens, config=config, logger=logger, today=today, image_size=size)
