"""Composable OCR receipt parser components."""

from .common import normalize_text
from .config import DEFAULT_PARSER_CONFIG, ParserConfig
from .discounts_parser import _extract_discounts
from .fields_parser import (
    _extract_date,
    _extract_payment_method,
    _extract_store,
    _extract_time,
    _extract_transaction_id,
)
from .items_spatial_parser import _extract_items_with_bbox
from .items_text_parser import _extract_items
from .reading_order import joined_text, normalize_tokens_text, sort_reading_order
from .totals_parser import _extract_subtotal, _extract_tax, _extract_total

__all__ = [
    "DEFAULT_PARSER_CONFIG",
    "ParserConfig",
    "_extract_date",
    "_extract_discounts",
    "_extract_items",
    "_extract_items_with_bbox",
    "_extract_payment_method",
    "_extract_store",
    "_extract_subtotal",
    "_extract_tax",
    "_extract_time",
    "_extract_total",
    "_extract_transaction_id",
    "joined_text",
    "normalize_text",
    "normalize_tokens_text",
    "sort_reading_order",
]
