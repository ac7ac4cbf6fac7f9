"""Core domain models for receipt extraction.

This module provides the data model produced by the parsing pipeline:
- Token, BoundingBox: recognizer output
- DetectedValue, FieldType: extracted values with provenance
- MoneyAmount: integer minor-unit money
- LineItem, ReceiptDocument: the assembled result

Usage:
    from tillroll.domain import MoneyAmount, ReceiptDocument, Token
"""

from tillroll.domain.money import MoneyAmount
from tillroll.domain.receipt import (
    BoundingBox,
    DetectedValue,
    FieldType,
    LineItem,
    ReceiptDocument,
    Token,
)

__all__ = [
    "BoundingBox",
    "DetectedValue",
    "FieldType",
    "LineItem",
    "MoneyAmount",
    "ReceiptDocument",
    "Token",
]
