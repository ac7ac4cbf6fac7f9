"""Data models for receipt extraction."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, time
from typing import Any, Generic, TypeVar

from tillroll.domain.money import MoneyAmount

T = TypeVar("T")


@dataclass(frozen=True)
class BoundingBox:
    """
    Rectangle normalized to the source image, all values in [0, 1].

    Origin is the top-left corner and y grows downward: a smaller `y` is
    higher on the receipt.
    """

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BoundingBox:
        return cls(
            x=float(data["x"]),
            y=float(data["y"]),
            width=float(data["width"]),
            height=float(data["height"]),
        )


@dataclass(frozen=True)
class Token:
    """One recognized line of text with its confidence and position."""

    text: str
    confidence: float
    bounding_box: BoundingBox
    line_index: int
    word_index: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "text": self.text,
            "confidence": self.confidence,
            "boundingBox": self.bounding_box.to_dict(),
            "lineIndex": self.line_index,
        }
        if self.word_index is not None:
            data["wordIndex"] = self.word_index
        return data


class FieldType(str, enum.Enum):
    """Which document field a detected value belongs to."""

    STORE_NAME = "storeName"
    DATE = "date"
    TIME = "time"
    PAYMENT_METHOD = "paymentMethod"
    TRANSACTION_ID = "transactionId"
    SUBTOTAL = "subtotal"
    TAX = "tax"
    TOTAL = "total"
    ITEM_NAME = "itemName"
    ITEM_QUANTITY = "itemQuantity"
    ITEM_UNIT_PRICE = "itemUnitPrice"
    ITEM_TOTAL_PRICE = "itemTotalPrice"
    DISCOUNT = "discount"
    DISCOUNTS_TOTAL = "discountsTotal"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class DetectedValue(Generic[T]):
    """An extracted value together with its provenance."""

    value: T
    raw_text: str
    confidence: float
    field_type: FieldType
    bounding_box: BoundingBox | None = None
    candidates: tuple[DetectedValue[T], ...] = ()
    is_user_verified: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "value": _serialize_value(self.value),
            "rawText": self.raw_text,
            "confidence": self.confidence,
            "candidates": [candidate.to_dict() for candidate in self.candidates],
            "fieldType": self.field_type.value,
            "isUserVerified": self.is_user_verified,
        }
        if self.bounding_box is not None:
            data["boundingBox"] = self.bounding_box.to_dict()
        return data


def _serialize_value(value: Any) -> Any:
    # Money always leaves the process as integer minor units.
    if isinstance(value, MoneyAmount):
        return value.minor_units
    if isinstance(value, (date, time)):
        return value.isoformat()
    return value


@dataclass(frozen=True)
class LineItem:
    """A single purchasable line on a receipt."""

    id: str
    name: DetectedValue[str]
    quantity: DetectedValue[float] | None = None
    unit_price: DetectedValue[MoneyAmount] | None = None
    # Left empty by the extractors; the price shown for an item is unit_price.
    total_price: DetectedValue[MoneyAmount] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "name": self.name.to_dict()}
        for key, detected in (
            ("quantity", self.quantity),
            ("unitPrice", self.unit_price),
            ("totalPrice", self.total_price),
        ):
            if detected is not None:
                data[key] = detected.to_dict()
        return data


@dataclass(frozen=True)
class ReceiptDocument:
    """
    Parsed receipt.

    Every field is optional; a present field is the only success signal.
    `tokens` holds the recognizer output verbatim and `raw_text` the
    normalized text every detector ran over.
    """

    raw_text: str = ""
    tokens: tuple[Token, ...] = ()
    store: DetectedValue[str] | None = None
    date: DetectedValue[date] | None = None
    time: DetectedValue[time] | None = None
    payment_method: DetectedValue[str] | None = None
    transaction_id: DetectedValue[str] | None = None
    subtotal: DetectedValue[MoneyAmount] | None = None
    tax: DetectedValue[MoneyAmount] | None = None
    total: DetectedValue[MoneyAmount] | None = None
    line_items: tuple[LineItem, ...] = ()
    additional_fields: tuple[DetectedValue[str], ...] = ()
    source_image_size: tuple[int, int] | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to plain JSON-compatible data; absent fields are omitted."""
        data: dict[str, Any] = {}
        for key, detected in (
            ("store", self.store),
            ("date", self.date),
            ("time", self.time),
            ("paymentMethod", self.payment_method),
            ("transactionId", self.transaction_id),
            ("subtotal", self.subtotal),
            ("tax", self.tax),
            ("total", self.total),
        ):
            if detected is not None:
                data[key] = detected.to_dict()
        data["lineItems"] = [item.to_dict() for item in self.line_items]
        data["additionalFields"] = [extra.to_dict() for extra in self.additional_fields]
        data["tokens"] = [token.to_dict() for token in self.tokens]
        data["rawText"] = self.raw_text
        if self.source_image_size is not None:
            width, height = self.source_image_size
            data["sourceImageSize"] = {"width": width, "height": height}
        return data
