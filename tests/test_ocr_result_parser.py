"""Tests for the receipt assembler."""

from datetime import date, time

from tillroll.domain.money import MoneyAmount
from tillroll.domain.receipt import BoundingBox, FieldType, Token
from tillroll.receipt import ocr_result_parser
from tillroll.receipt.formatter import document_to_json
from tillroll.receipt.ocr_result_parser import parse_receipt, parse_recognition_payload

TODAY = date(2030, 1, 5)


def _line(text: str, y: float, x: float = 0.05, width: float = 0.3) -> Token:
    return Token(
        text=text,
        confidence=0.95,
        bounding_box=BoundingBox(x=x, y=y, width=width, height=0.015),
        line_index=int(y * 100),
    )


def _receipt_tokens() -> list[Token]:
    return [
        _line("FRESH MART", 0.02),
        _line("2025-11-24 14:35", 0.05),
        _line("PRODUCE", 0.10),
        _line("BANANAS", 0.13),
        _line("2 @ 1.50", 0.15),
        _line("3.00", 0.17, x=0.8, width=0.1),
        _line("MILK 3.99", 0.20, width=0.85),
        _line("SUBTOTAL 6.99", 0.25, width=0.85),
        _line("TAX 0.35", 0.28, width=0.85),
        _line("TOTAL 7.34", 0.31, width=0.85),
        _line("VISA ****1234", 0.34),
        _line("AUTH CODE: 0A12BC", 0.37),
        _line("MEMBER SAVINGS 1.00", 0.40, width=0.85),
    ]


def test_parse_full_receipt() -> None:
    document = parse_receipt(list(reversed(_receipt_tokens())), today=TODAY)

    assert document.store is not None and document.store.value == "FRESH MART"
    assert document.date is not None and document.date.value == date(2025, 11, 24)
    assert document.time is not None and document.time.value == time(14, 35)
    assert document.payment_method is not None and document.payment_method.value == "Visa"
    assert document.transaction_id is not None and document.transaction_id.value == "0A12BC"
    assert document.subtotal is not None and document.subtotal.value == MoneyAmount(699)
    assert document.tax is not None and document.tax.value == MoneyAmount(35)
    assert document.total is not None and document.total.value == MoneyAmount(734)

    assert [item.name.value for item in document.line_items] == ["BANANAS", "MILK"]
    bananas = document.line_items[0]
    assert bananas.quantity is not None and bananas.quantity.value == 2.0
    assert bananas.unit_price is not None and bananas.unit_price.value == MoneyAmount(150)

    assert [f.field_type for f in document.additional_fields] == [FieldType.DISCOUNT, FieldType.DISCOUNTS_TOTAL]
    assert document.raw_text.splitlines()[0] == "FRESH MART"
    assert len(document.tokens) == 13


def test_parse_is_byte_identical_across_runs() -> None:
    tokens = _receipt_tokens()

    first = document_to_json(parse_receipt(tokens, today=TODAY))
    second = document_to_json(parse_receipt(tokens, today=TODAY))

    assert first == second


def test_serialized_money_is_integer_minor_units() -> None:
    data = parse_receipt(_receipt_tokens(), today=TODAY).to_dict()

    assert data["total"]["value"] == 734
    assert data["total"]["fieldType"] == "total"
    assert data["lineItems"][1]["unitPrice"]["value"] == 399
    assert data["date"]["value"] == "2025-11-24"


def test_text_fallback_runs_when_geometry_finds_nothing() -> None:
    tokens = [
        _line("BREAD", 0.10),
        _line("2.50", 0.40, x=0.8, width=0.1),
    ]

    document = parse_receipt(tokens, today=TODAY)

    assert [item.name.value for item in document.line_items] == ["BREAD"]
    assert document.line_items[0].name.confidence == 0.7
    assert document.line_items[0].name.bounding_box is None


def test_empty_input_yields_empty_document() -> None:
    document = parse_receipt([], today=TODAY)

    assert document.raw_text == ""
    assert document.line_items == ()
    assert document.total is None
    assert document.to_dict()["lineItems"] == []


def test_failing_detector_only_omits_its_field(monkeypatch) -> None:
    def broken(*_args, **_kwargs):
        raise ValueError("boom")

    monkeypatch.setattr(ocr_result_parser, "_extract_total", broken)

    document = parse_receipt(_receipt_tokens(), today=TODAY)

    assert document.total is None
    assert document.tax is not None
    assert len(document.line_items) == 2


def test_parse_recognition_payload_bottom_left_lines() -> None:
    payload = {
        "origin": "bottom-left",
        "image_width": 1000,
        "image_height": 2000,
        "lines": [
            {"text": "CORNER STORE", "confidence": 0.9, "bbox": {"x": 0.1, "y": 0.9, "width": 0.5, "height": 0.03}},
            {"text": "TOTAL 5.00", "confidence": 0.9, "bbox": {"x": 0.1, "y": 0.2, "width": 0.8, "height": 0.03}},
        ],
    }

    document = parse_recognition_payload(payload, today=TODAY)

    assert document.store is not None and document.store.value == "CORNER STORE"
    assert document.total is not None and document.total.value == MoneyAmount(500)
    assert document.source_image_size == (1000, 2000)
