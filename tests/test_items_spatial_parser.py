"""Tests for bbox-based receipt item extraction."""

from tillroll.domain.money import MoneyAmount
from tillroll.domain.receipt import BoundingBox, FieldType, Token
from tillroll.receipt.ocr_parser import _extract_items_with_bbox


def _line(text: str, y: float, x: float = 0.05, width: float = 0.3, line_index: int = 0) -> Token:
    return Token(
        text=text,
        confidence=0.95,
        bounding_box=BoundingBox(x=x, y=y, width=width, height=0.015),
        line_index=line_index,
    )


def _price(text: str, y: float, line_index: int = 0) -> Token:
    """A price printed in the right-hand column."""
    return _line(text, y, x=0.8, width=0.1, line_index=line_index)


def _names(items) -> list[str]:
    return [item.name.value for item in items]


def test_quantity_line_between_name_and_price() -> None:
    tokens = [
        _line("BANANAS", 0.30),
        _line("2 @ 1.50", 0.32),
        _price("3.00", 0.34),
    ]

    (item,) = _extract_items_with_bbox(tokens)

    assert item.name.value == "BANANAS"
    assert item.name.field_type is FieldType.ITEM_NAME
    assert item.name.confidence == 0.80
    assert item.quantity is not None
    assert item.quantity.value == 2.0
    assert item.quantity.field_type is FieldType.ITEM_QUANTITY
    assert item.unit_price is not None
    assert item.unit_price.value == MoneyAmount(150)
    assert [c.value for c in item.unit_price.candidates] == [MoneyAmount(300)]
    assert item.unit_price.bounding_box == tokens[2].bounding_box


def test_same_line_names_each_become_an_item() -> None:
    tokens = [
        _line("MILK 3.99", 0.10, width=0.85),
        _line("BREAD 2.49", 0.13, width=0.85),
        _line("EGGS 4.29", 0.16, width=0.85),
    ]

    items = _extract_items_with_bbox(tokens)

    assert _names(items) == ["MILK", "BREAD", "EGGS"]
    assert [item.unit_price.value for item in items] == [MoneyAmount(399), MoneyAmount(249), MoneyAmount(429)]
    assert all(item.quantity is None for item in items)


def test_price_outside_dominant_column_is_ignored() -> None:
    tokens = [
        _line("MILK 3.99", 0.10, width=0.85),
        _line("BREAD 2.49", 0.13, width=0.85),
        _line("WIDGET 2.50", 0.16, width=0.45),
        _line("EGGS 4.29", 0.19, width=0.85),
        _line("APPLES 5.10", 0.22, width=0.85),
    ]

    items = _extract_items_with_bbox(tokens)

    assert _names(items) == ["MILK", "BREAD", "EGGS", "APPLES"]


def test_price_without_name_is_dropped() -> None:
    tokens = [
        _line("PRODUCE", 0.10),
        _price("4.99", 0.12),
    ]

    assert _extract_items_with_bbox(tokens) == []


def test_price_only_lines_are_dropped() -> None:
    tokens = [
        _price("5.99", 0.10),
        _price("4.99", 0.20),
    ]

    assert _extract_items_with_bbox(tokens) == []


def test_price_under_totals_vocabulary_is_rejected() -> None:
    tokens = [
        _line("SUBTOTAL", 0.50),
        _price("12.99", 0.52),
    ]

    assert _extract_items_with_bbox(tokens) == []


def test_bottle_deposit_micro_amount_is_skipped() -> None:
    tokens = [
        _line("WATER 6PK 3.99", 0.10, width=0.85),
        _line("BOTTLE 0.30", 0.12, width=0.85),
    ]

    items = _extract_items_with_bbox(tokens)

    assert _names(items) == ["WATER 6PK"]


def test_sale_marked_price_wins_within_group() -> None:
    tokens = [
        _line("CHEESE", 0.10),
        _price("5.99", 0.12),
        _price("4.99 S", 0.14),
    ]

    (item,) = _extract_items_with_bbox(tokens)

    assert item.name.value == "CHEESE"
    assert item.unit_price.value == MoneyAmount(499)


def test_each_marked_price_is_the_unit_price() -> None:
    tokens = [
        _line("APPLES", 0.10),
        _price("1.29 ea", 0.12),
        _price("3.87", 0.14),
    ]

    (item,) = _extract_items_with_bbox(tokens)

    assert item.name.value == "APPLES"
    assert item.unit_price.value == MoneyAmount(129)
    assert item.quantity is None


def test_names_are_not_reused_between_items() -> None:
    tokens = [
        _line("ORGANIC", 0.10),
        _line("SPINACH", 0.12),
        _price("4.99", 0.14),
        _price("2.99", 0.30),
    ]

    items = _extract_items_with_bbox(tokens)

    assert _names(items) == ["ORGANIC SPINACH"]


def test_item_ids_are_stable() -> None:
    tokens = [_line("MILK 3.99", 0.10, width=0.85)]

    first = _extract_items_with_bbox(tokens)
    second = _extract_items_with_bbox(tokens)

    assert first[0].id == second[0].id


def test_priced_quantity_row_becomes_an_item() -> None:
    tokens = [
        _line("MILK 3.99", 0.20, width=0.85),
        _line("BANANAS", 0.30),
        _line("2 @ 1.50 3.00", 0.32, width=0.85),
    ]

    items = _extract_items_with_bbox(tokens)

    assert _names(items) == ["MILK", "BANANAS"]
    bananas = items[1]
    assert bananas.quantity is not None
    assert bananas.quantity.value == 2.0
    assert bananas.unit_price.value == MoneyAmount(150)
    assert [c.value for c in bananas.unit_price.candidates] == [MoneyAmount(300)]


def test_lookback_stops_beyond_max_distance() -> None:
    near = [_line("CHEESE", 0.12), _price("4.99", 0.28)]
    far = [_line("CHEESE", 0.10), _price("4.99", 0.30)]

    assert _names(_extract_items_with_bbox(near)) == ["CHEESE"]
    assert _extract_items_with_bbox(far) == []


def _filler(count: int, start: float) -> list[Token]:
    return [_line("0000", start + 0.005 * (n + 1)) for n in range(count)]


def test_lookback_stops_after_max_steps() -> None:
    within = [_line("CHEESE", 0.10), *_filler(13, 0.10), _price("4.99", 0.175)]
    beyond = [_line("CHEESE", 0.10), *_filler(14, 0.10), _price("4.99", 0.18)]

    assert _names(_extract_items_with_bbox(within)) == ["CHEESE"]
    assert _extract_items_with_bbox(beyond) == []


def test_lookback_passes_at_most_two_price_lines() -> None:
    two_extra = [
        _line("CHEESE", 0.10),
        _price("5.99", 0.12),
        _price("5.49", 0.14),
        _price("4.99", 0.16),
    ]
    three_extra = [
        _line("CHEESE", 0.10),
        _price("6.49", 0.12),
        _price("5.99", 0.14),
        _price("5.49", 0.16),
        _price("4.99", 0.18),
    ]

    (item,) = _extract_items_with_bbox(two_extra)

    assert item.name.value == "CHEESE"
    assert item.unit_price.value == MoneyAmount(499)
    assert _extract_items_with_bbox(three_extra) == []


def test_tax_flagged_micro_amount_is_skipped() -> None:
    tokens = [
        _line("MILK 3.99 T", 0.10, width=0.85),
        _line("GUM 0.30 T", 0.13, width=0.85),
    ]

    assert _names(_extract_items_with_bbox(tokens)) == ["MILK"]
    assert _names(_extract_items_with_bbox([_line("GUM 0.30", 0.13, width=0.85)])) == ["GUM"]


def test_totals_vocabulary_below_a_price_does_not_reject_it() -> None:
    tokens = [
        _line("CHEESE", 0.10),
        _price("4.99", 0.12),
        _line("SUBTOTAL", 0.14),
        _price("4.99", 0.20),
    ]

    (item,) = _extract_items_with_bbox(tokens)

    assert item.name.value == "CHEESE"
    assert item.unit_price.bounding_box == tokens[1].bounding_box
