"""Tests for the text-window item extraction fallback."""

from tillroll.domain.money import MoneyAmount
from tillroll.receipt.ocr_parser import _extract_items


def test_items_between_header_and_subtotal() -> None:
    text = "WELCOME\nMILK 3.99\nBREAD\n2.50\nSUBTOTAL 6.49\nTAX 0.30\nTOTAL 6.79"

    items = _extract_items(text)

    assert [item.name.value for item in items] == ["MILK", "BREAD"]
    assert [item.unit_price.value for item in items] == [MoneyAmount(399), MoneyAmount(250)]
    assert items[0].name.confidence == 0.7
    assert items[0].unit_price.confidence == 0.9
    assert items[0].name.bounding_box is None


def test_sale_price_on_following_line_wins() -> None:
    items = _extract_items("CHEESE\n5.99\n4.99 S\nTAX 0.30")

    assert [(item.name.value, item.unit_price.value) for item in items] == [("CHEESE", MoneyAmount(499))]


def test_next_named_line_is_its_own_item() -> None:
    items = _extract_items("MILK 3.99\nEGGS 4.99\nTOTAL 8.98")

    assert [(item.name.value, item.unit_price.value) for item in items] == [
        ("MILK", MoneyAmount(399)),
        ("EGGS", MoneyAmount(499)),
    ]


def test_price_without_name_is_dropped() -> None:
    assert _extract_items("12345\n4.99\nTOTAL 4.99") == []


def test_bag_fee_is_not_an_item() -> None:
    items = _extract_items("MILK 3.99\nBAG FEE 0.10\nTOTAL 4.09")

    assert [item.name.value for item in items] == ["MILK"]


def test_spaced_sub_total_ends_the_item_section() -> None:
    items = _extract_items("APPLES\n2.99\nBANANAS\n2.99\nSUB TOTAL 5.98\nTAX 0.40\nTOTAL 6.38")

    assert [(item.name.value, item.unit_price.value) for item in items] == [
        ("APPLES", MoneyAmount(299)),
        ("BANANAS", MoneyAmount(299)),
    ]
