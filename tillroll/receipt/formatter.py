"""Format parsed receipts for audit/debug display and JSON output."""

import json
from typing import Any

from tillroll.domain.money import MoneyAmount
from tillroll.domain.receipt import DetectedValue, ReceiptDocument

ABSENT = "—"


def _format_rows_aligned(
    rows: list[tuple[str, str, str | None]],
    indent: str = "  ",
) -> list[str]:
    """
    Format key/value rows with aligned values and trailing notes.

    Args:
        rows: List of (label, value, note_or_none) tuples
        indent: Indentation prefix for each line

    Returns:
        List of formatted lines with aligned columns
    """
    if not rows:
        return []

    max_label_len = max(len(label) for label, _, _ in rows)
    max_value_len = max(len(value) for _, value, _ in rows)

    lines = []
    for label, value, note in rows:
        base = f"{indent}{label.ljust(max_label_len)}  {value.ljust(max_value_len)}"
        if note:
            lines.append(f"{base}  ({note})")
        else:
            lines.append(base.rstrip())
    return lines


def _display_value(value: Any) -> str:
    if isinstance(value, MoneyAmount):
        return value.format()
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _field_row(label: str, detected: DetectedValue[Any] | None) -> tuple[str, str, str | None]:
    if detected is None:
        return label, ABSENT, None
    return label, _display_value(detected.value), f"{detected.confidence:.2f}"


def _section(title: str, rows: list[tuple[str, str, str | None]]) -> list[str]:
    lines = [f"=== {title} ==="]
    lines.extend(_format_rows_aligned(rows) or [f"  {ABSENT}"])
    lines.append("")
    return lines


def format_debug_view(document: ReceiptDocument) -> str:
    """
    Render the recognized text beside every parsed field.

    Absent fields are shown as a dash so gaps in extraction stand out.
    """
    lines = ["=== Recognized Text ==="]
    lines.extend(f"  {line}" for line in document.raw_text.splitlines())
    if not document.raw_text:
        lines.append(f"  {ABSENT}")
    lines.append("")

    lines.extend(_section("Store", [_field_row("Store", document.store)]))
    lines.extend(
        _section(
            "Date & Time",
            [_field_row("Date", document.date), _field_row("Time", document.time)],
        )
    )
    lines.extend(
        _section(
            "Payment",
            [
                _field_row("Method", document.payment_method),
                _field_row("Transaction ID", document.transaction_id),
            ],
        )
    )
    lines.extend(
        _section(
            "Totals",
            [
                _field_row("Subtotal", document.subtotal),
                _field_row("Tax", document.tax),
                _field_row("Total", document.total),
            ],
        )
    )

    item_rows: list[tuple[str, str, str | None]] = []
    for item in document.line_items:
        price = _display_value(item.unit_price.value) if item.unit_price else ABSENT
        if item.quantity is not None:
            price = f"{_display_value(item.quantity.value)} x {price}"
        item_rows.append((item.name.value, price, f"{item.name.confidence:.2f}"))
    lines.extend(_section("Items", item_rows))

    extra_rows = [(extra.field_type.value, extra.value, f"{extra.confidence:.2f}") for extra in document.additional_fields]
    lines.extend(_section("Additional Fields", extra_rows))

    return "\n".join(lines).rstrip() + "\n"


def document_to_json(document: ReceiptDocument, indent: int | None = 2) -> str:
    """Serialize a document to JSON with sorted keys, stable byte-for-byte."""
    return json.dumps(document.to_dict(), indent=indent, sort_keys=True, ensure_ascii=False)
