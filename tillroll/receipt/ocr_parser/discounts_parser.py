"""Savings/discount line collection."""

import logging
from decimal import Decimal

from tillroll.domain.receipt import DetectedValue, FieldType

from .common import _is_savings_line, _money_anywhere

logger = logging.getLogger(__name__)

DISCOUNT_CONFIDENCE = 0.75
DISCOUNTS_TOTAL_CONFIDENCE = 0.9


def _extract_discounts(text: str, log: logging.Logger = logger) -> list[DetectedValue[str]]:
    """
    Collect savings lines as additional fields.

    Each savings line that carries an amount becomes one entry; when the
    amounts add up to something nonzero a `discounts_total=<amount>` entry is
    appended. Amounts are summed by magnitude since receipts print savings
    both as "1.00" and "1.00-".
    """
    fields: list[DetectedValue[str]] = []
    total = Decimal(0)
    for raw in text.splitlines():
        line = raw.strip()
        if not _is_savings_line(line):
            continue
        found = _money_anywhere(line)
        if found is None:
            continue
        total += abs(found[1].to_decimal())
        fields.append(
            DetectedValue(
                value=line,
                raw_text=line,
                confidence=DISCOUNT_CONFIDENCE,
                field_type=FieldType.DISCOUNT,
            )
        )
    if total != 0:
        log.debug("Discounts total: %s", total)
        fields.append(
            DetectedValue(
                value=f"discounts_total={total}",
                raw_text=str(total),
                confidence=DISCOUNTS_TOTAL_CONFIDENCE,
                field_type=FieldType.DISCOUNTS_TOTAL,
            )
        )
    return fields
