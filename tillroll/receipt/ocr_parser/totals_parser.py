"""Subtotal/tax/total extraction."""

import logging
import re
from collections.abc import Sequence

from tillroll.domain.money import MONEY_PATTERN, MoneyAmount
from tillroll.domain.receipt import DetectedValue, FieldType

from .common import AMOUNT, _money_anywhere
from .config import DEFAULT_PARSER_CONFIG, ParserConfig

logger = logging.getLogger(__name__)

TAX_SAME_LINE_CONFIDENCE = 0.95
TAX_NEXT_LINE_CONFIDENCE = 0.90
TAX_LABELED_CONFIDENCE = 0.85
SUBTOTAL_CONFIDENCE = 0.90
TOTAL_LABELED_CONFIDENCE = 0.95
TOTAL_BOTTOM_FALLBACK_CONFIDENCE = 0.60

# "Tax 1.19", "SALES TAX: $0.82", "Tax 8.25% 1.19" (the rate is skipped)
TAX_SAME_LINE = re.compile(
    r"^\s*(?:sales\s+)?tax\b[^\d$-]*(?:\d+(?:\.\d+)?\s?%[^\d$-]*)?(?P<money>-?\s?\$?\s?" + AMOUNT + r")(?!\s?%)",
    re.IGNORECASE,
)
TAX_LABEL_ONLY = re.compile(r"^\s*(?:sales\s+)?tax\s*[:\-]?\s*$", re.IGNORECASE)

SUBTOTAL_LABELS = ("subtotal", "sub total")
TAX_LABELS = ("sales tax", "tax")
# Tried in order; "total" must not be the tail of "sub total"
TOTAL_LABELS = ("(?<!sub)(?<!sub )total", "amount due", "balance", "price you pay", "payment amount")


def _labeled_money(text: str, labels: Sequence[str]) -> tuple[str, MoneyAmount] | None:
    """Return the first money amount following a label, trying labels in order."""
    for label in labels:
        pattern = re.compile(r"\b" + label + r"\b[:\s]*(?P<money>-?\s?\$?\s?" + AMOUNT + r")", re.IGNORECASE)
        for match in pattern.finditer(text):
            amount = MoneyAmount.parse(match.group("money"))
            if amount is not None:
                return match.group("money").strip(), amount
    return None


def _money_value(raw: str, amount: MoneyAmount, field_type: FieldType, confidence: float) -> DetectedValue[MoneyAmount]:
    return DetectedValue(value=amount, raw_text=raw, confidence=confidence, field_type=field_type)


def _extract_tax(text: str, log: logging.Logger = logger) -> DetectedValue[MoneyAmount] | None:
    """
    Find the tax amount.

    Tries, in order: a tax label with the amount on the same line, a bare tax
    label with the amount on the next non-empty line, then any labeled tax
    amount anywhere in the text.
    """
    lines = text.splitlines()
    for i, line in enumerate(lines):
        match = TAX_SAME_LINE.search(line)
        if match:
            amount = MoneyAmount.parse(match.group("money"))
            if amount is not None:
                log.debug("Tax from same line: %s", line)
                return _money_value(match.group("money").strip(), amount, FieldType.TAX, TAX_SAME_LINE_CONFIDENCE)
        if TAX_LABEL_ONLY.match(line):
            j = i + 1
            while j < len(lines) and not lines[j].strip():
                j += 1
            if j < len(lines):
                found = _money_anywhere(lines[j])
                if found is not None:
                    log.debug("Tax from next line: %s", lines[j])
                    return _money_value(found[0], found[1], FieldType.TAX, TAX_NEXT_LINE_CONFIDENCE)
    labeled = _labeled_money(text, TAX_LABELS)
    if labeled is not None:
        log.debug("Tax from label search: %s", labeled[0])
        return _money_value(labeled[0], labeled[1], FieldType.TAX, TAX_LABELED_CONFIDENCE)
    return None


def _extract_subtotal(text: str, log: logging.Logger = logger) -> DetectedValue[MoneyAmount] | None:
    labeled = _labeled_money(text, SUBTOTAL_LABELS)
    if labeled is None:
        return None
    log.debug("Subtotal: %s", labeled[0])
    return _money_value(labeled[0], labeled[1], FieldType.SUBTOTAL, SUBTOTAL_CONFIDENCE)


def _extract_total(
    text: str,
    config: ParserConfig = DEFAULT_PARSER_CONFIG,
    log: logging.Logger = logger,
) -> DetectedValue[MoneyAmount] | None:
    """
    Find the grand total.

    Labeled amounts win. Without a label, the largest amount in the bottom
    half of the receipt (never fewer than the last few lines) is used.
    """
    labeled = _labeled_money(text, TOTAL_LABELS)
    if labeled is not None:
        log.debug("Total from label: %s", labeled[0])
        return _money_value(labeled[0], labeled[1], FieldType.TOTAL, TOTAL_LABELED_CONFIDENCE)

    lines = text.splitlines()
    tail = lines[-max(config.totals_tail_min_lines, len(lines) // 2) :] if lines else []
    best: tuple[str, MoneyAmount] | None = None
    for line in tail:
        for match in MONEY_PATTERN.finditer(line):
            amount = MoneyAmount.parse(match.group(0))
            if amount is None:
                continue
            # Ties keep the earlier amount
            if best is None or amount > best[1]:
                best = (match.group(0).strip(), amount)
    if best is None:
        return None
    log.debug("Total from bottom fallback: %s", best[0])
    return _money_value(best[0], best[1], FieldType.TOTAL, TOTAL_BOTTOM_FALLBACK_CONFIDENCE)
