"""Text-line based receipt item extraction (used when geometry finds nothing)."""

import logging
import re

from tillroll.domain.receipt import DetectedValue, FieldType, LineItem

from .common import (
    PriceMatch,
    _has_sale_suffix,
    _is_wordy_item_name,
    _line_item_id,
    _money_anywhere,
    _name_before_price,
    _price_from_line,
    _sanitized_name,
)
from .config import DEFAULT_PARSER_CONFIG, ParserConfig

logger = logging.getLogger(__name__)

NAME_CONFIDENCE = 0.7
PRICE_CONFIDENCE = 0.9

# Reaching any of these ends the item section
TERMINATOR_PATTERNS = (
    re.compile(r"^tax$"),
    re.compile(r"^tax\s"),
    re.compile(r"sub\s?total"),
    re.compile(r"\bbalance"),
    re.compile(r"amount due"),
    re.compile(r"payment amount"),
    re.compile(r"^total$"),
    re.compile(r"^total\s"),
)

# Priced lines that never start the item section
SUMMARY_WORDS = ("total", "amount due", "balance")


def _is_terminator(lower: str) -> bool:
    return any(pattern.search(lower) for pattern in TERMINATOR_PATTERNS)


def _is_non_item(lower: str, price: PriceMatch, config: ParserConfig) -> bool:
    if price.value < 0:
        return True
    if price.value <= config.small_amount_threshold:
        return any(word in lower for word in ("crv", "deposit", "bottle", "bag"))
    return any(word in lower for word in ("tax", "total", "balance", "amount due", "payment amount"))


def _name_near(lines: list[str], index: int, config: ParserConfig) -> str | None:
    """Find a usable item name on the price line itself or a few lines above it."""
    same_line = _name_before_price(lines[index])
    if same_line:
        return same_line
    for back in range(1, config.fallback_lookback_lines + 1):
        if index - back < 0:
            break
        candidate = _sanitized_name(lines[index - back])
        if _is_wordy_item_name(candidate):
            return candidate
    return None


def _extract_items(
    text: str,
    config: ParserConfig = DEFAULT_PARSER_CONFIG,
    log: logging.Logger = logger,
) -> list[LineItem]:
    """
    Extract line items from normalized receipt text without geometry.

    Scanning starts at the first priced line that is not a total and ends at
    the first tax/subtotal/total line. For each priced line the next few lines
    are checked for a better price: a sale-marked line wins, otherwise the
    larger value while no sale marker has been seen. Prices without a name
    nearby are dropped.
    """
    items: list[LineItem] = []
    lines = [line.strip() for line in text.splitlines() if line.strip()]

    in_items = False
    i = 0
    while i < len(lines):
        line = lines[i]
        lower = line.lower()
        if _is_terminator(lower):
            break

        if not in_items:
            if _money_anywhere(line) is not None and not any(word in lower for word in SUMMARY_WORDS):
                in_items = True
                log.debug("Fallback: entering items at line %d: %s", i, line)
            else:
                i += 1
                continue

        price = _price_from_line(line)
        if price is None or _is_non_item(lower, price, config):
            i += 1
            continue

        best, best_index = price, i
        saw_sale_suffix = _has_sale_suffix(price)
        for k in range(i + 1, min(len(lines), i + config.fallback_lookahead_lines + 1)):
            ahead_lower = lines[k].lower()
            if _is_terminator(ahead_lower):
                break
            # A line naming its own item starts the next item
            if _name_before_price(lines[k]):
                break
            ahead = _price_from_line(lines[k])
            if ahead is None or _is_non_item(ahead_lower, ahead, config):
                continue
            if _has_sale_suffix(ahead):
                best, best_index = ahead, k
                saw_sale_suffix = True
            elif not saw_sale_suffix and ahead.value > best.value:
                best, best_index = ahead, k

        name = _name_near(lines, i, config)
        next_index = max(i + 1, best_index + 1)
        if name is None:
            log.debug("Fallback: no name near %s, dropping", best.price_text)
            i = next_index
            continue

        log.debug("Fallback item: %s -> %s", name, best.price_text)
        items.append(
            LineItem(
                id=_line_item_id(len(items), name, best.money),
                name=DetectedValue(
                    value=name,
                    raw_text=name,
                    confidence=NAME_CONFIDENCE,
                    field_type=FieldType.ITEM_NAME,
                ),
                unit_price=DetectedValue(
                    value=best.money,
                    raw_text=best.price_text,
                    confidence=PRICE_CONFIDENCE,
                    field_type=FieldType.ITEM_UNIT_PRICE,
                ),
            )
        )
        i = next_index

    log.debug("Items detected (fallback): %d", len(items))
    return items
