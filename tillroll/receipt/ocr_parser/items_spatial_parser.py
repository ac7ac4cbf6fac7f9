"""Spatial (bbox-based) receipt item extraction."""

import logging
import math
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass

from tillroll.domain.receipt import DetectedValue, FieldType, LineItem, Token

from .common import (
    TOTALS_CONTEXT_PATTERN,
    PriceMatch,
    QuantityInfo,
    _has_each_marker,
    _has_sale_suffix,
    _has_tax_suffix,
    _is_bare_quantity_line,
    _is_savings_line,
    _is_section_header_text,
    _is_stop_word_line,
    _is_wordy_item_name,
    _line_ends_with_price,
    _line_item_id,
    _mentions_deposit,
    _name_before_price,
    _parse_quantity_line,
    _price_from_line,
    _sanitized_name,
)
from .config import DEFAULT_PARSER_CONFIG, ParserConfig

logger = logging.getLogger(__name__)

NAME_CONFIDENCE = 0.80
PRICE_CONFIDENCE = 0.93
QUANTITY_CONFIDENCE = 0.8


@dataclass(frozen=True)
class _PriceCandidate:
    """A token ending in a price, with its position in reading order."""

    index: int
    token: Token
    price: PriceMatch

    @property
    def y(self) -> float:
        return self.token.bounding_box.y


def _collect_price_candidates(
    tokens: Sequence[Token],
    config: ParserConfig,
    log: logging.Logger,
) -> list[_PriceCandidate]:
    candidates: list[_PriceCandidate] = []
    for index, token in enumerate(tokens):
        line = token.text.strip()
        price = _price_from_line(line)
        if price is None:
            continue
        lower = line.lower()
        # Skip totals, payment and savings rows
        if _is_stop_word_line(lower) or _is_savings_line(lower):
            log.debug("Skip stop/savings line: %s", line)
            continue
        # Negative amounts are discounts, not items
        if price.value < 0:
            log.debug("Skip negative amount: %s", line)
            continue
        # "2 @ 1.50" rows are modifiers of the item price below them; "2 @ 1.50 3.00" is priced
        if _is_bare_quantity_line(line):
            log.debug("Skip quantity modifier line: %s", line)
            continue
        if price.value <= config.small_amount_threshold:
            radius = config.small_amount_context_radius
            nearby = " ".join(t.text for t in tokens[max(0, index - radius) : index + radius + 1])
            if _mentions_deposit(nearby) or _has_tax_suffix(price):
                log.debug("Skip deposit/tax micro amount: %s", line)
                continue
        log.debug("Price candidate: %s -> %s", line, price.price_text)
        candidates.append(_PriceCandidate(index=index, token=token, price=price))
    return candidates


def _price_column_bin(right_edge: float, bin_width: float) -> int:
    # Round half up so the bin of an edge does not depend on float banker's rounding
    return int(math.floor(right_edge / bin_width + 0.5))


def _filter_to_dominant_price_column(
    candidates: list[_PriceCandidate],
    config: ParserConfig,
    log: logging.Logger,
) -> list[_PriceCandidate]:
    """
    Keep only prices aligned with the dominant right-edge column.

    The filter is applied only when one bin clearly dominates; otherwise every
    candidate is kept.
    """
    if len(candidates) < config.price_column_min_candidates:
        return candidates
    bins = [_price_column_bin(c.token.bounding_box.right, config.price_column_bin_width) for c in candidates]
    histogram = Counter(bins)
    # Ties go to the rightmost bin; prices sit at the right edge of a receipt
    mode_bin, count = max(histogram.items(), key=lambda entry: (entry[1], entry[0]))
    ratio = count / len(candidates)
    if count < config.price_column_min_count or ratio < config.price_column_min_ratio:
        log.debug("Price column not decisive (%d of %d), keeping all candidates", count, len(candidates))
        return candidates
    kept = [c for c, b in zip(candidates, bins) if abs(b - mode_bin) <= 1]
    log.debug("Price column kept %d/%d candidates", len(kept), len(candidates))
    return kept


def _group_vertically(candidates: list[_PriceCandidate], config: ParserConfig) -> list[list[_PriceCandidate]]:
    """
    Merge prices on adjacent lines (price, per-unit price, sale marker) into one group.

    A price line carrying its own item name always starts a new group.
    """
    ordered = sorted(candidates, key=lambda c: (c.y, c.token.bounding_box.x))
    groups: list[list[_PriceCandidate]] = []
    for candidate in ordered:
        if (
            groups
            and candidate.y - groups[-1][-1].y <= config.group_vertical_gap
            and not _name_before_price(candidate.token.text)
        ):
            groups[-1].append(candidate)
        else:
            groups.append([candidate])
    return groups


def _choose_effective_price(group: list[_PriceCandidate]) -> _PriceCandidate:
    each_priced = [c for c in group if _has_each_marker(c.price)]
    if each_priced:
        return max(each_priced, key=lambda c: c.price.value)
    for candidate in group:
        if _has_sale_suffix(candidate.price):
            return candidate
    # A discounted price is usually lower than the struck original
    return min(group, key=lambda c: c.price.value)


def _has_totals_context_above(tokens: Sequence[Token], index: int, config: ParserConfig) -> bool:
    above = tokens[max(0, index - config.context_window_lines) : index]
    return any(TOTALS_CONTEXT_PATTERN.search(token.text) for token in above)


def _look_back_for_item_details(
    tokens: Sequence[Token],
    chosen: _PriceCandidate,
    used_name_indexes: set[int],
    config: ParserConfig,
    log: logging.Logger,
) -> tuple[list[tuple[int, str]], QuantityInfo | None]:
    """
    Walk upward from the price for name fragments and a quantity line.

    Returns (index, fragment) pairs in top-to-bottom order.
    """
    parts: list[tuple[int, str]] = []
    quantity: QuantityInfo | None = None
    price_lines_seen = 0
    price_y = chosen.y

    index = chosen.index - 1
    steps = 0
    while index >= 0 and steps < config.lookback_max_steps:
        token = tokens[index]
        raw = token.text.strip()
        if abs(price_y - token.bounding_box.y) > config.lookback_max_distance:
            break
        if _is_section_header_text(raw):
            log.debug("Lookback stopped at section header: %s", raw)
            break
        parsed_quantity = _parse_quantity_line(raw)
        if parsed_quantity is not None and (parsed_quantity.quantity is None or _is_bare_quantity_line(raw)):
            # Modifier lines sit between an item name and its price
            if quantity is None and not parts and price_lines_seen == 0:
                quantity = parsed_quantity
        elif _line_ends_with_price(raw):
            price_lines_seen += 1
            # Past a name, a priced line belongs to the previous item
            if parts or price_lines_seen > config.lookback_max_price_lines:
                break
        elif index not in used_name_indexes:
            name = _sanitized_name(raw)
            if _is_wordy_item_name(name):
                parts.insert(0, (index, name))
                if len(parts) >= config.lookback_max_name_parts:
                    break
            else:
                log.debug("Not a name fragment: %s", raw)
        steps += 1
        index -= 1
    return parts, quantity


def _group_quantity(group: list[_PriceCandidate]) -> QuantityInfo | None:
    for candidate in group:
        quantity = _parse_quantity_line(candidate.token.text)
        if quantity is not None and (quantity.quantity is not None or quantity.unit_price is not None):
            return quantity
    return None


def _build_line_item(
    position: int,
    name: str,
    chosen: _PriceCandidate,
    quantity: QuantityInfo | None,
) -> LineItem:
    bbox = chosen.token.bounding_box
    price_value = DetectedValue(
        value=chosen.price.money,
        raw_text=chosen.price.price_text,
        confidence=PRICE_CONFIDENCE,
        field_type=FieldType.ITEM_UNIT_PRICE,
        bounding_box=bbox,
    )
    unit_price = price_value
    if quantity is not None and quantity.unit_price is not None and quantity.unit_price != price_value.value:
        # An explicit "N @ price" line states the unit price; keep the row price as an alternate
        unit_price = DetectedValue(
            value=quantity.unit_price,
            raw_text=quantity.raw_line,
            confidence=PRICE_CONFIDENCE,
            field_type=FieldType.ITEM_UNIT_PRICE,
            bounding_box=bbox,
            candidates=(price_value,),
        )
    quantity_value = None
    if quantity is not None and quantity.quantity is not None:
        quantity_value = DetectedValue(
            value=float(quantity.quantity),
            raw_text=str(quantity.quantity),
            confidence=QUANTITY_CONFIDENCE,
            field_type=FieldType.ITEM_QUANTITY,
        )
    return LineItem(
        id=_line_item_id(position, name, unit_price.value),
        name=DetectedValue(
            value=name,
            raw_text=name,
            confidence=NAME_CONFIDENCE,
            field_type=FieldType.ITEM_NAME,
            bounding_box=bbox,
        ),
        quantity=quantity_value,
        unit_price=unit_price,
    )


def _extract_items_with_bbox(
    tokens: Sequence[Token],
    config: ParserConfig = DEFAULT_PARSER_CONFIG,
    log: logging.Logger = logger,
) -> list[LineItem]:
    """
    Extract items by anchoring on prices and clustering them geometrically.

    `tokens` must already be normalized and in reading order.

    Strategy:
    1. Collect tokens ending in a plausible item price
    2. Keep the dominant right-edge price column when there is one
    3. Group vertically adjacent prices that belong to one item
    4. Pick the effective price of each group
    5. Reject groups sitting just under totals vocabulary
    6. Walk upward for the name and any quantity line
    A group with no recoverable name is dropped.
    """
    items: list[LineItem] = []
    candidates = _collect_price_candidates(tokens, config, log)
    if not candidates:
        return items
    candidates = _filter_to_dominant_price_column(candidates, config, log)
    groups = _group_vertically(candidates, config)
    log.debug("Formed %d price groups", len(groups))

    # Track which tokens already named an item to prevent reuse
    used_name_indexes: set[int] = set()

    for group_index, group in enumerate(groups):
        chosen = _choose_effective_price(group)
        if _has_totals_context_above(tokens, chosen.index, config):
            log.debug("Group %d: totals context above %s, skipping", group_index, chosen.price.price_text)
            continue

        quantity = _group_quantity(group)
        same_line_name = _name_before_price(chosen.token.text)

        if same_line_name:
            name = same_line_name
            used_name_indexes.add(chosen.index)
            # Only a modifier line directly above belongs to a same-line item
            if quantity is None and chosen.index > 0:
                above = _parse_quantity_line(tokens[chosen.index - 1].text)
                if above is not None and above.quantity is not None:
                    quantity = above
        else:
            parts, lookback_quantity = _look_back_for_item_details(tokens, chosen, used_name_indexes, config, log)
            if not parts:
                log.debug("Group %d: no plausible name above %s, dropping", group_index, chosen.price.price_text)
                continue
            used_name_indexes.update(index for index, _ in parts)
            name = " ".join(fragment for _, fragment in parts).strip()
            quantity = quantity or lookback_quantity

        item = _build_line_item(len(items), name, chosen, quantity)
        log.debug("Item: %s -> %s", name, chosen.price.price_text)
        items.append(item)

    log.debug("Items detected (primary): %d", len(items))
    return items
