"""Tunable constants for the receipt parsing heuristics."""

from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal
from typing import Any


@dataclass(frozen=True)
class ParserConfig:
    """
    All geometric and numeric thresholds used by the detectors.

    Distances are fractions of the normalized image (0..1).
    """

    # Reading order: tokens closer than this vertically share a row
    row_merge_tolerance: float = 0.015

    # Store name is searched among the first N tokens in reading order
    store_scan_tokens: int = 8

    # Totals fallback scans the bottom half of lines, but never fewer than this
    totals_tail_min_lines: int = 6

    # Amounts at or below this are checked for deposit/CRV/tax-flag context
    small_amount_threshold: Decimal = Decimal("0.50")
    small_amount_context_radius: int = 2

    # Dominant price column detection
    price_column_min_candidates: int = 4
    price_column_bin_width: float = 0.02
    price_column_min_count: int = 3
    price_column_min_ratio: float = 0.4

    # Prices closer than this vertically belong to the same item
    group_vertical_gap: float = 0.04

    # Lines strictly above a chosen price checked for totals vocabulary
    context_window_lines: int = 2

    # Upward walk for item names and quantities
    lookback_max_steps: int = 14
    lookback_max_distance: float = 0.18
    lookback_max_price_lines: int = 2
    lookback_max_name_parts: int = 2

    # Text-window fallback
    fallback_lookahead_lines: int = 6
    fallback_lookback_lines: int = 4

    def replace(self, **overrides: Any) -> ParserConfig:
        """Return a copy with the given fields overridden."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        unknown = set(overrides) - set(values)
        if unknown:
            raise ValueError(f"Unknown parser config keys: {', '.join(sorted(unknown))}")
        values.update(overrides)
        if not isinstance(values["small_amount_threshold"], Decimal):
            values["small_amount_threshold"] = Decimal(str(values["small_amount_threshold"]))
        return ParserConfig(**values)


DEFAULT_PARSER_CONFIG = ParserConfig()
