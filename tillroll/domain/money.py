"""Integer minor-unit money amounts."""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

# Amount with optional thousands groups and a two-digit fraction. OCR sometimes
# renders the decimal point as a comma ("18,88"), so both separators are allowed.
MONEY_PATTERN = re.compile(
    r"(?P<sign>(?<![A-Za-z0-9])-)?\s?\$?\s?(?P<amount>(?:\d{1,3}(?:,\d{3})+|\d+)[.,]\d{2})(?!\d)(?P<trailing_sign>-)?"
)

_CENTS = Decimal("0.01")


@dataclass(frozen=True, order=True)
class MoneyAmount:
    """A currency amount stored as integer minor units (cents)."""

    minor_units: int

    @classmethod
    def from_decimal(cls, value: Decimal) -> MoneyAmount:
        cents = (value / _CENTS).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return cls(int(cents))

    @classmethod
    def parse(cls, text: str) -> MoneyAmount | None:
        """
        Parse the first money-looking substring of text.

        Accepts "$1,234.56", "12.99", "18,88", "-1.50" and "1.50-".
        Returns None when nothing money-like is present.
        """
        if not text:
            return None
        match = MONEY_PATTERN.search(text)
        if match is None:
            return None
        value = decimal_from_money_string(match.group("amount"))
        if value is None:
            return None
        if match.group("sign") or match.group("trailing_sign"):
            value = -value
        return cls.from_decimal(value)

    def to_decimal(self) -> Decimal:
        return (Decimal(self.minor_units) * _CENTS).quantize(_CENTS)

    def format(self) -> str:
        """Render as a display string, e.g. "$1,234.56" or "-$0.50"."""
        sign = "-" if self.minor_units < 0 else ""
        return f"{sign}${abs(self.to_decimal()):,.2f}"

    def __str__(self) -> str:
        return self.format()


def decimal_from_money_string(text: str) -> Decimal | None:
    """
    Convert the numeric part of a money string to Decimal.

    A comma followed by exactly two trailing digits is a decimal separator;
    any other comma is a thousands separator.
    """
    cleaned = re.sub(r"[^0-9,.]", "", text)
    if not cleaned:
        return None
    if re.search(r",\d{2}$", cleaned) and "." not in cleaned:
        cleaned = cleaned[:-3].replace(",", "") + "." + cleaned[-2:]
    else:
        cleaned = cleaned.replace(",", "")
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return None
