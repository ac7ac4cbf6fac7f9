"""Shared constants and helpers for OCR receipt parsing."""

import re
import uuid
from dataclasses import dataclass
from decimal import Decimal

from tillroll.domain.money import MONEY_PATTERN, MoneyAmount, decimal_from_money_string

# Amount body shared by every price regex: "12.99", "1,234.56", OCR "18,88"
AMOUNT = r"(?:\d{1,3}(?:,\d{3})+|\d+)[.,]\d{2}"

# Price at the very end of a line, with up to four trailing marker letters
# ("ea", "each", sale "S", tax flag "T") and an optional minus on either side.
PRICE_AT_END = re.compile(
    r"(?P<price>(?P<sign>(?<![A-Za-z0-9])-)?\s?\$?\s?(?P<amount>" + AMOUNT + r")(?P<trailing_sign>-)?"
    r"(?P<suffix>(?:\s?[A-Za-z]){0,4}))\s*$"
)

# Unicode dash variants OCR produces in place of "-"
DASH_VARIANTS = re.compile("[‐‑‒–—―−﹣－]")

# Month names and their common abbreviations
MONTH_NAME = (
    r"(?:jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?|"
    r"sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)"
)

# "18,88" -> "18.88"; thousands groups ("1,234"), "24, 25" and dates like "Nov 24,25" are left alone
COMMA_DECIMAL = re.compile(
    r"(?P<date>\b" + MONTH_NAME + r"\.?\s+\d{1,2},\d{2}\b)|(?P<whole>\d),(?P<cents>\d{2})(?!\d)",
    re.IGNORECASE,
)

# Known OCR misreads, applied in order
KNOWN_MISREADS = (
    (re.compile(r"savinas", re.IGNORECASE), "savings"),
    (re.compile(r"savigns", re.IGNORECASE), "savings"),
    (re.compile(r"meaber", re.IGNORECASE), "member"),
)

# Totals/payment/authorization vocabulary; a line containing it is never an item
STOP_WORD_PATTERN = re.compile(
    r"\b(?:price you pay|payment amount|amount due|balance|change|sub\s?totals?|totals?|"
    r"tax(?:es)?|crv|deposit|visa|mastercard|amex|debit|credit|tvr|aid)\b"
    r"|\b(?:auth|ref)\s*[:#]|\bcard\s*#",
    re.IGNORECASE,
)

# Tolerates common letter substitutions: "SAV1NGS", "SAVlNG"
SAVINGS_PATTERN = re.compile(r"sav[i1l]ngs?", re.IGNORECASE)

# Totals context that invalidates a price group when found just above it
TOTALS_CONTEXT_PATTERN = re.compile(
    r"\b(?:sub\s?total|total|amount due|balance|payment amount|price you pay|change|crv|deposit|tax)\b",
    re.IGNORECASE,
)

# Words that disqualify a line from being an item name
NAME_BAN_PATTERN = re.compile(
    r"\b(?:tax|crv|deposit|balance|amount due|subtotal|total|change|payment amount|debit|credit|"
    r"card|auth|aid|tvr|store hours|bev|beverage|visa|mastercard|amex|entry method|approved|auth code|"
    r"on sale|sale|regular price|reg price|you saved)\b",
    re.IGNORECASE,
)

# Department/section header stems ("REFRIG", "21-GROCERY", "FROZEN FOODS")
SECTION_HEADER_STEMS = (
    "refrig",
    "frozen",
    "liquor",
    "produce",
    "bakery",
    "grocery",
    "poultry",
    "soda",
    "beer",
    "wine",
    "deli",
    "meat",
    "seafood",
    "household",
    "beverage",
    "snack",
    "dairy",
)
SECTION_HEADER_FILLERS = {"and", "food", "foods", "dept", "department", "section", "aisle", "instore"}

DEPOSIT_CONTEXT_WORDS = ("crv", "deposit", "bottle")

LINE_ITEM_NAMESPACE = uuid.UUID("6f1d2a8e-4c3b-5e7a-9b0d-2e8f4a6c1b3d")


@dataclass(frozen=True)
class PriceMatch:
    """A price found at the end of a line."""

    price_text: str
    value: Decimal
    suffix: str

    @property
    def money(self) -> MoneyAmount:
        return MoneyAmount.from_decimal(self.value)

    @property
    def marker(self) -> str:
        """Trailing marker letters, lowercased with spaces removed."""
        return self.suffix.replace(" ", "").lower()


@dataclass(frozen=True)
class QuantityInfo:
    """Quantity and/or unit price read from a modifier line like "2 @ 1.50"."""

    quantity: int | None
    unit_price: MoneyAmount | None
    raw_line: str


def _repair_comma_decimal(match: re.Match[str]) -> str:
    if match.group("date"):
        return match.group("date")
    return f"{match.group('whole')}.{match.group('cents')}"


def normalize_text(text: str) -> str:
    """Clean recognizer artifacts line by line; never raises."""
    if not text:
        return ""
    text = DASH_VARIANTS.sub("-", text)
    text = COMMA_DECIMAL.sub(_repair_comma_decimal, text)
    for pattern, replacement in KNOWN_MISREADS:
        text = pattern.sub(replacement, text)
    lines = [re.sub(r"[ \t ]{2,}", " ", line).strip() for line in text.splitlines()]
    return "\n".join(lines)


def _price_from_line(line: str) -> PriceMatch | None:
    """Return the price a line ends with, or None."""
    if not line:
        return None
    match = PRICE_AT_END.search(line.strip())
    if match is None:
        return None
    value = decimal_from_money_string(match.group("amount"))
    if value is None:
        return None
    if match.group("sign") or match.group("trailing_sign"):
        value = -value
    return PriceMatch(price_text=match.group("price").strip(), value=value, suffix=match.group("suffix"))


def _line_ends_with_price(line: str) -> bool:
    return _price_from_line(line) is not None


def _money_anywhere(line: str) -> tuple[str, MoneyAmount] | None:
    """Return (matched text, amount) for the first money substring in line."""
    match = MONEY_PATTERN.search(line)
    if match is None:
        return None
    amount = MoneyAmount.parse(match.group(0))
    if amount is None:
        return None
    return match.group(0).strip(), amount


def _looks_like_price(text: str) -> bool:
    return MONEY_PATTERN.search(text) is not None


def _has_sale_suffix(price: PriceMatch) -> bool:
    marker = price.marker
    return marker == "s" or (len(marker) == 2 and marker.endswith("s") and marker != "ts")


def _has_tax_suffix(price: PriceMatch) -> bool:
    marker = price.marker
    return bool(marker) and len(marker) <= 2 and marker.endswith("t")


def _has_each_marker(price: PriceMatch) -> bool:
    return price.marker in ("ea", "each")


def _is_stop_word_line(text: str) -> bool:
    return STOP_WORD_PATTERN.search(text) is not None


def _is_savings_line(text: str) -> bool:
    return SAVINGS_PATTERN.search(text) is not None


def _is_section_header_text(text: str) -> bool:
    """Return True if text looks like a department/aisle header, not an item."""
    if not text or _line_ends_with_price(text):
        return False
    words = re.findall(r"[a-z]+", text.lower())
    if not words:
        return False
    saw_stem = False
    for word in words:
        if word in SECTION_HEADER_FILLERS:
            continue
        # "POUITRY", "P0ULTRY": poultry is often misread
        if any(word.startswith(stem) for stem in SECTION_HEADER_STEMS) or (
            "poul" in word and ("try" in word or "iry" in word)
        ):
            saw_stem = True
            continue
        return False
    return saw_stem


def _strip_leading_receipt_codes(text: str) -> str:
    """Remove leading quantity/SKU prefixes from an OCR item line."""
    if not text:
        return text
    cleaned = text.strip()
    # Optional quantity prefix like "(2)" often precedes SKU on grocery receipts.
    cleaned = re.sub(r"^\(\d+\)\s*", "", cleaned)
    # Remove long leading SKU codes.
    cleaned = re.sub(r"^\d{6,}\s*", "", cleaned)
    return cleaned.strip()


def _sanitized_name(text: str) -> str:
    """Clean a line for use as an item name; empty string means unusable."""
    name = text.strip()
    lower = name.lower()
    if _is_stop_word_line(lower) or _is_savings_line(lower):
        return ""
    if re.fullmatch(r"[0-9]+(?:[ .-][0-9]+)*", lower):
        return ""
    if _looks_like_price(lower):
        return ""
    if _is_section_header_text(name):
        return ""
    name = _strip_leading_receipt_codes(name)
    if len(re.sub(r"[^a-z]", "", name.lower())) < 2:
        return ""
    name = re.sub(r"[|•\-]+", " ", name)
    name = re.sub(r"\s{2,}", " ", name)
    return name.strip()


def _is_wordy_item_name(text: str) -> bool:
    """Mostly letters, and not totals/payment vocabulary or a header."""
    lower = text.lower().strip()
    if not lower:
        return False
    if NAME_BAN_PATTERN.search(lower):
        return False
    if _is_section_header_text(lower):
        return False
    letters = len(re.sub(r"[^a-z]", "", lower))
    digits = len(re.sub(r"[^0-9]", "", lower))
    return letters >= 2 and letters >= max(2, digits)


def _name_before_price(text: str) -> str:
    """Return the wordy text preceding a trailing price on the same line, if any."""
    match = PRICE_AT_END.search(text.strip())
    if match is None:
        return ""
    prefix = text.strip()[: match.start()].strip()
    name = _sanitized_name(prefix)
    return name if _is_wordy_item_name(name) else ""


def _unit_price_for_deal(quantity: int, amount: str) -> MoneyAmount | None:
    total = decimal_from_money_string(amount)
    if total is None or quantity <= 0:
        return None
    return MoneyAmount.from_decimal(total / quantity)


def _count_at_price(match: re.Match[str], line: str) -> QuantityInfo:
    value = decimal_from_money_string(match.group(2)) if match.group(2) else None
    unit_price = MoneyAmount.from_decimal(value) if value is not None else None
    return QuantityInfo(quantity=int(match.group(1)), unit_price=unit_price, raw_line=line)


def _multi_for_price(match: re.Match[str], line: str) -> QuantityInfo:
    quantity = int(match.group(1))
    return QuantityInfo(quantity=quantity, unit_price=_unit_price_for_deal(quantity, match.group(2)), raw_line=line)


def _weight_at_price(_match: re.Match[str], line: str) -> QuantityInfo:
    # Weighed goods carry a per-weight price, not a per-item one.
    return QuantityInfo(quantity=None, unit_price=None, raw_line=line)


def _unit_token_line(_match: re.Match[str], line: str) -> QuantityInfo:
    price = _price_from_line(line)
    unit_price = price.money if price is not None and price.value > 0 else None
    return QuantityInfo(quantity=None, unit_price=unit_price, raw_line=line)


# Quantity/unit-price modifier lines, evaluated in order; first match wins.
QUANTITY_LINE_PATTERNS = (
    # "2 @", "2 @ 1.50", "3 @ $1.99"
    (re.compile(r"^(\d+)\s*@\s*(?:\$?\s?(" + AMOUNT + r"))?", re.IGNORECASE), _count_at_price),
    # "2 for $5.00", "(2 /for $3.00)", "2/$5"
    (
        re.compile(r"^\(?(\d+)\s*(?:/\s*for|for|/)\s*\$?\s?(\d+(?:[.,]\d{2})?)\)?(?:\s|$)", re.IGNORECASE),
        _multi_for_price,
    ),
    # "1.22 lb @ $2.99/lb"
    (re.compile(r"^\d+(?:\.\d+)?\s*(?:lb|lbs|kg)\s*@", re.IGNORECASE), _weight_at_price),
    # "1.50 ea", "$2.99 each", "0.79 per lb"; a bare "BEEF LB" stays a name
    (re.compile(r"^(?=.*\d).*?\b(?:ea|each|lb|lbs|kg|per|pkg)\b", re.IGNORECASE), _unit_token_line),
)


def _parse_quantity_line(line: str) -> QuantityInfo | None:
    """
    Parse a quantity/unit-price modifier line.

    Detects patterns like:
    - "2 @ 1.50" (count at unit price)
    - "2 for $5.00" (multi-buy deal, unit price is the deal split evenly)
    - "1.22 lb @ $2.99/lb" (weighed item)
    - "1.50 ea" (unit token)
    """
    stripped = line.strip()
    if not stripped:
        return None
    for pattern, parser in QUANTITY_LINE_PATTERNS:
        match = pattern.search(stripped)
        if match:
            return parser(match, stripped)
    return None


def _is_bare_quantity_line(line: str) -> bool:
    """True for "2 @ 1.50" rows whose only amount belongs to the modifier."""
    stripped = line.strip()
    for pattern, parser in QUANTITY_LINE_PATTERNS:
        match = pattern.search(stripped)
        if match:
            if parser(match, stripped).quantity is None:
                return False
            return not _line_ends_with_price(stripped[match.end() :])
    return False


def _mentions_deposit(text: str) -> bool:
    lower = text.lower()
    return any(word in lower for word in DEPOSIT_CONTEXT_WORDS)


def _line_item_id(position: int, name: str, price: MoneyAmount) -> str:
    """Stable id so parsing the same tokens twice yields the same items."""
    return str(uuid.uuid5(LINE_ITEM_NAMESPACE, f"{position}|{name}|{price.minor_units}"))
