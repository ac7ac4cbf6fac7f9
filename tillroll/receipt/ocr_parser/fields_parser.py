"""Store/date/time/payment/transaction field extraction helpers."""

import logging
import re
from collections.abc import Callable, Sequence
from datetime import date, time

from tillroll.domain.receipt import DetectedValue, FieldType, Token

from .common import MONTH_NAME, _looks_like_price
from .config import DEFAULT_PARSER_CONFIG, ParserConfig

logger = logging.getLogger(__name__)

MONTHS = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

DATE_CONFIDENCE = 0.9
TIME_CONFIDENCE = 0.9
PAYMENT_CONFIDENCE = 0.7
TRANSACTION_ID_CONFIDENCE = 0.6


def _full_year(year: int) -> int:
    # Two-digit years are always 20xx.
    return 2000 + year if year < 100 else year


def _parse_iso_date(cleaned: str, _today: date) -> date | None:
    match = re.search(r"(\d{4})[-/](\d{1,2})[-/](\d{1,2})", cleaned)
    if match is None:
        return None
    return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))


def _parse_numeric_date(cleaned: str, _today: date) -> date | None:
    """Parse mm/dd/yy[yy], falling back to dd/mm when the month is out of range."""
    match = re.search(r"(\d{1,2})[-/](\d{1,2})[-/](\d{2,4})", cleaned)
    if match is None:
        return None
    first, second = int(match.group(1)), int(match.group(2))
    year = _full_year(int(match.group(3)))
    try:
        return date(year, first, second)
    except ValueError:
        return date(year, second, first)


def _parse_month_name_date(cleaned: str, today: date) -> date | None:
    match = re.search(r"([A-Za-z]{3})[A-Za-z]*\s+(\d{1,2})(?:,?\s*(\d{4}|\d{2}))?", cleaned)
    if match is None:
        return None
    month = MONTHS.get(match.group(1).lower())
    if month is None:
        return None
    year = _full_year(int(match.group(3))) if match.group(3) else today.year
    return date(year, month, int(match.group(2)))


# Ordered (pattern, parser) table; the first pattern whose first match parses wins.
DATE_PATTERNS: tuple[tuple[re.Pattern[str], Callable[[str, date], date | None]], ...] = (
    # yyyy-mm-dd, yyyy/mm/dd
    (re.compile(r"\b\d{4}[-/]\d{2}[-/]\d{2}\b"), _parse_iso_date),
    # mm/dd/yy, mm/dd/yyyy, mm-dd-yy
    (re.compile(r"\b\d{1,2}[-/]\d{1,2}[-/](?:\d{4}|\d{2})\b"), _parse_numeric_date),
    # "Nov 24", "Nov 24, 25", "November 24, 2025", "Nov. 24 2025"; a two-digit
    # year directly followed by ":" is the hour of a time, not a year
    (
        re.compile(
            r"\b" + MONTH_NAME + r"\.?\s+\d{1,2}\b"
            r"(?:,\s*(?:\d{4}|\d{2}(?!\s*:))\b|\s+\d{4}\b)?",
            re.IGNORECASE,
        ),
        _parse_month_name_date,
    ),
)

# 24-hour clock only; anything followed by AM/PM is a 12-hour time and is skipped.
TIME_PATTERN = re.compile(
    r"(?<![\d:])(?P<hour>[01]?\d|2[0-3]):(?P<minute>[0-5]\d)(?::(?P<second>[0-5]\d))?(?![\d:])(?!\s?[AaPp]\.?[Mm]\b)"
)

# Checked in order; the first keyword found anywhere in the text wins.
PAYMENT_KEYWORDS = (
    "apple pay",
    "google pay",
    "samsung pay",
    "debit card",
    "credit card",
    "visa",
    "mastercard",
    "american express",
    "amex",
    "discover",
    "cash",
)

# Labeled transaction id patterns, first match wins. Ids must contain a digit.
TRANSACTION_ID_PATTERNS = (
    re.compile(r"\btxn\b[\s:#-]*(?P<id>(?=[A-Z\-]*\d)[A-Z0-9\-]{6,})", re.IGNORECASE),
    re.compile(r"\btransaction\s*(?:id|#|no\.?)[\s:#-]*(?P<id>(?=[A-Z\-]*\d)[A-Z0-9\-]{6,})", re.IGNORECASE),
    re.compile(r"\bauth(?:orization)?\s*code[\s:#-]*(?P<id>(?=[A-Z\-]*\d)[A-Z0-9\-]{4,})", re.IGNORECASE),
    re.compile(r"\bref(?:erence)?\b[\s:#.-]*(?:no\.?|#)?[\s:#-]*(?P<id>(?=[A-Z\-]*\d)[A-Z0-9\-]{6,})", re.IGNORECASE),
)


def _extract_store(
    tokens: Sequence[Token],
    config: ParserConfig = DEFAULT_PARSER_CONFIG,
    log: logging.Logger = logger,
) -> DetectedValue[str] | None:
    """
    Guess the store name from the top of the receipt.

    Takes the first token (in reading order) among the first few that is
    neither money-like nor purely digits.
    """
    for token in tokens[: config.store_scan_tokens]:
        text = token.text.strip()
        if not text:
            continue
        if _looks_like_price(text) or re.fullmatch(r"\d+", text):
            continue
        log.debug("Store guess: %s", text)
        return DetectedValue(
            value=text,
            raw_text=text,
            confidence=token.confidence,
            field_type=FieldType.STORE_NAME,
            bounding_box=token.bounding_box,
        )
    return None


def _extract_date(
    text: str,
    today: date | None = None,
    log: logging.Logger = logger,
) -> DetectedValue[date] | None:
    """Find the first date in the text, trying each pattern in priority order."""
    today = today or date.today()
    for pattern, parser in DATE_PATTERNS:
        match = pattern.search(text)
        if match is None:
            continue
        raw = match.group(0)
        cleaned = re.sub(r"[^\w/,: -]", " ", raw)
        try:
            parsed = parser(cleaned, today)
        except ValueError:
            log.debug("Date candidate %r did not parse", raw)
            continue
        if parsed is None:
            continue
        log.debug("Parsed date match %r -> %s", raw, parsed)
        return DetectedValue(
            value=parsed,
            raw_text=raw,
            confidence=DATE_CONFIDENCE,
            field_type=FieldType.DATE,
        )
    return None


def _extract_time(text: str, log: logging.Logger = logger) -> DetectedValue[time] | None:
    """Find a 24-hour HH:MM[:SS] time; 12-hour AM/PM times are not recognized."""
    match = TIME_PATTERN.search(text)
    if match is None:
        return None
    parsed = time(
        int(match.group("hour")),
        int(match.group("minute")),
        int(match.group("second") or 0),
    )
    log.debug("Parsed time: %s", match.group(0))
    return DetectedValue(
        value=parsed,
        raw_text=match.group(0),
        confidence=TIME_CONFIDENCE,
        field_type=FieldType.TIME,
    )


def _extract_payment_method(text: str, log: logging.Logger = logger) -> DetectedValue[str] | None:
    lower = text.lower()
    for keyword in PAYMENT_KEYWORDS:
        if keyword in lower:
            log.debug("Payment method: %s", keyword)
            return DetectedValue(
                value=keyword.title(),
                raw_text=keyword,
                confidence=PAYMENT_CONFIDENCE,
                field_type=FieldType.PAYMENT_METHOD,
            )
    return None


def _extract_transaction_id(text: str, log: logging.Logger = logger) -> DetectedValue[str] | None:
    for pattern in TRANSACTION_ID_PATTERNS:
        match = pattern.search(text)
        if match:
            log.debug("Transaction id: %s", match.group("id"))
            return DetectedValue(
                value=match.group("id"),
                raw_text=match.group(0),
                confidence=TRANSACTION_ID_CONFIDENCE,
                field_type=FieldType.TRANSACTION_ID,
            )
    return None
