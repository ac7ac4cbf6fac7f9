"""Offline parsing of saved recognition results."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from tillroll.receipt.ocr_result_parser import parse_recognition_payload
from tillroll.runtime import get_logger, load_parser_config

if TYPE_CHECKING:
    from tillroll.domain.receipt import ReceiptDocument

logger = get_logger(__name__)

ParseStatus = Literal["file_not_found", "invalid_payload", "parsed"]


@dataclass(frozen=True)
class RecognitionParseResult:
    """Outcome from parsing a saved recognition file."""

    status: ParseStatus
    document: ReceiptDocument | None = None
    error: str | None = None


def parse_recognition_file(path: Path, today: date | None = None) -> RecognitionParseResult:
    """Parse a recognition JSON file (as saved by a scan) without calling the OCR service."""
    if not path.exists():
        return RecognitionParseResult(status="file_not_found", error=f"Recognition file not found: {path}")

    try:
        payload = json.loads(path.read_text())
    except ValueError as exc:
        return RecognitionParseResult(status="invalid_payload", error=f"Invalid JSON in {path}: {exc}")
    if not isinstance(payload, dict):
        return RecognitionParseResult(status="invalid_payload", error=f"Expected a JSON object in {path}")

    try:
        document = parse_recognition_payload(payload, config=load_parser_config(), logger=logger, today=today)
    except ValueError as exc:
        return RecognitionParseResult(status="invalid_payload", error=str(exc))
    return RecognitionParseResult(status="parsed", document=document)
