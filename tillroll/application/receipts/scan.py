"""Receipt scan workflow orchestration."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from tillroll.receipt.ocr_result_parser import parse_receipt
from tillroll.runtime import get_logger, load_parser_config
from tillroll.runtime.receipt_pipeline import (
    DEFAULT_OCR_URL,
    RecognitionFailed,
    call_ocr_service,
    recognition_tokens,
    save_document_json,
    save_ocr_json,
)

if TYPE_CHECKING:
    from tillroll.domain.receipt import ReceiptDocument

logger = get_logger(__name__)

ScanStatus = Literal[
    "file_not_found",
    "ocr_unavailable",
    "parsed",
]


@dataclass(frozen=True)
class ReceiptScanRequest:
    """Inputs for running receipt scan workflow."""

    image_path: Path
    ocr_url: str = DEFAULT_OCR_URL
    save: bool = True
    today: date | None = None


@dataclass(frozen=True)
class ReceiptScanResult:
    """Outcome from receipt scan workflow."""

    status: ScanStatus
    document: ReceiptDocument | None = None
    document_path: Path | None = None
    error: str | None = None


def run_receipt_scan(request: ReceiptScanRequest) -> ReceiptScanResult:
    """Run scan flow: recognize -> save raw result -> parse -> save document."""
    if not request.image_path.exists():
        return ReceiptScanResult(
            status="file_not_found",
            error=f"Receipt file not found: {request.image_path}",
        )

    try:
        raw_ocr_result = call_ocr_service(request.image_path, request.ocr_url)
        tokens, image_size = recognition_tokens(raw_ocr_result)
    except RecognitionFailed as exc:
        return ReceiptScanResult(
            status="ocr_unavailable",
            error=str(exc),
        )

    if request.save:
        save_ocr_json(raw_ocr_result, request.image_path)

    document = parse_receipt(
        tokens,
        config=load_parser_config(),
        logger=logger,
        today=request.today,
        image_size=image_size,
    )

    document_path = save_document_json(document, request.image_path) if request.save else None
    return ReceiptScanResult(
        status="parsed",
        document=document,
        document_path=document_path,
    )
