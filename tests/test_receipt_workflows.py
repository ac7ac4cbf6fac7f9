"""Tests for receipt scan and offline parse workflows."""

import io
import json
from datetime import date

from PIL import Image

from tillroll.application.receipts import ReceiptScanRequest, parse_recognition_file, run_receipt_scan
from tillroll.application.receipts import scan as scan_workflow
from tillroll.runtime.receipt_pipeline import RecognitionFailed

LINES_PAYLOAD = {
    "lines": [
        {"text": "FRESH MART", "confidence": 0.95, "bbox": {"x": 0.1, "y": 0.05, "width": 0.4, "height": 0.02}},
        {"text": "Nov 24", "confidence": 0.95, "bbox": {"x": 0.1, "y": 0.08, "width": 0.2, "height": 0.02}},
        {"text": "MILK 3.99", "confidence": 0.9, "bbox": {"x": 0.05, "y": 0.2, "width": 0.85, "height": 0.02}},
    ]
}


def _write_image(path) -> None:
    buffer = io.BytesIO()
    Image.new("RGB", (100, 100), "white").save(buffer, format="PNG")
    path.write_bytes(buffer.getvalue())


def test_scan_missing_image(tmp_path) -> None:
    result = run_receipt_scan(ReceiptScanRequest(image_path=tmp_path / "missing.png"))

    assert result.status == "file_not_found"
    assert result.document is None


def test_scan_ocr_unavailable(tmp_path, monkeypatch) -> None:
    image = tmp_path / "r.png"
    _write_image(image)

    def unavailable(path, url):
        raise RecognitionFailed("Failed to connect to OCR service")

    monkeypatch.setattr(scan_workflow, "call_ocr_service", unavailable)

    result = run_receipt_scan(ReceiptScanRequest(image_path=image))

    assert result.status == "ocr_unavailable"
    assert "connect" in result.error


def test_scan_parses_and_saves(tillroll_home, monkeypatch) -> None:
    image = tillroll_home / "r.png"
    _write_image(image)
    monkeypatch.setattr(scan_workflow, "call_ocr_service", lambda path, url: LINES_PAYLOAD)

    result = run_receipt_scan(ReceiptScanRequest(image_path=image, today=date(2031, 6, 1)))

    assert result.status == "parsed"
    assert result.document is not None
    assert result.document.date is not None and result.document.date.value == date(2031, 11, 24)
    assert result.document_path == tillroll_home / "receipts" / "parsed" / "r.json"
    assert (tillroll_home / "receipts" / "ocr_json" / "r.json").exists()


def test_scan_without_saving(tillroll_home, monkeypatch) -> None:
    image = tillroll_home / "r.png"
    _write_image(image)
    monkeypatch.setattr(scan_workflow, "call_ocr_service", lambda path, url: LINES_PAYLOAD)

    result = run_receipt_scan(ReceiptScanRequest(image_path=image, save=False))

    assert result.status == "parsed"
    assert result.document_path is None
    assert not (tillroll_home / "receipts").exists()


def test_parse_recognition_file(tmp_path) -> None:
    path = tmp_path / "r.json"
    path.write_text(json.dumps(LINES_PAYLOAD))

    result = parse_recognition_file(path, today=date(2031, 6, 1))

    assert result.status == "parsed"
    assert [item.name.value for item in result.document.line_items] == ["MILK"]


def test_parse_recognition_file_invalid(tmp_path) -> None:
    path = tmp_path / "r.json"
    path.write_text("{not json")

    assert parse_recognition_file(path).status == "invalid_payload"
    assert parse_recognition_file(tmp_path / "missing.json").status == "file_not_found"
