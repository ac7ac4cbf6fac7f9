"""Tests for recognition service calls and artifact saving."""

import asyncio
import io
import json

import httpx
import pytest
from PIL import Image

from tillroll.receipt.ocr_result_parser import parse_recognition_payload
from tillroll.runtime import receipt_pipeline
from tillroll.runtime.receipt_pipeline import (
    RecognitionFailed,
    call_ocr_service,
    create_debug_overlay,
    recognition_tokens,
    recognize_receipt_async,
    save_document_json,
    save_ocr_json,
)

LINES_PAYLOAD = {
    "lines": [
        {"text": "FRESH MART", "confidence": 0.95, "bbox": {"x": 0.1, "y": 0.05, "width": 0.4, "height": 0.02}},
        {"text": "MILK 3.99", "confidence": 0.8, "bbox": {"x": 0.05, "y": 0.2, "width": 0.85, "height": 0.02}},
        {"text": "TOTAL 3.99", "confidence": 0.6, "bbox": {"x": 0.05, "y": 0.3, "width": 0.85, "height": 0.02}},
    ]
}


def _png_bytes(width: int = 200, height: int = 400) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), "white").save(buffer, format="PNG")
    return buffer.getvalue()


def _recognize(handler, image_bytes: bytes | None = None) -> dict:
    async def run() -> dict:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await recognize_receipt_async(
                _png_bytes() if image_bytes is None else image_bytes,
                "http://ocr.test/",
                client=client,
            )

    return asyncio.run(run())


def test_recognize_receipt_async_posts_to_ocr_endpoint() -> None:
    seen: dict[str, str] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["content_type"] = request.headers["content-type"]
        return httpx.Response(200, json=LINES_PAYLOAD)

    result = _recognize(handler)

    assert result == LINES_PAYLOAD
    assert seen["url"] == "http://ocr.test/ocr"
    assert seen["content_type"].startswith("multipart/form-data")


def test_recognize_receipt_async_service_error() -> None:
    with pytest.raises(RecognitionFailed, match="500"):
        _recognize(lambda request: httpx.Response(500, text="internal error"))


def test_recognize_receipt_async_connection_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RecognitionFailed, match="connect"):
        _recognize(handler)


def test_recognize_receipt_async_non_object_payload() -> None:
    with pytest.raises(RecognitionFailed):
        _recognize(lambda request: httpx.Response(200, json=["not", "a", "dict"]))


def test_recognize_receipt_async_rejects_empty_image() -> None:
    with pytest.raises(RecognitionFailed, match="No image data"):
        _recognize(lambda request: httpx.Response(200, json=LINES_PAYLOAD), image_bytes=b"")


def test_recognize_receipt_async_rejects_unreadable_image() -> None:
    with pytest.raises(RecognitionFailed, match="Unreadable"):
        _recognize(lambda request: httpx.Response(200, json=LINES_PAYLOAD), image_bytes=b"not an image")


def test_call_ocr_service_sync(tmp_path, monkeypatch) -> None:
    image = tmp_path / "receipt.png"
    image.write_bytes(_png_bytes())
    calls: list[str] = []

    def fake_post(url, **kwargs):
        calls.append(url)
        return httpx.Response(200, json=LINES_PAYLOAD)

    monkeypatch.setattr(receipt_pipeline.httpx, "post", fake_post)

    assert call_ocr_service(image, "http://ocr.test/") == LINES_PAYLOAD
    assert calls == ["http://ocr.test/ocr"]


def test_call_ocr_service_missing_file(tmp_path) -> None:
    with pytest.raises(RecognitionFailed):
        call_ocr_service(tmp_path / "missing.jpg")


def test_recognition_tokens_wraps_malformed_payload() -> None:
    with pytest.raises(RecognitionFailed):
        recognition_tokens({"status": "success"})


def test_save_artifacts_under_project_root(tillroll_home) -> None:
    receipt_path = tillroll_home / "receipt_20250101_120000.png"
    document = parse_recognition_payload(LINES_PAYLOAD)

    ocr_path = save_ocr_json(LINES_PAYLOAD, receipt_path)
    document_path = save_document_json(document, receipt_path)

    assert ocr_path == tillroll_home / "receipts" / "ocr_json" / "receipt_20250101_120000.json"
    assert json.loads(ocr_path.read_text()) == LINES_PAYLOAD
    assert document_path == tillroll_home / "receipts" / "parsed" / "receipt_20250101_120000.json"
    assert json.loads(document_path.read_text())["total"]["value"] == 399


def test_create_debug_overlay_writes_image(tmp_path) -> None:
    image = tmp_path / "receipt.png"
    image.write_bytes(_png_bytes())
    document = parse_recognition_payload(LINES_PAYLOAD)

    output = create_debug_overlay(image, document)

    assert output == tmp_path / "receipt_debug.png"
    with Image.open(output) as overlay:
        assert overlay.size == (300, 500)
