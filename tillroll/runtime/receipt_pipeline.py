"""Runtime helpers for the receipt recognition pipeline (non-HTTP)."""

import io
import json
import time
from pathlib import Path
from typing import Any

import httpx

from tillroll.domain.receipt import ReceiptDocument, Token
from tillroll.receipt.formatter import document_to_json
from tillroll.receipt.ocr_helpers import OCR_IMAGE_PADDING, resize_image_bytes, tokens_from_recognition
from tillroll.runtime.logging import get_logger
from tillroll.runtime.paths import get_paths

logger = get_logger(__name__)

DEFAULT_OCR_URL = "http://localhost:8001"
OCR_TIMEOUT_SECONDS = 60.0


class RecognitionFailed(RuntimeError):
    """Raised when text recognition cannot produce a usable result."""


def _check_recognition_response(response: httpx.Response) -> dict[str, Any]:
    if response.status_code != 200:
        # Response bodies can carry recognized receipt text; log status only.
        logger.error("OCR service error: %s", response.status_code)
        raise RecognitionFailed(f"OCR service error: {response.status_code}")
    try:
        payload = response.json()
    except ValueError as e:
        raise RecognitionFailed("OCR service returned invalid JSON") from e
    if not isinstance(payload, dict):
        raise RecognitionFailed("OCR service returned an unexpected payload")
    return payload


def call_ocr_service(receipt_path: Path, ocr_url: str = DEFAULT_OCR_URL) -> dict[str, Any]:
    """
    Send a receipt image to the OCR service and return its raw payload.

    Raises:
        RecognitionFailed: when the image is unreadable or empty, the service
            cannot be reached, or it answers with an error.
    """
    ocr_url = ocr_url.rstrip("/")
    logger.info("Sending receipt to OCR service at %s...", ocr_url)

    try:
        image_bytes = receipt_path.read_bytes()
    except OSError as e:
        raise RecognitionFailed(f"Cannot read receipt image: {e}") from e
    if not image_bytes:
        raise RecognitionFailed("No image data")

    try:
        resized_bytes = resize_image_bytes(image_bytes)
    except OSError as e:
        raise RecognitionFailed(f"Unreadable receipt image: {e}") from e

    try:
        start_time = time.time()
        response = httpx.post(
            f"{ocr_url}/ocr",
            files={"file": (receipt_path.name, resized_bytes, "image/jpeg")},
            timeout=OCR_TIMEOUT_SECONDS,
        )
        logger.info("OCR service returned in %.2f seconds", time.time() - start_time)
    except httpx.RequestError as e:
        logger.error("Failed to connect to OCR service: %s", e)
        raise RecognitionFailed(f"Failed to connect to OCR service: {e}") from e

    return _check_recognition_response(response)


async def recognize_receipt_async(
    image_bytes: bytes,
    ocr_url: str = DEFAULT_OCR_URL,
    client: httpx.AsyncClient | None = None,
    filename: str = "receipt.jpg",
) -> dict[str, Any]:
    """
    Awaitable variant of call_ocr_service for already-loaded image bytes.

    Cancelling the awaiting task cancels the request. Pass `client` to reuse
    a connection pool (or a mock transport in tests).

    Raises:
        RecognitionFailed: same conditions as call_ocr_service.
    """
    if not image_bytes:
        raise RecognitionFailed("No image data")
    try:
        resized_bytes = resize_image_bytes(image_bytes)
    except OSError as e:
        raise RecognitionFailed(f"Unreadable receipt image: {e}") from e

    url = f"{ocr_url.rstrip('/')}/ocr"
    files = {"file": (filename, resized_bytes, "image/jpeg")}
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=OCR_TIMEOUT_SECONDS) as own_client:
                response = await own_client.post(url, files=files)
        else:
            response = await client.post(url, files=files)
    except httpx.RequestError as e:
        logger.error("Failed to connect to OCR service: %s", e)
        raise RecognitionFailed(f"Failed to connect to OCR service: {e}") from e

    return _check_recognition_response(response)


def recognition_tokens(raw_result: dict[str, Any]) -> tuple[list[Token], tuple[int, int] | None]:
    """Convert a raw service payload into tokens; a malformed payload is a recognition failure."""
    try:
        return tokens_from_recognition(raw_result)
    except ValueError as e:
        raise RecognitionFailed(f"Malformed OCR payload: {e}") from e


def save_ocr_json(ocr_result: dict[str, Any], receipt_path: Path) -> Path:
    """Save raw OCR result JSON so a receipt can be re-parsed offline."""
    ocr_json_dir = get_paths().receipts_ocr_json
    ocr_json_dir.mkdir(parents=True, exist_ok=True)
    ocr_json_path = ocr_json_dir / f"{receipt_path.stem}.json"
    ocr_json_path.write_text(json.dumps(ocr_result, indent=2))
    logger.debug("OCR JSON saved to: %s", ocr_json_path)
    return ocr_json_path


def save_document_json(document: ReceiptDocument, receipt_path: Path) -> Path:
    """Save the parsed document next to the other receipt artifacts."""
    parsed_dir = get_paths().receipts_parsed
    parsed_dir.mkdir(parents=True, exist_ok=True)
    document_path = parsed_dir / f"{receipt_path.stem}.json"
    document_path.write_text(document_to_json(document))
    logger.debug("Parsed document saved to: %s", document_path)
    return document_path


def create_debug_overlay(
    image_path: Path,
    document: ReceiptDocument,
    output_path: Path | None = None,
    padding: int = OCR_IMAGE_PADDING,
) -> Path:
    """
    Create a debug image with token boxes drawn over the recognizer input.

    Boxes are colored by confidence: green above 0.9, yellow above 0.7,
    red otherwise.
    """
    from PIL import Image, ImageDraw, ImageFont

    # Recreate the exact same resized+padded image that was sent to OCR
    resized_bytes = resize_image_bytes(image_path.read_bytes(), padding=padding)
    img = Image.open(io.BytesIO(resized_bytes))
    img_width, img_height = img.size
    content_width = img_width - 2 * padding
    content_height = img_height - 2 * padding
    draw = ImageDraw.Draw(img)

    try:
        font_size = max(14, int(img_height / 150))
        font = ImageFont.truetype("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf", font_size)
    except OSError:
        font = ImageFont.load_default()

    line_width = max(2, int(img_width / 500))
    for i, token in enumerate(document.tokens):
        box = token.bounding_box
        left = padding + box.x * content_width
        top = padding + box.y * content_height
        right = padding + box.right * content_width
        bottom = padding + box.bottom * content_height

        if token.confidence > 0.9:
            color = (0, 255, 0)  # Green
        elif token.confidence > 0.7:
            color = (255, 255, 0)  # Yellow
        else:
            color = (255, 0, 0)  # Red
        draw.rectangle((left, top, right, bottom), outline=color, width=line_width)

        display_text = token.text[:30] + "..." if len(token.text) > 30 else token.text
        label = f"{i}: {display_text} ({token.confidence:.2f})"
        text_bbox = draw.textbbox((left, top - 18), label, font=font)
        draw.rectangle(text_bbox, fill=(255, 255, 255))
        draw.text((left, top - 18), label, fill=(0, 0, 0), font=font)

    if output_path is None:
        output_path = image_path.parent / f"{image_path.stem}_debug.png"

    img.save(output_path)
    logger.info("Debug overlay saved to: %s", output_path)
    return output_path
