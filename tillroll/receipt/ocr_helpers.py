"""Pure recognition-payload helpers for receipt parsing."""

import io
from typing import Any

from tillroll.domain.receipt import BoundingBox, Token

from .detection_normalization import normalize_tokens

MAX_IMAGE_DIMENSION = 3000  # Resize if either dimension exceeds this
OCR_IMAGE_PADDING = 50  # White padding around image to prevent edge truncation
MIN_DETECTION_CONFIDENCE = 0.5


def resize_image_bytes(
    image_bytes: bytes, max_dimension: int = MAX_IMAGE_DIMENSION, padding: int = OCR_IMAGE_PADDING
) -> bytes:
    """
    Prepare a receipt photo for the recognizer.

    Applies EXIF orientation, downscales so neither side exceeds
    max_dimension and adds white padding so text at the edges is not cut.

    Returns:
        JPEG bytes
    """
    from PIL import Image, ImageOps

    img = ImageOps.exif_transpose(Image.open(io.BytesIO(image_bytes)))

    width, height = img.size
    if width > max_dimension or height > max_dimension:
        scale = max_dimension / max(width, height)
        img = img.resize((max(1, int(width * scale)), max(1, int(height * scale))), Image.Resampling.LANCZOS)

    if padding > 0:
        img = ImageOps.expand(img, border=padding, fill="white")

    buffer = io.BytesIO()
    img.convert("RGB").save(buffer, format="JPEG", quality=95)
    return buffer.getvalue()


def image_size(image_bytes: bytes) -> tuple[int, int]:
    """Return (width, height) of encoded image bytes."""
    from PIL import Image

    with Image.open(io.BytesIO(image_bytes)) as img:
        return img.size


def _vertical_overlap_ratio(a: dict[str, float], b: dict[str, float]) -> float:
    overlap = min(a["y_max"], b["y_max"]) - max(a["y_min"], b["y_min"])
    if overlap <= 0:
        return 0.0
    smaller_height = min(a["y_max"] - a["y_min"], b["y_max"] - b["y_min"])
    if smaller_height <= 0:
        return 0.0
    return overlap / smaller_height


def _merge_detections_into_lines(detections: list[dict[str, Any]], min_overlap_ratio: float = 0.5) -> list[list[dict]]:
    """
    Group word-level detections into printed lines.

    A detection joins the first line whose vertical span it overlaps by at
    least min_overlap_ratio of the smaller height.
    """
    lines: list[list[dict]] = []
    spans: list[dict[str, float]] = []
    for det in sorted(detections, key=lambda d: (d["y_min"], d["x_min"])):
        for line, span in zip(lines, spans):
            if _vertical_overlap_ratio(det, span) >= min_overlap_ratio:
                line.append(det)
                span["y_min"] = min(span["y_min"], det["y_min"])
                span["y_max"] = max(span["y_max"], det["y_max"])
                break
        else:
            lines.append([det])
            spans.append({"y_min": det["y_min"], "y_max": det["y_max"]})
    for line in lines:
        line.sort(key=lambda d: d["x_min"])
    return lines


def _tokens_from_detections(
    payload: dict[str, Any], padding: int, min_confidence: float
) -> tuple[list[Token], int, int]:
    """
    Convert PaddleOCR-style pixel quads into line tokens.

    Coordinates are shifted to remove the preprocessing padding and
    normalized by the unpadded image size.
    """
    image_width = int(payload["image_width"]) - 2 * padding
    image_height = int(payload["image_height"]) - 2 * padding
    if image_width <= 0 or image_height <= 0:
        raise ValueError(f"Invalid image size {payload['image_width']}x{payload['image_height']}")

    detections: list[dict[str, Any]] = []
    for quad, (text, confidence) in payload.get("detections", []):
        text = str(text).strip()
        if not text or float(confidence) < min_confidence:
            continue
        xs = [float(point[0]) - padding for point in quad]
        ys = [float(point[1]) - padding for point in quad]
        detections.append(
            {
                "text": text,
                "confidence": float(confidence),
                "x_min": min(xs) / image_width,
                "x_max": max(xs) / image_width,
                "y_min": min(ys) / image_height,
                "y_max": max(ys) / image_height,
            }
        )

    tokens: list[Token] = []
    for line_index, line in enumerate(_merge_detections_into_lines(detections)):
        x_min = min(det["x_min"] for det in line)
        y_min = min(det["y_min"] for det in line)
        tokens.append(
            Token(
                text=" ".join(det["text"] for det in line),
                confidence=min(det["confidence"] for det in line),
                bounding_box=BoundingBox(
                    x=x_min,
                    y=y_min,
                    width=max(det["x_max"] for det in line) - x_min,
                    height=max(det["y_max"] for det in line) - y_min,
                ),
                line_index=line_index,
            )
        )
    return tokens, image_width, image_height


def _tokens_from_lines(payload: dict[str, Any], min_confidence: float) -> list[Token]:
    tokens: list[Token] = []
    for position, line in enumerate(payload.get("lines", [])):
        text = str(line.get("text", "")).strip()
        confidence = float(line.get("confidence", 1.0))
        if not text or confidence < min_confidence:
            continue
        tokens.append(
            Token(
                text=text,
                confidence=confidence,
                bounding_box=BoundingBox.from_dict(line["bbox"]),
                line_index=int(line.get("line_index", position)),
                word_index=line.get("word_index"),
            )
        )
    return tokens


def tokens_from_recognition(
    payload: dict[str, Any],
    padding: int = OCR_IMAGE_PADDING,
    min_confidence: float = MIN_DETECTION_CONFIDENCE,
) -> tuple[list[Token], tuple[int, int] | None]:
    """
    Convert a recognition payload into normalized tokens.

    Two payload shapes are accepted:
    - ``{"lines": [{"text", "confidence", "bbox": {x, y, width, height}}], "origin": ...}``
      with normalized boxes, as produced by on-device recognizers
    - ``{"detections": [[quad, [text, confidence]], ...], "image_width", "image_height"}``
      with pixel quads from the PaddleOCR service (padding is removed)

    Returns:
        (tokens, (image_width, image_height) or None)

    Raises:
        ValueError: if the payload has neither shape or a malformed entry
    """
    try:
        if "detections" in payload:
            tokens, width, height = _tokens_from_detections(payload, padding, min_confidence)
            return normalize_tokens(tokens, image_width=width, image_height=height), (width, height)
        if "lines" in payload:
            size = None
            if payload.get("image_width") and payload.get("image_height"):
                size = (int(payload["image_width"]), int(payload["image_height"]))
            origin = payload.get("origin", "top-left")
            if origin not in ("top-left", "bottom-left"):
                raise ValueError(f"Unknown bounding box origin: {origin!r}")
            tokens = _tokens_from_lines(payload, min_confidence)
            return normalize_tokens(tokens, origin=origin), size
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Malformed recognition payload: {exc}") from exc
    raise ValueError("Recognition payload has neither 'lines' nor 'detections'")
