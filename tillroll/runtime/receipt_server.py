"""FastAPI server for receiving receipt images from a phone."""

import os
import re
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from tillroll.receipt.ocr_result_parser import parse_receipt, parse_recognition_payload
from tillroll.runtime.logging import get_logger
from tillroll.runtime.parser_config import load_parser_config
from tillroll.runtime.paths import get_paths
from tillroll.runtime.receipt_pipeline import (
    DEFAULT_OCR_URL,
    RecognitionFailed,
    create_debug_overlay,
    recognition_tokens,
    recognize_receipt_async,
    save_document_json,
    save_ocr_json,
)

logger = get_logger(__name__)

OCR_SERVICE_URL = os.environ.get("OCR_SERVICE_URL", DEFAULT_OCR_URL)


def normalize_multipart_body(body: bytes, boundary: str) -> bytes:
    """
    Rewrite part headers of a multipart body to use CRLF line endings.

    iOS Shortcuts sends LF-only part headers, which the multipart parser
    rejects. Part bodies are left untouched.
    """
    boundary_bytes = b"--" + boundary.encode()
    parts = body.split(boundary_bytes)
    fixed_parts: list[bytes] = [parts[0]]

    for part in parts[1:]:
        if part.startswith(b"--") or not part:
            fixed_parts.append(part)
            continue

        leading = b""
        if part.startswith(b"\r\n"):
            leading, part_content = b"\r\n", part[2:]
        elif part.startswith(b"\n"):
            leading, part_content = b"\n", part[1:]
        else:
            part_content = part

        if b"\r\n\r\n" in part_content:
            header, body_rest = part_content.split(b"\r\n\r\n", 1)
        elif b"\n\n" in part_content:
            header, body_rest = part_content.split(b"\n\n", 1)
        else:
            fixed_parts.append(part)
            continue

        header = header.replace(b"\r\n", b"\n").replace(b"\n", b"\r\n")
        fixed_parts.append(leading + header + b"\r\n\r\n" + body_rest)

    return boundary_bytes.join(fixed_parts)


class FixiOSMultipartMiddleware(BaseHTTPMiddleware):
    """Fix iOS Shortcuts multipart boundary issue (LF vs CRLF)."""

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        content_type = request.headers.get("content-type", "")
        if content_type.startswith("multipart/form-data"):
            boundary_match = re.search(r"boundary=([^;]+)", content_type)
            if boundary_match:
                body = await request.body()
                fixed_body = normalize_multipart_body(body, boundary_match.group(1).strip().strip('"'))
                logger.debug("Multipart body normalized: %d -> %d bytes", len(body), len(fixed_body))

                async def receive() -> dict[str, Any]:
                    return {"type": "http.request", "body": fixed_body}

                request._receive = receive
                # Newer Starlette replays the cached body downstream
                request._body = fixed_body
            else:
                logger.info("Multipart request missing boundary; skipping normalization.")

        return await call_next(request)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create receipts directories on startup."""
    get_paths().ensure_receipt_directories()
    yield


app = FastAPI(title="Receipt Scanner", lifespan=lifespan)
app.add_middleware(FixiOSMultipartMiddleware)


@app.post("/upload")
async def upload_receipt(request: Request) -> JSONResponse:
    """Receive a receipt photo, recognize it and return the parsed document."""
    form = await request.form()

    file = None
    for value in form.values():
        if hasattr(value, "read"):
            file = value
            break

    if not file:
        return JSONResponse({"status": "error", "message": "No file found in request"}, status_code=400)

    paths = get_paths()
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    file_filename = getattr(file, "filename", None)
    ext = Path(file_filename).suffix if file_filename else ".jpg"
    filepath = paths.receipts_images / f"receipt_{timestamp}{ext}"

    contents = await file.read()
    filepath.parent.mkdir(parents=True, exist_ok=True)
    filepath.write_bytes(contents)

    try:
        raw_result = await recognize_receipt_async(
            contents,
            OCR_SERVICE_URL,
            client=getattr(request.app.state, "ocr_client", None),
            filename=filepath.name,
        )
        tokens, image_size = recognition_tokens(raw_result)
    except RecognitionFailed as e:
        logger.error("Recognition failed for %s: %s", filepath.name, e)
        return JSONResponse({"status": "error", "message": str(e)}, status_code=502)

    save_ocr_json(raw_result, filepath)
    document = parse_receipt(tokens, config=load_parser_config(), logger=logger, image_size=image_size)
    document_path = save_document_json(document, filepath)

    try:
        create_debug_overlay(filepath, document)
    except OSError as e:
        logger.warning("Failed to create debug overlay: %s", e)

    logger.info("Parsed %s: %d items", filepath.name, len(document.line_items))
    return JSONResponse(
        {
            "status": "success",
            "image_filename": filepath.name,
            "document_filename": document_path.name,
            "document": document.to_dict(),
        }
    )


@app.post("/parse")
async def parse_recognition(request: Request) -> JSONResponse:
    """Parse an already-recognized payload without calling the OCR service."""
    try:
        payload = await request.json()
    except ValueError:
        return JSONResponse({"status": "error", "message": "Body must be JSON"}, status_code=400)
    if not isinstance(payload, dict):
        return JSONResponse({"status": "error", "message": "Body must be a JSON object"}, status_code=400)

    try:
        document = parse_recognition_payload(payload, config=load_parser_config(), logger=logger)
    except ValueError as e:
        return JSONResponse({"status": "error", "message": str(e)}, status_code=400)
    return JSONResponse({"status": "success", "document": document.to_dict()})


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
