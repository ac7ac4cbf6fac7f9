"""Receipt command handlers used by the unified CLI."""

import argparse
import os
import sys
from pathlib import Path

from tillroll.domain.receipt import ReceiptDocument
from tillroll.receipt.formatter import document_to_json, format_debug_view
from tillroll.runtime import get_logger

logger = get_logger(__name__)


def cmd_serve(args: argparse.Namespace) -> None:
    """Start the FastAPI server for receiving receipt uploads."""
    import uvicorn

    from tillroll.runtime import receipt_server as server

    print(f"Starting receipt server on {args.host}:{args.port}")
    print(f"Upload endpoint: http://{args.host}:{args.port}/upload")
    print("Press Ctrl+C to stop")

    uvicorn.run(server.app, host=args.host, port=args.port)


def _print_document(document: ReceiptDocument, as_json: bool) -> None:
    if as_json:
        print(document_to_json(document))
    else:
        print(format_debug_view(document))


def cmd_scan(args: argparse.Namespace) -> None:
    """Recognize and parse a receipt image, then print the result."""
    from tillroll.application.receipts.scan import ReceiptScanRequest, run_receipt_scan
    from tillroll.runtime.receipt_pipeline import DEFAULT_OCR_URL

    ocr_url = args.ocr_url or os.environ.get("OCR_SERVICE_URL") or DEFAULT_OCR_URL
    result = run_receipt_scan(ReceiptScanRequest(image_path=Path(args.image), ocr_url=ocr_url, save=not args.no_save))

    if result.status == "file_not_found":
        logger.error("%s", result.error)
        print(f"Error: {result.error}")
        sys.exit(1)

    if result.status == "ocr_unavailable":
        logger.error("%s", result.error)
        print(f"OCR service unavailable: {result.error}")
        print("Make sure the OCR service is running before scanning receipts.")
        sys.exit(1)

    if result.document is None:
        print("Scan failed: missing receipt output.")
        sys.exit(1)

    _print_document(result.document, args.json)
    if result.document_path is not None and not args.json:
        print(f"Saved parsed document to: {result.document_path}")


def cmd_parse(args: argparse.Namespace) -> None:
    """Parse a saved recognition JSON file without calling the OCR service."""
    from tillroll.application.receipts.parse import parse_recognition_file

    result = parse_recognition_file(Path(args.ocr_json))
    if result.status != "parsed" or result.document is None:
        logger.error("%s", result.error)
        print(f"Error: {result.error}")
        sys.exit(1)

    _print_document(result.document, args.json)


def cmd_debug_overlay(args: argparse.Namespace) -> None:
    """Create debug image with recognized token boxes drawn over the photo."""
    from tillroll.application.receipts.parse import parse_recognition_file
    from tillroll.runtime import get_paths
    from tillroll.runtime.receipt_pipeline import create_debug_overlay

    image_path = Path(args.image)
    if not image_path.exists():
        logger.error("Image file not found: %s", image_path)
        print(f"Error: Image file not found: {image_path}")
        sys.exit(1)

    json_path = Path(args.json_path) if args.json_path else get_paths().receipts_ocr_json / f"{image_path.stem}.json"
    result = parse_recognition_file(json_path)
    if result.document is None:
        print(f"Error: {result.error}")
        print("Run 'tillroll scan' first to generate the OCR JSON, or specify --json-path")
        sys.exit(1)

    output_path = Path(args.output) if args.output else None
    result_path = create_debug_overlay(image_path, result.document, output_path=output_path)
    print(f"Debug overlay created: {result_path}")
