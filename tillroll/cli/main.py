#!/usr/bin/env python3
"""Command-line entry point for tillroll."""

import argparse
from collections.abc import Callable, Sequence


def _coerce_exit_code(code: object) -> int:
    if code is None:
        return 0
    if isinstance(code, int):
        return code
    return 1


def _run_command(command: Callable[[argparse.Namespace], None], args: argparse.Namespace) -> int:
    """
    Normalize command handlers that call sys.exit().

    This keeps process termination centralized in this module's entrypoint.
    """
    try:
        command(args)
    except SystemExit as exc:
        return _coerce_exit_code(exc.code)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tillroll",
        description="Receipt photo to structured record",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  scan <image>               Recognize and parse a receipt image
  parse <ocr.json>           Parse a saved recognition result (no OCR call)
  debug-overlay <image>      Draw recognized boxes over a receipt image
  serve [--port]             Start receipt upload server

Notes:
  receipts/ocr_json/ = raw recognizer output, re-parseable offline
  receipts/parsed/   = parsed documents (JSON)
""",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # scan command
    scan_parser = subparsers.add_parser("scan", help="Recognize and parse a receipt image")
    scan_parser.add_argument("image", help="Path to receipt image")
    scan_parser.add_argument(
        "--ocr-url",
        default=None,
        help="OCR service URL (default: $OCR_SERVICE_URL or http://localhost:8001)",
    )
    scan_parser.add_argument("--json", action="store_true", help="Print the parsed document as JSON")
    scan_parser.add_argument("--no-save", action="store_true", help="Do not write OCR JSON or parsed document")

    # parse command
    parse_parser = subparsers.add_parser("parse", help="Parse a saved recognition JSON file")
    parse_parser.add_argument("ocr_json", help="Path to recognition JSON")
    parse_parser.add_argument("--json", action="store_true", help="Print the parsed document as JSON")

    # debug-overlay command
    overlay_parser = subparsers.add_parser("debug-overlay", help="Draw recognized boxes over a receipt image")
    overlay_parser.add_argument("image", help="Path to receipt image")
    overlay_parser.add_argument("--json-path", default=None, help="Recognition JSON (default: receipts/ocr_json/)")
    overlay_parser.add_argument("--output", default=None, help="Output image path")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Start receipt upload server")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Host to bind to (default: 0.0.0.0)")
    serve_parser.add_argument("--port", type=int, default=8080, help="Port to bind to (default: 8080)")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    if args.command == "scan":
        from tillroll.cli.receipt import cmd_scan

        return _run_command(cmd_scan, args)
    elif args.command == "parse":
        from tillroll.cli.receipt import cmd_parse

        return _run_command(cmd_parse, args)
    elif args.command == "debug-overlay":
        from tillroll.cli.receipt import cmd_debug_overlay

        return _run_command(cmd_debug_overlay, args)
    elif args.command == "serve":
        from tillroll.cli.receipt import cmd_serve

        return _run_command(cmd_serve, args)

    return 1


def main_entry() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    main_entry()
