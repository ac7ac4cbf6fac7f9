"""Unified command-line interface for tillroll.

Usage:
    tillroll scan <image> [--ocr-url URL] [--json] [--no-save]
    tillroll parse <ocr.json> [--json]
    tillroll debug-overlay <image> [--json-path PATH] [--output PATH]
    tillroll serve [--host] [--port]
"""
