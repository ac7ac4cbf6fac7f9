"""Receipt workflows."""

from tillroll.application.receipts.parse import RecognitionParseResult, parse_recognition_file
from tillroll.application.receipts.scan import ReceiptScanRequest, ReceiptScanResult, run_receipt_scan

__all__ = [
    "ReceiptScanRequest",
    "ReceiptScanResult",
    "run_receipt_scan",
    "RecognitionParseResult",
    "parse_recognition_file",
]
