"""Receipt text parsing and import review."""

from .parser import (
    DEFAULT_REJECT_PATTERNS,
    ReceiptLineParser,
    clean_line,
    infer_quantity,
    infer_unit,
    is_rejected_line,
    parse_receipt_text,
)
from .session import ReceiptImportSession

__all__ = [
    "DEFAULT_REJECT_PATTERNS",
    "ReceiptLineParser",
    "ReceiptImportSession",
    "clean_line",
    "infer_quantity",
    "infer_unit",
    "is_rejected_line",
    "parse_receipt_text",
]
