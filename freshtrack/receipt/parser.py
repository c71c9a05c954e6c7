"""Turn raw receipt text into reviewed-ready product lines."""

from __future__ import annotations

import dataclasses
import logging
import re
from collections.abc import Iterable
from datetime import date, datetime

from ..exceptions import InvalidTimestampError
from ..expiration import parse_timestamp
from ..models import ParsedReceiptLine
from ..resolver import UNKNOWN, CanonicalNameResolver, default_resolver

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 3

# Totals, payment lines and store boilerplate
DEFAULT_REJECT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"subtotal", re.IGNORECASE),
    re.compile(r"total", re.IGNORECASE),
    re.compile(r"tax", re.IGNORECASE),
    re.compile(r"change", re.IGNORECASE),
    re.compile(r"cash", re.IGNORECASE),
    re.compile(r"visa", re.IGNORECASE),
    re.compile(r"mastercard", re.IGNORECASE),
    re.compile(r"debit", re.IGNORECASE),
    re.compile(r"credit", re.IGNORECASE),
    re.compile(r"thank", re.IGNORECASE),
    re.compile(r"store", re.IGNORECASE),
    re.compile(r"receipt", re.IGNORECASE),
    re.compile(r"date", re.IGNORECASE),
    re.compile(r"time", re.IGNORECASE),
    re.compile(r"^\d{1,2}[/:]\d{1,2}"),
    re.compile(r"^[\d\s.,$-]+$"),
)

_WHITESPACE = re.compile(r"\s+")
# Digits followed by x/X, also when glued to the name ("2xBnna")
_MULTIPLIER = re.compile(r"\b(\d+)\s*[xX]")
_PRICE = re.compile(r"\$\s*\d+[\d.,]*")
# Weight/volume suffixes like "500g", "2 lb", "1.5L"
_MEASURE = re.compile(
    r"\b\d+(?:[.,]\d+)?\s?(?:kg|g|lbs?|pounds?|oz|ml|l|liters?|litres?)\b",
    re.IGNORECASE,
)
_NUMBER = re.compile(r"\b\d+[\d.,]*\b")
# One or two digits; longer trailing numbers are PLU or item codes
_QUANTITY_COLUMN = re.compile(r"^\d{1,2}$")

# Checked in order; first hit wins
_UNIT_HINTS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"(?:\b|(?<=\d))(lb|lbs|pound|oz)\b", re.IGNORECASE), "lb"),
    (re.compile(r"(?:\b|(?<=\d))(kg|g)\b", re.IGNORECASE), "kg"),
    (re.compile(r"(?:\b|(?<=\d))(l|liter|litre|ml)\b", re.IGNORECASE), "l"),
)

DEFAULT_UNIT = "item"


def is_rejected_line(
    line: str,
    patterns: Iterable[re.Pattern[str]] = DEFAULT_REJECT_PATTERNS,
) -> bool:
    """True if the line looks like a total, payment or header line."""
    return any(pattern.search(line) for pattern in patterns)


def clean_line(line: str) -> str:
    """Strip multipliers, prices and stray numbers, leaving the product name."""
    cleaned = _WHITESPACE.sub(" ", line)
    cleaned = _MULTIPLIER.sub("", cleaned)
    cleaned = _PRICE.sub("", cleaned)
    cleaned = _MEASURE.sub("", cleaned)
    cleaned = _NUMBER.sub("", cleaned)
    return _WHITESPACE.sub(" ", cleaned).strip()


def infer_quantity(line: str) -> float:
    """Quantity from an ``Nx`` multiplier, else a trailing count column.

    The count column only accepts 1-99. Defaults to 1 otherwise.
    """
    match = _MULTIPLIER.search(line)
    if match:
        quantity = int(match.group(1))
        return float(quantity) if quantity > 0 else 1.0

    tokens = _PRICE.sub("", line).split()
    if len(tokens) > 1 and _QUANTITY_COLUMN.match(tokens[-1]):
        quantity = int(tokens[-1])
        if quantity > 0:
            return float(quantity)
    return 1.0


def infer_unit(line: str) -> str:
    for pattern, unit in _UNIT_HINTS:
        if pattern.search(line):
            return unit
    return DEFAULT_UNIT


class ReceiptLineParser:
    """Filter, clean, canonicalize and aggregate receipt lines.

    Lines that share a canonical name and unit are merged: quantities are
    summed, the highest confidence is kept, and the first line seen supplies
    ``raw_line`` and ``display_name``. Output keeps first-seen order.
    """

    def __init__(
        self,
        resolver: CanonicalNameResolver | None = None,
        reject_patterns: Iterable[re.Pattern[str] | str] | None = None,
    ) -> None:
        self._resolver = resolver or default_resolver()
        if reject_patterns is None:
            self._reject_patterns = DEFAULT_REJECT_PATTERNS
        else:
            self._reject_patterns = tuple(
                re.compile(p, re.IGNORECASE) if isinstance(p, str) else p
                for p in reject_patterns
            )

    @property
    def resolver(self) -> CanonicalNameResolver:
        return self._resolver

    def parse_line(
        self,
        line: str,
        purchase_date: datetime | None = None,
    ) -> ParsedReceiptLine | None:
        """Parse one trimmed line; None if it carries no product."""
        if is_rejected_line(line, self._reject_patterns):
            logger.debug("Rejected receipt line: %r", line)
            return None

        cleaned = clean_line(line)
        if len(cleaned) < MIN_NAME_LENGTH:
            logger.debug("Receipt line too short after cleaning: %r", line)
            return None

        canonical_name, confidence = self._resolver.resolve(cleaned)
        if canonical_name == UNKNOWN:
            logger.debug("No ingredient name in receipt line: %r", line)
            return None

        return ParsedReceiptLine(
            raw_line=line,
            canonical_name=canonical_name,
            display_name=canonical_name,
            quantity=infer_quantity(line),
            unit=infer_unit(line),
            confidence=confidence,
            purchase_date=purchase_date,
        )

    def parse(
        self,
        raw_text: str,
        purchase_date: datetime | date | str | None = None,
    ) -> list[ParsedReceiptLine]:
        purchased = _coerce_purchase_date(purchase_date)

        grouped: dict[tuple[str, str], ParsedReceiptLine] = {}
        for physical in (raw_text or "").splitlines():
            line = physical.strip()
            if not line:
                continue
            parsed = self.parse_line(line, purchased)
            if parsed is None:
                continue

            key = (parsed.canonical_name, parsed.unit)
            existing = grouped.get(key)
            if existing is None:
                grouped[key] = parsed
            else:
                grouped[key] = dataclasses.replace(
                    existing,
                    quantity=existing.quantity + parsed.quantity,
                    confidence=max(existing.confidence, parsed.confidence),
                )

        logger.debug("Parsed %d receipt item(s)", len(grouped))
        return list(grouped.values())


def _coerce_purchase_date(value: datetime | date | str | None) -> datetime | None:
    if value is None or value == "":
        return None
    try:
        return parse_timestamp(value, "purchaseDate")
    except InvalidTimestampError:
        logger.warning("Ignoring unparseable receipt purchase date: %r", value)
        return None


def parse_receipt_text(
    raw_text: str,
    purchase_date: datetime | date | str | None = None,
) -> list[ParsedReceiptLine]:
    """Parse with the default resolver and reject patterns."""
    return ReceiptLineParser().parse(raw_text, purchase_date)
