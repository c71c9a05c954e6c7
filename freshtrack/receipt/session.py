"""Review-and-commit workflow for one receipt import."""

from __future__ import annotations

import dataclasses
import logging
from datetime import date, datetime

from ..exceptions import SessionClosedError
from ..expiration import ExpirationCalculator
from ..models import InventoryItem, ItemSource, ParsedReceiptLine
from ..pantry import Pantry, create_inventory_item, validate_quantity
from .parser import ReceiptLineParser

logger = logging.getLogger(__name__)


class ReceiptImportSession:
    """Holds parsed receipt lines while the user reviews them.

    Lines are transient: once committed (or abandoned) the session is
    closed and any further use raises SessionClosedError.
    """

    def __init__(
        self,
        lines: list[ParsedReceiptLine],
        calculator: ExpirationCalculator | None = None,
    ) -> None:
        self._lines = list(lines)
        self._calculator = calculator or ExpirationCalculator()
        self._closed = False

    @classmethod
    def from_text(
        cls,
        raw_text: str,
        purchase_date: datetime | date | str | None = None,
        parser: ReceiptLineParser | None = None,
        calculator: ExpirationCalculator | None = None,
    ) -> ReceiptImportSession:
        lines = (parser or ReceiptLineParser()).parse(raw_text, purchase_date)
        return cls(lines, calculator)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def lines(self) -> list[ParsedReceiptLine]:
        self._check_open()
        return list(self._lines)

    def _check_open(self) -> None:
        if self._closed:
            raise SessionClosedError()

    def low_confidence(self, threshold: float = 0.8) -> list[ParsedReceiptLine]:
        """Lines the resolver was unsure about."""
        self._check_open()
        return [line for line in self._lines if line.confidence < threshold]

    def edit(
        self,
        index: int,
        *,
        display_name: str | None = None,
        quantity: object = None,
        unit: str | None = None,
    ) -> ParsedReceiptLine:
        """Change the display name, quantity or unit of one line.

        Raises:
            IndexError: ``index`` is out of range.
            InvalidQuantityError: ``quantity`` is not positive.
        """
        self._check_open()
        line = self._lines[index]
        changes: dict = {}
        if display_name is not None:
            changes["display_name"] = display_name.strip() or line.canonical_name
        if quantity is not None:
            changes["quantity"] = validate_quantity(quantity)
        if unit is not None:
            changes["unit"] = unit.strip() or "item"
        edited = dataclasses.replace(line, **changes)
        self._lines[index] = edited
        return edited

    def remove(self, index: int) -> ParsedReceiptLine:
        self._check_open()
        return self._lines.pop(index)

    def commit(self, pantry: Pantry | None = None) -> list[InventoryItem]:
        """Create receipt-sourced inventory items and close the session."""
        self._check_open()
        now = self._calculator.now()
        items = [
            create_inventory_item(
                line.display_name,
                quantity=line.quantity,
                unit=line.unit,
                purchase_date=line.purchase_date,
                source=ItemSource.RECEIPT,
                canonical_name=line.canonical_name,
                calculator=self._calculator,
                now=now,
            )
            for line in self._lines
        ]
        if pantry is not None:
            for item in items:
                pantry.add(item)
        self._closed = True
        self._lines = []
        logger.info("Committed %d receipt item(s)", len(items))
        return items

    def abandon(self) -> None:
        self._check_open()
        self._closed = True
        self._lines = []
