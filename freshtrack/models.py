"""Data models for pantry entries, parsed receipt lines and rankings."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ItemSource(str, Enum):
    """Where an inventory entry came from."""

    MANUAL = "manual"
    RECEIPT = "receipt"


@dataclass
class InventoryItem:
    """A tracked pantry entry.

    ``id``, ``canonical_name``, ``source`` and ``computed_expiration_date``
    are fixed at creation. Edits go through ``pantry.update_inventory_item``
    which returns a copy with ``updated_at`` bumped.
    """

    id: str
    canonical_name: str
    display_name: str
    quantity: float
    unit: str
    purchase_date: datetime
    computed_expiration_date: datetime
    created_at: datetime
    updated_at: datetime
    source: ItemSource = ItemSource.MANUAL
    override_expiration_date: datetime | None = None

    @property
    def effective_expiration(self) -> datetime:
        """Override date when set, computed date otherwise."""
        if self.override_expiration_date is not None:
            return self.override_expiration_date
        return self.computed_expiration_date


@dataclass
class ParsedReceiptLine:
    """A product line extracted from receipt text, awaiting review."""

    raw_line: str
    canonical_name: str
    display_name: str
    quantity: float = 1.0
    unit: str = "item"
    confidence: float = 0.0
    purchase_date: datetime | None = None

    def to_dict(self) -> dict:
        data = {
            "rawLine": self.raw_line,
            "canonicalName": self.canonical_name,
            "displayName": self.display_name,
            "quantity": self.quantity,
            "unit": self.unit,
            "confidence": self.confidence,
        }
        if self.purchase_date is not None:
            data["purchaseDate"] = self.purchase_date.isoformat()
        return data


@dataclass
class RankedIngredient:
    """Urgency projection of an inventory entry against a fixed "now"."""

    canonical_name: str
    display_name: str
    days_until_expiration: int
    urgency_score: int

    def to_dict(self) -> dict:
        """Shape handed to the recipe-suggestion collaborator."""
        return {
            "canonicalName": self.canonical_name,
            "displayName": self.display_name,
            "daysUntilExpiration": self.days_until_expiration,
            "urgencyScore": self.urgency_score,
        }
