"""Perishable food tracking: ingredient canonicalization, receipt parsing,
expiration estimates and urgency ranking."""

from .config import FreshtrackConfig, load_config
from .exceptions import (
    EmptyNameError,
    FreshtrackError,
    InvalidQuantityError,
    InvalidTimestampError,
    SessionClosedError,
    ValidationError,
)
from .expiration import ExpirationCalculator, parse_timestamp
from .models import InventoryItem, ItemSource, ParsedReceiptLine, RankedIngredient
from .pantry import Pantry, create_inventory_item, update_inventory_item
from .ranking import UrgencyRanker
from .receipt import ReceiptImportSession, ReceiptLineParser, parse_receipt_text
from .resolver import (
    CanonicalNameResolver,
    Resolution,
    canonicalize_ingredient,
    edit_distance,
)
from .shelf_life import ShelfLifeTable, validate_shelf_life_days

__all__ = [
    "CanonicalNameResolver",
    "Resolution",
    "canonicalize_ingredient",
    "edit_distance",
    "ShelfLifeTable",
    "validate_shelf_life_days",
    "ExpirationCalculator",
    "parse_timestamp",
    "UrgencyRanker",
    "ReceiptLineParser",
    "ReceiptImportSession",
    "parse_receipt_text",
    "InventoryItem",
    "ItemSource",
    "ParsedReceiptLine",
    "RankedIngredient",
    "Pantry",
    "create_inventory_item",
    "update_inventory_item",
    "FreshtrackConfig",
    "load_config",
    "FreshtrackError",
    "ValidationError",
    "EmptyNameError",
    "InvalidQuantityError",
    "InvalidTimestampError",
    "SessionClosedError",
]
