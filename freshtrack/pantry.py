"""Creating, editing and collecting pantry entries.

This is the validation boundary: unlike parsing and canonicalization, the
functions here raise ``ValidationError`` subclasses for a blank name, a
non-positive quantity or an unparseable date.
"""

from __future__ import annotations

import dataclasses
import logging
import math
import uuid
from collections.abc import Iterable, Iterator
from datetime import date, datetime

from .exceptions import EmptyNameError, InvalidQuantityError
from .expiration import ExpirationCalculator, parse_timestamp
from .models import InventoryItem, ItemSource, RankedIngredient
from .ranking import UrgencyRanker
from .resolver import CanonicalNameResolver, default_resolver

logger = logging.getLogger(__name__)

DEFAULT_UNIT = "item"

TimestampInput = datetime | date | str


def validate_quantity(quantity: object) -> float:
    """Return ``quantity`` as a float, raising if it is not positive."""
    if isinstance(quantity, bool):
        raise InvalidQuantityError(quantity)
    try:
        value = float(quantity)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise InvalidQuantityError(quantity) from None
    if not math.isfinite(value) or value <= 0:
        raise InvalidQuantityError(quantity)
    return value


def _normalize_unit(unit: str | None) -> str:
    return (unit or "").strip() or DEFAULT_UNIT


def _parse_override(value: TimestampInput | None) -> datetime | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_timestamp(value, "overrideExpirationDate")


def create_inventory_item(
    name: str,
    quantity: object = 1,
    unit: str | None = "",
    purchase_date: TimestampInput | None = None,
    expiration_override: TimestampInput | None = None,
    source: ItemSource | str = ItemSource.MANUAL,
    *,
    canonical_name: str | None = None,
    resolver: CanonicalNameResolver | None = None,
    calculator: ExpirationCalculator | None = None,
    now: datetime | None = None,
) -> InventoryItem:
    """Build a new pantry entry.

    The canonical name is resolved once here (or taken from
    ``canonical_name`` when the caller already reviewed one) and is never
    recomputed afterwards.

    Raises:
        EmptyNameError: ``name`` is blank and no canonical name was given.
        InvalidQuantityError: ``quantity`` is not a positive number.
        InvalidTimestampError: a date cannot be parsed.
    """
    display = (name or "").strip()
    if canonical_name is not None and canonical_name.strip():
        canonical = canonical_name.strip().lower()
    else:
        if not display:
            raise EmptyNameError()
        canonical = (resolver or default_resolver()).resolve(display).canonical_name

    amount = validate_quantity(quantity)
    calculator = calculator or ExpirationCalculator()
    created = calculator.now() if now is None else parse_timestamp(now, "now")
    purchased = (
        created if purchase_date is None
        else parse_timestamp(purchase_date, "purchaseDate")
    )
    override = _parse_override(expiration_override)

    item = InventoryItem(
        id=str(uuid.uuid4()),
        canonical_name=canonical,
        display_name=display or canonical,
        quantity=amount,
        unit=_normalize_unit(unit),
        purchase_date=purchased,
        computed_expiration_date=calculator.compute_expiration(canonical, purchased),
        created_at=created,
        updated_at=created,
        source=ItemSource(source),
        override_expiration_date=override,
    )
    logger.debug(
        "Created %s item %s (%s -> %s)",
        item.source.value, item.id, display, canonical,
    )
    return item


def update_inventory_item(
    item: InventoryItem,
    *,
    display_name: str | None = None,
    quantity: object = None,
    unit: str | None = None,
    expiration_override: TimestampInput | None = None,
    clear_override: bool = False,
    now: datetime | None = None,
    calculator: ExpirationCalculator | None = None,
) -> InventoryItem:
    """Return a copy of ``item`` with the given fields changed.

    Arguments left as None are unchanged. The canonical name and the
    computed expiration date are never touched, even when the display name
    changes. ``updated_at`` is ``now``, else the calculator's clock.
    """
    changes: dict = {}
    if display_name is not None:
        changes["display_name"] = display_name.strip() or item.canonical_name
    if quantity is not None:
        changes["quantity"] = validate_quantity(quantity)
    if unit is not None:
        changes["unit"] = _normalize_unit(unit)
    if clear_override:
        changes["override_expiration_date"] = None
    elif expiration_override is not None:
        changes["override_expiration_date"] = _parse_override(expiration_override)

    if now is None:
        changes["updated_at"] = (calculator or ExpirationCalculator()).now()
    else:
        changes["updated_at"] = parse_timestamp(now, "now")
    return dataclasses.replace(item, **changes)


class Pantry:
    """Flat collection of inventory items keyed by id."""

    def __init__(
        self,
        items: Iterable[InventoryItem] = (),
        ranker: UrgencyRanker | None = None,
    ) -> None:
        self._items: dict[str, InventoryItem] = {}
        self._ranker = ranker or UrgencyRanker()
        for item in items:
            self.add(item)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[InventoryItem]:
        return iter(list(self._items.values()))

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def add(self, item: InventoryItem) -> InventoryItem:
        """Insert or replace the entry with ``item.id``."""
        self._items[item.id] = item
        return item

    def get(self, item_id: str) -> InventoryItem | None:
        return self._items.get(item_id)

    def remove(self, item_id: str) -> bool:
        return self._items.pop(item_id, None) is not None

    def update(self, item_id: str, **changes) -> InventoryItem:
        """Apply ``update_inventory_item`` to a stored entry.

        Raises:
            KeyError: No entry with that id.
        """
        changes.setdefault("calculator", self._ranker.calculator)
        updated = update_inventory_item(self._items[item_id], **changes)
        self._items[item_id] = updated
        return updated

    def items(self) -> list[InventoryItem]:
        return list(self._items.values())

    def canonical_names(self) -> set[str]:
        return {item.canonical_name for item in self._items.values()}

    def ranked(self, now: datetime | None = None) -> list[RankedIngredient]:
        return self._ranker.rank(self._items.values(), now)

    def ranked_items(
        self,
        now: datetime | None = None,
    ) -> list[tuple[InventoryItem, RankedIngredient]]:
        """Entries paired with their urgency projection, most urgent first."""
        return self._ranker.rank_items(self._items.values(), now)

    def top_urgent(
        self,
        limit: int = 10,
        now: datetime | None = None,
    ) -> list[RankedIngredient]:
        return self._ranker.top(self._items.values(), limit, now)

    def expiring_within(
        self,
        days: int,
        now: datetime | None = None,
    ) -> list[InventoryItem]:
        """Entries whose effective expiration is at most ``days`` away."""
        calculator = self._ranker.calculator
        current = calculator.now() if now is None else parse_timestamp(now, "now")
        soon = [
            item for item in self._items.values()
            if calculator.days_until(item.effective_expiration, current) <= days
        ]
        soon.sort(key=lambda item: item.effective_expiration)
        return soon
