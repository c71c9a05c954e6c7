"""Persisted record shape for inventory items, with legacy migration.

Records use the camelCase field names of the stored pantry list. Decoding
tries each known shape in turn (current, then legacy) and discards records
that match neither.
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Callable, Iterable
from datetime import datetime

from .exceptions import InvalidTimestampError
from .expiration import ExpirationCalculator, format_timestamp, parse_timestamp
from .models import InventoryItem, ItemSource
from .resolver import CanonicalNameResolver, default_resolver

logger = logging.getLogger(__name__)


def item_to_record(item: InventoryItem) -> dict:
    record = {
        "id": item.id,
        "canonicalName": item.canonical_name,
        "displayName": item.display_name,
        "quantity": item.quantity,
        "unit": item.unit,
        "purchaseDate": format_timestamp(item.purchase_date),
        "computedExpirationDate": format_timestamp(item.computed_expiration_date),
        "source": item.source.value,
        "createdAt": format_timestamp(item.created_at),
        "updatedAt": format_timestamp(item.updated_at),
    }
    if item.override_expiration_date is not None:
        record["overrideExpirationDate"] = format_timestamp(
            item.override_expiration_date
        )
    return record


def _is_text(value: object) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _positive_number(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return float(value)


def _optional_timestamp(value: object, field: str, default: datetime) -> datetime:
    if value is None or value == "":
        return default
    return parse_timestamp(value, field)


def _decode_current(
    record: dict,
    resolver: CanonicalNameResolver,
    calculator: ExpirationCalculator,
    now: datetime,
) -> InventoryItem | None:
    if not (
        _is_text(record.get("id"))
        and _is_text(record.get("canonicalName"))
        and isinstance(record.get("displayName"), str)
        and _is_text(record.get("computedExpirationDate"))
    ):
        return None
    quantity = _positive_number(record.get("quantity"))
    if quantity is None:
        return None

    try:
        source = ItemSource(record.get("source") or ItemSource.MANUAL.value)
        computed = parse_timestamp(
            record["computedExpirationDate"], "computedExpirationDate"
        )
        override = record.get("overrideExpirationDate")
        return InventoryItem(
            id=record["id"],
            canonical_name=record["canonicalName"],
            display_name=record["displayName"] or record["canonicalName"],
            quantity=quantity,
            unit=(record.get("unit") or "").strip() or "item",
            purchase_date=_optional_timestamp(
                record.get("purchaseDate"), "purchaseDate", now
            ),
            computed_expiration_date=computed,
            created_at=_optional_timestamp(record.get("createdAt"), "createdAt", now),
            updated_at=_optional_timestamp(record.get("updatedAt"), "updatedAt", now),
            source=source,
            override_expiration_date=(
                parse_timestamp(override, "overrideExpirationDate")
                if override else None
            ),
        )
    except (InvalidTimestampError, ValueError):
        return None


def _decode_legacy(
    record: dict,
    resolver: CanonicalNameResolver,
    calculator: ExpirationCalculator,
    now: datetime,
) -> InventoryItem | None:
    if not (_is_text(record.get("id")) and _is_text(record.get("name"))):
        return None
    quantity = _positive_number(record.get("quantity"))
    if quantity is None:
        return None

    name = record["name"].strip()
    canonical = resolver.resolve(name).canonical_name
    try:
        purchased = _optional_timestamp(
            record.get("purchaseDate"), "purchaseDate", now
        )
        expiration = record.get("expirationDate")
        if expiration:
            computed = parse_timestamp(expiration, "expirationDate")
        else:
            computed = calculator.compute_expiration(canonical, purchased)
    except InvalidTimestampError:
        return None

    return InventoryItem(
        id=record["id"],
        canonical_name=canonical,
        display_name=name,
        quantity=quantity,
        unit=(record.get("unit") or "").strip() or "item",
        purchase_date=purchased,
        computed_expiration_date=computed,
        created_at=now,
        updated_at=now,
        source=ItemSource.MANUAL,
    )


_Decoder = Callable[
    [dict, CanonicalNameResolver, ExpirationCalculator, datetime],
    InventoryItem | None,
]

# Tried in order; the first shape that matches wins
_DECODERS: tuple[tuple[str, _Decoder], ...] = (
    ("current", _decode_current),
    ("legacy", _decode_legacy),
)


def decode_record(
    record: object,
    resolver: CanonicalNameResolver | None = None,
    now: datetime | None = None,
    calculator: ExpirationCalculator | None = None,
) -> InventoryItem | None:
    """Decode one stored record, migrating the legacy shape if needed.

    Returns:
        The decoded item, or None if the record matches no known shape.
    """
    if not isinstance(record, dict):
        logger.debug("Discarding non-object pantry record: %r", record)
        return None

    resolver = resolver or default_resolver()
    calculator = calculator or ExpirationCalculator()
    now = calculator.now() if now is None else parse_timestamp(now, "now")

    for shape, decoder in _DECODERS:
        item = decoder(record, resolver, calculator, now)
        if item is not None:
            if shape == "legacy":
                logger.info(
                    "Migrated legacy pantry record %s (%s -> %s)",
                    item.id, item.display_name, item.canonical_name,
                )
            return item

    logger.debug("Discarding unrecognized pantry record: %r", record)
    return None


def decode_records(
    records: Iterable[object],
    resolver: CanonicalNameResolver | None = None,
    now: datetime | None = None,
    calculator: ExpirationCalculator | None = None,
) -> list[InventoryItem]:
    calculator = calculator or ExpirationCalculator()
    now = calculator.now() if now is None else now
    decoded = (
        decode_record(record, resolver, now, calculator) for record in records
    )
    return [item for item in decoded if item is not None]


def load_pantry_json(
    text: str,
    resolver: CanonicalNameResolver | None = None,
    now: datetime | None = None,
    calculator: ExpirationCalculator | None = None,
) -> list[InventoryItem]:
    """Decode a JSON pantry list. Malformed input yields an empty list."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning("Discarding malformed pantry JSON: %s", e)
        return []
    if not isinstance(data, list):
        logger.warning("Pantry JSON is not a list; ignoring it")
        return []
    return decode_records(data, resolver, now, calculator)


def dump_pantry_json(items: Iterable[InventoryItem]) -> str:
    return json.dumps(
        [item_to_record(item) for item in items],
        ensure_ascii=False,
        indent=2,
    )
