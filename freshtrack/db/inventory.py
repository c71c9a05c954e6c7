"""Inventory item CRUD operations."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from pathlib import Path

from ..expiration import ExpirationCalculator, parse_timestamp, utc_now
from ..models import InventoryItem, ItemSource
from ..resolver import CanonicalNameResolver
from ..serialization import decode_record, item_to_record
from .schema import ensure_schema

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "~/.config/freshtrack/pantry.db"


def _to_db(value: datetime | None) -> str | None:
    """UTC, fixed-width ISO text so stored timestamps sort lexically."""
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _row_to_item(row: sqlite3.Row) -> InventoryItem:
    override = row["override_expiration_date"]
    return InventoryItem(
        id=row["id"],
        canonical_name=row["canonical_name"],
        display_name=row["display_name"],
        quantity=row["quantity"],
        unit=row["unit"],
        purchase_date=parse_timestamp(row["purchase_date"]),
        computed_expiration_date=parse_timestamp(row["computed_expiration_date"]),
        created_at=parse_timestamp(row["created_at"]),
        updated_at=parse_timestamp(row["updated_at"]),
        source=ItemSource(row["source"]),
        override_expiration_date=parse_timestamp(override) if override else None,
    )


class InventoryDB:
    """Manages the inventory_items table."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH) -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(self._db_path)
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def add_items(self, items: Iterable[InventoryItem]) -> list[str]:
        """Insert (or replace) inventory items.

        Returns:
            The ids of the stored items.
        """
        conn = self._get_conn()
        ids: list[str] = []
        for item in items:
            conn.execute(
                """INSERT OR REPLACE INTO inventory_items
                   (id, canonical_name, display_name, quantity, unit,
                    purchase_date, computed_expiration_date,
                    override_expiration_date, source, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    item.id,
                    item.canonical_name,
                    item.display_name,
                    item.quantity,
                    item.unit,
                    _to_db(item.purchase_date),
                    _to_db(item.computed_expiration_date),
                    _to_db(item.override_expiration_date),
                    item.source.value,
                    _to_db(item.created_at),
                    _to_db(item.updated_at),
                ),
            )
            ids.append(item.id)
        conn.commit()
        return ids

    def get_item(self, item_id: str) -> InventoryItem | None:
        conn = self._get_conn()
        row = conn.execute(
            "SELECT * FROM inventory_items WHERE id = ?", (item_id,)
        ).fetchone()
        return _row_to_item(row) if row else None

    def get_all(self) -> list[InventoryItem]:
        """Return every item, soonest effective expiration first."""
        conn = self._get_conn()
        rows = conn.execute(
            """SELECT * FROM inventory_items
               ORDER BY COALESCE(override_expiration_date,
                                 computed_expiration_date)"""
        ).fetchall()
        return [_row_to_item(r) for r in rows]

    def update_item(self, item: InventoryItem) -> bool:
        """Write back the editable fields of ``item``.

        Canonical name, source and computed expiration are left as stored.

        Returns:
            True if a row was updated.
        """
        conn = self._get_conn()
        cur = conn.execute(
            """UPDATE inventory_items
               SET display_name = ?,
                   quantity = ?,
                   unit = ?,
                   override_expiration_date = ?,
                   updated_at = ?
               WHERE id = ?""",
            (
                item.display_name,
                item.quantity,
                item.unit,
                _to_db(item.override_expiration_date),
                _to_db(item.updated_at),
                item.id,
            ),
        )
        conn.commit()
        return cur.rowcount > 0

    def delete_item(self, item_id: str) -> bool:
        """Delete an inventory item by ID."""
        conn = self._get_conn()
        cur = conn.execute("DELETE FROM inventory_items WHERE id = ?", (item_id,))
        conn.commit()
        return cur.rowcount > 0

    def get_expiring_soon(
        self,
        days: int = 3,
        now: datetime | None = None,
    ) -> list[InventoryItem]:
        """Return items whose effective expiration is within ``days`` days."""
        conn = self._get_conn()
        current = utc_now() if now is None else parse_timestamp(now, "now")
        cutoff = _to_db(current + timedelta(days=days))
        rows = conn.execute(
            """SELECT * FROM inventory_items
               WHERE COALESCE(override_expiration_date,
                              computed_expiration_date) <= ?
               ORDER BY COALESCE(override_expiration_date,
                                 computed_expiration_date)""",
            (cutoff,),
        ).fetchall()
        return [_row_to_item(r) for r in rows]

    def import_records(
        self,
        records: Iterable[object],
        resolver: CanonicalNameResolver | None = None,
        now: datetime | None = None,
        calculator: ExpirationCalculator | None = None,
    ) -> list[str]:
        """Decode stored pantry records (legacy shape allowed) and insert them.

        Records matching no known shape are skipped. Legacy records without
        an expiration date are estimated with ``calculator``'s table.
        """
        calculator = calculator or ExpirationCalculator()
        current = calculator.now() if now is None else now
        items = []
        skipped = 0
        for record in records:
            item = decode_record(record, resolver, current, calculator)
            if item is None:
                skipped += 1
            else:
                items.append(item)
        if skipped:
            logger.info("Skipped %d unrecognized pantry record(s)", skipped)
        ids = self.add_items(items)
        logger.info("Imported %d pantry record(s)", len(ids))
        return ids

    def export_records(self) -> list[dict]:
        return [item_to_record(item) for item in self.get_all()]
