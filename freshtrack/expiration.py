"""Expiration dates, days remaining and urgency scores."""

from __future__ import annotations

import math
from collections.abc import Callable
from datetime import date, datetime, time, timedelta, timezone
from typing import TYPE_CHECKING

from .exceptions import InvalidTimestampError
from .shelf_life import ShelfLifeTable

if TYPE_CHECKING:
    from .models import InventoryItem

URGENCY_HORIZON_DAYS = 7

_SECONDS_PER_DAY = 86400


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: object, field: str = "timestamp") -> datetime:
    """Coerce a datetime, date or ISO-8601 string to an aware datetime.

    Naive values are taken as UTC. A trailing ``Z`` is accepted.

    Raises:
        InvalidTimestampError: If the value cannot be interpreted.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time())
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise InvalidTimestampError(value, field) from None
    else:
        raise InvalidTimestampError(value, field)

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime) -> str:
    """ISO-8601 text with a ``Z`` suffix for UTC."""
    text = value.isoformat()
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


class ExpirationCalculator:
    """Combine shelf-life estimates and overrides into expiration dates."""

    def __init__(
        self,
        table: ShelfLifeTable | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._table = table or ShelfLifeTable()
        self._clock = clock or utc_now

    @property
    def table(self) -> ShelfLifeTable:
        return self._table

    def now(self) -> datetime:
        return parse_timestamp(self._clock(), "now")

    def compute_expiration(
        self,
        canonical_name: str,
        purchase_date: datetime | date | str,
        override: datetime | date | str | None = None,
    ) -> datetime:
        """Return the override if given, else purchase date plus shelf life.

        Days are added on the calendar, so the time of day is unchanged.
        """
        if override is not None:
            return parse_timestamp(override, "overrideExpirationDate")
        purchased = parse_timestamp(purchase_date, "purchaseDate")
        return purchased + timedelta(days=self._table.shelf_life_days(canonical_name))

    def days_until(
        self,
        expiration: datetime | date | str,
        now: datetime | None = None,
    ) -> int:
        """Whole days until ``expiration``, rounded up. Negative when overdue."""
        target = parse_timestamp(expiration, "expiration")
        current = self.now() if now is None else parse_timestamp(now, "now")
        return math.ceil((target - current).total_seconds() / _SECONDS_PER_DAY)

    @staticmethod
    def urgency_score(days_until_expiration: int) -> int:
        return max(0, URGENCY_HORIZON_DAYS - days_until_expiration)

    @staticmethod
    def effective_expiration(item: InventoryItem) -> datetime:
        return item.effective_expiration
