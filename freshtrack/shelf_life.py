"""Refrigerated shelf-life estimates keyed by canonical ingredient name."""

from __future__ import annotations

import math
from collections.abc import Mapping
from types import MappingProxyType

DEFAULT_DAYS = 7

# Canonical ingredient -> expected refrigerated shelf life (days)
DEFAULT_SHELF_LIFE_DAYS: Mapping[str, int] = MappingProxyType({
    "apple": 30,
    "banana": 5,
    "beef": 4,
    "bread": 7,
    "broccoli": 7,
    "butter": 30,
    "carrot": 21,
    "cheese": 28,
    "chicken": 2,
    "cilantro": 4,
    "cucumber": 7,
    "egg": 21,
    "fish": 2,
    "garlic": 45,
    "lettuce": 7,
    "milk": 7,
    "onion": 30,
    "potato": 30,
    "spinach": 5,
    "tomato": 10,
    "yogurt": 14,
})

MIN_SHELF_LIFE_DAYS = 1
MAX_SHELF_LIFE_DAYS = 365


def validate_shelf_life_days(value: object) -> int | None:
    """Round an externally supplied day count and check it is plausible.

    Returns:
        The rounded day count, or None if the value is not numeric or does
        not round to an integer between 1 and 365.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None

    if not math.isfinite(number):
        return None
    # Half-up rounding, not banker's rounding
    rounded = math.floor(number + 0.5)
    if rounded < MIN_SHELF_LIFE_DAYS or rounded > MAX_SHELF_LIFE_DAYS:
        return None
    return rounded


class ShelfLifeTable:
    """Immutable lookup of shelf-life days with a default for unknown names."""

    def __init__(
        self,
        days_by_name: Mapping[str, int] | None = None,
        default_days: int = DEFAULT_DAYS,
    ) -> None:
        source = DEFAULT_SHELF_LIFE_DAYS if days_by_name is None else days_by_name
        self._days = MappingProxyType(
            {name.strip().lower(): int(days) for name, days in source.items()}
        )
        self._default_days = int(default_days)

    @property
    def default_days(self) -> int:
        return self._default_days

    def shelf_life_days(self, canonical_name: str) -> int:
        return self._days.get(canonical_name, self._default_days)

    def __contains__(self, canonical_name: object) -> bool:
        return canonical_name in self._days

    def __len__(self) -> int:
        return len(self._days)

    def vocabulary(self) -> tuple[str, ...]:
        """Known canonical names in lexicographic order."""
        return tuple(sorted(self._days))

    def as_dict(self) -> dict[str, int]:
        return dict(self._days)

    def with_overrides(
        self,
        overrides: Mapping[str, int],
        default_days: int | None = None,
    ) -> ShelfLifeTable:
        """Return a new table with ``overrides`` merged over this one."""
        merged = {**self._days, **overrides}
        return ShelfLifeTable(
            merged,
            self._default_days if default_days is None else default_days,
        )
