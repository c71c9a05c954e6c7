"""Rank pantry entries by how soon they expire."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from .expiration import ExpirationCalculator
from .models import InventoryItem, RankedIngredient

DEFAULT_TOP_N = 10


class UrgencyRanker:
    """Project inventory items to RankedIngredient and sort them.

    Ordering is urgency score descending, then days remaining ascending.
    Every item in one call is measured against the same "now".
    """

    def __init__(self, calculator: ExpirationCalculator | None = None) -> None:
        self._calculator = calculator or ExpirationCalculator()

    @property
    def calculator(self) -> ExpirationCalculator:
        return self._calculator

    def project(self, item: InventoryItem, now: datetime) -> RankedIngredient:
        days = self._calculator.days_until(item.effective_expiration, now)
        return RankedIngredient(
            canonical_name=item.canonical_name,
            display_name=item.display_name,
            days_until_expiration=days,
            urgency_score=self._calculator.urgency_score(days),
        )

    def rank_items(
        self,
        items: Iterable[InventoryItem],
        now: datetime | None = None,
    ) -> list[tuple[InventoryItem, RankedIngredient]]:
        """Pair each item with its projection, most urgent first."""
        if now is None:
            now = self._calculator.now()
        pairs = [(item, self.project(item, now)) for item in items]
        pairs.sort(
            key=lambda pair: (-pair[1].urgency_score, pair[1].days_until_expiration)
        )
        return pairs

    def rank(
        self,
        items: Iterable[InventoryItem],
        now: datetime | None = None,
    ) -> list[RankedIngredient]:
        return [ranked for _, ranked in self.rank_items(items, now)]

    def top(
        self,
        items: Iterable[InventoryItem],
        limit: int = DEFAULT_TOP_N,
        now: datetime | None = None,
    ) -> list[RankedIngredient]:
        """The ``limit`` most urgent ingredients."""
        return self.rank(items, now)[:max(limit, 0)]
