"""Ingredient name canonicalization: alias table plus edit-distance matching."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from decimal import ROUND_HALF_UP, Decimal
from types import MappingProxyType
from typing import NamedTuple

from .shelf_life import DEFAULT_SHELF_LIFE_DAYS, ShelfLifeTable

UNKNOWN = "unknown"

ALIAS_CONFIDENCE = 0.95
EXACT_CONFIDENCE = 1.0
UNRECOGNIZED_CONFIDENCE = 0.5
DEFAULT_FUZZY_THRESHOLD = 0.55

# Misspellings, plurals and receipt abbreviations -> canonical vocabulary entry
DEFAULT_ALIASES: Mapping[str, str] = MappingProxyType({
    "apples": "apple",
    "bananas": "banana",
    "eggs": "egg",
    "tomatoes": "tomato",
    "potatoes": "potato",
    "onions": "onion",
    "lettuces": "lettuce",
    "bnna": "banana",
    "orgbnna": "banana",
    "mlk": "milk",
    "chk": "chicken",
    "chkn": "chicken",
    "tom": "tomato",
    "yog": "yogurt",
})

_NON_LETTERS = re.compile(r"[^a-z]")


class Resolution(NamedTuple):
    canonical_name: str
    confidence: float


def normalize(raw_name: str) -> str:
    """Lowercase and drop every character outside a-z."""
    return _NON_LETTERS.sub("", raw_name.lower())


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance with unit insert/delete/substitute costs."""
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            cost = 0 if ca == cb else 1
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + cost,
                )
            )
        previous = current
    return previous[-1]


def _round_confidence(value: float) -> float:
    return float(
        Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    )


class CanonicalNameResolver:
    """Map raw ingredient text to a canonical name and a confidence score.

    The vocabulary is kept sorted; fuzzy matching walks it in that order and
    the first minimum-distance entry wins, so results are reproducible.
    """

    def __init__(
        self,
        vocabulary: Iterable[str] | None = None,
        aliases: Mapping[str, str] | None = None,
        threshold: float = DEFAULT_FUZZY_THRESHOLD,
    ) -> None:
        words = DEFAULT_SHELF_LIFE_DAYS.keys() if vocabulary is None else vocabulary
        self._vocabulary = tuple(sorted({normalize(w) for w in words if normalize(w)}))
        self._vocabulary_set = frozenset(self._vocabulary)
        self._aliases = MappingProxyType(
            dict(DEFAULT_ALIASES if aliases is None else aliases)
        )
        self._threshold = threshold

    @classmethod
    def from_table(
        cls,
        table: ShelfLifeTable,
        aliases: Mapping[str, str] | None = None,
        threshold: float = DEFAULT_FUZZY_THRESHOLD,
    ) -> CanonicalNameResolver:
        """Build a resolver whose vocabulary is the table's known names."""
        return cls(table.vocabulary(), aliases, threshold)

    normalize = staticmethod(normalize)

    @property
    def vocabulary(self) -> tuple[str, ...]:
        return self._vocabulary

    def resolve(self, raw_name: str) -> Resolution:
        normalized = normalize(raw_name)
        if not normalized:
            return Resolution(UNKNOWN, 0.0)

        alias = self._aliases.get(normalized)
        if alias:
            return Resolution(alias, ALIAS_CONFIDENCE)

        if normalized in self._vocabulary_set:
            return Resolution(normalized, EXACT_CONFIDENCE)

        best_match = ""
        best_distance: int | None = None
        for candidate in self._vocabulary:
            distance = edit_distance(normalized, candidate)
            if best_distance is None or distance < best_distance:
                best_distance = distance
                best_match = candidate

        if best_distance is not None:
            longest = max(len(normalized), len(best_match))
            similarity = 1 - best_distance / longest
            if similarity >= self._threshold:
                return Resolution(best_match, _round_confidence(similarity))

        return Resolution(normalized, UNRECOGNIZED_CONFIDENCE)


_default_resolver: CanonicalNameResolver | None = None


def default_resolver() -> CanonicalNameResolver:
    global _default_resolver
    if _default_resolver is None:
        _default_resolver = CanonicalNameResolver()
    return _default_resolver


def canonicalize_ingredient(raw_name: str) -> Resolution:
    """Resolve ``raw_name`` against the built-in vocabulary and aliases."""
    return default_resolver().resolve(raw_name)
