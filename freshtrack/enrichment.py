"""Shelf-life estimates merged from an external lookup and local defaults.

The external lookup (a language model) is only trusted for names that
were requested and for day counts that pass ``validate_shelf_life_days``.
Anything else, including a failed or missing lookup, falls back to the
local shelf-life table.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from .exceptions import ValidationError
from .ocr import strip_code_fences
from .resolver import CanonicalNameResolver, default_resolver
from .shelf_life import ShelfLifeTable, validate_shelf_life_days

logger = logging.getLogger(__name__)

MAX_REQUEST_ITEMS = 30


@dataclass
class ShelfLifeRequestItem:
    canonical_name: str
    display_name: str


@dataclass
class ShelfLifeEstimate:
    shelf_life_by_canonical: dict[str, int]
    provider: str  # "external" or "fallback"
    warning: str | None = None
    matched_items: int = 0

    def to_dict(self) -> dict:
        data: dict = {
            "shelfLifeByCanonical": dict(self.shelf_life_by_canonical),
            "provider": self.provider,
            "matchedItems": self.matched_items,
        }
        if self.warning:
            data["warning"] = self.warning
        return data


class ShelfLifeLookup(ABC):
    """Abstract base for an external shelf-life knowledge source."""

    @abstractmethod
    async def lookup(self, items: list[ShelfLifeRequestItem]) -> list[dict]:
        """Return ``{"canonicalName": str, "shelfLifeDays": number}`` entries."""
        ...


def normalize_request_items(
    items: Iterable[Mapping],
    resolver: CanonicalNameResolver | None = None,
) -> list[ShelfLifeRequestItem]:
    """Dedupe ``{name, canonicalName?}`` requests by canonical name.

    A missing canonical name is resolved from ``name``. The first display
    name seen for a canonical name is kept. At most 30 items are returned.
    """
    resolver = resolver or default_resolver()
    unique: dict[str, str] = {}
    for item in items:
        if not isinstance(item, Mapping):
            continue
        name = item.get("name")
        name = name.strip() if isinstance(name, str) else ""
        canonical = item.get("canonicalName")
        canonical = canonical.strip() if isinstance(canonical, str) else ""
        if not canonical:
            canonical = resolver.resolve(name).canonical_name
        canonical = canonical.strip().lower()
        if not canonical or canonical in unique:
            continue
        unique[canonical] = name or canonical

    return [
        ShelfLifeRequestItem(canonical_name=c, display_name=d)
        for c, d in unique.items()
    ][:MAX_REQUEST_ITEMS]


def merge_shelf_lives(
    fallback: Mapping[str, int],
    external: Iterable[object],
) -> tuple[dict[str, int], int]:
    """Overlay valid external day counts on the fallback values.

    Returns:
        The merged mapping and how many external entries were accepted.
    """
    merged = dict(fallback)
    matched = 0
    for entry in external:
        if not isinstance(entry, Mapping):
            continue
        name = entry.get("canonicalName")
        if not isinstance(name, str):
            continue
        name = name.strip().lower()
        if name not in merged:
            continue
        days = validate_shelf_life_days(entry.get("shelfLifeDays"))
        if days is None:
            continue
        merged[name] = days
        matched += 1
    return merged, matched


async def estimate_shelf_lives(
    items: Iterable[Mapping],
    lookup: ShelfLifeLookup | None = None,
    table: ShelfLifeTable | None = None,
    resolver: CanonicalNameResolver | None = None,
) -> ShelfLifeEstimate:
    """Shelf life in days for each requested ingredient.

    Raises:
        ValidationError: No usable items were requested.
    """
    requested = normalize_request_items(items, resolver)
    if not requested:
        raise ValidationError("items is required")

    table = table or ShelfLifeTable()
    fallback = {
        item.canonical_name: table.shelf_life_days(item.canonical_name)
        for item in requested
    }

    if lookup is None:
        return ShelfLifeEstimate(
            shelf_life_by_canonical=fallback,
            provider="fallback",
            warning="No shelf-life lookup is configured, using local shelf-life defaults.",
        )

    try:
        external = await lookup.lookup(requested)
    except Exception as e:
        logger.warning("Shelf-life lookup failed, using local defaults: %s", e)
        return ShelfLifeEstimate(
            shelf_life_by_canonical=fallback,
            provider="fallback",
            warning=f"Shelf-life lookup failed: {e}",
        )

    merged, matched = merge_shelf_lives(fallback, external)
    warning = None
    if matched == 0:
        warning = (
            "Shelf-life lookup returned no usable values; "
            "fallback defaults were used."
        )
        logger.warning(warning)
    return ShelfLifeEstimate(
        shelf_life_by_canonical=merged,
        provider="external",
        warning=warning,
        matched_items=matched,
    )


def parse_json_object(text: str) -> dict | None:
    """Parse a JSON object, tolerating fences and surrounding prose."""
    cleaned = strip_code_fences(text or "")
    if not cleaned:
        return None
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        first, last = cleaned.find("{"), cleaned.rfind("}")
        if first < 0 or last <= first:
            return None
        try:
            data = json.loads(cleaned[first:last + 1])
        except json.JSONDecodeError:
            return None
    return data if isinstance(data, dict) else None


_SHELF_LIFE_PROMPT = """\
Give the typical refrigerated shelf life in days for each grocery ingredient.
Return strict JSON only with this shape:
{{"items":[{{"canonicalName":"milk","shelfLifeDays":7}}]}}
Rules:
- canonicalName must match one of the requested canonical names exactly.
- shelfLifeDays must be an integer between 1 and 365.
- no prose, markdown, or extra fields.

Ingredients:
{ingredients}
"""


class ClaudeShelfLifeLookup(ShelfLifeLookup):
    """Ask Claude for typical refrigerated shelf lives."""

    def __init__(self, api_key: str = "", model: str = "claude-sonnet-4-5-20250929") -> None:
        self._api_key = api_key
        self._model = model

    async def lookup(self, items: list[ShelfLifeRequestItem]) -> list[dict]:
        if not self._api_key:
            raise ValueError(
                "Anthropic API key is not configured. "
                "Set it in the config file or the ANTHROPIC_API_KEY environment variable."
            )

        try:
            import anthropic
        except ImportError:
            raise ImportError(
                "anthropic SDK is required: pip install anthropic"
            ) from None

        prompt = _SHELF_LIFE_PROMPT.format(
            ingredients="\n".join(
                f"- {item.canonical_name} ({item.display_name})" for item in items
            )
        )
        client = anthropic.AsyncAnthropic(api_key=self._api_key)
        response = await client.messages.create(
            model=self._model,
            max_tokens=2048,
            messages=[{"role": "user", "content": prompt}],
        )

        data = parse_json_object(response.content[0].text)
        entries = data.get("items") if data else None
        return entries if isinstance(entries, list) else []
