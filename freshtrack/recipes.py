"""Recipe suggestions biased toward ingredients about to spoil.

The generator (a language model) always receives the top-N urgency ranking
in the ``{canonicalName, displayName, daysUntilExpiration, urgencyScore}``
shape. When no generator is configured, or it fails or returns nothing
usable, a fixed set of templates is filled from the ranking instead.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

from .enrichment import parse_json_object
from .exceptions import ValidationError
from .models import RankedIngredient
from .pantry import Pantry
from .ranking import DEFAULT_TOP_N
from .serialization import item_to_record

logger = logging.getLogger(__name__)

MAX_RECIPES = 5


@dataclass
class RecipeSuggestion:
    title: str
    pantry_ingredients_used: list[str] = field(default_factory=list)
    missing_ingredients: list[str] = field(default_factory=list)
    steps: list[str] = field(default_factory=list)
    estimated_cooking_time_minutes: float = 0

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "pantryIngredientsUsed": list(self.pantry_ingredients_used),
            "missingIngredients": list(self.missing_ingredients),
            "steps": list(self.steps),
            "estimatedCookingTimeMinutes": self.estimated_cooking_time_minutes,
        }

    def display(self) -> str:
        lines = [f"{self.title} ({self.estimated_cooking_time_minutes:g} min)"]
        lines.append(f"  Uses: {', '.join(self.pantry_ingredients_used)}")
        if self.missing_ingredients:
            lines.append(f"  Also need: {', '.join(self.missing_ingredients)}")
        for i, step in enumerate(self.steps, 1):
            lines.append(f"  {i}. {step}")
        return "\n".join(lines)


@dataclass
class RecipePlan:
    recipes: list[RecipeSuggestion]
    ranked_ingredients: list[RankedIngredient]
    source: str  # "generator" or "fallback"
    warning: str | None = None

    def to_dict(self) -> dict:
        data: dict = {
            "recipes": [r.to_dict() for r in self.recipes],
            "rankedIngredients": [r.to_dict() for r in self.ranked_ingredients],
            "source": self.source,
        }
        if self.warning:
            data["warning"] = self.warning
        return data


def _strings(value: list) -> list[str]:
    return [v for v in value if isinstance(v, str)]


def validate_recipes(raw: object) -> list[RecipeSuggestion]:
    """Keep well-formed recipe objects, at most five."""
    if not isinstance(raw, list):
        return []

    valid: list[RecipeSuggestion] = []
    for candidate in raw:
        if not isinstance(candidate, dict):
            continue
        minutes = candidate.get("estimatedCookingTimeMinutes")
        if (
            not isinstance(candidate.get("title"), str)
            or not isinstance(candidate.get("pantryIngredientsUsed"), list)
            or not isinstance(candidate.get("missingIngredients"), list)
            or not isinstance(candidate.get("steps"), list)
            or isinstance(minutes, bool)
            or not isinstance(minutes, (int, float))
        ):
            continue
        valid.append(
            RecipeSuggestion(
                title=candidate["title"],
                pantry_ingredients_used=_strings(candidate["pantryIngredientsUsed"]),
                missing_ingredients=_strings(candidate["missingIngredients"]),
                steps=_strings(candidate["steps"]),
                estimated_cooking_time_minutes=minutes,
            )
        )
    return valid[:MAX_RECIPES]


def fallback_recipes(
    pantry: Pantry,
    ranked: list[RankedIngredient] | None = None,
) -> list[RecipeSuggestion]:
    """Fill fixed templates with the most urgent ingredients."""
    if ranked is None:
        ranked = pantry.ranked()
    top = [r.canonical_name for r in ranked[:6]]
    have = pantry.canonical_names()

    def missing(*staples: str) -> list[str]:
        return [s for s in staples if s not in have]

    templates = [
        RecipeSuggestion(
            title="Quick Stir-Fry Rescue",
            pantry_ingredients_used=top[:4],
            missing_ingredients=missing("soy sauce", "oil"),
            steps=[
                "Chop all produce and proteins into bite-sized pieces.",
                "Heat oil in a pan, cook proteins first, then add vegetables.",
                "Add soy sauce and cook until tender-crisp.",
                "Serve hot over bread, rice, or as-is.",
            ],
            estimated_cooking_time_minutes=20,
        ),
        RecipeSuggestion(
            title="Pantry Omelet Bowl",
            pantry_ingredients_used=[n for n in top if n != "fish"][:3],
            missing_ingredients=missing("salt", "pepper"),
            steps=[
                "Whisk eggs with a splash of milk if available.",
                "Saute chopped expiring vegetables until soft.",
                "Pour eggs over vegetables and cook until set.",
                "Fold and serve with toast or salad.",
            ],
            estimated_cooking_time_minutes=15,
        ),
        RecipeSuggestion(
            title="Roasted Tray Mix",
            pantry_ingredients_used=top[:5],
            missing_ingredients=missing("olive oil", "salt"),
            steps=[
                "Preheat oven to 425F.",
                "Cut ingredients evenly and toss with oil and seasoning.",
                "Spread on tray and roast 20-30 minutes.",
                "Finish with a squeeze of lemon or herbs if available.",
            ],
            estimated_cooking_time_minutes=35,
        ),
        RecipeSuggestion(
            title="Soup Pot Save",
            pantry_ingredients_used=top[:4],
            missing_ingredients=missing("broth"),
            steps=[
                "Add chopped ingredients to a pot with broth or water.",
                "Simmer until everything is tender.",
                "Season and blend partially for texture.",
                "Serve warm and store leftovers.",
            ],
            estimated_cooking_time_minutes=30,
        ),
        RecipeSuggestion(
            title="Cold Leftover Salad",
            pantry_ingredients_used=top[:3],
            missing_ingredients=missing("vinegar", "olive oil"),
            steps=[
                "Slice all fresh ingredients thinly.",
                "Whisk quick dressing from oil, vinegar, salt.",
                "Combine and rest for 5 minutes.",
                "Top with protein or cheese if available.",
            ],
            estimated_cooking_time_minutes=10,
        ),
    ]
    return [t for t in templates if t.pantry_ingredients_used][:MAX_RECIPES]


class RecipeGenerator(ABC):
    """Abstract base for an external recipe-generation service."""

    @abstractmethod
    async def generate(
        self,
        ranked: list[dict],
        pantry: list[dict],
        preferences: str = "",
    ) -> object:
        """Return the raw ``recipes`` array produced by the service."""
        ...


_RECIPE_PROMPT = """\
Generate 3 to 5 recipes as strict JSON only.
Use this schema:
{{"recipes":[{{"title":"string","pantryIngredientsUsed":["string"],"missingIngredients":["string"],"steps":["string"],"estimatedCookingTimeMinutes":number}}]}}
Prioritize ingredients with high urgency first to reduce food waste.
Ranked urgent ingredients: {ranked}
Full pantry snapshot: {pantry}
User preferences: {preferences}
Return JSON only. No markdown fences, no commentary.
"""


class ClaudeRecipeGenerator(RecipeGenerator):
    """Generate recipes with Claude."""

    def __init__(self, api_key: str = "", model: str = "claude-sonnet-4-5-20250929") -> None:
        self._api_key = api_key
        self._model = model

    async def generate(
        self,
        ranked: list[dict],
        pantry: list[dict],
        preferences: str = "",
    ) -> object:
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

        prompt = _RECIPE_PROMPT.format(
            ranked=json.dumps(ranked, ensure_ascii=False),
            pantry=json.dumps(pantry, ensure_ascii=False),
            preferences=preferences.strip() or "none",
        )
        client = anthropic.AsyncAnthropic(api_key=self._api_key)
        response = await client.messages.create(
            model=self._model,
            max_tokens=4096,
            system=(
                "You are a recipe assistant that returns valid JSON only and "
                "prioritizes ingredients close to expiration."
            ),
            messages=[{"role": "user", "content": prompt}],
        )

        data = parse_json_object(response.content[0].text)
        return data.get("recipes") if data else None


async def suggest_recipes(
    pantry: Pantry,
    generator: RecipeGenerator | None = None,
    preferences: str = "",
    top_n: int = DEFAULT_TOP_N,
    now: datetime | None = None,
) -> RecipePlan:
    """Suggest recipes for the pantry, most urgent ingredients first.

    Raises:
        ValidationError: The pantry is empty.
    """
    if len(pantry) == 0:
        raise ValidationError("Pantry inventory is required")

    full_ranking = pantry.ranked(now)
    ranked = full_ranking[:max(top_n, 0)]

    def fallback(warning: str | None) -> RecipePlan:
        return RecipePlan(
            recipes=fallback_recipes(pantry, full_ranking),
            ranked_ingredients=ranked,
            source="fallback",
            warning=warning,
        )

    if generator is None:
        return fallback(None)

    try:
        raw = await generator.generate(
            [r.to_dict() for r in ranked],
            [item_to_record(item) for item in pantry],
            preferences,
        )
    except Exception as e:
        logger.warning("Recipe generation failed, using templates: %s", e)
        return fallback(f"Recipe generation failed: {e}")

    recipes = validate_recipes(raw)
    if not recipes:
        logger.warning("Recipe generator returned no valid recipes")
        return fallback("Model returned invalid recipe JSON; fallback used.")

    return RecipePlan(recipes=recipes, ranked_ingredients=ranked, source="generator")
