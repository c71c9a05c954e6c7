"""Tests for urgency-biased recipe suggestions."""

import json
import sys
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from freshtrack.exceptions import ValidationError
from freshtrack.expiration import ExpirationCalculator
from freshtrack.pantry import Pantry, create_inventory_item
from freshtrack.ranking import UrgencyRanker
from freshtrack.recipes import (
    MAX_RECIPES,
    ClaudeRecipeGenerator,
    RecipeGenerator,
    RecipeSuggestion,
    fallback_recipes,
    suggest_recipes,
    validate_recipes,
)

NOW = datetime(2024, 5, 1, tzinfo=timezone.utc)


def recipe(title="Banana bread", **changes):
    data = {
        "title": title,
        "pantryIngredientsUsed": ["banana", "egg"],
        "missingIngredients": ["flour"],
        "steps": ["Mash", "Bake"],
        "estimatedCookingTimeMinutes": 60,
    }
    data.update(changes)
    return data


class FakeGenerator(RecipeGenerator):
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    async def generate(self, ranked, pantry, preferences=""):
        self.calls.append((ranked, pantry, preferences))
        if self.error:
            raise self.error
        return self.result


@pytest.fixture
def calculator():
    return ExpirationCalculator(clock=lambda: NOW)


@pytest.fixture
def pantry(calculator):
    names = ["chicken", "fish", "spinach", "milk", "egg", "carrot", "garlic"]
    items = [create_inventory_item(n, calculator=calculator) for n in names]
    return Pantry(items, ranker=UrgencyRanker(calculator))


class TestValidateRecipes:
    def test_keeps_well_formed(self):
        result = validate_recipes([recipe()])
        assert result == [
            RecipeSuggestion(
                title="Banana bread",
                pantry_ingredients_used=["banana", "egg"],
                missing_ingredients=["flour"],
                steps=["Mash", "Bake"],
                estimated_cooking_time_minutes=60,
            )
        ]

    @pytest.mark.parametrize("bad", [
        recipe(title=None),
        recipe(steps="Mash then bake"),
        recipe(missingIngredients=None),
        recipe(pantryIngredientsUsed="banana"),
        recipe(estimatedCookingTimeMinutes="60"),
        recipe(estimatedCookingTimeMinutes=True),
        "Banana bread",
        None,
    ])
    def test_drops_malformed(self, bad):
        assert validate_recipes([bad, recipe("Smoothie")])[0].title == "Smoothie"
        assert len(validate_recipes([bad])) == 0

    def test_non_list(self):
        assert validate_recipes({"recipes": []}) == []
        assert validate_recipes(None) == []

    def test_at_most_five(self):
        raw = [recipe(f"Recipe {i}") for i in range(8)]
        assert [r.title for r in validate_recipes(raw)] == [
            f"Recipe {i}" for i in range(MAX_RECIPES)
        ]

    def test_non_string_entries_filtered(self):
        result = validate_recipes([recipe(steps=["Mash", 2, None, "Bake"])])
        assert result[0].steps == ["Mash", "Bake"]


class TestFallbackRecipes:
    def test_uses_most_urgent_first(self, pantry):
        recipes = fallback_recipes(pantry)
        assert len(recipes) == 5
        stir_fry = recipes[0]
        assert stir_fry.title == "Quick Stir-Fry Rescue"
        assert stir_fry.pantry_ingredients_used == ["chicken", "fish", "spinach", "milk"]
        assert stir_fry.missing_ingredients == ["soy sauce", "oil"]

    def test_omelet_skips_fish(self, pantry):
        omelet = fallback_recipes(pantry)[1]
        assert "fish" not in omelet.pantry_ingredients_used
        assert omelet.pantry_ingredients_used == ["chicken", "spinach", "milk"]

    def test_staples_on_hand_not_missing(self, calculator):
        items = [
            create_inventory_item("milk", calculator=calculator),
            create_inventory_item("broth", calculator=calculator),
        ]
        pantry = Pantry(items, ranker=UrgencyRanker(calculator))
        soup = next(r for r in fallback_recipes(pantry) if r.title == "Soup Pot Save")
        assert soup.missing_ingredients == []

    def test_empty_templates_dropped(self, calculator):
        pantry = Pantry(
            [create_inventory_item("fish", calculator=calculator)],
            ranker=UrgencyRanker(calculator),
        )
        titles = [r.title for r in fallback_recipes(pantry)]
        assert "Pantry Omelet Bowl" not in titles
        assert len(titles) == 4


class TestSuggestRecipes:
    @pytest.mark.asyncio
    async def test_empty_pantry_rejected(self):
        with pytest.raises(ValidationError):
            await suggest_recipes(Pantry())

    @pytest.mark.asyncio
    async def test_no_generator_uses_templates(self, pantry):
        plan = await suggest_recipes(pantry, now=NOW)
        assert plan.source == "fallback"
        assert plan.warning is None
        assert len(plan.recipes) == 5
        assert plan.ranked_ingredients[0].canonical_name == "chicken"

    @pytest.mark.asyncio
    async def test_generator_receives_ranking(self, pantry):
        generator = FakeGenerator([recipe()])
        plan = await suggest_recipes(
            pantry, generator, preferences="vegetarian", top_n=3, now=NOW
        )
        assert plan.source == "generator"
        assert [r.title for r in plan.recipes] == ["Banana bread"]

        ranked, snapshot, preferences = generator.calls[0]
        assert [r["canonicalName"] for r in ranked] == ["chicken", "fish", "spinach"]
        assert set(ranked[0]) == {
            "canonicalName", "displayName", "daysUntilExpiration", "urgencyScore",
        }
        assert ranked[0]["urgencyScore"] == 5
        assert len(snapshot) == 7
        assert preferences == "vegetarian"
        assert len(plan.ranked_ingredients) == 3

    @pytest.mark.asyncio
    async def test_generator_failure_falls_back(self, pantry):
        generator = FakeGenerator(error=RuntimeError("timeout"))
        plan = await suggest_recipes(pantry, generator, now=NOW)
        assert plan.source == "fallback"
        assert "timeout" in plan.warning
        assert plan.recipes

    @pytest.mark.asyncio
    async def test_invalid_output_falls_back(self, pantry):
        plan = await suggest_recipes(pantry, FakeGenerator([{"title": 3}]), now=NOW)
        assert plan.source == "fallback"
        assert "invalid recipe JSON" in plan.warning

    @pytest.mark.asyncio
    async def test_to_dict(self, pantry):
        plan = await suggest_recipes(pantry, FakeGenerator([recipe()]), top_n=1, now=NOW)
        data = plan.to_dict()
        assert data["source"] == "generator"
        assert data["recipes"][0]["estimatedCookingTimeMinutes"] == 60
        assert data["rankedIngredients"][0]["canonicalName"] == "chicken"
        assert "warning" not in data


class TestClaudeRecipeGenerator:
    @pytest.mark.asyncio
    async def test_requires_api_key(self):
        with pytest.raises(ValueError, match="API key"):
            await ClaudeRecipeGenerator(api_key="").generate([], [])

    @pytest.mark.asyncio
    async def test_generate_mocked(self):
        mock_response = MagicMock()
        mock_response.content = [
            MagicMock(text="```json\n" + json.dumps({"recipes": [recipe()]}) + "\n```")
        ]
        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(return_value=mock_response)
        mock_anthropic = MagicMock()
        mock_anthropic.AsyncAnthropic.return_value = mock_client

        with patch.dict(sys.modules, {"anthropic": mock_anthropic}):
            generator = ClaudeRecipeGenerator(api_key="test-key")
            raw = await generator.generate(
                [{"canonicalName": "banana", "urgencyScore": 6}], [], ""
            )

        assert raw == [recipe()]
        prompt = mock_client.messages.create.call_args.kwargs["messages"][0]["content"]
        assert '"canonicalName": "banana"' in prompt
        assert "User preferences: none" in prompt


def test_recipe_display():
    text = validate_recipes([recipe()])[0].display()
    assert text.splitlines()[0] == "Banana bread (60 min)"
    assert "Also need: flour" in text
    assert "2. Bake" in text
