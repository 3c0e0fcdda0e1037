import json

import pytest

from meal_rotation.recipes import (
    RecipeLoadError,
    RecipeView,
    complexity_from_score,
    complexity_score,
    index_by_id,
    load_recipes,
    normalize_course_type,
    normalize_tag,
)
from tests.conftest import create_test_recipe


@pytest.fixture
def sample_recipes_data():
    return {
        "recipes": [
            {
                "id": "pasta-bolognese",
                "name": "Pasta Bolognese",
                "course_type": "main_course",
                "cuisine": "Italian",
                "complexity": "moderate",
                "prep_time_minutes": 15,
                "cook_time_minutes": 30,
                "dietary_tags": ["Dairy-Free"],
                "accepts_accompaniment": True,
                "preferred_accompaniment_categories": ["Salad"],
            },
            {
                "id": "green-salad",
                "name": "Green Salad",
                "course_type": "main_course",
                "accompaniment_category": "salad",
                "prep_time_minutes": 5,
            },
            {
                "id": "tiramisu",
                "name": "Tiramisu",
                "course_type": "dessert",
                "ingredients": ["mascarpone", "coffee", "eggs"],
                "instructions": ["whip", "layer"],
                "advance_prep_hours": 6,
            },
        ]
    }


@pytest.fixture
def recipes_file(tmp_path, sample_recipes_data):
    path = tmp_path / "recipes.json"
    path.write_text(json.dumps(sample_recipes_data))
    return path


class TestNormalization:
    def test_normalize_tag_lowercases_and_uses_underscores(self):
        assert normalize_tag("Gluten-Free") == "gluten_free"
        assert normalize_tag(" dairy free ") == "dairy_free"

    def test_normalize_course_type_accepts_legacy_names(self):
        assert normalize_course_type("main") == "main_course"
        assert normalize_course_type("Starter") == "appetizer"
        assert normalize_course_type("dessert") == "dessert"

    def test_normalize_course_type_rejects_unknown(self):
        with pytest.raises(ValueError):
            normalize_course_type("soup")


class TestComplexity:
    def test_score_without_advance_prep(self):
        # 10 * 0.3 + 10 * 0.4
        assert complexity_score(10, 10, None) == pytest.approx(7.0)

    def test_advance_prep_buckets(self):
        assert complexity_score(0, 0, 2) == pytest.approx(15.0)
        assert complexity_score(0, 0, 4) == pytest.approx(30.0)

    def test_thresholds(self):
        assert complexity_from_score(29.9) == "simple"
        assert complexity_from_score(30.0) == "moderate"
        assert complexity_from_score(60.0) == "moderate"
        assert complexity_from_score(60.1) == "complex"


class TestRecipeView:
    def test_from_dict_normalizes_fields(self, sample_recipes_data):
        recipe = RecipeView.from_dict(sample_recipes_data["recipes"][0])

        assert recipe.cuisine == "italian"
        assert recipe.dietary_tags == frozenset({"dairy_free"})
        assert recipe.preferred_accompaniment_categories == ("salad",)
        assert recipe.total_time_minutes == 45
        assert not recipe.is_complex
        assert not recipe.is_accompaniment

    def test_from_dict_derives_missing_complexity(self, sample_recipes_data):
        recipe = RecipeView.from_dict(sample_recipes_data["recipes"][2])

        # 3 * 0.3 + 2 * 0.4 + 100 * 0.3 = 31.7
        assert recipe.complexity == "moderate"
        assert recipe.cook_time_minutes == 0

    def test_from_dict_requires_course_type(self):
        with pytest.raises(ValueError, match="course_type"):
            RecipeView.from_dict({"id": "x"})

    def test_from_dict_rejects_unknown_complexity(self):
        with pytest.raises(ValueError):
            RecipeView.from_dict({"id": "x", "course_type": "main_course", "complexity": "hard"})

    def test_side_dish_is_accompaniment(self, sample_recipes_data):
        recipe = RecipeView.from_dict(sample_recipes_data["recipes"][1])
        assert recipe.is_accompaniment
        assert recipe.accompaniment_category == "salad"

    def test_satisfies_uses_and_logic(self):
        recipe = create_test_recipe("r", dietary_tags=["vegetarian", "gluten_free"])

        assert recipe.satisfies({"vegetarian"})
        assert recipe.satisfies({"vegetarian", "gluten_free"})
        assert not recipe.satisfies({"vegetarian", "vegan"})
        assert recipe.satisfies(set())

    def test_to_dict_is_json_safe(self):
        recipe = create_test_recipe("r", dietary_tags=["vegan"], preferred_accompaniment_categories=["rice"])
        data = recipe.to_dict()

        assert data["dietary_tags"] == ["vegan"]
        assert data["preferred_accompaniment_categories"] == ["rice"]
        json.dumps(data)


class TestLoadRecipes:
    def test_load_recipes(self, recipes_file):
        recipes = load_recipes(recipes_file)

        assert [r.id for r in recipes] == ["pasta-bolognese", "green-salad", "tiramisu"]
        assert set(index_by_id(recipes)) == {"pasta-bolognese", "green-salad", "tiramisu"}

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(RecipeLoadError, match="not found"):
            load_recipes(tmp_path / "missing.json")

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / "recipes.json"
        path.write_text("{not json")
        with pytest.raises(RecipeLoadError, match="Invalid JSON"):
            load_recipes(path)

    def test_missing_recipes_key_raises(self, tmp_path):
        path = tmp_path / "recipes.json"
        path.write_text(json.dumps({"items": []}))
        with pytest.raises(RecipeLoadError, match="recipes"):
            load_recipes(path)

    def test_invalid_recipe_raises(self, tmp_path):
        path = tmp_path / "recipes.json"
        path.write_text(json.dumps({"recipes": [{"id": "x", "course_type": "soup"}]}))
        with pytest.raises(RecipeLoadError, match="Invalid recipe"):
            load_recipes(path)
