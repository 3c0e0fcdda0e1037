"""Pytest configuration and fixtures."""

from datetime import date, datetime, timezone

import pytest

from meal_rotation.preferences import UserPreferences
from meal_rotation.recipes import RecipeView

# 2026-10-19 is a Monday
MONDAY = date(2026, 10, 19)
NOW = datetime(2026, 10, 21, 12, 0, tzinfo=timezone.utc)


def create_test_recipe(
    recipe_id: str,
    course_type: str = "main_course",
    cuisine: str = "italian",
    complexity: str = "simple",
    prep_time_minutes: int = 10,
    cook_time_minutes: int = 10,
    dietary_tags: list | None = None,
    accepts_accompaniment: bool = False,
    preferred_accompaniment_categories: list | None = None,
    accompaniment_category: str | None = None,
    name: str | None = None,
) -> RecipeView:
    """Helper to create a test RecipeView with sensible defaults."""
    return RecipeView(
        id=recipe_id,
        name=name or recipe_id.replace("-", " ").title(),
        course_type=course_type,
        cuisine=cuisine,
        complexity=complexity,
        prep_time_minutes=prep_time_minutes,
        cook_time_minutes=cook_time_minutes,
        dietary_tags=frozenset(dietary_tags or []),
        accepts_accompaniment=accepts_accompaniment,
        preferred_accompaniment_categories=tuple(preferred_accompaniment_categories or []),
        accompaniment_category=accompaniment_category,
    )


def create_main_courses(count: int, cuisines: list[str] | None = None) -> list[RecipeView]:
    """Main courses main-01..main-NN, cycling through ``cuisines``."""
    cuisines = cuisines or ["italian", "mexican", "thai", "french"]
    return [
        create_test_recipe(f"main-{i:02d}", cuisine=cuisines[(i - 1) % len(cuisines)])
        for i in range(1, count + 1)
    ]


@pytest.fixture
def dinner_only():
    return UserPreferences(meal_types=["dinner"])


@pytest.fixture
def main_only_preferences():
    # Lunch is served as a single main course
    return UserPreferences(meal_types=["lunch"])


@pytest.fixture
def large_pool():
    recipes = create_main_courses(40)
    recipes += [create_test_recipe(f"app-{i}", course_type="appetizer") for i in range(1, 4)]
    recipes += [create_test_recipe(f"dessert-{i}", course_type="dessert") for i in range(1, 3)]
    return recipes
