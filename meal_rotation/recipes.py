import json
import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any

from meal_rotation.config import (
    COMPLEXITY_MODERATE_UP_TO,
    COMPLEXITY_SIMPLE_BELOW,
    COURSE_TYPES,
    MAIN_COURSE,
)

logger = logging.getLogger(__name__)

COMPLEXITY_LEVELS = ("simple", "moderate", "complex")

# Older exports used short course names.
_COURSE_ALIASES = {
    "main": MAIN_COURSE,
    "main course": MAIN_COURSE,
    "entree": MAIN_COURSE,
    "starter": "appetizer",
    "sweet": "dessert",
}


class RecipeLoadError(Exception):
    """Raised when recipes cannot be loaded from file."""
    pass


def normalize_tag(value: str) -> str:
    """Lower-case a tag and use underscores, so "Gluten-Free" == "gluten_free"."""
    return value.strip().lower().replace("-", "_").replace(" ", "_")


def normalize_course_type(value: str) -> str:
    course = value.strip().lower()
    course = _COURSE_ALIASES.get(course, course)
    if course not in COURSE_TYPES:
        raise ValueError(f"Unknown course type: {value!r}")
    return course


def complexity_score(ingredients_count: int, instructions_count: int, advance_prep_hours: int | None) -> float:
    """Score a recipe's effort from its size and the advance prep it needs."""
    if not advance_prep_hours:
        advance_prep = 0.0
    elif advance_prep_hours < 4:
        advance_prep = 50.0
    else:
        advance_prep = 100.0
    return ingredients_count * 0.3 + instructions_count * 0.4 + advance_prep * 0.3


def complexity_from_score(score: float) -> str:
    if score < COMPLEXITY_SIMPLE_BELOW:
        return "simple"
    if score <= COMPLEXITY_MODERATE_UP_TO:
        return "moderate"
    return "complex"


@dataclass(frozen=True)
class RecipeView:
    """Read-only snapshot of a favorite recipe, as the planner sees it.

    Side dishes carry an ``accompaniment_category`` and are only ever
    attached to an accompaniment-eligible main course, never assigned to a
    slot of their own.
    """
    id: str
    name: str
    course_type: str
    cuisine: str = "other"
    complexity: str = "moderate"
    prep_time_minutes: int = 0
    cook_time_minutes: int = 0
    advance_prep_hours: int | None = None
    dietary_tags: frozenset[str] = field(default_factory=frozenset)
    accepts_accompaniment: bool = False
    preferred_accompaniment_categories: tuple[str, ...] = ()
    accompaniment_category: str | None = None

    @property
    def total_time_minutes(self) -> int:
        return self.prep_time_minutes + self.cook_time_minutes

    @property
    def is_complex(self) -> bool:
        return self.complexity == "complex"

    @property
    def is_accompaniment(self) -> bool:
        return self.accompaniment_category is not None

    def satisfies(self, dietary_restrictions: frozenset[str] | set[str]) -> bool:
        """True when every restriction appears in this recipe's dietary tags."""
        return all(restriction in self.dietary_tags for restriction in dietary_restrictions)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["dietary_tags"] = sorted(self.dietary_tags)
        data["preferred_accompaniment_categories"] = list(self.preferred_accompaniment_categories)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecipeView":
        """Create a RecipeView from a dictionary.

        ``complexity`` may be omitted, in which case it is derived from
        ``ingredients_count``, ``instructions_count`` (or the length of
        ``ingredients``/``instructions`` lists) and ``advance_prep_hours``.
        """
        required = ["id", "course_type"]
        missing = [f for f in required if f not in data]
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}")

        advance_prep_hours = data.get("advance_prep_hours")
        complexity = data.get("complexity")
        if complexity is None:
            ingredients_count = data.get("ingredients_count", len(data.get("ingredients", [])))
            instructions_count = data.get("instructions_count", len(data.get("instructions", [])))
            complexity = complexity_from_score(
                complexity_score(ingredients_count, instructions_count, advance_prep_hours)
            )
        else:
            complexity = str(complexity).lower()
            if complexity not in COMPLEXITY_LEVELS:
                raise ValueError(f"Unknown complexity: {data['complexity']!r}")

        category = data.get("accompaniment_category")
        return cls(
            id=str(data["id"]),
            name=data.get("name", str(data["id"])),
            course_type=normalize_course_type(data["course_type"]),
            cuisine=str(data.get("cuisine") or "other").lower(),
            complexity=complexity,
            prep_time_minutes=int(data.get("prep_time_minutes") or 0),
            cook_time_minutes=int(data.get("cook_time_minutes") or 0),
            advance_prep_hours=advance_prep_hours,
            dietary_tags=frozenset(normalize_tag(t) for t in data.get("dietary_tags", [])),
            accepts_accompaniment=bool(data.get("accepts_accompaniment", False)),
            preferred_accompaniment_categories=tuple(
                normalize_tag(c) for c in data.get("preferred_accompaniment_categories", [])
            ),
            accompaniment_category=normalize_tag(category) if category else None,
        )


def load_recipes(file_path: Path | str) -> list[RecipeView]:
    """Load the user's favorite recipes (the recipe pool) from a JSON file.

    The file must contain a ``recipes`` key holding a list of recipe objects.
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise RecipeLoadError(f"Recipe file not found: {file_path}")

    try:
        with open(file_path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise RecipeLoadError(f"Invalid JSON in recipe file: {e}")

    if not isinstance(data, dict) or "recipes" not in data:
        raise RecipeLoadError("Recipe file must contain a 'recipes' key")

    try:
        recipes = [RecipeView.from_dict(r) for r in data["recipes"]]
    except ValueError as e:
        raise RecipeLoadError(f"Invalid recipe in {file_path}: {e}")

    logger.info("Loaded recipe pool", extra={"path": str(file_path), "recipe_count": len(recipes)})
    return recipes


def index_by_id(recipes: list[RecipeView]) -> dict[str, RecipeView]:
    return {recipe.id: recipe for recipe in recipes}
