import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from meal_rotation.config import (
    DEFAULT_AVOID_CONSECUTIVE_COMPLEX,
    DEFAULT_CUISINE_VARIETY_WEIGHT,
    DEFAULT_MAX_PREP_TIME_WEEKEND,
    DEFAULT_MAX_PREP_TIME_WEEKNIGHT,
    DEFAULT_MEAL_TYPES,
    DEFAULT_SKILL_LEVEL,
    MEAL_TYPES,
)
from meal_rotation.recipes import normalize_tag

logger = logging.getLogger(__name__)


class PreferencesLoadError(Exception):
    """Raised when preferences cannot be loaded from file."""
    pass


class InvalidPreferences(ValueError):
    """Raised when preference values break their invariants."""
    pass


class SkillLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

    @property
    def allowed_complexities(self) -> frozenset[str]:
        if self is SkillLevel.BEGINNER:
            return frozenset({"simple"})
        if self is SkillLevel.INTERMEDIATE:
            return frozenset({"simple", "moderate"})
        return frozenset({"simple", "moderate", "complex"})


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass
class UserPreferences:
    max_prep_time_weeknight: int = DEFAULT_MAX_PREP_TIME_WEEKNIGHT
    max_prep_time_weekend: int = DEFAULT_MAX_PREP_TIME_WEEKEND
    avoid_consecutive_complex: bool = DEFAULT_AVOID_CONSECUTIVE_COMPLEX
    cuisine_variety_weight: float = DEFAULT_CUISINE_VARIETY_WEIGHT
    dietary_restrictions: frozenset[str] = field(default_factory=frozenset)
    skill_level: SkillLevel = SkillLevel(DEFAULT_SKILL_LEVEL)
    meal_types: list[str] = field(default_factory=lambda: list(DEFAULT_MEAL_TYPES))

    def __post_init__(self):
        if self.max_prep_time_weeknight <= 0 or self.max_prep_time_weekend <= 0:
            raise InvalidPreferences(
                "Prep time maxima must be positive "
                f"(weeknight={self.max_prep_time_weeknight}, weekend={self.max_prep_time_weekend})"
            )

        weight = float(self.cuisine_variety_weight)
        clamped = _clamp(weight, 0.0, 1.0)
        if clamped != weight:
            logger.warning("Clamping cuisine variety weight", extra={"given": weight, "clamped": clamped})
        self.cuisine_variety_weight = clamped

        self.dietary_restrictions = frozenset(normalize_tag(r) for r in self.dietary_restrictions)

        try:
            self.skill_level = SkillLevel(self.skill_level)
        except ValueError:
            raise InvalidPreferences(f"Unknown skill level: {self.skill_level!r}")

        unknown = [m for m in self.meal_types if m not in MEAL_TYPES]
        if unknown:
            raise InvalidPreferences(f"Unknown meal types: {', '.join(unknown)}")
        # Keep meals in the order they happen during the day
        self.meal_types = [m for m in MEAL_TYPES if m in self.meal_types]

    def max_time_for(self, is_weekend: bool) -> int:
        return self.max_prep_time_weekend if is_weekend else self.max_prep_time_weeknight

    def to_dict(self) -> dict[str, Any]:
        return {
            "max_prep_time_weeknight": self.max_prep_time_weeknight,
            "max_prep_time_weekend": self.max_prep_time_weekend,
            "avoid_consecutive_complex": self.avoid_consecutive_complex,
            "cuisine_variety_weight": self.cuisine_variety_weight,
            "dietary_restrictions": sorted(self.dietary_restrictions),
            "skill_level": self.skill_level.value,
            "meal_types": list(self.meal_types),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UserPreferences":
        """Build preferences from a dict; any missing key keeps its default."""
        defaults = cls()
        return cls(
            max_prep_time_weeknight=int(data.get("max_prep_time_weeknight", defaults.max_prep_time_weeknight)),
            max_prep_time_weekend=int(data.get("max_prep_time_weekend", defaults.max_prep_time_weekend)),
            avoid_consecutive_complex=bool(data.get("avoid_consecutive_complex", defaults.avoid_consecutive_complex)),
            cuisine_variety_weight=float(data.get("cuisine_variety_weight", defaults.cuisine_variety_weight)),
            dietary_restrictions=frozenset(data.get("dietary_restrictions", [])),
            skill_level=str(data.get("skill_level", defaults.skill_level.value)).lower(),
            meal_types=list(data.get("meal_types", defaults.meal_types)),
        )


def load_preferences(file_path: Path | str) -> UserPreferences:
    """Load meal planning preferences, falling back to defaults when unset.

    A missing file means the user never saved preferences, which is not an
    error. A file that exists but cannot be parsed is.
    """
    file_path = Path(file_path)

    if not file_path.exists():
        logger.info("No saved preferences, using defaults", extra={"path": str(file_path)})
        return UserPreferences()

    try:
        with open(file_path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise PreferencesLoadError(f"Invalid JSON in preferences file: {e}")

    if not isinstance(data, dict):
        raise PreferencesLoadError("Preferences file must contain a JSON object")

    try:
        return UserPreferences.from_dict(data)
    except (TypeError, ValueError) as e:
        raise PreferencesLoadError(f"Invalid preferences in {file_path}: {e}")
