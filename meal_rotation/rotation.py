"""Rotation ledger: which recipes have been used in the current horizon.

Business rules:

- Main courses are strictly unique. Once marked, a main course is never
  offered again until the ledger is replaced by a fresh one.
- Appetizers and desserts may repeat, but only after every recipe of that
  course has been used once ("exhaust-then-recycle").
- Accompaniments are not tracked here at all.
- ``cuisine_usage_count`` feeds the variety score and
  ``last_complex_meal_date`` spaces out complex meals.

A ledger is owned by exactly one generation call at a time. Callers serialize
access per user; nothing in here is thread-safe.
"""

import json
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any


def rotation_candidates(used: Sequence[str], universe: Sequence[str]) -> tuple[list[str], bool]:
    """Apply the exhaust-then-recycle rule to one course type.

    Args:
        used: Ids already used, oldest first (repeats allowed).
        universe: Every id currently eligible for the slot.

    Returns:
        ``(candidates, exhausted)``. While some ids of the universe are still
        unused, candidates are exactly those ids in universe order and
        ``exhausted`` is False. Once every id has been used, candidates are
        the whole universe ordered least-recently-used first and
        ``exhausted`` is True, telling the caller to reset that course.
    """
    used_set = set(used)
    fresh = [recipe_id for recipe_id in universe if recipe_id not in used_set]
    if fresh or not universe:
        return fresh, False

    last_use = {recipe_id: index for index, recipe_id in enumerate(used)}
    recycled = sorted(universe, key=lambda recipe_id: (last_use[recipe_id], recipe_id))
    return recycled, True


@dataclass
class RotationState:
    used_main_course_ids: set[str] = field(default_factory=set)
    used_appetizer_ids: list[str] = field(default_factory=list)
    used_dessert_ids: list[str] = field(default_factory=list)
    cuisine_usage_count: dict[str, int] = field(default_factory=dict)
    last_complex_meal_date: date | None = None

    # Main courses (strict)
    def mark_used_main_course(self, recipe_id: str) -> None:
        """Add a main course to the strict set. Marking twice is a no-op."""
        self.used_main_course_ids.add(recipe_id)

    def is_main_course_used(self, recipe_id: str) -> bool:
        return recipe_id in self.used_main_course_ids

    def unmark_main_course(self, recipe_id: str) -> bool:
        """Return a main course to the pool. Returns False if it was not marked."""
        if recipe_id not in self.used_main_course_ids:
            return False
        self.used_main_course_ids.discard(recipe_id)
        return True

    # Appetizers / desserts (repeatable)
    def mark_used_appetizer(self, recipe_id: str) -> None:
        self.used_appetizer_ids.append(recipe_id)

    def mark_used_dessert(self, recipe_id: str) -> None:
        self.used_dessert_ids.append(recipe_id)

    def reset_appetizers(self) -> None:
        self.used_appetizer_ids.clear()

    def reset_desserts(self) -> None:
        self.used_dessert_ids.clear()

    # Variety and spacing
    def increment_cuisine_usage(self, cuisine: str) -> None:
        self.cuisine_usage_count[cuisine] = self.cuisine_usage_count.get(cuisine, 0) + 1

    def get_cuisine_usage(self, cuisine: str) -> int:
        return self.cuisine_usage_count.get(cuisine, 0)

    def update_last_complex_meal_date(self, day: date) -> None:
        self.last_complex_meal_date = day

    def copy(self) -> "RotationState":
        return RotationState(
            used_main_course_ids=set(self.used_main_course_ids),
            used_appetizer_ids=list(self.used_appetizer_ids),
            used_dessert_ids=list(self.used_dessert_ids),
            cuisine_usage_count=dict(self.cuisine_usage_count),
            last_complex_meal_date=self.last_complex_meal_date,
        )

    def replace_with(self, other: "RotationState") -> None:
        """Overwrite this ledger in place with the contents of ``other``."""
        self.used_main_course_ids = set(other.used_main_course_ids)
        self.used_appetizer_ids = list(other.used_appetizer_ids)
        self.used_dessert_ids = list(other.used_dessert_ids)
        self.cuisine_usage_count = dict(other.cuisine_usage_count)
        self.last_complex_meal_date = other.last_complex_meal_date

    def to_dict(self) -> dict[str, Any]:
        return {
            "used_main_course_ids": sorted(self.used_main_course_ids),
            "used_appetizer_ids": list(self.used_appetizer_ids),
            "used_dessert_ids": list(self.used_dessert_ids),
            "cuisine_usage_count": dict(sorted(self.cuisine_usage_count.items())),
            "last_complex_meal_date": (
                self.last_complex_meal_date.isoformat() if self.last_complex_meal_date else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RotationState":
        last_complex = data.get("last_complex_meal_date")
        return cls(
            used_main_course_ids=set(data.get("used_main_course_ids", [])),
            used_appetizer_ids=list(data.get("used_appetizer_ids", [])),
            used_dessert_ids=list(data.get("used_dessert_ids", [])),
            cuisine_usage_count={k: int(v) for k, v in data.get("cuisine_usage_count", {}).items()},
            last_complex_meal_date=date.fromisoformat(last_complex) if last_complex else None,
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, raw: str) -> "RotationState":
        return cls.from_dict(json.loads(raw))
