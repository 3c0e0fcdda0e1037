import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any

from meal_rotation.config import DAYS_OF_WEEK, WEEKEND_DAYS
from meal_rotation.rotation import RotationState

logger = logging.getLogger(__name__)


def week_start_for(day: date) -> date:
    """Return the Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def day_name(day: date) -> str:
    return DAYS_OF_WEEK[day.weekday()]


def is_weekend(day: date) -> bool:
    return day_name(day) in WEEKEND_DAYS


def new_id() -> str:
    return str(uuid.uuid4())


class WeekStatus(str, Enum):
    FUTURE = "future"
    CURRENT = "current"
    PAST = "past"
    ARCHIVED = "archived"


@dataclass
class MealAssignment:
    date: date
    meal_type: str                # "breakfast", "lunch", "dinner"
    course_type: str              # "appetizer", "main_course", "dessert"
    recipe_id: str
    accompaniment_recipe_id: str | None = None
    assignment_reasoning: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "meal_type": self.meal_type,
            "course_type": self.course_type,
            "recipe_id": self.recipe_id,
            "accompaniment_recipe_id": self.accompaniment_recipe_id,
            "assignment_reasoning": self.assignment_reasoning,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MealAssignment":
        return cls(
            date=date.fromisoformat(data["date"]),
            meal_type=data["meal_type"],
            course_type=data["course_type"],
            recipe_id=data["recipe_id"],
            accompaniment_recipe_id=data.get("accompaniment_recipe_id"),
            assignment_reasoning=data.get("assignment_reasoning"),
        )


@dataclass
class WeekMealPlan:
    """One Monday-to-Sunday plan.

    ``status == CURRENT`` marks the week being cooked right now; such a week
    is locked and never regenerated. ``refresh_status`` applies the
    date-driven transitions Future -> Current -> Past. Archiving is an
    explicit user action handled elsewhere.
    """
    id: str
    start_date: date
    status: WeekStatus = WeekStatus.FUTURE
    is_locked: bool = False
    generation_batch_id: str = ""
    meal_assignments: list[MealAssignment] = field(default_factory=list)
    shopping_list_id: str = field(default_factory=new_id)
    created_at: datetime | None = None
    user_id: str = ""

    @property
    def end_date(self) -> date:
        return self.start_date + timedelta(days=6)

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def main_course_ids(self) -> list[str]:
        return [a.recipe_id for a in self.meal_assignments if a.course_type == "main_course"]

    def assignments_for(self, day: date) -> list[MealAssignment]:
        return [a for a in self.meal_assignments if a.date == day]

    def make_current(self) -> None:
        self.status = WeekStatus.CURRENT
        self.is_locked = True

    def refresh_status(self, today: date) -> bool:
        """Move the week along its lifecycle for ``today``. Returns True if it changed."""
        if self.status == WeekStatus.ARCHIVED:
            return False

        if today > self.end_date:
            new_status = WeekStatus.PAST
        elif self.contains(today):
            new_status = WeekStatus.CURRENT
        else:
            new_status = self.status

        # A week never moves backwards in its lifecycle
        order = [WeekStatus.FUTURE, WeekStatus.CURRENT, WeekStatus.PAST]
        if order.index(new_status) <= order.index(self.status):
            return False

        logger.info(
            "Week status changed",
            extra={"week_id": self.id, "from": self.status.value, "to": new_status.value},
        )
        self.status = new_status
        self.is_locked = new_status == WeekStatus.CURRENT
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "status": self.status.value,
            "is_locked": self.is_locked,
            "generation_batch_id": self.generation_batch_id,
            "meal_assignments": [a.to_dict() for a in self.meal_assignments],
            "shopping_list_id": self.shopping_list_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WeekMealPlan":
        created_at = data.get("created_at")
        return cls(
            id=data["id"],
            user_id=data.get("user_id", ""),
            start_date=date.fromisoformat(data["start_date"]),
            status=WeekStatus(data.get("status", WeekStatus.FUTURE.value)),
            is_locked=bool(data.get("is_locked", False)),
            generation_batch_id=data.get("generation_batch_id", ""),
            meal_assignments=[MealAssignment.from_dict(a) for a in data.get("meal_assignments", [])],
            shopping_list_id=data.get("shopping_list_id") or new_id(),
            created_at=datetime.fromisoformat(created_at) if created_at else None,
        )


@dataclass
class MultiWeekMealPlan:
    generation_batch_id: str
    user_id: str
    weeks: list[WeekMealPlan]
    rotation_state: RotationState

    def all_main_course_ids(self) -> list[str]:
        return [recipe_id for week in self.weeks for recipe_id in week.main_course_ids()]
