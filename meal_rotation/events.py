"""Domain events emitted by the meal plan commands, and a small event bus.

Each command produces exactly one event. The aggregate applies it to rebuild
state, and downstream consumers (projections, the shopping-list regenerator)
subscribe to it on the bus. The core never calls them directly.

Event names:
  meal_plan.multi_week_generated   -> MultiWeekPlanGenerated
  meal_plan.single_week_regenerated -> SingleWeekRegenerated
  meal_plan.all_future_weeks_regenerated -> AllFutureWeeksRegenerated
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable

from meal_rotation.rotation import RotationState
from meal_rotation.week import MealAssignment, WeekMealPlan

logger = logging.getLogger(__name__)

MULTI_WEEK_GENERATED = "meal_plan.multi_week_generated"
SINGLE_WEEK_REGENERATED = "meal_plan.single_week_regenerated"
ALL_FUTURE_WEEKS_REGENERATED = "meal_plan.all_future_weeks_regenerated"


@dataclass
class MultiWeekPlanGenerated:
    batch_id: str
    user_id: str
    weeks: list[WeekMealPlan]
    rotation_state: RotationState
    generated_at: datetime

    name = MULTI_WEEK_GENERATED

    def to_dict(self) -> dict[str, Any]:
        return {
            "event": self.name,
            "batch_id": self.batch_id,
            "user_id": self.user_id,
            "weeks": [w.to_dict() for w in self.weeks],
            "rotation_state": self.rotation_state.to_dict(),
            "generated_at": self.generated_at.isoformat(),
        }


@dataclass
class SingleWeekRegenerated:
    week_id: str
    week_start_date: date
    meal_assignments: list[MealAssignment]
    updated_rotation_state: RotationState
    user_id: str = ""
    batch_id: str = ""

    name = SINGLE_WEEK_REGENERATED

    def to_dict(self) -> dict[str, Any]:
        return {
            "event": self.name,
            "week_id": self.week_id,
            "user_id": self.user_id,
            "batch_id": self.batch_id,
            "week_start_date": self.week_start_date.isoformat(),
            "meal_assignments": [a.to_dict() for a in self.meal_assignments],
            "updated_rotation_state": self.updated_rotation_state.to_dict(),
        }


@dataclass
class AllFutureWeeksRegenerated:
    batch_id: str
    user_id: str
    weeks: list[WeekMealPlan]
    preserved_current_week_id: str | None
    rotation_state: RotationState

    name = ALL_FUTURE_WEEKS_REGENERATED

    @property
    def regenerated_count(self) -> int:
        return len(self.weeks)

    def to_dict(self) -> dict[str, Any]:
        return {
            "event": self.name,
            "batch_id": self.batch_id,
            "user_id": self.user_id,
            "weeks": [w.to_dict() for w in self.weeks],
            "preserved_current_week_id": self.preserved_current_week_id,
            "rotation_state": self.rotation_state.to_dict(),
            "regenerated_count": self.regenerated_count,
        }


MealPlanEvent = MultiWeekPlanGenerated | SingleWeekRegenerated | AllFutureWeeksRegenerated
Subscriber = Callable[[MealPlanEvent], None]


class EventBus:
    """Synchronous publish/subscribe keyed by event name.

    A failing subscriber is logged and skipped; it never prevents delivery
    to the others or fails the command that produced the event.
    """

    def __init__(self):
        self._subscribers: dict[str, list[Subscriber]] = defaultdict(list)

    def subscribe(self, event_name: str, callback: Subscriber) -> None:
        if callback not in self._subscribers[event_name]:
            self._subscribers[event_name].append(callback)

    def unsubscribe(self, event_name: str, callback: Subscriber) -> None:
        if callback in self._subscribers.get(event_name, []):
            self._subscribers[event_name].remove(callback)

    def publish(self, event: MealPlanEvent) -> None:
        for callback in list(self._subscribers.get(event.name, [])):
            try:
                callback(event)
            except Exception:
                logger.exception("Event subscriber failed", extra={"event_name": event.name})
