"""Entry point that runs commands against per-user aggregates."""

import logging
import threading
from datetime import datetime, timezone
from typing import Callable

from meal_rotation.aggregate import MealPlanAggregate
from meal_rotation.commands import (
    GenerateMultiWeekPlan,
    PreferencesLoader,
    RecipeLoader,
    RegenerateAllFutureWeeks,
    RegenerateSingleWeek,
    handle_generate_multi_week_plan,
    handle_regenerate_all_future_weeks,
    handle_regenerate_single_week,
)
from meal_rotation.events import (
    AllFutureWeeksRegenerated,
    EventBus,
    MealPlanEvent,
    MultiWeekPlanGenerated,
    SingleWeekRegenerated,
)

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MealPlanService:
    """Serializes commands per user and publishes the resulting events.

    Each call refreshes week statuses against the clock, runs the handler,
    applies the event to the user's aggregate and only then publishes it.
    A handler that raises leaves the aggregate exactly as it was and
    publishes nothing.
    """

    def __init__(
        self,
        recipe_loader: RecipeLoader,
        preferences_loader: PreferencesLoader,
        event_bus: EventBus | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.recipe_loader = recipe_loader
        self.preferences_loader = preferences_loader
        self.event_bus = event_bus or EventBus()
        self.clock = clock or _utc_now
        self._aggregates: dict[str, MealPlanAggregate] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, user_id: str) -> threading.Lock:
        with self._registry_lock:
            if user_id not in self._locks:
                self._locks[user_id] = threading.Lock()
                self._aggregates[user_id] = MealPlanAggregate(user_id)
            return self._locks[user_id]

    def aggregate(self, user_id: str) -> MealPlanAggregate:
        self._lock_for(user_id)
        return self._aggregates[user_id]

    def _run(self, user_id: str, handle: Callable[[MealPlanAggregate, datetime], MealPlanEvent]) -> MealPlanEvent:
        with self._lock_for(user_id):
            aggregate = self._aggregates[user_id]
            now = self.clock()
            changed = aggregate.refresh_statuses(now.date())
            if changed:
                logger.debug("Refreshed week statuses", extra={"user_id": user_id, "weeks": changed})

            event = handle(aggregate, now)
            aggregate.apply(event)

        logger.info("Publishing event", extra={"user_id": user_id, "event_name": event.name})
        self.event_bus.publish(event)
        return event

    def generate_multi_week_plan(self, command: GenerateMultiWeekPlan) -> MultiWeekPlanGenerated:
        return self._run(
            command.user_id,
            lambda aggregate, now: handle_generate_multi_week_plan(
                aggregate, command, self.recipe_loader, self.preferences_loader, now
            ),
        )

    def regenerate_single_week(self, command: RegenerateSingleWeek) -> SingleWeekRegenerated:
        return self._run(
            command.user_id,
            lambda aggregate, now: handle_regenerate_single_week(
                aggregate, command, self.recipe_loader, self.preferences_loader
            ),
        )

    def regenerate_all_future_weeks(self, command: RegenerateAllFutureWeeks) -> AllFutureWeeksRegenerated:
        return self._run(
            command.user_id,
            lambda aggregate, now: handle_regenerate_all_future_weeks(
                aggregate, command, self.recipe_loader, self.preferences_loader
            ),
        )
