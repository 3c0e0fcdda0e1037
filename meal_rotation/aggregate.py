"""Per-user meal plan state, rebuilt by applying events."""

import logging
from copy import deepcopy
from dataclasses import replace
from datetime import date

from meal_rotation.events import (
    AllFutureWeeksRegenerated,
    MealPlanEvent,
    MultiWeekPlanGenerated,
    SingleWeekRegenerated,
)
from meal_rotation.rotation import RotationState
from meal_rotation.week import WeekMealPlan, WeekStatus

logger = logging.getLogger(__name__)


class MealPlanAggregate:
    """All weeks of one user plus the ledger stored with each batch.

    ``apply`` is the only way state changes, so replaying a user's events in
    order rebuilds the same aggregate.
    """

    def __init__(self, user_id: str):
        self.user_id = user_id
        self.weeks: dict[str, WeekMealPlan] = {}
        self.rotation_states: dict[str, RotationState] = {}
        self.version = 0

    def apply(self, event: MealPlanEvent) -> None:
        if isinstance(event, MultiWeekPlanGenerated):
            self._apply_generated(event)
        elif isinstance(event, SingleWeekRegenerated):
            self._apply_single_week(event)
        elif isinstance(event, AllFutureWeeksRegenerated):
            self._apply_all_future(event)
        else:
            raise TypeError(f"Unknown event type: {type(event).__name__}")
        self._drop_orphaned_ledgers()
        self.version += 1

    # Weeks are stored as private copies: status refreshes and regenerations
    # must never reach back into an event that was already published.

    def _apply_generated(self, event: MultiWeekPlanGenerated) -> None:
        # A new batch supersedes every week that has not started yet
        superseded = [w.id for w in self.weeks.values() if w.status == WeekStatus.FUTURE]
        for week_id in superseded:
            del self.weeks[week_id]
        for week in event.weeks:
            self.weeks[week.id] = deepcopy(week)
        self.rotation_states[event.batch_id] = event.rotation_state.copy()

    def _apply_single_week(self, event: SingleWeekRegenerated) -> None:
        week = self.weeks.get(event.week_id)
        if week is None:
            raise KeyError(f"Week {event.week_id} not found for user {self.user_id}")
        self.weeks[week.id] = replace(week, meal_assignments=deepcopy(event.meal_assignments))
        self.rotation_states[week.generation_batch_id] = event.updated_rotation_state.copy()

    def _apply_all_future(self, event: AllFutureWeeksRegenerated) -> None:
        if not event.weeks:
            return
        for week in event.weeks:
            self.weeks[week.id] = deepcopy(week)
        self.rotation_states[event.batch_id] = event.rotation_state.copy()

    def _drop_orphaned_ledgers(self) -> None:
        live = {w.generation_batch_id for w in self.weeks.values()}
        for batch_id in [b for b in self.rotation_states if b not in live]:
            logger.debug("Dropping ledger of superseded batch", extra={"batch_id": batch_id})
            del self.rotation_states[batch_id]

    # Queries

    def week(self, week_id: str) -> WeekMealPlan | None:
        return self.weeks.get(week_id)

    def sorted_weeks(self) -> list[WeekMealPlan]:
        return sorted(self.weeks.values(), key=lambda w: w.start_date)

    def current_week(self) -> WeekMealPlan | None:
        return next(
            (w for w in self.sorted_weeks() if w.is_locked or w.status == WeekStatus.CURRENT),
            None,
        )

    def future_weeks(self) -> list[WeekMealPlan]:
        return [w for w in self.sorted_weeks() if w.status == WeekStatus.FUTURE and not w.is_locked]

    def rotation_state_for(self, batch_id: str) -> RotationState:
        """Return a copy of the ledger stored with ``batch_id`` (empty if none)."""
        state = self.rotation_states.get(batch_id)
        if state is None:
            logger.warning("No ledger stored for batch, starting empty", extra={"batch_id": batch_id})
            return RotationState()
        return state.copy()

    def refresh_statuses(self, today: date) -> list[str]:
        """Apply date-driven status transitions. Returns the ids of changed weeks."""
        return [w.id for w in self.sorted_weeks() if w.refresh_status(today)]
