"""Commands and their handlers.

A handler validates its command against the aggregate, loads what it needs
through the collaborator loaders, computes, and returns a single event. It
never mutates the aggregate and never publishes: that is the caller's job
once the handler has returned successfully.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable

from meal_rotation.aggregate import MealPlanAggregate
from meal_rotation.errors import ConfirmationRequired, InvalidTarget
from meal_rotation.events import (
    AllFutureWeeksRegenerated,
    MultiWeekPlanGenerated,
    SingleWeekRegenerated,
)
from meal_rotation.orchestration import (
    check_regenerable,
    generate_multi_week,
    regenerate_future_weeks,
    regenerate_single_week,
)
from meal_rotation.preferences import UserPreferences
from meal_rotation.recipes import RecipeView
from meal_rotation.week import week_start_for

logger = logging.getLogger(__name__)

RecipeLoader = Callable[[str], list[RecipeView]]
PreferencesLoader = Callable[[str], UserPreferences]


@dataclass
class GenerateMultiWeekPlan:
    user_id: str
    num_weeks: int
    start_date: date | None = None


@dataclass
class RegenerateSingleWeek:
    week_id: str
    user_id: str


@dataclass
class RegenerateAllFutureWeeks:
    user_id: str
    confirmation: bool = False


def _batch_start(aggregate: MealPlanAggregate, command: GenerateMultiWeekPlan, today: date) -> date:
    """Pick the first Monday of a new batch without touching the locked week.

    With no explicit start the batch begins with the week containing today,
    or with the week after the locked one when a week is already in progress.
    """
    locked = aggregate.current_week()
    if command.start_date is None:
        if locked is not None and locked.contains(today):
            return locked.start_date + timedelta(weeks=1)
        return week_start_for(today)

    start = week_start_for(command.start_date)
    end = start + timedelta(weeks=max(command.num_weeks, 1))
    if locked is not None and start <= locked.start_date < end:
        logger.warning(
            "New batch would overwrite the locked week",
            extra={"user_id": command.user_id, "week_id": locked.id, "start": start.isoformat()},
        )
        raise InvalidTarget(locked.id, "week is locked while it is being cooked")
    return start


def handle_generate_multi_week_plan(
    aggregate: MealPlanAggregate,
    command: GenerateMultiWeekPlan,
    recipe_loader: RecipeLoader,
    preferences_loader: PreferencesLoader,
    now: datetime,
) -> MultiWeekPlanGenerated:
    today = now.date()
    start = _batch_start(aggregate, command, today)

    recipes = recipe_loader(command.user_id)
    preferences = preferences_loader(command.user_id)
    plan = generate_multi_week(
        command.user_id,
        recipes,
        preferences,
        command.num_weeks,
        today=today,
        start_date=start,
    )
    return MultiWeekPlanGenerated(
        batch_id=plan.generation_batch_id,
        user_id=command.user_id,
        weeks=plan.weeks,
        rotation_state=plan.rotation_state,
        generated_at=now,
    )


def handle_regenerate_single_week(
    aggregate: MealPlanAggregate,
    command: RegenerateSingleWeek,
    recipe_loader: RecipeLoader,
    preferences_loader: PreferencesLoader,
) -> SingleWeekRegenerated:
    week = aggregate.week(command.week_id)
    if week is None:
        logger.warning("Week not found", extra={"user_id": command.user_id, "week_id": command.week_id})
        raise InvalidTarget(command.week_id, "week not found")
    # Rejected before any recipe is loaded or generated
    check_regenerable(week)

    recipes = recipe_loader(command.user_id)
    preferences = preferences_loader(command.user_id)
    batch_state = aggregate.rotation_state_for(week.generation_batch_id)

    regenerated, rotation_state = regenerate_single_week(week, batch_state, recipes, preferences)
    return SingleWeekRegenerated(
        week_id=week.id,
        week_start_date=week.start_date,
        meal_assignments=regenerated.meal_assignments,
        updated_rotation_state=rotation_state,
        user_id=command.user_id,
        batch_id=week.generation_batch_id,
    )


def handle_regenerate_all_future_weeks(
    aggregate: MealPlanAggregate,
    command: RegenerateAllFutureWeeks,
    recipe_loader: RecipeLoader,
    preferences_loader: PreferencesLoader,
) -> AllFutureWeeksRegenerated:
    if command.confirmation is not True:
        logger.warning("Regenerate-all rejected without confirmation", extra={"user_id": command.user_id})
        raise ConfirmationRequired()

    weeks = aggregate.sorted_weeks()
    if aggregate.future_weeks():
        recipes = recipe_loader(command.user_id)
        preferences = preferences_loader(command.user_id)
    else:
        # Nothing to regenerate is a valid outcome, not an error
        logger.info("No future weeks to regenerate", extra={"user_id": command.user_id})
        recipes, preferences = [], UserPreferences()

    result = regenerate_future_weeks(weeks, recipes, preferences)
    preserved = result.preserved_week
    return AllFutureWeeksRegenerated(
        batch_id=result.batch_id,
        user_id=command.user_id,
        weeks=result.weeks,
        preserved_current_week_id=preserved.id if preserved else None,
        rotation_state=result.rotation_state,
    )
