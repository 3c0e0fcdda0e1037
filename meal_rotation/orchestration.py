"""Multi-week batches and the two regeneration policies.

Weeks are always generated in ascending start-date order with one ledger
threaded through them; generating them in any other order would let a later
week claim a main course before an earlier one. Every policy works on
private copies and returns new objects, so a failure part-way through leaves
the caller's weeks and ledger untouched.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date, timedelta

from meal_rotation.config import MAX_WEEKS_PER_BATCH
from meal_rotation.errors import InvalidTarget
from meal_rotation.planner import generate_single_week
from meal_rotation.preferences import UserPreferences
from meal_rotation.recipes import RecipeView
from meal_rotation.rotation import RotationState
from meal_rotation.week import (
    MultiWeekMealPlan,
    WeekMealPlan,
    WeekStatus,
    new_id,
    week_start_for,
)

logger = logging.getLogger(__name__)


def clamp_week_count(num_weeks: int) -> int:
    if num_weeks < 1:
        raise ValueError(f"num_weeks must be at least 1, got {num_weeks}")
    if num_weeks > MAX_WEEKS_PER_BATCH:
        logger.warning(
            "Requested more weeks than a batch allows, capping",
            extra={"requested": num_weeks, "cap": MAX_WEEKS_PER_BATCH},
        )
        return MAX_WEEKS_PER_BATCH
    return num_weeks


def generate_multi_week(
    user_id: str,
    recipes: list[RecipeView],
    preferences: UserPreferences,
    num_weeks: int,
    today: date,
    start_date: date | None = None,
) -> MultiWeekMealPlan:
    """Generate up to five consecutive weeks from a fresh ledger.

    The batch starts on the Monday of ``start_date`` (default: the week
    containing ``today``). The earliest week that contains ``today`` becomes
    Current and locked; every other week starts as Future.
    """
    num_weeks = clamp_week_count(num_weeks)
    first_monday = week_start_for(start_date or today)
    batch_id = new_id()
    rotation_state = RotationState()

    logger.info(
        "Generating multi-week batch",
        extra={"user_id": user_id, "num_weeks": num_weeks, "first_week": first_monday.isoformat()},
    )

    weeks = []
    for index in range(num_weeks):
        week_start = first_monday + timedelta(weeks=index)
        week = generate_single_week(recipes, preferences, rotation_state, week_start)
        week.user_id = user_id
        week.generation_batch_id = batch_id
        weeks.append(week)

    current = next((w for w in weeks if w.contains(today)), None)
    if current is not None:
        current.make_current()

    logger.info(
        "Multi-week batch generated",
        extra={
            "user_id": user_id,
            "batch_id": batch_id,
            "weeks": len(weeks),
            "main_courses_used": len(rotation_state.used_main_course_ids),
        },
    )
    return MultiWeekMealPlan(
        generation_batch_id=batch_id,
        user_id=user_id,
        weeks=weeks,
        rotation_state=rotation_state,
    )


def check_regenerable(week: WeekMealPlan) -> None:
    """Raise InvalidTarget unless ``week`` may be regenerated."""
    reason = None
    if week.is_locked:
        reason = "week is locked while it is being cooked"
    elif week.status in (WeekStatus.CURRENT, WeekStatus.PAST, WeekStatus.ARCHIVED):
        reason = f"week is {week.status.value}"

    if reason is not None:
        logger.warning("Rejected week regeneration", extra={"week_id": week.id, "reason": reason})
        raise InvalidTarget(week.id, reason)


def regenerate_single_week(
    week: WeekMealPlan,
    batch_rotation_state: RotationState,
    recipes: list[RecipeView],
    preferences: UserPreferences,
) -> tuple[WeekMealPlan, RotationState]:
    """Regenerate one unlocked week against its batch's ledger.

    The week's previous main courses are unmarked first, otherwise the slots
    they occupied could only be refilled from what the rest of the batch left
    over. Main courses used by the other weeks stay marked.

    Returns:
        The regenerated week (same id, start date and batch) and the updated
        ledger. Neither argument is modified.
    """
    check_regenerable(week)

    rotation_state = batch_rotation_state.copy()
    for recipe_id in week.main_course_ids():
        rotation_state.unmark_main_course(recipe_id)

    generated = generate_single_week(recipes, preferences, rotation_state, week.start_date)
    regenerated = replace(
        week,
        meal_assignments=generated.meal_assignments,
        created_at=generated.created_at,
    )

    logger.info(
        "Week regenerated",
        extra={"week_id": week.id, "week_start": week.start_date.isoformat(), "assignments": len(regenerated.meal_assignments)},
    )
    return regenerated, rotation_state


@dataclass
class FutureRegeneration:
    batch_id: str
    preserved_week: WeekMealPlan | None
    weeks: list[WeekMealPlan]
    rotation_state: RotationState


def regenerate_future_weeks(
    weeks: list[WeekMealPlan],
    recipes: list[RecipeView],
    preferences: UserPreferences,
) -> FutureRegeneration:
    """Regenerate every Future, unlocked week and leave the current week alone.

    A brand-new ledger is seeded with the current week's main courses, so the
    first regenerated week cannot repeat what is being cooked right now while
    every older constraint is dropped. No future weeks is a valid outcome and
    yields an empty list.
    """
    preserved = next((w for w in weeks if w.is_locked or w.status == WeekStatus.CURRENT), None)
    future = sorted(
        (w for w in weeks if w.status == WeekStatus.FUTURE and not w.is_locked),
        key=lambda w: w.start_date,
    )

    rotation_state = RotationState()
    if preserved is not None:
        for recipe_id in preserved.main_course_ids():
            rotation_state.mark_used_main_course(recipe_id)

    batch_id = new_id()
    if not future:
        logger.info("No future weeks to regenerate", extra={"preserved_week_id": preserved.id if preserved else None})
        return FutureRegeneration(batch_id=batch_id, preserved_week=preserved, weeks=[], rotation_state=rotation_state)

    logger.info(
        "Regenerating future weeks",
        extra={
            "future_weeks": len(future),
            "preserved_week_id": preserved.id if preserved else None,
            "seeded_main_courses": len(rotation_state.used_main_course_ids),
        },
    )

    regenerated = []
    for week in future:
        generated = generate_single_week(recipes, preferences, rotation_state, week.start_date)
        regenerated.append(replace(
            week,
            generation_batch_id=batch_id,
            meal_assignments=generated.meal_assignments,
            created_at=generated.created_at,
        ))

    return FutureRegeneration(
        batch_id=batch_id,
        preserved_week=preserved,
        weeks=regenerated,
        rotation_state=rotation_state,
    )
