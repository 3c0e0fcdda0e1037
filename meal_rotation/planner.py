import logging
from datetime import date, datetime, timedelta, timezone

from meal_rotation.config import APPETIZER, DESSERT, MAIN_COURSE, MEAL_COURSES
from meal_rotation.errors import InsufficientRecipes, InvalidWeekStart
from meal_rotation.preferences import UserPreferences
from meal_rotation.recipes import RecipeView
from meal_rotation.rotation import RotationState, rotation_candidates
from meal_rotation.week import MealAssignment, WeekMealPlan, day_name, is_weekend, new_id

logger = logging.getLogger(__name__)


def variety_rank(
    candidates: list[RecipeView],
    rotation_state: RotationState,
    variety_weight: float,
) -> list[RecipeView]:
    """Order candidates best-first by cuisine variety.

    Each candidate scores ``w / (usage + 1)`` for its cuisine plus
    ``(1 - w) * (1 - rank / n)`` for its position in recipe-id order, so
    weight 0 reduces to plain id order and weight 1 always puts the
    least-used cuisine first. Equal scores fall back to the smaller id,
    which keeps generation reproducible.
    """
    by_id = sorted(candidates, key=lambda r: r.id)
    n = len(by_id)

    def score(item: tuple[int, RecipeView]) -> float:
        rank, recipe = item
        usage = rotation_state.get_cuisine_usage(recipe.cuisine)
        return variety_weight / (usage + 1) + (1 - variety_weight) * (1 - rank / n)

    scored = sorted(enumerate(by_id), key=lambda item: (-score(item), item[1].id))
    return [recipe for _, recipe in scored]


class WeekPlanner:
    """Fills the slots of one week from a recipe pool.

    Hard constraints (course, dietary restrictions, time limit, main-course
    uniqueness) remove candidates outright. Soft constraints (skill level,
    no complex meals on consecutive days) are relaxed when they would leave
    a slot with nothing to choose from.
    """

    def __init__(self, recipes: list[RecipeView], preferences: UserPreferences):
        self.preferences = preferences
        restrictions = preferences.dietary_restrictions
        compatible = sorted((r for r in recipes if r.satisfies(restrictions)), key=lambda r: r.id)

        self.main_courses = [r for r in compatible if r.course_type == MAIN_COURSE and not r.is_accompaniment]
        self.accompaniments = [r for r in compatible if r.is_accompaniment]
        self.by_course = {
            APPETIZER: [r for r in compatible if r.course_type == APPETIZER and not r.is_accompaniment],
            DESSERT: [r for r in compatible if r.course_type == DESSERT and not r.is_accompaniment],
        }

        excluded = len(recipes) - len(compatible)
        if excluded:
            logger.debug("Dietary restrictions excluded recipes", extra={"excluded": excluded})

    def _fits_time(self, recipe: RecipeView, day: date) -> bool:
        return recipe.total_time_minutes <= self.preferences.max_time_for(is_weekend(day))

    def _apply_soft_constraints(
        self,
        candidates: list[RecipeView],
        day: date,
        rotation_state: RotationState,
    ) -> list[RecipeView]:
        allowed = self.preferences.skill_level.allowed_complexities
        within_skill = [r for r in candidates if r.complexity in allowed]
        if within_skill:
            candidates = within_skill
        elif candidates:
            logger.warning(
                "No recipe within skill level, relaxing",
                extra={"date": day.isoformat(), "skill_level": self.preferences.skill_level.value},
            )

        previous_day = day - timedelta(days=1)
        if self.preferences.avoid_consecutive_complex and rotation_state.last_complex_meal_date == previous_day:
            not_complex = [r for r in candidates if not r.is_complex]
            if not_complex:
                candidates = not_complex
            elif candidates:
                logger.warning(
                    "Only complex recipes left after a complex day, relaxing",
                    extra={"date": day.isoformat()},
                )

        return candidates

    def select_main_course(self, day: date, rotation_state: RotationState) -> RecipeView | None:
        candidates = [
            r for r in self.main_courses
            if self._fits_time(r, day) and not rotation_state.is_main_course_used(r.id)
        ]
        candidates = self._apply_soft_constraints(candidates, day, rotation_state)
        if not candidates:
            return None
        return variety_rank(candidates, rotation_state, self.preferences.cuisine_variety_weight)[0]

    def select_rotating_course(
        self,
        course_type: str,
        day: date,
        rotation_state: RotationState,
    ) -> tuple[RecipeView | None, bool]:
        """Pick an appetizer or dessert. Returns ``(recipe, recycled)``.

        Exhaustion is judged against every recipe of the course, not only
        those that fit today's time limit. When the quick ones have all been
        served but a slower one has not, the slot stays empty until a day
        with enough time serves it.
        """
        course = self.by_course[course_type]
        fitting = {r.id: r for r in course if self._fits_time(r, day)}
        if not fitting:
            return None, False

        used = rotation_state.used_appetizer_ids if course_type == APPETIZER else rotation_state.used_dessert_ids
        candidate_ids, exhausted = rotation_candidates(used, [r.id for r in course])
        candidates = [fitting[i] for i in candidate_ids if i in fitting]
        candidates = self._apply_soft_constraints(candidates, day, rotation_state)

        if exhausted:
            # Every recipe of this course has been served once: start a new
            # round with the one served longest ago.
            if course_type == APPETIZER:
                rotation_state.reset_appetizers()
            else:
                rotation_state.reset_desserts()
            logger.info(
                "Course rotation exhausted, recycling",
                extra={"course_type": course_type, "date": day.isoformat(), "universe": len(course)},
            )
            return candidates[0], True

        if not candidates:
            logger.debug(
                "Unused recipes of this course do not fit today",
                extra={"course_type": course_type, "date": day.isoformat()},
            )
            return None, False

        return variety_rank(candidates, rotation_state, self.preferences.cuisine_variety_weight)[0], False

    def select_accompaniment(
        self,
        main_course: RecipeView,
        day: date,
        rotation_state: RotationState,
        used_this_week: set[str],
    ) -> RecipeView | None:
        if not main_course.accepts_accompaniment:
            return None

        preferred = set(main_course.preferred_accompaniment_categories)
        candidates = [
            r for r in self.accompaniments
            if self._fits_time(r, day) and (not preferred or r.accompaniment_category in preferred)
        ]
        candidates = self._apply_soft_constraints(candidates, day, rotation_state)
        if not candidates:
            return None

        # Vary side dishes through the week before repeating one
        return min(candidates, key=lambda r: (r.id in used_this_week, r.id))


def _mark_selection(recipe: RecipeView, day: date, rotation_state: RotationState) -> None:
    if recipe.course_type == MAIN_COURSE:
        rotation_state.mark_used_main_course(recipe.id)
        rotation_state.increment_cuisine_usage(recipe.cuisine)
    elif recipe.course_type == APPETIZER:
        rotation_state.mark_used_appetizer(recipe.id)
    else:
        rotation_state.mark_used_dessert(recipe.id)

    if recipe.is_complex:
        rotation_state.update_last_complex_meal_date(day)


def _main_reasoning(recipe: RecipeView, day: date, limit: int, usage_before: int) -> str:
    cuisine_note = "new cuisine this rotation" if usage_before == 0 else f"{recipe.cuisine} used {usage_before}x before"
    return (
        f"{day_name(day)}: {recipe.complexity} {recipe.cuisine} main, "
        f"{recipe.total_time_minutes}min of {limit}min allowed ({cuisine_note})"
    )


def generate_single_week(
    recipes: list[RecipeView],
    preferences: UserPreferences,
    rotation_state: RotationState,
    week_start_date: date,
    allow_partial: bool = True,
) -> WeekMealPlan:
    """Assign recipes to every enabled slot of the week starting ``week_start_date``.

    ``rotation_state`` is updated in place with this week's usage so callers
    can thread the same ledger through consecutive weeks. The update only
    happens when the whole week succeeds; on any error the ledger is left
    exactly as it was.

    The main course anchors each meal. When no main course is left for a
    meal, that meal stays empty (no appetizer or dessert either) unless
    ``allow_partial`` is False, in which case the week fails. A week that
    cannot place a single main course always fails with InsufficientRecipes.

    Returns:
        A WeekMealPlan with status Future and is_locked False.
    """
    if week_start_date.weekday() != 0:
        raise InvalidWeekStart(week_start_date)

    planner = WeekPlanner(recipes, preferences)
    working = rotation_state.copy()

    logger.info(
        "Generating week",
        extra={
            "week_start": week_start_date.isoformat(),
            "main_courses": len(planner.main_courses),
            "meal_types": preferences.meal_types,
        },
    )

    assignments: list[MealAssignment] = []
    sides_this_week: set[str] = set()
    meals_requested = 0
    meals_filled = 0

    for offset in range(7):
        day = week_start_date + timedelta(days=offset)
        limit = preferences.max_time_for(is_weekend(day))

        for meal_type in preferences.meal_types:
            meals_requested += 1
            logger.debug("Filling meal", extra={"date": day.isoformat(), "meal_type": meal_type})

            main = planner.select_main_course(day, working)
            if main is None:
                if not allow_partial:
                    raise InsufficientRecipes(MAIN_COURSE, meal_type, day)
                logger.warning(
                    "No main course left, leaving meal empty",
                    extra={"date": day.isoformat(), "meal_type": meal_type},
                )
                continue

            usage_before = working.get_cuisine_usage(main.cuisine)
            _mark_selection(main, day, working)
            side = planner.select_accompaniment(main, day, working, sides_this_week)
            if side is not None:
                sides_this_week.add(side.id)
            meals_filled += 1

            for course_type in MEAL_COURSES[meal_type]:
                if course_type == MAIN_COURSE:
                    assignments.append(MealAssignment(
                        date=day,
                        meal_type=meal_type,
                        course_type=MAIN_COURSE,
                        recipe_id=main.id,
                        accompaniment_recipe_id=side.id if side else None,
                        assignment_reasoning=_main_reasoning(main, day, limit, usage_before),
                    ))
                    continue

                recipe, recycled = planner.select_rotating_course(course_type, day, working)
                if recipe is None:
                    logger.debug(
                        "No recipe for optional course, skipping",
                        extra={"date": day.isoformat(), "course_type": course_type},
                    )
                    continue

                _mark_selection(recipe, day, working)
                reasoning = f"{day_name(day)}: {course_type.replace('_', ' ')}"
                if recycled:
                    reasoning += " (all used once, repeating the least recent)"
                assignments.append(MealAssignment(
                    date=day,
                    meal_type=meal_type,
                    course_type=course_type,
                    recipe_id=recipe.id,
                    assignment_reasoning=reasoning,
                ))

    if meals_requested and not meals_filled:
        raise InsufficientRecipes(MAIN_COURSE)

    rotation_state.replace_with(working)

    week = WeekMealPlan(
        id=new_id(),
        start_date=week_start_date,
        meal_assignments=assignments,
        created_at=datetime.now(timezone.utc),
    )
    logger.info(
        "Week generated",
        extra={
            "week_start": week_start_date.isoformat(),
            "assignments": len(assignments),
            "meals_filled": meals_filled,
            "meals_requested": meals_requested,
        },
    )
    return week
