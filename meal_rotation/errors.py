"""Errors raised by meal-plan generation and the regeneration commands."""

from datetime import date


class MealPlanningError(Exception):
    """Base class for every user-facing meal planning failure."""
    pass


_COURSE_LABELS = {
    "appetizer": "appetizer",
    "main_course": "main course",
    "dessert": "dessert",
}


class InsufficientRecipes(MealPlanningError):
    """Raised when a required slot has no eligible recipe left.

    Never retried automatically: the user has to add (or favorite) more
    recipes of ``course_type`` before generating again.
    """

    def __init__(self, course_type: str, meal_type: str | None = None, day: date | None = None):
        self.course_type = course_type
        self.meal_type = meal_type
        self.day = day
        label = _COURSE_LABELS.get(course_type, course_type)
        where = ""
        if day is not None:
            where = f" for {day.isoformat()}"
            if meal_type:
                where += f" {meal_type}"
        super().__init__(
            f"Not enough {label} recipes{where}. "
            f"Add more {label} recipes that match your preferences and try again."
        )


class InvalidTarget(MealPlanningError):
    """Raised when a regeneration targets a week that must not change."""

    def __init__(self, week_id: str, reason: str):
        self.week_id = week_id
        self.reason = reason
        super().__init__(f"Week {week_id} cannot be regenerated: {reason}")


class ConfirmationRequired(MealPlanningError):
    """Raised when a destructive command arrives without explicit confirmation."""

    def __init__(self, message: str = "Regenerating all future weeks requires confirmation=True"):
        super().__init__(message)


class InvalidWeekStart(MealPlanningError):
    """Raised when a week is requested for a start date that is not a Monday."""

    def __init__(self, start_date: date):
        self.start_date = start_date
        super().__init__(
            f"Week start date {start_date.isoformat()} must be a Monday "
            f"(found {start_date.strftime('%A')})"
        )
