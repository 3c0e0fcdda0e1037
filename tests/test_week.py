from datetime import date, timedelta

import pytest

from meal_rotation.week import (
    MealAssignment,
    WeekMealPlan,
    WeekStatus,
    day_name,
    is_weekend,
    week_start_for,
)
from tests.conftest import MONDAY


@pytest.fixture
def week():
    return WeekMealPlan(
        id="week-1",
        start_date=MONDAY,
        meal_assignments=[
            MealAssignment(date=MONDAY, meal_type="dinner", course_type="appetizer", recipe_id="app-1"),
            MealAssignment(
                date=MONDAY,
                meal_type="dinner",
                course_type="main_course",
                recipe_id="main-01",
                accompaniment_recipe_id="rice",
            ),
            MealAssignment(
                date=MONDAY + timedelta(days=1),
                meal_type="dinner",
                course_type="main_course",
                recipe_id="main-02",
            ),
        ],
    )


class TestDateHelpers:
    def test_week_start_for(self):
        assert week_start_for(MONDAY) == MONDAY
        assert week_start_for(MONDAY + timedelta(days=6)) == MONDAY
        assert week_start_for(MONDAY + timedelta(days=7)) == MONDAY + timedelta(days=7)

    def test_day_name_and_weekend(self):
        assert day_name(MONDAY) == "Monday"
        assert not is_weekend(MONDAY + timedelta(days=4))
        assert is_weekend(MONDAY + timedelta(days=5))
        assert is_weekend(MONDAY + timedelta(days=6))


class TestWeekMealPlan:
    def test_defaults(self, week):
        assert week.status == WeekStatus.FUTURE
        assert week.is_locked is False
        assert week.end_date == date(2026, 10, 25)
        assert week.shopping_list_id

    def test_main_course_ids(self, week):
        assert week.main_course_ids() == ["main-01", "main-02"]

    def test_assignments_for(self, week):
        assert len(week.assignments_for(MONDAY)) == 2

    def test_make_current_locks(self, week):
        week.make_current()
        assert week.status == WeekStatus.CURRENT
        assert week.is_locked

    def test_refresh_status_moves_forward(self, week):
        assert week.refresh_status(MONDAY - timedelta(days=1)) is False
        assert week.status == WeekStatus.FUTURE

        assert week.refresh_status(MONDAY + timedelta(days=3)) is True
        assert week.status == WeekStatus.CURRENT
        assert week.is_locked

        assert week.refresh_status(MONDAY + timedelta(days=7)) is True
        assert week.status == WeekStatus.PAST
        assert not week.is_locked

    def test_refresh_status_never_goes_backwards(self, week):
        week.refresh_status(MONDAY + timedelta(days=10))
        assert week.refresh_status(MONDAY) is False
        assert week.status == WeekStatus.PAST

    def test_archived_week_is_untouched(self, week):
        week.status = WeekStatus.ARCHIVED
        assert week.refresh_status(MONDAY + timedelta(days=2)) is False
        assert week.status == WeekStatus.ARCHIVED

    def test_dict_round_trip(self, week):
        week.make_current()
        data = week.to_dict()

        assert data["start_date"] == "2026-10-19"
        assert data["end_date"] == "2026-10-25"
        assert data["status"] == "current"
        assert data["meal_assignments"][1]["accompaniment_recipe_id"] == "rice"
        assert WeekMealPlan.from_dict(data) == week
