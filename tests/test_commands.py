from datetime import date, timedelta
from unittest.mock import Mock

import pytest

from meal_rotation.aggregate import MealPlanAggregate
from meal_rotation.commands import (
    GenerateMultiWeekPlan,
    RegenerateAllFutureWeeks,
    RegenerateSingleWeek,
    handle_generate_multi_week_plan,
    handle_regenerate_all_future_weeks,
    handle_regenerate_single_week,
)
from meal_rotation.errors import ConfirmationRequired, InvalidTarget
from meal_rotation.week import WeekStatus
from tests.conftest import MONDAY, NOW


@pytest.fixture
def loaders(large_pool, dinner_only):
    return Mock(return_value=large_pool), Mock(return_value=dinner_only)


@pytest.fixture
def aggregate(loaders):
    recipe_loader, preferences_loader = loaders
    aggregate = MealPlanAggregate("user-1")
    event = handle_generate_multi_week_plan(
        aggregate, GenerateMultiWeekPlan("user-1", 4), recipe_loader, preferences_loader, NOW
    )
    aggregate.apply(event)
    recipe_loader.reset_mock()
    preferences_loader.reset_mock()
    return aggregate


class TestGenerateMultiWeekPlan:
    def test_default_start_is_the_current_week(self, loaders):
        aggregate = MealPlanAggregate("user-1")

        event = handle_generate_multi_week_plan(aggregate, GenerateMultiWeekPlan("user-1", 3), *loaders, NOW)

        assert event.user_id == "user-1"
        assert event.generated_at == NOW
        assert event.weeks[0].start_date == MONDAY
        assert event.weeks[0].status == WeekStatus.CURRENT
        assert event.weeks[0].is_locked
        loaders[0].assert_called_once_with("user-1")
        loaders[1].assert_called_once_with("user-1")

    def test_handler_does_not_mutate_the_aggregate(self, aggregate, loaders):
        before = set(aggregate.weeks)

        handle_generate_multi_week_plan(aggregate, GenerateMultiWeekPlan("user-1", 2), *loaders, NOW)

        assert set(aggregate.weeks) == before
        assert aggregate.version == 1

    def test_new_batch_starts_after_the_locked_week(self, aggregate, loaders):
        event = handle_generate_multi_week_plan(aggregate, GenerateMultiWeekPlan("user-1", 2), *loaders, NOW)

        assert event.weeks[0].start_date == MONDAY + timedelta(weeks=1)
        assert all(w.status == WeekStatus.FUTURE for w in event.weeks)

    def test_explicit_start_overlapping_the_locked_week_is_rejected(self, aggregate, loaders):
        command = GenerateMultiWeekPlan("user-1", 2, start_date=MONDAY - timedelta(weeks=1))

        with pytest.raises(InvalidTarget, match="locked"):
            handle_generate_multi_week_plan(aggregate, command, *loaders, NOW)
        loaders[0].assert_not_called()

    def test_explicit_start_after_the_locked_week(self, aggregate, loaders):
        command = GenerateMultiWeekPlan("user-1", 1, start_date=date(2026, 11, 4))

        event = handle_generate_multi_week_plan(aggregate, command, *loaders, NOW)

        assert event.weeks[0].start_date == date(2026, 11, 2)


class TestRegenerateSingleWeek:
    def test_unknown_week(self, aggregate, loaders):
        with pytest.raises(InvalidTarget, match="not found"):
            handle_regenerate_single_week(aggregate, RegenerateSingleWeek("missing", "user-1"), *loaders)

    def test_locked_week_is_rejected_without_loading(self, aggregate, loaders):
        current = aggregate.current_week()

        with pytest.raises(InvalidTarget):
            handle_regenerate_single_week(aggregate, RegenerateSingleWeek(current.id, "user-1"), *loaders)

        loaders[0].assert_not_called()
        loaders[1].assert_not_called()

    def test_regenerates_future_week(self, aggregate, loaders):
        target = aggregate.future_weeks()[1]

        event = handle_regenerate_single_week(aggregate, RegenerateSingleWeek(target.id, "user-1"), *loaders)

        assert event.week_id == target.id
        assert event.week_start_date == target.start_date
        assert event.batch_id == target.generation_batch_id
        others = {m for w in aggregate.sorted_weeks() if w.id != target.id for m in w.main_course_ids()}
        new_mains = {a.recipe_id for a in event.meal_assignments if a.course_type == "main_course"}
        assert not others & new_mains
        assert len(new_mains) == 7


class TestRegenerateAllFutureWeeks:
    def test_requires_confirmation(self, aggregate, loaders):
        with pytest.raises(ConfirmationRequired):
            handle_regenerate_all_future_weeks(aggregate, RegenerateAllFutureWeeks("user-1"), *loaders)

        loaders[0].assert_not_called()

    def test_regenerates_every_future_week(self, aggregate, loaders):
        current = aggregate.current_week()
        future_ids = [w.id for w in aggregate.future_weeks()]

        event = handle_regenerate_all_future_weeks(
            aggregate, RegenerateAllFutureWeeks("user-1", confirmation=True), *loaders
        )

        assert event.preserved_current_week_id == current.id
        assert [w.id for w in event.weeks] == future_ids
        assert event.regenerated_count == 3
        assert set(current.main_course_ids()) <= event.rotation_state.used_main_course_ids

    def test_no_future_weeks_returns_empty_event(self, loaders):
        aggregate = MealPlanAggregate("user-1")

        event = handle_regenerate_all_future_weeks(
            aggregate, RegenerateAllFutureWeeks("user-1", confirmation=True), *loaders
        )

        assert event.weeks == []
        assert event.regenerated_count == 0
        assert event.preserved_current_week_id is None
        loaders[0].assert_not_called()
