import logging
from datetime import date
from pathlib import Path

import gspread
from google.oauth2.service_account import Credentials
from gspread.exceptions import WorksheetNotFound

from meal_rotation.events import (
    ALL_FUTURE_WEEKS_REGENERATED,
    MULTI_WEEK_GENERATED,
    SINGLE_WEEK_REGENERATED,
    EventBus,
    MealPlanEvent,
    SingleWeekRegenerated,
)
from meal_rotation.week import MealAssignment, day_name

logger = logging.getLogger(__name__)

HEADERS = ["Date", "Day", "Meal", "Course", "Recipe", "Accompaniment"]

_COURSE_ORDER = {"appetizer": 0, "main_course": 1, "dessert": 2}
_MEAL_ORDER = {"breakfast": 0, "lunch": 1, "dinner": 2}


class SheetsError(Exception):
    """Raised when there's an error with Google Sheets operations."""
    pass


def worksheet_title(week_start: date) -> str:
    return f"Week of {week_start.isoformat()}"


class SheetsProjection:
    """Mirrors every generated or regenerated week into a Google spreadsheet.

    One worksheet per week, rewritten in full whenever an event touches it.
    """

    def __init__(self, credentials_file: str, spreadsheet_id: str, recipe_names: dict[str, str] | None = None):
        self.spreadsheet_id = spreadsheet_id
        self.credentials_file = Path(credentials_file)
        self.recipe_names = recipe_names or {}

        if not self.credentials_file.exists():
            raise SheetsError(
                f"Credentials file not found: {credentials_file}. "
                "Please follow the Google Sheets setup instructions."
            )

        scopes = [
            'https://www.googleapis.com/auth/spreadsheets',
            'https://www.googleapis.com/auth/drive'
        ]

        creds = Credentials.from_service_account_file(
            str(self.credentials_file),
            scopes=scopes
        )

        self.client = gspread.authorize(creds)
        self.spreadsheet = self.client.open_by_key(spreadsheet_id)

    def _get_or_create_worksheet(self, title: str, rows: int = 100, cols: int = 6):
        """Get a worksheet by title, creating it if it doesn't exist."""
        try:
            return self.spreadsheet.worksheet(title)
        except WorksheetNotFound:
            return self.spreadsheet.add_worksheet(title=title, rows=rows, cols=cols)

    def _name(self, recipe_id: str | None) -> str:
        if recipe_id is None:
            return ""
        return self.recipe_names.get(recipe_id, recipe_id)

    def build_rows(self, assignments: list[MealAssignment]) -> list[list[str]]:
        ordered = sorted(
            assignments,
            key=lambda a: (a.date, _MEAL_ORDER.get(a.meal_type, 99), _COURSE_ORDER.get(a.course_type, 99)),
        )
        rows = [HEADERS]
        for assignment in ordered:
            rows.append([
                assignment.date.isoformat(),
                day_name(assignment.date),
                assignment.meal_type.capitalize(),
                assignment.course_type.replace("_", " ").capitalize(),
                self._name(assignment.recipe_id),
                self._name(assignment.accompaniment_recipe_id),
            ])
        return rows

    def write_week(self, week_start: date, assignments: list[MealAssignment]) -> None:
        """Write one week's assignments to its own worksheet."""
        title = worksheet_title(week_start)
        try:
            worksheet = self._get_or_create_worksheet(title)
            worksheet.clear()
            worksheet.update(self.build_rows(assignments), "A1")
            worksheet.format("A1:F1", {
                "backgroundColor": {"red": 0.2, "green": 0.6, "blue": 0.8},
                "textFormat": {"bold": True, "foregroundColor": {"red": 1, "green": 1, "blue": 1}}
            })
        except Exception as e:
            raise SheetsError(f"Failed to write {title} to Google Sheets: {e}") from e

        logger.info("Week written to Google Sheets", extra={"worksheet": title, "assignments": len(assignments)})

    def handle_event(self, event: MealPlanEvent) -> None:
        if isinstance(event, SingleWeekRegenerated):
            self.write_week(event.week_start_date, event.meal_assignments)
            return
        for week in event.weeks:
            self.write_week(week.start_date, week.meal_assignments)

    def attach(self, bus: EventBus) -> None:
        for event_name in (MULTI_WEEK_GENERATED, SINGLE_WEEK_REGENERATED, ALL_FUTURE_WEEKS_REGENERATED):
            bus.subscribe(event_name, self.handle_event)
