"""Command line entry point.

Usage:
    meal-rotation generate --recipes data/recipes.json
    meal-rotation generate --recipes data/recipes.json --weeks 3 --start 2026-11-02
"""

import argparse
import json
import logging
import sys
from datetime import date

from meal_rotation import config
from meal_rotation.commands import GenerateMultiWeekPlan
from meal_rotation.errors import MealPlanningError
from meal_rotation.logging_config import configure_logging
from meal_rotation.preferences import PreferencesLoadError, load_preferences
from meal_rotation.recipes import RecipeLoadError, index_by_id, load_recipes
from meal_rotation.service import MealPlanService
from meal_rotation.sheets import SheetsError, SheetsProjection

logger = logging.getLogger(__name__)

CLI_USER_ID = "local"


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date {value!r}, expected YYYY-MM-DD")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="meal-rotation",
        description="Generate multi-week meal plans that never repeat a main course"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Generate a new batch of weeks")
    generate.add_argument(
        '--recipes',
        default=config.RECIPES_FILE,
        help='JSON file with the recipe pool (default: %(default)s)'
    )
    generate.add_argument(
        '--preferences',
        default=config.PREFERENCES_FILE,
        help='JSON file with planning preferences; defaults apply when missing'
    )
    generate.add_argument(
        '--weeks',
        type=int,
        default=config.MAX_WEEKS_PER_BATCH,
        help='Number of weeks to generate, at most %(default)s'
    )
    generate.add_argument(
        '--start',
        type=_parse_date,
        help='Any date in the first week (default: the current week)'
    )
    generate.add_argument(
        '--sheets',
        action='store_true',
        help='Also write each week to Google Sheets (needs GOOGLE_SHEETS_ID)'
    )
    generate.add_argument(
        '--log-level',
        default=config.LOG_LEVEL,
        help='Logging level (default: %(default)s)'
    )
    return parser


def _attach_sheets(service: MealPlanService, recipe_names: dict[str, str]) -> None:
    if not config.GOOGLE_SHEETS_ID:
        logger.warning("GOOGLE_SHEETS_ID is not set, skipping Google Sheets")
        return
    try:
        projection = SheetsProjection(config.CREDENTIALS_FILE, config.GOOGLE_SHEETS_ID, recipe_names)
    except SheetsError as e:
        logger.warning("Google Sheets unavailable: %s", e)
        return
    projection.attach(service.event_bus)


def run_generate(args: argparse.Namespace) -> int:
    try:
        recipes = load_recipes(args.recipes)
        preferences = load_preferences(args.preferences)
    except (RecipeLoadError, PreferencesLoadError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    service = MealPlanService(
        recipe_loader=lambda _user_id: recipes,
        preferences_loader=lambda _user_id: preferences,
    )
    if args.sheets:
        _attach_sheets(service, {r.id: r.name for r in index_by_id(recipes).values()})

    try:
        event = service.generate_multi_week_plan(
            GenerateMultiWeekPlan(user_id=CLI_USER_ID, num_weeks=args.weeks, start_date=args.start)
        )
    except (MealPlanningError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(event.to_dict(), indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    # Logs go to stderr so stdout stays valid JSON
    configure_logging(args.log_level, stream=sys.stderr)

    if args.command == "generate":
        return run_generate(args)
    parser.error(f"Unknown command: {args.command}")


if __name__ == "__main__":
    sys.exit(main())
