import os

# Google Sheets projection (optional). Leave GOOGLE_SHEETS_ID unset to disable.
GOOGLE_SHEETS_ID = os.environ.get("GOOGLE_SHEETS_ID")
CREDENTIALS_FILE = os.environ.get("CREDENTIALS_FILE", "credentials.json")

RECIPES_FILE = os.environ.get("RECIPES_FILE", "data/recipes.json")
PREFERENCES_FILE = os.environ.get("PREFERENCES_FILE", "data/preferences.json")

LOG_LEVEL = os.environ.get("MEAL_ROTATION_LOG_LEVEL", "INFO")

# A single generation batch never spans more than this many weeks.
MAX_WEEKS_PER_BATCH = 5

DAYS_OF_WEEK = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
WEEKEND_DAYS = {"Saturday", "Sunday"}

# Course types a recipe can fill.
APPETIZER = "appetizer"
MAIN_COURSE = "main_course"
DESSERT = "dessert"
COURSE_TYPES = (APPETIZER, MAIN_COURSE, DESSERT)

# Meal types in the order they happen during a day.
MEAL_TYPES = ("breakfast", "lunch", "dinner")
DEFAULT_MEAL_TYPES = ["dinner"]

# Courses served for each meal type, in serving order. The main course is
# selected first regardless of this order because it anchors the meal.
MEAL_COURSES: dict[str, list[str]] = {
    "breakfast": [MAIN_COURSE],
    "lunch": [MAIN_COURSE],
    "dinner": [APPETIZER, MAIN_COURSE, DESSERT],
}

# Preference defaults (used when the user has never saved preferences)
DEFAULT_MAX_PREP_TIME_WEEKNIGHT = 30
DEFAULT_MAX_PREP_TIME_WEEKEND = 90
DEFAULT_AVOID_CONSECUTIVE_COMPLEX = True
DEFAULT_CUISINE_VARIETY_WEIGHT = 0.7
DEFAULT_SKILL_LEVEL = "intermediate"

# Complexity score = ingredients * 0.3 + steps * 0.4 + advance_prep * 0.3
# where advance_prep is 0 (none), 50 (< 4h) or 100 (>= 4h).
COMPLEXITY_SIMPLE_BELOW = 30.0
COMPLEXITY_MODERATE_UP_TO = 60.0
