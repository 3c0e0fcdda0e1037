"""
Logging setup for the meal-rotation CLI and any host that embeds the service.

Call `configure_logging()` once at startup. Modules log through
``logging.getLogger(__name__)`` and attach their context with ``extra``:

- ``user_id``, ``batch_id``, ``week_id``: which plan a record is about
- ``week_start``, ``date``, ``meal_type``, ``course_type``: which slot
- ``reason``: why a regeneration command was rejected

The plain formatter below ignores those fields. A JSON handler installed in
its place picks them up from the record without touching the call sites.
"""

import logging
import sys
from typing import TextIO

NOISY_LOGGERS = ("urllib3", "google", "google.auth", "gspread")


def configure_logging(level: str = "INFO", stream: TextIO | None = None) -> None:
    """Install a single stream handler on the root logger.

    ``stream`` defaults to stdout. The CLI passes stderr so the generated
    plan it prints stays valid JSON.
    """
    fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    datefmt = "%Y-%m-%dT%H:%M:%S"

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    # Calling twice replaces the handler instead of stacking a second one
    root.handlers = [handler]

    # Sheets writes are chatty at INFO
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
