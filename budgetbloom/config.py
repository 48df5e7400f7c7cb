"""Configuration management for BudgetBloom.

This module centralizes all configuration values including paths,
storage keys, notification thresholds and environment variable overrides.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

# Base project root - assumes this file is in budgetbloom/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directories
DATA_DIR = Path(os.getenv("BUDGETBLOOM_DATA_DIR", _PROJECT_ROOT / "data"))
LOCAL_STORE_DIR = DATA_DIR / "local"

# Table-backed store (stands in for the hosted backend)
DB_PATH = Path(
    os.getenv("BUDGETBLOOM_DB_PATH", DATA_DIR / "budgetbloom.db")
).resolve()

# Which persistence backend a session uses: "local" or "table"
BACKEND = os.getenv("BUDGETBLOOM_BACKEND", "local").strip().lower()

LOG_LEVEL = os.getenv("BUDGETBLOOM_LOG_LEVEL", "INFO").upper()

# Storage keys, one JSON blob / table per collection
EXPENSES_KEY = "budgetbloom_expenses"
GOALS_KEY = "budgetbloom_savings_goals"
NOTIFICATIONS_KEY = "budgetbloom_notifications"
# Alert keys already notified; kept when the notification history is cleared
SENT_ALERTS_KEY = "budgetbloom_sent_alerts"

# Notification rules
SPIKE_RATIO = 1.5
HALFWAY_BAND = (50.0, 55.0)
GOAL_COMPLETE = 100.0
WEEK_DAYS = 7
NOTIFICATION_DEDUPE = os.getenv("BUDGETBLOOM_NOTIFICATION_DEDUPE", "1").lower() not in {"0", "false", "no", "off"}

# Calendar heat-map steps: a day's total below each bound maps to the next bucket
INTENSITY_STEPS = (20.0, 50.0, 100.0, 200.0)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def ensure_data_directories() -> None:
    """Create all required data directories if they don't exist."""
    for directory in [DATA_DIR, LOCAL_STORE_DIR]:
        directory.mkdir(parents=True, exist_ok=True)


def configure_logging(level: str | None = None) -> None:
    """Install a stream handler on the package logger once."""
    logger = logging.getLogger("budgetbloom")
    logger.setLevel(level or LOG_LEVEL)
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(handler)
