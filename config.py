"""
config.py
Runtime settings (environment overrides with sane defaults) + logging setup.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

DB_FILE = Path(os.environ.get("TUTORING_DB", Path(__file__).with_name("tutoring.db")))

# Ontario HST
HST_RATE = float(os.environ.get("HST_RATE", "0.13"))

DEFAULT_TEACHER = os.environ.get("DEFAULT_TEACHER", "Rahul")

IMPORT_BATCH_SIZE = int(os.environ.get("IMPORT_BATCH_SIZE", "100"))
IMPORT_DIR = Path(os.environ.get("IMPORT_DIR", Path(__file__).with_name("exports")))


def int_tuple(raw: str) -> tuple[int, ...]:
    """'1, 3,6' -> (1, 3, 6); blank items are ignored."""
    return tuple(int(part) for part in raw.split(",") if part.strip())


# Heatmap window choices in months, e.g. HEATMAP_RANGES="1,3,6,12"
HEATMAP_RANGES = int_tuple(os.environ.get("HEATMAP_RANGES", "1,3,6,12")) or (1, 3, 6, 12)
DEFAULT_HEATMAP_MONTHS = int(os.environ.get("DEFAULT_HEATMAP_MONTHS", "3"))

DEFAULT_ADMIN_EMAIL = os.environ.get("DEFAULT_ADMIN_EMAIL", "admin@example.com")
DEFAULT_ADMIN_PASSWORD = os.environ.get("DEFAULT_ADMIN_PASSWORD", "admin123")

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(level=level or LOG_LEVEL, format=LOG_FORMAT)
