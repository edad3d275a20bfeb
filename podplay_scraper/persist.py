import json
import logging
import os
from datetime import datetime, timezone
from typing import Iterable, List

from pydantic import ValidationError

from podplay_scraper import config
from podplay_scraper.models import AvailabilityReport, DateAvailability, DayAvailability, HistoryFile

logger = logging.getLogger(__name__)


def ensure_data_dir():
    """Ensures the data directory exists."""
    if not os.path.exists(config.DATA_DIR):
        os.makedirs(config.DATA_DIR)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def load_history() -> DateAvailability:
    """Loads the per-date open-court counts recorded by the previous crawl.

    Dates whose slots did not load last time still hold the counts from the
    crawl before; they are compared against like any other date.
    """
    if not os.path.exists(config.HISTORY_FILE):
        logger.info("No history file found. Starting fresh.")
        return {}
    try:
        with open(config.HISTORY_FILE, "r") as f:
            history = HistoryFile.model_validate(json.load(f))
    except (json.JSONDecodeError, IOError):
        logger.warning("Failed to load history file. Starting fresh.")
        return {}
    except ValidationError as e:
        logger.warning(f"History file has unexpected format ({e.error_count()} errors). Starting fresh.")
        return {}

    logger.info(f"Loaded history for {len(history.availability)} dates, last updated: {history.last_updated}")
    if history.stale_dates:
        logger.info(f"History carried over from an earlier crawl for: {', '.join(history.stale_dates)}")
    return history.availability


def save_history(state: DateAvailability, stale_dates: Iterable[str] = ()):
    """Replaces the stored availability with ``state``.

    ``stale_dates`` names the dates whose counts were carried over because
    their slots did not load in this crawl.
    """
    ensure_data_dir()
    history = HistoryFile(last_updated=_now(), availability=state, stale_dates=list(stale_dates))
    try:
        with open(config.HISTORY_FILE, "w") as f:
            json.dump(history.model_dump(), f, indent=2)
        logger.info(f"Saved history for {len(state)} dates to {config.HISTORY_FILE} on {history.last_updated}")
    except IOError as e:
        logger.error(f"Failed to save history: {e}")


def save_report(days: List[DayAvailability]):
    """Saves the per-date availability report, listing stale dates separately."""
    ensure_data_dir()
    report = AvailabilityReport(
        last_updated=_now(),
        days=days,
        stale_dates=[day.date for day in days if day.stale],
    )
    try:
        with open(config.REPORT_FILE, "w") as f:
            json.dump(report.model_dump(), f, indent=2)
        logger.info(f"Saved report for {len(days)} dates to {config.REPORT_FILE}")
    except IOError as e:
        logger.error(f"Failed to save report: {e}")
