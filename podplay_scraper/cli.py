import argparse
import json
import logging
import sys
import time

from podplay_scraper import config, run
from podplay_scraper.models import CrawlOptions

# --- Logging Setup ---

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool):
    """Configures logging to stderr with local time."""
    level = logging.DEBUG if verbose else logging.INFO
    handler = logging.StreamHandler(sys.stderr)
    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s]: %(name)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    formatter.converter = time.localtime
    handler.setFormatter(formatter)

    logging.basicConfig(
        level=level,
        handlers=[handler],
    )


def parse_arguments(argv=None):
    """Parses command line arguments."""
    parser = argparse.ArgumentParser(description="Scrape a PodPlay booking calendar for open courts.")
    parser.add_argument("--start-date", type=str, help="First calendar date in YYYY-MM-DD format. Defaults to today.")
    parser.add_argument(
        "--navigation-timeout-ms",
        type=int,
        default=config.NAVIGATION_TIMEOUT_MS,
        help=f"Page load and date picker timeout. Defaults to {config.NAVIGATION_TIMEOUT_MS}.",
    )
    parser.add_argument(
        "--slot-ready-timeout-ms",
        type=int,
        default=config.SLOT_READY_TIMEOUT_MS,
        help=f"Per-date wait for the slot list. Defaults to {config.SLOT_READY_TIMEOUT_MS}.",
    )
    parser.add_argument("--headed", action="store_true", help="Show the browser window.")
    parser.add_argument("--no-notify", action="store_true", help="Do not send Telegram notifications.")
    parser.add_argument("--json", action="store_true", help="Print the availability map as JSON instead of the report.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging.")
    return parser.parse_args(argv)


def main():
    args = parse_arguments()
    setup_logging(args.verbose)

    options = CrawlOptions(
        navigation_timeout_ms=args.navigation_timeout_ms,
        slot_ready_timeout_ms=args.slot_ready_timeout_ms,
        headless=config.HEADLESS and not args.headed,
    )
    result = run.run(
        start_date=args.start_date,
        options=options,
        notify=not args.no_notify,
        print_report=not args.json,
    )

    if args.json:
        print(json.dumps(result.availability, indent=2))
