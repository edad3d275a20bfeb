import logging
import sys
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import List, Tuple

from podplay_scraper import config, persist, scraper, telegram_notifier
from podplay_scraper.errors import ScrapeError
from podplay_scraper.models import (
    CrawlOptions,
    CrawlResult,
    DateAvailability,
    DayAvailability,
    NewSlots,
    Slot,
    TimeAvailability,
)

logger = logging.getLogger(__name__)

SLOT_DURATION = timedelta(hours=1)
SLOT_TIME_FORMAT = "%I:%M%p"
WATCH_TIME_FORMAT = "%H:%M"


@dataclass
class ScrapeOutcome:
    state_snapshot: DateAvailability
    day_availabilities: List[DayAvailability]
    new_slots_data: NewSlots
    stale_dates: List[str] = field(default_factory=list)


def resolve_start_date(start_date_arg: str | None) -> str:
    """Validates the requested calendar start date, defaulting to today."""
    if not start_date_arg:
        return date.today().isoformat()
    try:
        return datetime.strptime(start_date_arg, "%Y-%m-%d").date().isoformat()
    except ValueError:
        logger.error("Error: Start date must be in YYYY-MM-DD format.")
        sys.exit(1)


def _valid_watch_time(value: str | None, name: str) -> str | None:
    if value is None:
        return None
    try:
        datetime.strptime(value.strip(), WATCH_TIME_FORMAT)
    except ValueError:
        logger.warning(f"Invalid {name} {value!r}: must be in HH:MM format. Ignoring the watch window.")
        return None
    return value.strip()


def resolve_watch_window(start_time: str | None, end_time: str | None) -> Tuple[str | None, str | None]:
    """Validates the HH:MM watch window; an invalid bound disables the window."""
    start = _valid_watch_time(start_time, "WATCH_START_TIME")
    end = _valid_watch_time(end_time, "WATCH_END_TIME")
    if start is None or end is None:
        return None, None
    return start, end


def check_time_overlap(slot_time: str, start_time: str | None, end_time: str | None) -> bool:
    """Checks if an hour-long slot starting at ``slot_time`` overlaps the watch window.

    Args:
        slot_time: Venue display label, e.g. "5:00pm"
        start_time: Window start in HH:MM, or None
        end_time: Window end in HH:MM, or None

    Returns:
        True if the slot overlaps the window or no complete window is configured
    """
    if start_time is None or end_time is None:
        return True

    try:
        slot_start_dt = datetime.strptime(slot_time.strip(), SLOT_TIME_FORMAT)
    except ValueError:
        logger.debug(f"Cannot parse slot time {slot_time!r}, not filtering it")
        return True

    slot_start = slot_start_dt.time()
    slot_end = (slot_start_dt + SLOT_DURATION).time()
    window_start = datetime.strptime(start_time, WATCH_TIME_FORMAT).time()
    window_end = datetime.strptime(end_time, WATCH_TIME_FORMAT).time()

    # An 11:00pm slot wraps past midnight; treat it as running to the end of the day.
    if slot_end <= slot_start:
        return slot_start < window_end

    return slot_start < window_end and slot_end > window_start


def build_day_availability(
    date_str: str, time_availability: TimeAvailability, history: DateAvailability, stale: bool = False
) -> DayAvailability:
    """Compares one date's crawl result with the previous crawl to flag newly opened slots.

    Stale days repeat counts from an earlier crawl, so none of their slots are new.
    """
    prev_time_availability = history.get(date_str, {})

    slots = []
    new_count = 0
    for time_label, courts in time_availability.items():
        if courts is None:
            continue
        prev_courts = prev_time_availability.get(time_label) or 0
        is_new = not stale and courts > 0 and courts > prev_courts
        if is_new:
            new_count += 1
        slots.append(Slot(time=time_label, courts=courts, is_new=is_new))

    return DayAvailability(
        date=date_str,
        slots=slots,
        new_count=new_count,
        time_availability=time_availability,
        stale=stale,
    )


def _filter_new_slots(day_data: DayAvailability, start_time: str | None, end_time: str | None) -> List[Slot]:
    """Returns the new slots of a day that fall inside the watch window."""
    return [
        s for s in day_data.slots
        if s.is_new and check_time_overlap(s.time, start_time, end_time)
    ]


def collect_availability(
    crawl: CrawlResult,
    history: DateAvailability,
    start_time: str | None = None,
    end_time: str | None = None,
) -> ScrapeOutcome:
    """Turns a crawl into reports, the next history snapshot and notification candidates."""
    start_time, end_time = resolve_watch_window(start_time, end_time)

    state_snapshot: DateAvailability = {}
    day_availabilities: List[DayAvailability] = []
    new_slots_data: NewSlots = []
    stale_dates: List[str] = []

    for date_str, time_availability in crawl.availability.items():
        if date_str in crawl.timed_out_dates:
            # Preserve history if the date failed to load
            if date_str in history:
                logger.info(f"Keeping previous availability for {date_str}")
                time_availability = history[date_str]
            stale_dates.append(date_str)
            day_availability = build_day_availability(date_str, time_availability, history, stale=True)
        else:
            day_availability = build_day_availability(date_str, time_availability, history)

        state_snapshot[date_str] = day_availability.time_availability
        day_availabilities.append(day_availability)

        filtered_new_slots = _filter_new_slots(day_availability, start_time, end_time)
        if filtered_new_slots:
            new_slots_data.append((date_str, filtered_new_slots))

    return ScrapeOutcome(
        state_snapshot=state_snapshot,
        day_availabilities=day_availabilities,
        new_slots_data=new_slots_data,
        stale_dates=stale_dates,
    )


def print_availability_report(day_data: DayAvailability):
    """Prints the formatted availability report to stdout."""
    date_str = day_data.date
    open_slots = [s for s in day_data.slots if s.courts > 0]

    if day_data.stale:
        print(f"\n--- Availability Report for {date_str} (stale: slots did not load) ---")
        if not day_data.slots:
            print(f"Summary: No earlier data for {date_str}.")
            return
    else:
        print(f"\n--- Availability Report for {date_str} ---")

    for slot in day_data.slots:
        if slot.is_new:
            prefix = "[NEW]  "
        elif slot.courts > 0:
            prefix = "[OPEN] "
        else:
            prefix = "[FULL] "
        print(f"{prefix} {slot.time}: {slot.courts} open court(s)")

    if open_slots:
        print(f"Summary: Found {len(open_slots)} time slots with open courts for {date_str}!")
    else:
        print(f"Summary: No courts available for {date_str}.")


def print_availability_reports(day_availabilities: List[DayAvailability]):
    for day_data in day_availabilities:
        print_availability_report(day_data)


def send_notification(total_new_slots: int, new_slots_data: NewSlots):
    """Sends a Telegram notification about newly opened slots."""
    logger.info(f"Total NEW slots found: {total_new_slots}")
    telegram_notifier.notify_new_slots(total_new_slots, new_slots_data)


def run(
    start_date: str | None = None,
    options: CrawlOptions | None = None,
    notify: bool = True,
    print_report: bool = True,
) -> CrawlResult:
    """Core orchestration logic. Crawls the booking calendar, records the result and
    sends a notification when courts open up."""
    start_date = resolve_start_date(start_date)
    logger.info(f"Checking court availability starting {start_date}")

    history = persist.load_history()

    try:
        crawl = scraper.scrape_court_availability(start_date=start_date, options=options)
    except ScrapeError as e:
        logger.error(f"Crawl failed: {e}")
        sys.exit(1)

    if crawl.timed_out_dates:
        logger.warning(f"Slots did not load for: {', '.join(crawl.timed_out_dates)}")

    outcome = collect_availability(crawl, history, config.WATCH_START_TIME, config.WATCH_END_TIME)
    if print_report:
        print_availability_reports(outcome.day_availabilities)

    persist.save_history(outcome.state_snapshot, outcome.stale_dates)
    persist.save_report(outcome.day_availabilities)

    total_new_slots = sum(len(slots) for _, slots in outcome.new_slots_data)
    if total_new_slots == 0:
        logger.info(f"No new slots found across {len(crawl.availability)} days.")
    elif notify:
        send_notification(total_new_slots, outcome.new_slots_data)
    else:
        logger.info(f"Found {total_new_slots} new slots, notifications disabled.")

    return crawl
