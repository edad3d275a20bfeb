import logging
import re
from datetime import date, datetime, timezone
from typing import Iterable, Optional, Set, Union

from podplay_scraper.models import (
    RawSlotItem,
    RecognizedSlot,
    RejectedSlot,
    RejectionReason,
    SlotSnapshot,
    TimeAvailability,
)

logger = logging.getLogger(__name__)

HALF_HOUR_MARK = ":30"
COURTS_PATTERN = re.compile(r"(\d+)\s+open\s+court")
TIME_LABEL = r"\d{1,2}:\d{2}(?:am|pm)"
UNAVAILABLE_RANGE_PATTERN = re.compile(rf"({TIME_LABEL})\s*-\s*({TIME_LABEL})", re.IGNORECASE)

SlotReading = Union[RecognizedSlot, RejectedSlot]


def parse_slot_item(item: RawSlotItem) -> SlotReading:
    """Turns one session list entry into an open-court count for an on-the-hour slot.

    Venue bookings are hour-granular, so half-hour entries are dropped: they
    repeat the neighbouring full-hour block.
    """
    if item.is_unavailable_block:
        return RejectedSlot(reason=RejectionReason.UNAVAILABLE_BLOCK)

    time_label = (item.time or "").strip()
    if not time_label:
        return RejectedSlot(reason=RejectionReason.UNKNOWN_TIME)

    if HALF_HOUR_MARK in time_label:
        return RejectedSlot(reason=RejectionReason.HALF_HOUR)

    match = COURTS_PATTERN.search(item.info or "")
    if not match:
        return RejectedSlot(reason=RejectionReason.NO_AVAILABILITY_INFO)

    return RecognizedSlot(time=time_label, courts=int(match.group(1)))


def blocked_start_times(unavailable_ranges: Iterable[str]) -> Set[str]:
    """Maps ranges like "5:00pm - 7:30pm" to the on-the-hour start times they block."""
    blocked: Set[str] = set()
    for range_text in unavailable_ranges:
        match = UNAVAILABLE_RANGE_PATTERN.search(range_text or "")
        if not match:
            logger.debug(f"Ignoring unrecognized unavailable range: {range_text!r}")
            continue

        start = match.group(1)
        if HALF_HOUR_MARK in start:
            continue
        blocked.add(start)

    return blocked


def extract_time_availability(snapshot: SlotSnapshot) -> TimeAvailability:
    """Builds the time -> open courts map for the date shown in ``snapshot``."""
    blocked = blocked_start_times(snapshot.unavailable_ranges)
    availability: TimeAvailability = {}

    for item in snapshot.items:
        reading = parse_slot_item(item)
        if isinstance(reading, RejectedSlot):
            logger.debug(f"Skipping slot {item.time!r}: {reading.reason.value}")
            continue
        if reading.time in blocked:
            logger.debug(f"Skipping slot {reading.time}: covered by an unavailable range")
            continue
        availability[reading.time] = reading.courts

    return availability


def resolve_date_key(datetime_attr: Optional[str], fallback: str) -> str:
    """Converts the date picker's ``datetime`` attribute to YYYY-MM-DD.

    The attribute holds epoch milliseconds; ISO strings are accepted as well.
    Anything else falls back to the control's display text.
    """
    raw = (datetime_attr or "").strip()
    if raw.isdigit():
        try:
            return datetime.fromtimestamp(int(raw) / 1000, tz=timezone.utc).date().isoformat()
        except (OverflowError, OSError, ValueError):
            logger.warning(f"Date attribute {raw!r} is out of range, using {fallback!r}")
            return fallback

    if raw:
        try:
            return date.fromisoformat(raw[:10]).isoformat()
        except ValueError:
            logger.warning(f"Unrecognized date attribute {raw!r}, using {fallback!r}")

    return fallback
