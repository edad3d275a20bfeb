from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from podplay_scraper import config

# Display time label (e.g. "5:00pm") -> number of open courts.
TimeAvailability = Dict[str, Optional[int]]
# ISO date (YYYY-MM-DD) -> TimeAvailability.
DateAvailability = Dict[str, TimeAvailability]


class RawSlotItem(BaseModel):
    """One entry of the venue's session list as rendered for a date."""

    time: str | None = None
    info: str | None = None
    is_unavailable_block: bool = False


class SlotSnapshot(BaseModel):
    items: List[RawSlotItem] = Field(default_factory=list)
    unavailable_ranges: List[str] = Field(default_factory=list)


class RejectionReason(str, Enum):
    UNAVAILABLE_BLOCK = "unavailable block"
    UNKNOWN_TIME = "unknown time"
    HALF_HOUR = "half-hour slot"
    NO_AVAILABILITY_INFO = "no availability info"


class RecognizedSlot(BaseModel):
    time: str
    courts: int = Field(ge=0)


class RejectedSlot(BaseModel):
    reason: RejectionReason


class CrawlOptions(BaseModel):
    navigation_timeout_ms: int = Field(default_factory=lambda: config.NAVIGATION_TIMEOUT_MS, gt=0)
    slot_ready_timeout_ms: int = Field(default_factory=lambda: config.SLOT_READY_TIMEOUT_MS, gt=0)
    headless: bool = Field(default_factory=lambda: config.HEADLESS)


class CrawlResult(BaseModel):
    availability: DateAvailability = Field(default_factory=dict)
    timed_out_dates: List[str] = Field(default_factory=list)


class Slot(BaseModel):
    time: str
    courts: int
    is_new: bool


class DayAvailability(BaseModel):
    date: str
    slots: List[Slot]
    new_count: int
    time_availability: TimeAvailability
    # True when the date's slots did not load and the data comes from an earlier crawl
    stale: bool = False


# (ISO date, newly opened slots) pairs, in crawl order.
NewSlots = List[Tuple[str, List[Slot]]]


class HistoryFile(BaseModel):
    """Contents of ``HISTORY_FILE``: the availability the next crawl compares against."""

    last_updated: str
    availability: DateAvailability
    stale_dates: List[str] = Field(default_factory=list)


class AvailabilityReport(BaseModel):
    """Contents of ``REPORT_FILE``."""

    last_updated: str
    days: List[DayAvailability]
    stale_dates: List[str] = Field(default_factory=list)
