import logging
import os

logger = logging.getLogger(__name__)

# --- File Paths ---
DATA_DIR = os.environ.get("DATA_DIR", "public/data")
HISTORY_FILE = os.path.join(DATA_DIR, "availability.json")
REPORT_FILE = os.path.join(DATA_DIR, "report.json")

# --- Venue ---
BOOKING_BASE_URL = os.environ.get("BOOKING_BASE_URL", "https://goodland.podplay.app/book")
VENUE_SLUG = os.environ.get("VENUE_SLUG", "greenpoint-indoor-1")

# --- Browser ---
HEADLESS = os.environ.get("HEADLESS", "true").lower() not in ("0", "false", "no")
NAVIGATION_TIMEOUT_MS = int(os.environ.get("NAVIGATION_TIMEOUT_MS", "30000"))
SLOT_READY_TIMEOUT_MS = int(os.environ.get("SLOT_READY_TIMEOUT_MS", "15000"))

# --- Selectors ---
# The booking app ships hashed CSS module names, so match on class fragments only.
DATE_LIST_SELECTOR = 'ol[class*="BookingDatePicker"][class*="days-list"]'
DATE_BUTTON_SELECTOR = f"{DATE_LIST_SELECTOR} li button"
SELECTED_DATE_ITEM_FRAGMENT = "days-list-item--selected"
SELECTED_DATE_SELECTOR = f'{DATE_LIST_SELECTOR} li[class*="{SELECTED_DATE_ITEM_FRAGMENT}"] button time'
SLOT_LIST_SELECTOR = 'ol[class*="BookingItemPicker"][class*="sessions-list"]'
SLOT_ITEM_SELECTOR = f"{SLOT_LIST_SELECTOR} > li"
SLOT_TIME_CONTAINER_SELECTOR = 'div[class*="sessions-list-item-time"]'
SLOT_TIME_SELECTOR = f"{SLOT_TIME_CONTAINER_SELECTOR} time"
SLOT_INFO_SELECTOR = 'div[class*="sessions-list-item-info-tables"]'
UNAVAILABLE_CARD_SELECTOR = 'div[class*="unavailable-card"]'
UNAVAILABLE_TIME_SELECTOR = 'div[class*="unavailable-card__time"]'

# --- Notification window (HH:MM, local venue time) ---
WATCH_START_TIME = os.environ.get("WATCH_START_TIME") or None
WATCH_END_TIME = os.environ.get("WATCH_END_TIME") or None

# --- Telegram ---
TELEGRAM_BOT_TOKEN = os.environ.get("TELEGRAM_BOT_TOKEN")
TELEGRAM_CHAT_ID = os.environ.get("TELEGRAM_CHAT_ID")
if not TELEGRAM_BOT_TOKEN or not TELEGRAM_CHAT_ID:
    logger.warning("Telegram configuration incomplete. Skipping notifications.")


def build_booking_url(start_date: str) -> str:
    """Constructs the venue booking URL that opens the calendar on ``start_date``."""
    return f"{BOOKING_BASE_URL.rstrip('/')}/{VENUE_SLUG}/{start_date}"
