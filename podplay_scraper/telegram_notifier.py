import logging

import requests

from podplay_scraper import config
from podplay_scraper.models import NewSlots

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org/bot{token}/sendMessage"


def _courts_label(courts: int) -> str:
    return f"{courts} open court{'s' if courts != 1 else ''}"


def format_new_slots_message(total_new_slots: int, new_slots_data: NewSlots) -> str:
    """Builds the Markdown alert for newly opened courts, linking to the first date's calendar."""
    lines = [f"🎾 *New Court Availability!* ({total_new_slots})", ""]
    for date_str, slots in new_slots_data:
        lines.append(f"*{date_str}*:")
        lines.extend(f"  - {s.time} ({_courts_label(s.courts)})" for s in slots)

    booking_url = config.build_booking_url(new_slots_data[0][0])
    lines.extend(["", f"[Book Now]({booking_url})"])
    return "\n".join(lines)


def send_telegram_message(message: str):
    """Sends a Markdown message to the configured Telegram chat."""
    token = config.TELEGRAM_BOT_TOKEN
    chat_id = config.TELEGRAM_CHAT_ID

    if not token or not chat_id:
        logger.warning("Telegram configuration missing. Skipping notification.")
        return

    payload = {
        "chat_id": chat_id,
        "text": message,
        "parse_mode": "Markdown",
        "disable_web_page_preview": True,
    }

    try:
        response = requests.post(TELEGRAM_API_URL.format(token=token), json=payload, timeout=10)
        response.raise_for_status()
        logger.info(f"Telegram notification sent to chat {chat_id}.")
    except requests.exceptions.RequestException as e:
        logger.error(f"Failed to send Telegram message: {e}")


def notify_new_slots(total_new_slots: int, new_slots_data: NewSlots):
    """Alerts the Telegram chat about ``new_slots_data``."""
    if not new_slots_data:
        return
    send_telegram_message(format_new_slots_message(total_new_slots, new_slots_data))
