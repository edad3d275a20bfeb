from unittest.mock import MagicMock, patch

import requests

from podplay_scraper import telegram_notifier
from podplay_scraper.models import Slot


@patch("podplay_scraper.telegram_notifier.requests.post")
@patch("podplay_scraper.telegram_notifier.config")
def test_send_telegram_message_success(mock_config, mock_post):
    mock_config.TELEGRAM_BOT_TOKEN = "fake_token"
    mock_config.TELEGRAM_CHAT_ID = "fake_chat_id"

    mock_response = MagicMock()
    mock_response.raise_for_status.return_value = None
    mock_post.return_value = mock_response

    telegram_notifier.send_telegram_message("Test message")

    mock_post.assert_called_once()
    args, kwargs = mock_post.call_args
    assert kwargs["json"]["text"] == "Test message"
    assert kwargs["json"]["chat_id"] == "fake_chat_id"
    assert kwargs["json"]["parse_mode"] == "Markdown"
    assert "fake_token" in args[0]


@patch("podplay_scraper.telegram_notifier.requests.post")
@patch("podplay_scraper.telegram_notifier.config")
def test_send_telegram_message_missing_config(mock_config, mock_post):
    mock_config.TELEGRAM_BOT_TOKEN = None
    mock_config.TELEGRAM_CHAT_ID = None

    telegram_notifier.send_telegram_message("Test message")

    mock_post.assert_not_called()


@patch("podplay_scraper.telegram_notifier.requests.post")
@patch("podplay_scraper.telegram_notifier.config")
def test_send_telegram_message_failure(mock_config, mock_post):
    mock_config.TELEGRAM_BOT_TOKEN = "fake_token"
    mock_config.TELEGRAM_CHAT_ID = "fake_chat_id"

    mock_post.side_effect = requests.exceptions.RequestException("Network error")

    # Should not raise exception, just log error
    telegram_notifier.send_telegram_message("Test message")

    mock_post.assert_called_once()


def test_format_new_slots_message():
    with patch("podplay_scraper.telegram_notifier.config.build_booking_url") as mock_url:
        mock_url.return_value = "https://venue.example/book/court-1/2025-03-14"
        message = telegram_notifier.format_new_slots_message(
            3,
            [
                ("2025-03-14", [Slot(time="5:00pm", courts=2, is_new=True), Slot(time="8:00pm", courts=1, is_new=True)]),
                ("2025-03-15", [Slot(time="9:00am", courts=4, is_new=True)]),
            ],
        )

    mock_url.assert_called_once_with("2025-03-14")
    assert message == (
        "🎾 *New Court Availability!* (3)\n"
        "\n"
        "*2025-03-14*:\n"
        "  - 5:00pm (2 open courts)\n"
        "  - 8:00pm (1 open court)\n"
        "*2025-03-15*:\n"
        "  - 9:00am (4 open courts)\n"
        "\n"
        "[Book Now](https://venue.example/book/court-1/2025-03-14)"
    )


@patch("podplay_scraper.telegram_notifier.send_telegram_message")
def test_notify_new_slots(mock_send):
    telegram_notifier.notify_new_slots(1, [("2025-03-14", [Slot(time="5:00pm", courts=2, is_new=True)])])

    mock_send.assert_called_once()
    assert "5:00pm (2 open courts)" in mock_send.call_args[0][0]


@patch("podplay_scraper.telegram_notifier.send_telegram_message")
def test_notify_new_slots_nothing_new(mock_send):
    telegram_notifier.notify_new_slots(0, [])
    mock_send.assert_not_called()
