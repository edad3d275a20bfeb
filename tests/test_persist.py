from datetime import datetime
from unittest.mock import MagicMock, mock_open, patch

from podplay_scraper import config, persist
from podplay_scraper.models import DayAvailability, Slot


def test_ensure_data_dir():
    with patch("os.path.exists") as mock_exists, patch("os.makedirs") as mock_makedirs:
        # Case 1: Exists
        mock_exists.return_value = True
        persist.ensure_data_dir()
        mock_makedirs.assert_not_called()

        # Case 2: Does not exist
        mock_exists.return_value = False
        persist.ensure_data_dir()
        mock_makedirs.assert_called_with(config.DATA_DIR)


@patch("os.path.exists")
def test_load_history(mock_exists):
    mock_exists.return_value = True
    test_data = '{"last_updated": "2025-03-14T12:00:00Z", "availability": {"2025-03-14": {"5:00pm": 2}}}'
    with patch("builtins.open", mock_open(read_data=test_data)):
        history = persist.load_history()
        assert history == {"2025-03-14": {"5:00pm": 2}}


@patch("os.path.exists")
def test_load_history_unexpected_format(mock_exists):
    mock_exists.return_value = True
    with patch("builtins.open", mock_open(read_data='{"2025-03-14": {}}')):
        assert persist.load_history() == {}


@patch("os.path.exists")
def test_load_history_corrupt_file(mock_exists):
    mock_exists.return_value = True
    with patch("builtins.open", mock_open(read_data="{not json")):
        assert persist.load_history() == {}


def test_load_history_no_file():
    with patch("os.path.exists") as mock_exists:
        mock_exists.return_value = False
        history = persist.load_history()
        assert history == {}


@patch("podplay_scraper.persist.datetime")
@patch("podplay_scraper.persist.json.dump")
@patch("podplay_scraper.persist.ensure_data_dir")
def test_save_history(mock_ensure, mock_dump, mock_datetime):
    """save_history replaces the stored availability and stamps it."""
    mock_now = MagicMock()
    mock_now.isoformat.return_value = "2025-03-14T12:00:00Z"
    mock_datetime.now.return_value = mock_now

    with patch("builtins.open", mock_open()) as mocked_file:
        state = {"2025-03-14": {"5:00pm": 2, "6:00pm": 0}}
        persist.save_history(state)

        mocked_file.assert_called_once_with(config.HISTORY_FILE, "w")
        args, _ = mock_dump.call_args
        saved_data = args[0]
        assert saved_data["availability"] == state
        assert saved_data["last_updated"] == "2025-03-14T12:00:00Z"


@patch("podplay_scraper.persist.json.dump")
def test_save_history_io_error(mock_dump):
    with patch("podplay_scraper.persist.ensure_data_dir"), patch("builtins.open", side_effect=IOError("disk full")):
        persist.save_history({"2025-03-14": {}})

    mock_dump.assert_not_called()


@patch("podplay_scraper.persist.json.dump")
def test_save_report_structure(mock_dump):
    with patch("podplay_scraper.persist.ensure_data_dir"), patch("builtins.open", mock_open()):
        results = [
            DayAvailability(
                date="2025-03-14",
                slots=[Slot(time="5:00pm", courts=2, is_new=True)],
                new_count=1,
                time_availability={"5:00pm": 2},
            )
        ]
        persist.save_report(results)

        args, _ = mock_dump.call_args
        data = args[0]
        datetime.fromisoformat(data["last_updated"])
        assert data["days"][0]["date"] == "2025-03-14"
        assert data["days"][0]["slots"][0] == {"time": "5:00pm", "courts": 2, "is_new": True}
        assert data["days"][0]["time_availability"] == {"5:00pm": 2}


@patch("os.path.exists")
def test_load_history_with_stale_dates(mock_exists):
    mock_exists.return_value = True
    test_data = (
        '{"last_updated": "2025-03-14T12:00:00Z", "availability": {"2025-03-15": {"5:00pm": 3}},'
        ' "stale_dates": ["2025-03-15"]}'
    )
    with patch("builtins.open", mock_open(read_data=test_data)):
        assert persist.load_history() == {"2025-03-15": {"5:00pm": 3}}


@patch("os.path.exists")
def test_load_history_rejects_bad_counts(mock_exists):
    mock_exists.return_value = True
    test_data = '{"last_updated": "2025-03-14T12:00:00Z", "availability": {"2025-03-14": {"5:00pm": "many"}}}'
    with patch("builtins.open", mock_open(read_data=test_data)):
        assert persist.load_history() == {}


@patch("podplay_scraper.persist.json.dump")
@patch("podplay_scraper.persist.ensure_data_dir")
def test_save_history_records_stale_dates(mock_ensure, mock_dump):
    with patch("builtins.open", mock_open()):
        persist.save_history({"2025-03-15": {"5:00pm": 3}}, ["2025-03-15"])

    saved_data = mock_dump.call_args[0][0]
    assert saved_data["stale_dates"] == ["2025-03-15"]
    assert saved_data["availability"] == {"2025-03-15": {"5:00pm": 3}}


@patch("podplay_scraper.persist.json.dump")
def test_save_report_includes_stale_days(mock_dump):
    with patch("podplay_scraper.persist.ensure_data_dir"), patch("builtins.open", mock_open()):
        persist.save_report(
            [
                DayAvailability(date="2025-03-14", slots=[], new_count=0, time_availability={}),
                DayAvailability(
                    date="2025-03-15",
                    slots=[Slot(time="5:00pm", courts=3, is_new=False)],
                    new_count=0,
                    time_availability={"5:00pm": 3},
                    stale=True,
                ),
            ]
        )

    data = mock_dump.call_args[0][0]
    assert [day["date"] for day in data["days"]] == ["2025-03-14", "2025-03-15"]
    assert data["days"][1]["stale"] is True
    assert data["stale_dates"] == ["2025-03-15"]
