import logging
from datetime import date
from typing import Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import JSHandle, Page
from playwright.sync_api import TimeoutError as PWTimeout

from podplay_scraper import browser, config, parsing
from podplay_scraper.errors import DatePickerNotFoundError, NavigationError, ScrapeError
from podplay_scraper.models import CrawlOptions, CrawlResult, SlotSnapshot, TimeAvailability

logger = logging.getLogger(__name__)

# Reads every session list entry and every unavailable range in a single pass.
SNAPSHOT_SCRIPT = """
(sel) => {
  const unavailableRanges = [];
  const items = Array.from(document.querySelectorAll(sel.item)).map((item) => {
    const card = item.querySelector(sel.unavailableCard);
    if (card) {
      const rangeEl = card.querySelector(sel.unavailableTime);
      if (rangeEl) {
        unavailableRanges.push((rangeEl.textContent || '').trim());
      }
      return { time: null, info: null, is_unavailable_block: true };
    }
    const timeEl = item.querySelector(sel.time);
    const infoEl = item.querySelector(sel.info);
    return {
      time: timeEl ? (timeEl.textContent || '').trim() : null,
      info: infoEl ? (infoEl.textContent || '').trim() : null,
      is_unavailable_block: false,
    };
  });
  return { items: items, unavailable_ranges: unavailableRanges };
}
"""

# Remembers the session list as it was before a date click: the first entry node,
# the list text, and whether the date about to be clicked is already selected.
SLOT_LIST_STATE_SCRIPT = """
(arg) => {
  const button = document.querySelectorAll(arg.dateButton)[arg.index];
  const listItem = button ? button.closest('li') : null;
  const list = document.querySelector(arg.list);
  return {
    first: document.querySelector(arg.item),
    text: list ? list.textContent : '',
    wasSelected: !!listItem && listItem.className.includes(arg.selectedFragment),
  };
}
"""

# True once the clicked date is selected, the session list has been replaced or
# rewritten since ``previous`` was captured, and its first entry shows its time.
DATE_VIEW_READY_SCRIPT = """
(arg) => {
  const button = document.querySelectorAll(arg.dateButton)[arg.index];
  const listItem = button ? button.closest('li') : null;
  if (!listItem || !listItem.className.includes(arg.selectedFragment)) {
    return false;
  }
  const items = document.querySelectorAll(arg.item);
  if (items.length === 0) {
    return false;
  }
  const previous = arg.previous;
  if (previous && !previous.wasSelected) {
    const list = document.querySelector(arg.list);
    const text = list ? list.textContent : '';
    const replaced = !previous.first || !previous.first.isConnected || previous.first !== items[0];
    if (!replaced && text === previous.text) {
      return false;
    }
  }
  const timeEl = items[0].querySelector(arg.timeContainer);
  const text = (timeEl || items[0]).textContent || '';
  return text.trim() !== '';
}
"""


def open_booking_page(page: Page, start_date: str, options: CrawlOptions):
    """Loads the venue's booking calendar starting at ``start_date``."""
    url = config.build_booking_url(start_date)
    logger.info(f"Navigating to {url}")
    try:
        page.goto(url, wait_until="networkidle", timeout=options.navigation_timeout_ms)
    except PlaywrightError as e:
        raise NavigationError(f"Could not load booking page {url}: {e}") from e


def wait_for_date_picker(page: Page, timeout_ms: int):
    """Blocks until the date picker is rendered.

    A missing picker means the page layout changed or the network failed, so it
    is fatal for the crawl rather than retried.
    """
    try:
        page.wait_for_selector(config.DATE_LIST_SELECTOR, timeout=timeout_ms)
    except PWTimeout as e:
        raise DatePickerNotFoundError(
            f"Date picker '{config.DATE_LIST_SELECTOR}' did not appear within {timeout_ms}ms"
        ) from e


def _date_view_arg(index: int) -> dict:
    return {
        "dateButton": config.DATE_BUTTON_SELECTOR,
        "index": index,
        "selectedFragment": config.SELECTED_DATE_ITEM_FRAGMENT,
        "list": config.SLOT_LIST_SELECTOR,
        "item": config.SLOT_ITEM_SELECTOR,
        "timeContainer": config.SLOT_TIME_CONTAINER_SELECTOR,
    }


def capture_slot_list(page: Page, index: int) -> JSHandle:
    """Captures the session list before the date at ``index`` is clicked.

    The returned handle keeps a reference to the first rendered entry, so the
    caller must dispose of it once the date view has been awaited.
    """
    return page.evaluate_handle(SLOT_LIST_STATE_SCRIPT, _date_view_arg(index))


def wait_for_date_view(page: Page, index: int, timeout_ms: int, previous: Optional[JSHandle] = None) -> bool:
    """Waits for the date at ``index`` to be selected and its session list to render.

    With ``previous`` (from :func:`capture_slot_list`), the list must also have
    been replaced or rewritten, unless that date was already selected.
    """
    arg = _date_view_arg(index)
    arg["previous"] = previous
    try:
        page.wait_for_function(DATE_VIEW_READY_SCRIPT, arg=arg, timeout=timeout_ms)
        return True
    except PWTimeout:
        return False


def read_snapshot(page: Page) -> SlotSnapshot:
    selectors = {
        "item": config.SLOT_ITEM_SELECTOR,
        "time": config.SLOT_TIME_SELECTOR,
        "info": config.SLOT_INFO_SELECTOR,
        "unavailableCard": config.UNAVAILABLE_CARD_SELECTOR,
        "unavailableTime": config.UNAVAILABLE_TIME_SELECTOR,
    }
    raw = page.evaluate(SNAPSHOT_SCRIPT, selectors)
    return SlotSnapshot.model_validate(raw)


def extract_date_availability(page: Page) -> TimeAvailability:
    """Extracts the time -> open courts map for the date currently on screen."""
    snapshot = read_snapshot(page)
    logger.debug(
        f"Snapshot has {len(snapshot.items)} items and {len(snapshot.unavailable_ranges)} unavailable ranges"
    )
    return parsing.extract_time_availability(snapshot)


def read_selected_datetime(page: Page) -> Optional[str]:
    """Returns the ``datetime`` attribute of the currently selected date control."""
    element = page.query_selector(config.SELECTED_DATE_SELECTOR)
    return element.get_attribute("datetime") if element else None


def read_control_datetime(page: Page, index: int) -> Optional[str]:
    """Returns the ``datetime`` attribute of the date control at ``index``."""
    buttons = page.query_selector_all(config.DATE_BUTTON_SELECTOR)
    if index >= len(buttons):
        return None
    time_el = buttons[index].query_selector("time")
    return time_el.get_attribute("datetime") if time_el else None


def crawl_dates(page: Page, options: CrawlOptions) -> CrawlResult:
    """Clicks through every date in the picker and collects availability per ISO date."""
    wait_for_date_picker(page, options.navigation_timeout_ms)

    date_count = len(page.query_selector_all(config.DATE_BUTTON_SELECTOR))
    logger.info(f"Found {date_count} date buttons to check")

    result = CrawlResult()
    for index in range(date_count):
        # The picker re-renders after each click; handles from the previous iteration are stale.
        buttons = page.query_selector_all(config.DATE_BUTTON_SELECTOR)
        if index >= len(buttons):
            logger.warning(f"Date picker shrank to {len(buttons)} buttons, stopping at index {index}")
            break

        button = buttons[index]
        label = (button.text_content() or "").strip() or f"Date {index + 1}"
        logger.info(f"Checking availability for {label}...")
        previous = capture_slot_list(page, index)
        try:
            button.click()
            ready = wait_for_date_view(page, index, options.slot_ready_timeout_ms, previous)
        finally:
            previous.dispose()

        if ready:
            time_availability = extract_date_availability(page)
            date_key = parsing.resolve_date_key(read_selected_datetime(page), label)
            if date_key in result.timed_out_dates:
                # A later visit to the same date loaded, so its data is current again.
                result.timed_out_dates.remove(date_key)
        else:
            # The selection may not have moved, so key off the clicked control itself.
            date_key = parsing.resolve_date_key(read_control_datetime(page, index), label)
            if date_key in result.availability and date_key not in result.timed_out_dates:
                logger.warning(f"Slots for {date_key} did not load on a later visit, keeping the earlier reading")
                continue
            logger.warning(
                f"Slots for {date_key} did not load within {options.slot_ready_timeout_ms}ms, recording no availability"
            )
            time_availability = {}
            if date_key not in result.timed_out_dates:
                result.timed_out_dates.append(date_key)

        result.availability[date_key] = time_availability
        logger.info(f"Completed scraping for {date_key}: {len(time_availability)} slots")

    return result


def scrape_court_availability(start_date: str | None = None, options: CrawlOptions | None = None) -> CrawlResult:
    """Runs a full crawl in a dedicated browser session."""
    options = options or CrawlOptions()
    start_date = start_date or date.today().isoformat()

    with browser.browser_page(options) as page:
        open_booking_page(page, start_date, options)
        try:
            result = crawl_dates(page, options)
        except PWTimeout as e:
            raise ScrapeError(f"Timed out while walking the date picker: {e}") from e
        except PlaywrightError as e:
            raise ScrapeError(f"Browser error while walking the date picker: {e}") from e

    logger.info(f"Scraping complete for {len(result.availability)} dates")
    return result
