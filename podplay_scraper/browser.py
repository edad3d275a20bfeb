import logging
from contextlib import contextmanager
from typing import Iterator

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page, sync_playwright

from podplay_scraper.errors import BrowserLaunchError
from podplay_scraper.models import CrawlOptions

logger = logging.getLogger(__name__)


@contextmanager
def browser_page(options: CrawlOptions) -> Iterator[Page]:
    """Yields a fresh page in a headless Chromium; the browser is closed on every exit path."""
    logger.info("Starting browser...")
    playwright = None
    try:
        playwright = sync_playwright().start()
        browser = playwright.chromium.launch(headless=options.headless)
    except PlaywrightError as e:
        if playwright:
            playwright.stop()
        raise BrowserLaunchError(f"Failed to launch Chromium: {e}") from e

    try:
        context = browser.new_context()
        page = context.new_page()
        page.set_default_timeout(options.navigation_timeout_ms)
        yield page
    finally:
        logger.info("Closing browser...")
        try:
            browser.close()
        finally:
            playwright.stop()
