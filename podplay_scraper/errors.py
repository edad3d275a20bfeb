class ScrapeError(Exception):
    """Raised when a crawl cannot produce a result at all."""


class BrowserLaunchError(ScrapeError):
    pass


class NavigationError(ScrapeError):
    pass


class DatePickerNotFoundError(ScrapeError):
    """The booking page loaded but never rendered its date picker."""
