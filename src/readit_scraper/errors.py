from typing import Optional


class ScraperError(Exception):
    """Base class for everything raised by readit_scraper."""


class ParseError(ScraperError):
    """The markup could not be turned into a navigable tree."""


class NotFoundError(ScraperError):
    """A required top-level element (e.g. the post container) is absent."""


class ElementMissingError(ScraperError):
    """A sub-element of a single comment or post is missing.

    Extractors recover from this locally by substituting a default value.
    """

    def __init__(self, selector: str):
        super().__init__(f"no element matches {selector!r}")
        self.selector = selector


class NetworkError(ScraperError):
    def __init__(self, message: str, *, url: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class FetchTimeoutError(NetworkError, TimeoutError):
    """A single fetch attempt ran past its timeout."""


class InvalidURLError(ScraperError, ValueError):
    def __init__(self, url: str, reason: str = ""):
        msg = f"invalid url {url!r}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)
        self.url = url
