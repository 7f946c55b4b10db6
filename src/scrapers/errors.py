# src/scrapers/errors.py

"""Exception hierarchy for fetching and extraction failures.

"Not found" is never an exception: extraction returns ``None`` or an
empty :class:`~src.models.extraction_result.ExtractionResult`.
"""


class ScrapingError(Exception):
    """Base class for every scraping failure."""


class FetchError(ScrapingError):
    """A transport-level failure while retrieving a page."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"{message} ({url})")
        self.url = url


class FetchTimeoutError(FetchError):
    """The request exceeded the configured timeout."""

    def __init__(self, url: str) -> None:
        super().__init__(url, "Request timed out")


class UnresolvableHostError(FetchError):
    """The host name could not be resolved."""

    def __init__(self, url: str) -> None:
        super().__init__(url, "Unknown host")


class HttpStatusError(FetchError):
    """The server answered with a non-2xx status."""

    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(url, f"HTTP {status_code}")
        self.status_code = status_code


class BlockedPageError(FetchError):
    """The page served is a CAPTCHA or bot-verification interstitial."""

    def __init__(self, url: str) -> None:
        super().__init__(url, "Verification page served")


class MalformedResponseError(FetchError):
    """The response body could not be turned into a document."""


class MalformedInputError(ScrapingError):
    """A caller passed input extraction cannot inspect (e.g. no document)."""
