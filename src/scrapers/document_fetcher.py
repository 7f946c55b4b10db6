# src/scrapers/document_fetcher.py

"""Fetch product pages with browser-like, low-profile request behaviour."""

import logging
import random
import time
from collections.abc import Callable
from typing import Any
from urllib.parse import urljoin

import cloudscraper  # type: ignore[import-untyped]
from bs4 import BeautifulSoup
from curl_cffi import requests as curl_requests
from curl_cffi.requests.exceptions import (
    DNSError,
    RequestException,
    Timeout,
)

from src.config.settings import Settings
from src.scrapers.base_strategy import url_host
from src.scrapers.errors import (
    BlockedPageError,
    FetchError,
    FetchTimeoutError,
    HttpStatusError,
    MalformedResponseError,
    UnresolvableHostError,
)
from src.scrapers.registry import StrategyRegistry


class DocumentFetcher:
    """Retrieve and parse product pages.

    Every network call is preceded by a jittered delay, carries a
    rotated user agent plus a real browser's header set, and goes
    through a ``curl_cffi`` session impersonating Chrome's TLS
    fingerprint.  Failures are raised as distinct
    :class:`~src.scrapers.errors.FetchError` subclasses so callers can
    decide whether to retry or skip.
    """

    def __init__(
        self,
        registry: StrategyRegistry | None = None,
        sleep: Callable[[float], Any] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.logger = logging.getLogger("price_tracker.fetcher")
        self.settings = Settings()
        self.registry = registry
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._request_timeout: int = self.settings.REQUEST_TIMEOUT

    # ── Anti-blocking helpers ────────────────────────────

    def next_delay(self) -> float:
        """Seconds to wait before the next request (base + jitter)."""
        base = self.settings.FETCH_BASE_DELAY_MS / 1000
        jitter = self._rng.uniform(
            0, self.settings.FETCH_JITTER_MS / 1000
        )
        return base + jitter

    def _wait(self) -> None:
        delay = self.next_delay()
        self.logger.debug("Adding delay of %.2fs before request", delay)
        if self._sleep is not None:
            self._sleep(delay)
        else:
            time.sleep(delay)

    def random_user_agent(self) -> str:
        """Pick one of the configured browser user agents."""
        return self._rng.choice(self.settings.USER_AGENTS)

    def _build_headers(self) -> dict[str, str]:
        return {
            **self.settings.DEFAULT_HEADERS,
            "User-Agent": self.random_user_agent(),
        }

    # ── Short links ──────────────────────────────────────

    def is_shortened(self, url: str) -> bool:
        """True if *url* points at a known link shortener."""
        return url_host(url) in self.settings.SHORTENER_HOSTS

    def expand_url(self, url: str) -> str:
        """Resolve a short link via its redirect ``Location``.

        Returns *url* unchanged when it is not a short link or when
        expansion fails for any reason.
        """
        if not self.is_shortened(url):
            return url
        self._wait()
        try:
            resp = self.session.head(
                url,
                headers=self._build_headers(),
                timeout=self._request_timeout,
                allow_redirects=False,
            )
            if 300 <= resp.status_code < 400:
                location = resp.headers.get("Location")
                if location:
                    expanded = urljoin(url, location)
                    self.logger.debug(
                        "Expanded URL %s to %s", url, expanded
                    )
                    return expanded
            self.logger.warning(
                "Short link %s answered HTTP %d without a redirect",
                url,
                resp.status_code,
            )
        except Exception as exc:
            self.logger.warning(
                "Failed to expand shortened URL %s: %s", url, exc
            )
        return url

    # ── Fetching ─────────────────────────────────────────

    def _fetch_fallback(
        self, url: str, headers: dict[str, str],
    ) -> str | None:
        """Retry a challenged request through cloudscraper."""
        self.logger.info(
            "Challenge status for %s, falling back to cloudscraper", url
        )
        try:
            _cs: Any = cloudscraper
            scraper: Any = _cs.create_scraper()
            resp: Any = scraper.get(
                url,
                headers=headers,
                timeout=self._request_timeout,
            )
            if 200 <= resp.status_code < 300:
                return str(resp.text)
            self.logger.warning(
                "cloudscraper fallback got HTTP %d for %s",
                resp.status_code,
                url,
            )
        except Exception as exc:
            self.logger.error(
                "cloudscraper fallback failed for %s: %s",
                url,
                exc,
                exc_info=True,
            )
        return None

    def _parse(self, url: str, text: str) -> BeautifulSoup:
        if not text or not text.strip():
            raise MalformedResponseError(url, "Empty response body")
        try:
            return BeautifulSoup(text, "lxml")
        except Exception as exc:
            raise MalformedResponseError(
                url, f"Unparseable response body: {exc}"
            ) from exc

    def _check_blocked(self, url: str, doc: BeautifulSoup) -> None:
        if self.registry is None:
            return
        for strategy in self.registry.strategies_for(url):
            if strategy.is_blocked_page(doc):
                self.logger.warning(
                    "Detected verification page for URL: %s", url
                )
                raise BlockedPageError(url)

    def fetch(self, url: str) -> BeautifulSoup:
        """Fetch *url* and return the parsed document.

        Raises:
            FetchTimeoutError: the request exceeded the timeout.
            UnresolvableHostError: DNS resolution failed.
            HttpStatusError: the final response was not 2xx.
            BlockedPageError: a claiming strategy saw a CAPTCHA page.
            MalformedResponseError: the body could not be parsed.
            FetchError: any other transport failure.
        """
        url = self.expand_url(url)
        self._wait()
        headers = self._build_headers()
        self.logger.debug(
            "Fetching %s with user agent %s", url, headers["User-Agent"]
        )

        try:
            resp = self.session.get(
                url,
                headers=headers,
                timeout=self._request_timeout,
                allow_redirects=True,
            )
        except Timeout as exc:
            self.logger.warning("Connection timed out for URL: %s", url)
            raise FetchTimeoutError(url) from exc
        except DNSError as exc:
            self.logger.warning("Unknown host for URL: %s", url)
            raise UnresolvableHostError(url) from exc
        except RequestException as exc:
            self.logger.warning("Request error for URL %s: %s", url, exc)
            raise FetchError(url, f"Request failed: {exc}") from exc

        status: int = resp.status_code
        if status in self.settings.CHALLENGE_STATUSES:
            text = self._fetch_fallback(url, headers)
            if text is None:
                raise HttpStatusError(url, status)
        elif not 200 <= status < 300:
            self.logger.warning("HTTP error %d for URL: %s", status, url)
            raise HttpStatusError(url, status)
        else:
            try:
                text = resp.text
            except (UnicodeDecodeError, LookupError) as exc:
                raise MalformedResponseError(
                    url, f"Undecodable response body: {exc}"
                ) from exc

        doc = self._parse(url, text)
        self._check_blocked(url, doc)
        return doc
