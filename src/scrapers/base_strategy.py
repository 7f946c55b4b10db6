# src/scrapers/base_strategy.py

"""Abstract base class for all retailer extraction strategies."""

import json
import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

from src.config.settings import Settings
from src.models.extraction_result import ExtractionResult
from src.scrapers.errors import MalformedInputError
from src.scrapers.price_parser import join_price_parts, parse_price

# Attributes holding a machine-readable price, read before element text
_PRICE_ATTRIBUTES: tuple[str, ...] = ("content", "data-price")


def url_host(url: str | None) -> str:
    """Return the lower-cased host of *url* without a ``www.`` prefix."""
    if not url:
        return ""
    host = urlparse(url).netloc.lower().split(":")[0]
    return host.removeprefix("www.")


def host_matches(host: str, domains: list[str]) -> bool:
    """True if *host* is one of *domains* or a subdomain of one."""
    return any(
        host == domain or host.endswith(f".{domain}")
        for domain in domains
    )


class BaseStrategy(ABC):
    """Abstract base class for all retailer extraction strategies.

    Subclasses declare ``source_name`` (the key of their selector
    cascades in ``selectors.json``) and implement :meth:`can_handle`.
    Cascades are tried strictly in order; the first selector that
    yields a value wins.
    """

    source_name: str = ""

    # (whole, fraction) child selectors for prices split across elements
    split_price_parts: list[tuple[str, str]] = []

    def __init__(
        self, selectors: dict[str, list[str]] | None = None,
    ) -> None:
        self.logger = logging.getLogger(
            f"price_tracker.strategy.{self.source_name}"
        )
        self.settings = Settings()
        self.selectors: dict[str, list[str]] = (
            selectors if selectors is not None
            else self._load_selectors()
        )

    def _load_selectors(self) -> dict[str, list[str]]:
        """Load CSS selector cascades for this source from selectors.json."""
        with open(self.settings.SELECTORS_PATH, encoding="utf-8") as f:
            all_selectors: dict[str, Any] = json.load(f)
        result: dict[str, list[str]] = all_selectors.get(
            self.source_name, {}
        )
        return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    # ── Capability interface ─────────────────────────────

    @abstractmethod
    def can_handle(self, url: str) -> bool:
        """Return True if this strategy understands pages at *url*."""
        ...

    def is_blocked_page(self, doc: BeautifulSoup) -> bool:
        """Detect CAPTCHA / bot-verification interstitials."""
        self._require_document(doc)

        title_el = doc.title
        title = (
            title_el.get_text(" ", strip=True).lower()
            if title_el else ""
        )
        has_title = any(
            phrase in title
            for phrase in self.settings.BLOCKED_TITLE_PHRASES
        )
        has_image = doc.select_one(
            "img[src*=captcha], form[action*=validateCaptcha]"
        ) is not None
        has_prompt = any(
            phrase in el.get_text(" ", strip=True).lower()
            for el in doc.select("h4, p")
            for phrase in self.settings.BLOCKED_PROMPT_PHRASES
        )
        has_form = doc.select_one("form[action*=verify]") is not None

        blocked = has_title or has_image or has_prompt or has_form
        if blocked:
            self.logger.warning(
                "[%s] Verification page detected: title=%s, "
                "image=%s, prompt=%s, form=%s",
                self.source_name,
                has_title,
                has_image,
                has_prompt,
                has_form,
            )
        return blocked

    def extract_price(self, doc: BeautifulSoup) -> Decimal | None:
        """Extract the product price, or None if absent or blocked."""
        if self.is_blocked_page(doc):
            return None
        return self._find_price(doc)

    def extract_name(self, doc: BeautifulSoup) -> str | None:
        """Extract the product name, or None if absent or blocked."""
        if self.is_blocked_page(doc):
            return None
        return self._find_name(doc)

    def extract_image(self, doc: BeautifulSoup) -> str | None:
        """Extract the main product image URL, or None."""
        if self.is_blocked_page(doc):
            return None
        return self._find_image(doc)

    def extract_all(self, doc: BeautifulSoup) -> ExtractionResult:
        """Extract name, image and price in one pass.

        Returns :meth:`ExtractionResult.empty` when nothing was found
        or the page is a verification interstitial.
        """
        if self.is_blocked_page(doc):
            return ExtractionResult.empty()
        return ExtractionResult(
            name=self._find_name(doc),
            image_url=self._find_image(doc),
            price=self._find_price(doc),
        )

    # ── Cascades (override for site-specific logic) ──────

    def _find_price(self, doc: BeautifulSoup) -> Decimal | None:
        return self._price_from_selectors(
            doc, self.selectors.get("price", [])
        )

    def _find_name(self, doc: BeautifulSoup) -> str | None:
        for selector in self.selectors.get("name", []):
            element = self._select_first(doc, selector)
            if element is None:
                continue
            name = element.get_text(" ", strip=True)
            if name:
                return name
        return None

    def _find_image(self, doc: BeautifulSoup) -> str | None:
        for selector in self.selectors.get("image", []):
            element = self._select_first(doc, selector)
            if element is None:
                continue
            image_url = self._image_from_element(element)
            if image_url:
                return image_url
        return None

    # ── Helpers ──────────────────────────────────────────

    @staticmethod
    def _require_document(doc: BeautifulSoup | None) -> None:
        if doc is None:
            raise MalformedInputError(
                "Extraction requires a parsed document, got None"
            )

    def _select_first(
        self, root: BeautifulSoup | Tag, selector: str,
    ) -> Tag | None:
        """``select_one`` that logs and skips selectors soupsieve rejects."""
        try:
            return root.select_one(selector)
        except Exception as exc:
            self.logger.debug(
                "[%s] Selector %r failed: %s",
                self.source_name,
                selector,
                exc,
            )
            return None

    def _price_from_selectors(
        self, doc: BeautifulSoup, selectors: list[str],
    ) -> Decimal | None:
        for selector in selectors:
            element = self._select_first(doc, selector)
            if element is None:
                continue
            text = self._price_text(element)
            self.logger.debug(
                "[%s] Price candidate via %s: %r",
                self.source_name,
                selector,
                text,
            )
            price = parse_price(text)
            if price is not None:
                return price
        return None

    def _price_text(self, element: Tag) -> str:
        """Raw price text of *element*, re-joining split whole/fraction parts."""
        for attr in _PRICE_ATTRIBUTES:
            value = element.get(attr)
            if isinstance(value, str) and value.strip():
                return value
        for whole_sel, fraction_sel in self.split_price_parts:
            if self._matches(element, whole_sel):
                # The selector landed on the whole part itself
                sibling = element.find_next_sibling()
                if sibling is not None and self._matches(
                    sibling, fraction_sel
                ):
                    return join_price_parts(
                        element.get_text(strip=True),
                        sibling.get_text(strip=True),
                    )
                continue
            whole = self._select_first(element, whole_sel)
            fraction = self._select_first(element, fraction_sel)
            if whole is not None and fraction is not None:
                return join_price_parts(
                    whole.get_text(strip=True),
                    fraction.get_text(strip=True),
                )
        return element.get_text(" ", strip=True)

    @staticmethod
    def _matches(element: Tag, selector: str) -> bool:
        try:
            return bool(element.css.match(selector))
        except Exception:
            return False

    @staticmethod
    def _image_from_element(element: Tag) -> str | None:
        """Best image URL on *element*, preferring high-resolution attributes."""
        dynamic = element.get("data-a-dynamic-image")
        if isinstance(dynamic, str) and dynamic.startswith("{"):
            try:
                images: dict[str, Any] = json.loads(dynamic)
            except json.JSONDecodeError:
                images = {}
            if images:
                return next(iter(images))
        for attr in ("data-old-hires", "data-src", "src", "content"):
            value = element.get(attr)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None
