# src/scrapers/amazon_strategy.py

"""Extraction strategy for Amazon product pages (amazon.in first)."""

import re
from decimal import Decimal

from bs4 import BeautifulSoup, Tag

from src.scrapers.base_strategy import BaseStrategy, host_matches, url_host
from src.scrapers.price_parser import parse_price

_RUPEE_RE = re.compile("₹")

# Own-text markers of an element that may hold the page's price
_PRICE_MARKER_RE = re.compile(
    r"₹|Rs\.?\s*\d|INR|Price:|MRP|price|Deal of the Day|Limited time deal"
)

_MAX_SCAN_TEXT_LENGTH = 50
_MAX_SCAN_CHILDREN = 5


class AmazonStrategy(BaseStrategy):
    """Extraction strategy for Amazon product pages.

    Amazon India renders the price several times per page (core
    display, buy box, offers, "similar items").  The India-specific
    core price regions are scanned for rupee text first, then the
    selector cascade from ``selectors.json`` runs, and only then a
    page-wide scan of short price-looking elements.
    """

    source_name = "amazon"
    split_price_parts = [(".a-price-whole", ".a-price-fraction")]

    DOMAINS: list[str] = [
        "amazon.in",
        "amazon.com",
        "amazon.co.uk",
        "amazon.de",
        "amazon.ae",
        "amazon.ca",
    ]
    SHORT_DOMAINS: list[str] = ["amzn.in", "amzn.to", "amzn.eu", "a.co"]

    def can_handle(self, url: str) -> bool:
        host = url_host(url)
        if not host:
            return False
        return host_matches(host, self.DOMAINS + self.SHORT_DOMAINS)

    def _find_price(self, doc: BeautifulSoup) -> Decimal | None:
        price = self._price_from_rupee_regions(doc)
        if price is not None:
            return price

        price = super()._find_price(doc)
        if price is not None:
            return price

        return self._price_from_page_scan(doc)

    def _price_from_rupee_regions(
        self, doc: BeautifulSoup,
    ) -> Decimal | None:
        """Look for rupee-prefixed text inside the core price blocks."""
        for selector in self.selectors.get("price_regions", []):
            region = self._select_first(doc, selector)
            if region is None:
                continue
            for text_node in region.find_all(string=_RUPEE_RE):
                parent = text_node.parent
                if not isinstance(parent, Tag):
                    continue
                text = self._price_text(parent)
                price = parse_price(text)
                if price is not None:
                    self.logger.debug(
                        "[amazon] Rupee price %s from %r in %s",
                        price,
                        text,
                        selector,
                    )
                    return price
        return None

    def _price_from_page_scan(
        self, doc: BeautifulSoup,
    ) -> Decimal | None:
        """Last resort: any short element whose text looks like a price."""
        for text_node in doc.find_all(string=_PRICE_MARKER_RE):
            parent = text_node.parent
            if not isinstance(parent, Tag) or parent.name in (
                "script", "style", "title",
            ):
                continue
            if len(parent.find_all(recursive=False)) > _MAX_SCAN_CHILDREN:
                continue
            text = parent.get_text(" ", strip=True)
            if not text or len(text) > _MAX_SCAN_TEXT_LENGTH:
                continue
            price = parse_price(text)
            if price is not None:
                self.logger.debug(
                    "[amazon] Page-scan price %s from %r", price, text
                )
                return price
        return None
