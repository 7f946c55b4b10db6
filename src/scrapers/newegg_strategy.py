# src/scrapers/newegg_strategy.py

"""Extraction strategy for newegg.com product pages."""

import json
import re
from decimal import Decimal

from bs4 import BeautifulSoup

from src.scrapers.base_strategy import BaseStrategy, host_matches, url_host
from src.scrapers.price_parser import parse_price

# Embedded product JSON, e.g. "FinalPrice":1299.99
_EMBEDDED_PRICE_RE = re.compile(
    r'"(?:FinalPrice|current_price)"\s*:\s*"?([\d.,]+)"?'
)


class NeweggStrategy(BaseStrategy):
    """Extraction strategy for newegg.com product pages.

    Newegg renders the dollars in ``<strong>`` and the cents in
    ``<sup>`` inside ``li.price-current``.  When the buy box is
    rendered client-side the embedded product JSON is used instead.
    """

    source_name = "newegg"
    split_price_parts = [("strong", "sup")]

    DOMAINS: list[str] = ["newegg.com", "newegg.ca"]

    def can_handle(self, url: str) -> bool:
        host = url_host(url)
        if not host:
            return False
        return host_matches(host, self.DOMAINS)

    def _find_price(self, doc: BeautifulSoup) -> Decimal | None:
        price = super()._find_price(doc)
        if price is not None:
            return price
        return self._price_from_embedded_json(doc)

    def _price_from_embedded_json(
        self, doc: BeautifulSoup,
    ) -> Decimal | None:
        for script in doc.find_all("script"):
            text = script.string or ""
            if script.get("type") == "application/ld+json":
                price = self._price_from_ld_json(text)
                if price is not None:
                    return price
                continue
            match = _EMBEDDED_PRICE_RE.search(text)
            if match:
                price = parse_price(match.group(1))
                if price is not None:
                    self.logger.debug(
                        "[newegg] Embedded JSON price %s", price
                    )
                    return price
        return None

    def _price_from_ld_json(self, text: str) -> Decimal | None:
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            return None
        if not isinstance(data, dict):
            return None
        offers = data.get("offers")
        if isinstance(offers, list):
            offers = offers[0] if offers else None
        if not isinstance(offers, dict):
            return None
        return parse_price(str(offers.get("price", "")))
