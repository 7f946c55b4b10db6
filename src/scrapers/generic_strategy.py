# src/scrapers/generic_strategy.py

"""Best-effort extraction for retailers without a dedicated strategy."""

import re
from decimal import Decimal

from bs4 import BeautifulSoup, Tag

from src.scrapers.base_strategy import BaseStrategy
from src.scrapers.price_parser import parse_price

_CURRENCY_OR_PRICE_RE = re.compile(r"[$€£¥₹]|price", re.IGNORECASE)
_DIGIT_RE = re.compile(r"\d")

_MIN_IMAGE_DIMENSION = 200
_SKIPPED_IMAGE_HINTS = ("icon", "logo", "sprite", "pixel")


def _declared_size(img: Tag, attr: str) -> int:
    """Parse a width/height attribute like ``"400"`` or ``"400px"``."""
    raw = img.get(attr)
    if not isinstance(raw, str):
        return 0
    digits = raw.strip().removesuffix("px")
    return int(digits) if digits.isdigit() else 0


class GenericStrategy(BaseStrategy):
    """Best-effort extraction for retailers without a dedicated strategy.

    Never claims a URL through :meth:`can_handle`; the orchestrator
    uses it as the fallback when the registry finds no match.
    """

    source_name = "generic"
    split_price_parts = [
        (".a-price-whole", ".a-price-fraction"),
        ("strong", "sup"),
    ]

    def can_handle(self, url: str) -> bool:
        return False

    def _find_price(self, doc: BeautifulSoup) -> Decimal | None:
        price = super()._find_price(doc)
        if price is not None:
            return price
        return self._price_near_currency(doc)

    def _price_near_currency(self, doc: BeautifulSoup) -> Decimal | None:
        """Scan elements whose own text has a currency symbol or 'price'."""
        for text_node in doc.find_all(string=_CURRENCY_OR_PRICE_RE):
            parent = text_node.parent
            if not isinstance(parent, Tag) or parent.name in (
                "script", "style", "title", "head",
            ):
                continue
            text = parent.get_text(" ", strip=True)
            if not _DIGIT_RE.search(text):
                continue
            price = parse_price(text)
            if price is not None:
                self.logger.debug(
                    "[generic] Currency-scan price %s from %r",
                    price,
                    text,
                )
                return price
        self.logger.debug("[generic] No price element found")
        return None

    def _find_name(self, doc: BeautifulSoup) -> str | None:
        name = super()._find_name(doc)
        if name:
            return name
        if doc.title is not None:
            title = doc.title.get_text(" ", strip=True)
            return title or None
        return None

    def _find_image(self, doc: BeautifulSoup) -> str | None:
        image_url = super()._find_image(doc)
        if image_url:
            return image_url

        images = [
            img for img in doc.find_all("img")
            if isinstance(img.get("src"), str) and img["src"].strip()
        ]
        for img in images:
            if (
                _declared_size(img, "width") > _MIN_IMAGE_DIMENSION
                or _declared_size(img, "height") > _MIN_IMAGE_DIMENSION
            ):
                return str(img["src"]).strip()

        for img in images:
            src = str(img["src"]).strip()
            lower = src.lower()
            if lower.endswith(".gif"):
                continue
            if any(hint in lower for hint in _SKIPPED_IMAGE_HINTS):
                continue
            return src

        self.logger.debug("[generic] No image element found")
        return None
