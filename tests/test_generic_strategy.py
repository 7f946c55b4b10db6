# tests/test_generic_strategy.py

"""Tests for the best-effort generic extraction strategy."""

import unittest
from decimal import Decimal

from bs4 import BeautifulSoup

from src.scrapers.generic_strategy import GenericStrategy


def _page(body: str, title: str = "Shop") -> BeautifulSoup:
    return BeautifulSoup(
        f"<html><head><title>{title}</title></head>"
        f"<body>{body}</body></html>",
        "lxml",
    )


class TestGenericStrategy(unittest.TestCase):
    """Fallback extraction for unknown retailers."""

    def setUp(self) -> None:
        self.strategy = GenericStrategy()

    def test_never_claims_urls(self) -> None:
        self.assertFalse(self.strategy.can_handle("https://shop.example/p/1"))
        self.assertFalse(
            self.strategy.can_handle("https://www.amazon.in/dp/B0C1")
        )

    def test_common_markup(self) -> None:
        doc = _page(
            "<h1>Desk Lamp</h1>"
            '<span class="price">$24.50</span>'
            '<img src="/logo.png">'
            '<img src="/lamp.jpg" width="400">'
        )
        result = self.strategy.extract_all(doc)
        self.assertEqual(result.name, "Desk Lamp")
        self.assertEqual(result.price, Decimal("24.50"))
        self.assertEqual(result.image_url, "/lamp.jpg")

    def test_data_price_attribute(self) -> None:
        doc = _page('<div><span data-price="19.99"></span></div>')
        self.assertEqual(self.strategy.extract_price(doc), Decimal("19.99"))

    def test_currency_scan(self) -> None:
        doc = _page("<div><b>Now only €19,99</b></div>")
        self.assertEqual(self.strategy.extract_price(doc), Decimal("19.99"))

    def test_currency_scan_ignores_scripts(self) -> None:
        doc = _page("<script>var price = '$10';</script><p>Sold out</p>")
        self.assertIsNone(self.strategy.extract_price(doc))

    def test_title_used_when_no_heading(self) -> None:
        doc = _page("<div>no heading</div>", title="Garden Hose 20m")
        self.assertEqual(self.strategy.extract_name(doc), "Garden Hose 20m")

    def test_declared_size_with_px_suffix(self) -> None:
        doc = _page(
            '<img src="/thumb.jpg" width="80">'
            '<img src="/big.jpg" height="640px">'
        )
        self.assertEqual(self.strategy.extract_image(doc), "/big.jpg")

    def test_first_plausible_image(self) -> None:
        doc = _page(
            '<img src="/spacer.gif">'
            '<img src="/assets/site-logo.png">'
            '<img src="/img/sprite-sheet.png">'
            '<img src="/photos/hose.jpg">'
        )
        self.assertEqual(
            self.strategy.extract_image(doc), "/photos/hose.jpg"
        )

    def test_nothing_found(self) -> None:
        doc = BeautifulSoup("<html><body><div></div></body></html>", "lxml")
        self.assertTrue(self.strategy.extract_all(doc).is_empty)


if __name__ == "__main__":
    unittest.main()
