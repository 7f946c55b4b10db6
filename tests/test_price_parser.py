# tests/test_price_parser.py

"""Tests for price text parsing."""

import unittest
from decimal import Decimal

from src.scrapers.price_parser import (
    MAX_PRICE_TEXT_LENGTH,
    clean_mojibake,
    join_price_parts,
    parse_price,
)


class TestParsePrice(unittest.TestCase):
    """parse_price() over the shapes retail pages actually render."""

    def test_rupee_with_decimals(self) -> None:
        """Thousands separators are dropped, decimals kept exactly."""
        self.assertEqual(parse_price("₹4,599.00"), Decimal("4599.00"))

    def test_rs_prefix_without_decimals(self) -> None:
        self.assertEqual(parse_price("Rs. 1,449"), Decimal("1449"))

    def test_dollar_price(self) -> None:
        self.assertEqual(parse_price("$1,299.99"), Decimal("1299.99"))

    def test_trailing_currency_symbol(self) -> None:
        self.assertEqual(parse_price("2,350.50 €"), Decimal("2350.50"))

    def test_plain_integer(self) -> None:
        """Unseparated digits fall through to the digit-run pass."""
        self.assertEqual(parse_price("1449"), Decimal("1449"))

    def test_unseparated_with_decimals(self) -> None:
        self.assertEqual(parse_price("4599.00"), Decimal("4599.00"))

    def test_indian_lakh_grouping(self) -> None:
        """₹1,00,000 groups by two digits after the first thousand."""
        self.assertEqual(parse_price("₹1,00,000"), Decimal("100000"))

    def test_european_decimal_comma(self) -> None:
        self.assertEqual(parse_price("1.234,56 €"), Decimal("1234.56"))

    def test_single_decimal_comma(self) -> None:
        self.assertEqual(parse_price("€19,99"), Decimal("19.99"))

    def test_european_decimal_comma_after_symbol(self) -> None:
        self.assertEqual(parse_price("€1.234,56"), Decimal("1234.56"))

    def test_european_decimal_comma_after_code(self) -> None:
        self.assertEqual(parse_price("EUR 1.234,56"), Decimal("1234.56"))

    def test_lone_dot_after_symbol_is_decimal(self) -> None:
        """Without a comma a single dot is read as the decimal mark."""
        self.assertEqual(parse_price("€1.299"), Decimal("1.299"))

    def test_repeated_dots_group_thousands(self) -> None:
        self.assertEqual(parse_price("1.234.567"), Decimal("1234567"))

    def test_repeated_dots_with_decimal_comma(self) -> None:
        self.assertEqual(
            parse_price("€1.234.567,89"), Decimal("1234567.89")
        )

    def test_non_breaking_space(self) -> None:
        self.assertEqual(parse_price("₹\xa0899.00"), Decimal("899.00"))

    def test_first_price_in_text_wins(self) -> None:
        """Only the first price-looking run is taken."""
        self.assertEqual(
            parse_price("M.R.P.: ₹5,999.00 ₹4,599.00"),
            Decimal("5999.00"),
        )

    def test_mojibake_rupee(self) -> None:
        """A cp437-garbled rupee glyph still parses."""
        self.assertEqual(parse_price("Γé╣1,449.00"), Decimal("1449.00"))

    def test_cp1252_mojibake_rupee(self) -> None:
        self.assertEqual(parse_price("â‚¹2,100"), Decimal("2100"))

    def test_result_is_decimal(self) -> None:
        self.assertIsInstance(parse_price("₹10.10"), Decimal)

    def test_none_and_empty(self) -> None:
        self.assertIsNone(parse_price(None))
        self.assertIsNone(parse_price(""))
        self.assertIsNone(parse_price("   "))

    def test_no_digits(self) -> None:
        self.assertIsNone(parse_price("Currently unavailable"))

    def test_oversized_text_rejected(self) -> None:
        """Text longer than the bound is refused even if it has a price."""
        text = "₹4,599.00 " + "x" * MAX_PRICE_TEXT_LENGTH
        self.assertGreater(len(text), MAX_PRICE_TEXT_LENGTH)
        self.assertIsNone(parse_price(text))

    def test_text_at_bound_accepted(self) -> None:
        text = "₹99" + " " * (MAX_PRICE_TEXT_LENGTH - 5) + "ok"
        self.assertEqual(len(text), MAX_PRICE_TEXT_LENGTH)
        self.assertEqual(parse_price(text), Decimal("99"))

    def test_custom_max_length(self) -> None:
        self.assertIsNone(parse_price("₹4,599.00", max_length=5))


class TestHelpers(unittest.TestCase):
    """clean_mojibake() and join_price_parts()."""

    def test_clean_mojibake_replaces_rupee(self) -> None:
        self.assertEqual(clean_mojibake("Γé╣1,449.00"), "Rs.1,449.00")

    def test_clean_mojibake_leaves_clean_text(self) -> None:
        self.assertEqual(clean_mojibake("₹1,449.00"), "₹1,449.00")

    def test_join_whole_with_trailing_dot(self) -> None:
        self.assertEqual(join_price_parts("4,599.", "00"), "4,599.00")

    def test_join_fraction_with_leading_dot(self) -> None:
        self.assertEqual(join_price_parts("1,299", ".99"), "1,299.99")

    def test_join_ignores_non_digit_fraction(self) -> None:
        self.assertEqual(join_price_parts("1,299", "–"), "1,299")


if __name__ == "__main__":
    unittest.main()
