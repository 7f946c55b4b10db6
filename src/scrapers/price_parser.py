# src/scrapers/price_parser.py

"""Price text parsing shared by every extraction strategy.

Retail markup renders prices in many shapes: ``₹4,599.00``,
``Rs. 1,449``, ``$<strong>1,299</strong><sup>.99</sup>`` or, when a
page was decoded with the wrong charset upstream, ``Γé╣1,449.00``.
:func:`parse_price` reduces all of them to an exact
:class:`~decimal.Decimal`.
"""

import logging
import re
from decimal import Decimal, InvalidOperation

from src.config.settings import Settings

logger = logging.getLogger("price_tracker.price_parser")

MAX_PRICE_TEXT_LENGTH: int = Settings.MAX_PRICE_TEXT_LENGTH

# Corrupted multi-byte currency glyphs -> readable replacement
_MOJIBAKE_REPLACEMENTS: dict[str, str] = {
    "Γé╣": "Rs.",  # U+20B9 decoded as cp437
    "â‚¹": "Rs.",  # U+20B9 decoded as cp1252
    "â‚¬": "€",
    "Â£": "£",
}

# Pass 1: properly grouped thousands, e.g. 4,599.00 or 85
_GROUPED_PRICE_RE = re.compile(
    r"(?<![\d.,])(\d{1,3}(?:,\d{3})*(?:\.\d+)?)(?![\d,]|\.\d)"
)

# Pass 2: digits following a currency symbol or code, either separator
_CURRENCY_PRICE_RE = re.compile(
    r"(?:[₹$€£¥]|Rs\.?|USD|EUR|GBP|INR|AED|CAD)\s*(\d[\d.,]*\d|\d)",
    re.IGNORECASE,
)

# Pass 3: any digit run with optional separators
_ANY_DIGITS_RE = re.compile(r"\d+(?:[.,]\d+)*")

_TRAILING_DECIMAL_COMMA_RE = re.compile(r"^\d+,\d{1,2}$")


def clean_mojibake(text: str) -> str:
    """Replace known corrupted currency glyphs with readable markers."""
    cleaned = text
    for corrupted, replacement in _MOJIBAKE_REPLACEMENTS.items():
        if corrupted in cleaned:
            cleaned = cleaned.replace(corrupted, replacement)
            logger.debug(
                "Replaced corrupted currency glyph %r in %r",
                corrupted,
                text,
            )
    return cleaned


def join_price_parts(whole: str, fraction: str) -> str:
    """Combine a price rendered as separate whole and fraction parts.

    ``("4,599.", "00")`` becomes ``"4,599.00"``. A fraction without
    digits is ignored.
    """
    whole = whole.strip().rstrip(".")
    fraction = fraction.strip().lstrip(".")
    if not fraction.isdigit():
        return whole
    return f"{whole}.{fraction}"


def _to_decimal(digits: str) -> Decimal | None:
    """Strip group separators and convert to an exact Decimal."""
    if "," in digits and "." in digits:
        if digits.rfind(",") > digits.rfind("."):
            # 1.234,56
            digits = digits.replace(".", "").replace(",", ".")
        else:
            digits = digits.replace(",", "")
    elif _TRAILING_DECIMAL_COMMA_RE.match(digits):
        digits = digits.replace(",", ".")
    else:
        digits = digits.replace(",", "")

    if digits.count(".") > 1:
        # 1.234.567, every dot groups thousands
        digits = digits.replace(".", "")

    try:
        return Decimal(digits)
    except InvalidOperation:
        logger.debug("Could not convert %r to a decimal", digits)
        return None


def parse_price(
    text: str | None,
    max_length: int = MAX_PRICE_TEXT_LENGTH,
) -> Decimal | None:
    """Extract an exact price from raw element text.

    Returns ``None`` for empty text, text longer than *max_length*
    (usually a whole "related products" block rather than a price)
    or text without any digits.
    """
    if not text:
        return None

    text = text.replace("\xa0", " ").strip()
    if not text:
        return None
    if len(text) > max_length:
        logger.debug(
            "Skipping oversized price text (length %d)", len(text)
        )
        return None

    cleaned = clean_mojibake(text)

    match = _GROUPED_PRICE_RE.search(cleaned)
    if match:
        return _to_decimal(match.group(1))

    match = _CURRENCY_PRICE_RE.search(cleaned)
    if match:
        return _to_decimal(match.group(1))

    match = _ANY_DIGITS_RE.search(cleaned)
    if match:
        return _to_decimal(match.group(0))

    return None
