# src/models/extraction_result.py

"""Transient result of extracting product details from a page."""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class ExtractionResult:
    """Name, image and price pulled from a product page.

    A result with every field absent is the distinguishable
    "nothing found" value, not an error.
    """

    name: str | None = None
    image_url: str | None = None
    price: Decimal | None = None

    @classmethod
    def empty(cls) -> "ExtractionResult":
        """Return the all-absent result."""
        return cls()

    @property
    def is_empty(self) -> bool:
        """True when no field could be extracted."""
        return (
            self.name is None
            and self.image_url is None
            and self.price is None
        )
