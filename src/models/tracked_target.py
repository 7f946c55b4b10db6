# src/models/tracked_target.py

"""A product URL under price observation, shared by every subscriber."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass
class TrackedTarget:
    """A unique product page whose price the scheduler re-checks."""

    id: int
    url: str
    name: str = ""
    image_url: str = ""
    last_price: Decimal | None = None
    last_checked_at: datetime | None = None
