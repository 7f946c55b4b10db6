# src/models/price_observation.py

"""Immutable price observation for price history tracking."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class PriceObservation:
    """A single recorded price change for a target at a point in time."""

    target_id: int
    price: Decimal
    observed_at: datetime
