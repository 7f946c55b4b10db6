# src/models/subscription.py

"""One user's interest in a tracked target."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass
class Subscription:
    """A user's desired price and alert preferences for a target."""

    id: int
    target_id: int
    user_id: str
    desired_price: Decimal
    notification_enabled: bool = True
    check_interval_minutes: int = 60
    last_notified_at: datetime | None = None
