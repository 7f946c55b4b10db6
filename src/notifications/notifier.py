# src/notifications/notifier.py

"""Price-drop alert delivery."""

import logging
import threading
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Protocol

from curl_cffi import requests as curl_requests
from curl_cffi.requests.exceptions import RequestException

from src.config.settings import Settings
from src.models.subscription import Subscription
from src.models.tracked_target import TrackedTarget

logger = logging.getLogger("price_tracker.notifier")


class NotificationSink(Protocol):
    """Anything that can deliver a price alert to a subscriber."""

    def send_price_alert(
        self,
        subscription: Subscription,
        target: TrackedTarget,
        current_price: Decimal,
    ) -> None: ...


def build_alert_payload(
    subscription: Subscription,
    target: TrackedTarget,
    current_price: Decimal,
) -> dict[str, Any]:
    """JSON-safe description of a price drop."""
    return {
        "event": "price_drop",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "data": {
            "user_id": subscription.user_id,
            "subscription_id": subscription.id,
            "target_id": target.id,
            "url": target.url,
            "name": target.name,
            "current_price": str(current_price),
            "desired_price": str(subscription.desired_price),
        },
    }


class LogNotificationSink:
    """Writes alerts to the application log."""

    def send_price_alert(
        self,
        subscription: Subscription,
        target: TrackedTarget,
        current_price: Decimal,
    ) -> None:
        logger.warning(
            "Price alert for %s: %s is now %s (desired %s) %s",
            subscription.user_id,
            target.name or "product",
            current_price,
            subscription.desired_price,
            target.url,
        )


class NotificationError(Exception):
    """An alert could not be delivered."""


class WebhookNotificationSink:
    """POSTs each alert as JSON, retrying on transport errors.

    Retry pauses wait on *cancel_event*, so setting it abandons the
    remaining attempts. An alert that is never acknowledged raises
    :class:`NotificationError`.
    """

    def __init__(
        self,
        url: str,
        timeout: int = Settings.WEBHOOK_TIMEOUT,
        retry_delays: list[float] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self.retry_delays = (
            list(Settings.WEBHOOK_RETRY_DELAYS)
            if retry_delays is None else retry_delays
        )
        self.cancel_event = cancel_event or threading.Event()
        self.session = curl_requests.Session()

    def send_price_alert(
        self,
        subscription: Subscription,
        target: TrackedTarget,
        current_price: Decimal,
    ) -> None:
        payload = build_alert_payload(subscription, target, current_price)
        if not self.post(payload):
            raise NotificationError(
                f"Webhook did not accept alert for subscription "
                f"{subscription.id}"
            )

    def post(self, payload: dict[str, Any]) -> bool:
        """Send *payload*. Returns True once a 2xx response is received."""
        attempts = len(self.retry_delays) + 1
        for attempt in range(attempts):
            try:
                resp = self.session.post(
                    self.url, json=payload, timeout=self.timeout,
                )
                if 200 <= resp.status_code < 300:
                    return True
                logger.warning(
                    "Webhook answered HTTP %d (attempt %d/%d)",
                    resp.status_code,
                    attempt + 1,
                    attempts,
                )
            except RequestException as exc:
                logger.warning(
                    "Webhook request failed (attempt %d/%d): %s",
                    attempt + 1,
                    attempts,
                    exc,
                )
            if attempt < len(self.retry_delays):
                if self.cancel_event.wait(self.retry_delays[attempt]):
                    logger.info("Webhook retries cancelled")
                    return False

        logger.error("Giving up on webhook delivery to %s", self.url)
        return False


def build_notifier(
    webhook_url: str | None = None,
    cancel_event: threading.Event | None = None,
) -> NotificationSink:
    """Webhook sink when a URL is configured, otherwise the log sink."""
    url = webhook_url if webhook_url is not None else Settings.WEBHOOK_URL
    if url:
        return WebhookNotificationSink(url, cancel_event=cancel_event)
    return LogNotificationSink()
