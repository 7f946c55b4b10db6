# src/services/price_check_scheduler.py

"""Periodic price re-checks with per-target cadence and drop alerts."""

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

from apscheduler.schedulers.background import (  # type: ignore[import-untyped]
    BackgroundScheduler,
)

from src.config.settings import Settings
from src.models.price_observation import PriceObservation
from src.models.subscription import Subscription
from src.models.tracked_target import TrackedTarget
from src.notifications.notifier import NotificationSink
from src.services.scrape_orchestrator import ScrapeOrchestrator
from src.storage.tracking_store import TrackingStore

logger = logging.getLogger("price_tracker.scheduler")

_JOB_ID = "price_check_tick"


@dataclass
class TickSummary:
    """Counters describing one pass over the tracked targets."""

    checked: int = 0
    skipped: int = 0
    failed: int = 0
    changed: int = 0
    notified: int = 0
    cancelled: bool = False
    skipped_overlap: bool = False


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def effective_check_interval(
    subscriptions: Iterable[Subscription],
    floor_minutes: int = Settings.MIN_CHECK_INTERVAL_MINUTES,
) -> timedelta:
    """Tightest requested cadence, never below *floor_minutes*.

    With no subscriptions the default interval applies.
    """
    intervals = [s.check_interval_minutes for s in subscriptions]
    tightest = (
        min(intervals) if intervals
        else Settings.DEFAULT_CHECK_INTERVAL_MINUTES
    )
    return timedelta(minutes=max(floor_minutes, tightest))


def notification_due(
    last_notified_at: datetime | None,
    now: datetime,
    cooldown: timedelta,
) -> bool:
    """True if a subscriber may be alerted again at *now*."""
    if last_notified_at is None:
        return True
    return (now - last_notified_at) > cooldown


class PriceCheckScheduler:
    """Re-checks tracked targets and alerts subscribers on price drops.

    Targets are processed one at a time with a fixed pause between
    them.  Ticks never overlap: a tick that finds another still
    running returns at once with ``skipped_overlap`` set.
    """

    def __init__(
        self,
        store: TrackingStore,
        orchestrator: ScrapeOrchestrator,
        notifier: NotificationSink,
        *,
        check_floor_minutes: int | None = None,
        cooldown: timedelta | None = None,
        inter_target_delay: float | None = None,
        tick_period_ms: int | None = None,
        clock: Callable[[], datetime] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.store = store
        self.orchestrator = orchestrator
        self.notifier = notifier
        self.check_floor_minutes = (
            check_floor_minutes
            if check_floor_minutes is not None
            else Settings.MIN_CHECK_INTERVAL_MINUTES
        )
        self.cooldown = cooldown or timedelta(
            hours=Settings.NOTIFICATION_COOLDOWN_HOURS
        )
        self.inter_target_delay = (
            inter_target_delay
            if inter_target_delay is not None
            else Settings.FETCH_BASE_DELAY_MS / 1000
        )
        self.tick_period_ms = tick_period_ms or Settings.TICK_PERIOD_MS
        self._clock = clock or _utc_now
        self._run_lock = threading.Lock()
        self._cancel_event = cancel_event or threading.Event()
        self._scheduler: Any = None

    # ── Tick ─────────────────────────────────────────────

    def run_tick(
        self, cancel_event: threading.Event | None = None,
    ) -> TickSummary:
        """Process every due target once and return the counters."""
        summary = TickSummary()
        if not self._run_lock.acquire(blocking=False):
            logger.warning("Previous price check still running, skipping")
            summary.skipped_overlap = True
            return summary

        cancel = cancel_event or self._cancel_event
        try:
            targets = self.store.list_targets()
            logger.info("Price check tick over %d target(s)", len(targets))
            processed_any = False
            for target in targets:
                if cancel.is_set():
                    summary.cancelled = True
                    break
                try:
                    fetched = self._process_target(target, summary, cancel)
                except Exception:
                    summary.failed += 1
                    logger.error(
                        "Price check failed for target %s (%s)",
                        target.id,
                        target.url,
                        exc_info=True,
                    )
                    fetched = True

                if fetched:
                    processed_any = True
                    if cancel.wait(self.inter_target_delay):
                        summary.cancelled = True
                        break
            if summary.cancelled:
                logger.info("Price check tick cancelled")
            elif not processed_any:
                logger.debug("No targets were due this tick")
        finally:
            self._run_lock.release()

        logger.info(
            "Tick done: checked=%d skipped=%d failed=%d changed=%d "
            "notified=%d",
            summary.checked,
            summary.skipped,
            summary.failed,
            summary.changed,
            summary.notified,
        )
        return summary

    def _process_target(
        self,
        target: TrackedTarget,
        summary: TickSummary,
        cancel: threading.Event,
    ) -> bool:
        """Check one target. Returns True if a fetch was attempted."""
        subscriptions = self.store.list_subscriptions(target.id)
        if not subscriptions:
            logger.debug("Target %s has no subscribers, skipping", target.id)
            summary.skipped += 1
            return False

        now = self._clock()
        interval = effective_check_interval(
            subscriptions, self.check_floor_minutes
        )
        if (
            target.last_checked_at is not None
            and now - target.last_checked_at < interval
        ):
            summary.skipped += 1
            return False

        price = self.orchestrator.scrape_price(target.url)
        target.last_checked_at = now
        if price is None:
            logger.info(
                "No price for target %s this tick, keeping %s",
                target.id,
                target.last_price,
            )
            self.store.save_target(target)
            summary.failed += 1
            return True

        summary.checked += 1
        old_price = target.last_price
        if old_price is not None and price == old_price:
            self.store.save_target(target)
            return True

        # History first: a failed append must leave last_price unchanged
        self.store.append_observation(
            PriceObservation(
                target_id=target.id, price=price, observed_at=now,
            )
        )
        target.last_price = price
        self.store.save_target(target)
        summary.changed += 1
        logger.info(
            "Price for target %s changed %s -> %s",
            target.id,
            old_price,
            price,
        )

        if old_price is not None and price < old_price:
            summary.notified += self._notify(target, price, now, cancel)
        return True

    def _notify(
        self,
        target: TrackedTarget,
        price: Decimal,
        now: datetime,
        cancel: threading.Event,
    ) -> int:
        """Alert every eligible subscriber of a drop. Returns count sent."""
        sent = 0
        for subscription in self.store.list_notifiable_subscriptions(
            target.id
        ):
            if cancel.is_set():
                break
            if price > subscription.desired_price:
                continue
            if not notification_due(
                subscription.last_notified_at, now, self.cooldown
            ):
                logger.debug(
                    "Subscription %s still in cooldown", subscription.id
                )
                continue
            try:
                self.notifier.send_price_alert(subscription, target, price)
            except Exception:
                logger.error(
                    "Notification failed for subscription %s",
                    subscription.id,
                    exc_info=True,
                )
                continue
            subscription.last_notified_at = now
            self.store.save_subscription(subscription)
            sent += 1
        return sent

    # ── Background scheduling ────────────────────────────

    def start(self) -> None:
        """Run ticks on a background thread every tick period."""
        if self._scheduler is not None:
            return
        self._cancel_event.clear()
        scheduler = BackgroundScheduler(timezone="UTC")
        scheduler.add_job(
            self.run_tick,
            "interval",
            seconds=self.tick_period_ms / 1000,
            id=_JOB_ID,
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(timezone.utc),
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            "Price check scheduler started (every %dms)",
            self.tick_period_ms,
        )

    def shutdown(self, wait: bool = True) -> None:
        """Cancel any in-flight tick and stop the background scheduler."""
        self._cancel_event.set()
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=wait)
        self._scheduler = None
        logger.info("Price check scheduler stopped")

    @property
    def running(self) -> bool:
        """True while the background scheduler is active."""
        return self._scheduler is not None
