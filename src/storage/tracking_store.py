# src/storage/tracking_store.py

"""Storage contract for the scheduler plus a SQLite implementation."""

import logging
import re
import sqlite3
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Protocol
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from src.config.settings import Settings
from src.models.price_observation import PriceObservation
from src.models.subscription import Subscription
from src.models.tracked_target import TrackedTarget

logger = logging.getLogger("price_tracker.storage")

# Amazon / affiliate tracking params that vary per session
_TRACKING_PARAMS: frozenset[str] = frozenset({
    "ref", "ref_", "dib", "dib_tag", "qid", "sr", "spc",
    "sp_csd", "xpid", "aref", "sp_cr", "psc", "smid",
    "keywords", "pd_rd_i", "pd_rd_r", "pd_rd_w",
    "pd_rd_wg", "pf_rd_i", "pf_rd_m", "pf_rd_p",
    "pf_rd_r", "pf_rd_s", "pf_rd_t", "th", "tag",
    "linkcode", "utm_source", "utm_medium", "utm_campaign",
    "utm_term", "utm_content",
})

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS targets (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    url             TEXT    NOT NULL UNIQUE,
    name            TEXT    NOT NULL DEFAULT '',
    image_url       TEXT    NOT NULL DEFAULT '',
    last_price      TEXT,
    last_checked_at TEXT,
    created_at      TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS subscriptions (
    id                     INTEGER PRIMARY KEY AUTOINCREMENT,
    target_id              INTEGER NOT NULL
                           REFERENCES targets(id) ON DELETE CASCADE,
    user_id                TEXT    NOT NULL,
    desired_price          TEXT    NOT NULL,
    notification_enabled   INTEGER NOT NULL DEFAULT 1,
    check_interval_minutes INTEGER NOT NULL DEFAULT 60,
    last_notified_at       TEXT,
    created_at             TEXT    NOT NULL,
    UNIQUE (user_id, target_id)
);

CREATE TABLE IF NOT EXISTS price_observations (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    target_id   INTEGER NOT NULL
                REFERENCES targets(id) ON DELETE CASCADE,
    price       TEXT    NOT NULL,
    observed_at TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_observations_target_date
    ON price_observations(target_id, observed_at);
"""

_TARGET_COLUMNS = (
    "id, url, name, image_url, last_price, last_checked_at"
)
_SUBSCRIPTION_COLUMNS = (
    "id, target_id, user_id, desired_price, notification_enabled, "
    "check_interval_minutes, last_notified_at"
)


def normalize_url(raw_url: str) -> str:
    """Strip tracking/session query params to get a stable product URL."""
    parsed = urlparse(raw_url.strip())

    # Amazon path-based tracking (e.g. /ref=sr_1_243)
    path = re.sub(r"/ref=[^/]*", "", parsed.path)

    params = parse_qs(parsed.query, keep_blank_values=True)
    cleaned = {
        k: v for k, v in params.items()
        if k.lower() not in _TRACKING_PARAMS
    }
    new_query = urlencode(cleaned, doseq=True) if cleaned else ""
    return urlunparse((
        parsed.scheme,
        parsed.netloc.lower(),
        path,
        parsed.params,
        new_query,
        "",  # drop fragment
    ))


def _to_text(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _to_datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class TrackingStore(Protocol):
    """What the price-check scheduler needs from persistence."""

    def list_targets(self) -> list[TrackedTarget]: ...

    def list_subscriptions(self, target_id: int) -> list[Subscription]: ...

    def list_notifiable_subscriptions(
        self, target_id: int,
    ) -> list[Subscription]: ...

    def save_target(self, target: TrackedTarget) -> None: ...

    def save_subscription(self, subscription: Subscription) -> None: ...

    def append_observation(self, observation: PriceObservation) -> None: ...


class SqliteTrackingStore:
    """SQLite-backed store for targets, subscriptions and price history.

    Prices are stored as TEXT so they round-trip as exact decimals.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        path = db_path or Settings.DB_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(
            str(path), check_same_thread=False,
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.executescript(_SCHEMA)
        logger.debug("SqliteTrackingStore opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # ── Row mapping ──────────────────────────────────────

    @staticmethod
    def _target_from_row(row: tuple) -> TrackedTarget:
        return TrackedTarget(
            id=row[0],
            url=row[1],
            name=row[2],
            image_url=row[3],
            last_price=Decimal(row[4]) if row[4] is not None else None,
            last_checked_at=_to_datetime(row[5]),
        )

    @staticmethod
    def _subscription_from_row(row: tuple) -> Subscription:
        return Subscription(
            id=row[0],
            target_id=row[1],
            user_id=row[2],
            desired_price=Decimal(row[3]),
            notification_enabled=bool(row[4]),
            check_interval_minutes=row[5],
            last_notified_at=_to_datetime(row[6]),
        )

    # ── Scheduler contract ───────────────────────────────

    def list_targets(self) -> list[TrackedTarget]:
        """Return every tracked target, oldest first."""
        rows = self._conn.execute(
            f"SELECT {_TARGET_COLUMNS} FROM targets ORDER BY id",
        ).fetchall()
        return [self._target_from_row(r) for r in rows]

    def list_subscriptions(self, target_id: int) -> list[Subscription]:
        """Return all subscriptions on a target."""
        rows = self._conn.execute(
            f"SELECT {_SUBSCRIPTION_COLUMNS} FROM subscriptions "
            "WHERE target_id = ? ORDER BY id",
            (target_id,),
        ).fetchall()
        return [self._subscription_from_row(r) for r in rows]

    def list_notifiable_subscriptions(
        self, target_id: int,
    ) -> list[Subscription]:
        """Return subscriptions on a target with notifications enabled."""
        rows = self._conn.execute(
            f"SELECT {_SUBSCRIPTION_COLUMNS} FROM subscriptions "
            "WHERE target_id = ? AND notification_enabled = 1 "
            "ORDER BY id",
            (target_id,),
        ).fetchall()
        return [self._subscription_from_row(r) for r in rows]

    def save_target(self, target: TrackedTarget) -> None:
        """Persist the mutable fields of an existing target."""
        self._conn.execute(
            "UPDATE targets SET name = ?, image_url = ?, "
            "last_price = ?, last_checked_at = ? WHERE id = ?",
            (
                target.name,
                target.image_url,
                str(target.last_price)
                if target.last_price is not None else None,
                _to_text(target.last_checked_at),
                target.id,
            ),
        )
        self._conn.commit()

    def save_subscription(self, subscription: Subscription) -> None:
        """Persist the mutable fields of an existing subscription."""
        self._conn.execute(
            "UPDATE subscriptions SET desired_price = ?, "
            "notification_enabled = ?, check_interval_minutes = ?, "
            "last_notified_at = ? WHERE id = ?",
            (
                str(subscription.desired_price),
                int(subscription.notification_enabled),
                subscription.check_interval_minutes,
                _to_text(subscription.last_notified_at),
                subscription.id,
            ),
        )
        self._conn.commit()

    def append_observation(self, observation: PriceObservation) -> None:
        """Append an immutable price observation."""
        self._conn.execute(
            "INSERT INTO price_observations "
            "(target_id, price, observed_at) VALUES (?, ?, ?)",
            (
                observation.target_id,
                str(observation.price),
                _to_text(observation.observed_at),
            ),
        )
        self._conn.commit()

    # ── Tracking management ──────────────────────────────

    def add_target(
        self,
        url: str,
        name: str = "",
        image_url: str = "",
        last_price: Decimal | None = None,
    ) -> TrackedTarget:
        """Start tracking *url* (idempotent on its normalised form)."""
        canonical = normalize_url(url)
        now = _to_text(datetime.now(timezone.utc))
        self._conn.execute(
            "INSERT INTO targets "
            "(url, name, image_url, last_price, created_at) "
            "VALUES (?, ?, ?, ?, ?) ON CONFLICT(url) DO NOTHING",
            (
                canonical,
                name,
                image_url,
                str(last_price) if last_price is not None else None,
                now,
            ),
        )
        self._conn.commit()
        target = self.get_target_by_url(canonical)
        if target is None:
            raise RuntimeError(f"Target vanished after insert: {canonical}")
        return target

    def get_target_by_url(self, url: str) -> TrackedTarget | None:
        """Look up a target by (normalised) URL."""
        row = self._conn.execute(
            f"SELECT {_TARGET_COLUMNS} FROM targets WHERE url = ?",
            (normalize_url(url),),
        ).fetchone()
        return self._target_from_row(row) if row else None

    def add_subscription(
        self,
        target_id: int,
        user_id: str,
        desired_price: Decimal,
        check_interval_minutes: int | None = None,
        notification_enabled: bool = True,
    ) -> Subscription:
        """Subscribe *user_id* to a target (updates an existing one).

        The check interval is raised to
        ``Settings.MIN_CHECK_INTERVAL_MINUTES`` when below it.
        """
        interval = max(
            Settings.MIN_CHECK_INTERVAL_MINUTES,
            check_interval_minutes
            or Settings.DEFAULT_CHECK_INTERVAL_MINUTES,
        )
        now = _to_text(datetime.now(timezone.utc))
        self._conn.execute(
            "INSERT INTO subscriptions "
            "(target_id, user_id, desired_price, notification_enabled, "
            " check_interval_minutes, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(user_id, target_id) DO UPDATE SET "
            "desired_price = excluded.desired_price, "
            "notification_enabled = excluded.notification_enabled, "
            "check_interval_minutes = excluded.check_interval_minutes",
            (
                target_id,
                user_id,
                str(desired_price),
                int(notification_enabled),
                interval,
                now,
            ),
        )
        self._conn.commit()
        row = self._conn.execute(
            f"SELECT {_SUBSCRIPTION_COLUMNS} FROM subscriptions "
            "WHERE user_id = ? AND target_id = ?",
            (user_id, target_id),
        ).fetchone()
        return self._subscription_from_row(row)

    def get_price_history(
        self, target_id: int,
    ) -> list[PriceObservation]:
        """Return all observations for a target, newest first."""
        rows = self._conn.execute(
            "SELECT target_id, price, observed_at "
            "FROM price_observations WHERE target_id = ? "
            "ORDER BY observed_at DESC, id DESC",
            (target_id,),
        ).fetchall()
        return [
            PriceObservation(
                target_id=r[0],
                price=Decimal(r[1]),
                observed_at=datetime.fromisoformat(r[2]),
            )
            for r in rows
        ]
