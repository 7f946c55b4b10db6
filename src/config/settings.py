# src/config/settings.py

"""Central configuration for the price_tracker engine."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    """Read an integer override from ``PRICE_TRACKER_<name>``."""
    raw = os.getenv(f"PRICE_TRACKER_{name}")
    return int(raw) if raw else default


class Settings:
    """Central configuration for the price_tracker engine."""

    # --- Fetching ---
    FETCH_BASE_DELAY_MS: int = _env_int("FETCH_BASE_DELAY_MS", 1000)
    FETCH_JITTER_MS: int = _env_int("FETCH_JITTER_MS", 1000)
    REQUEST_TIMEOUT: int = 15           # Seconds before a request times out
    SHORTENER_HOSTS: list[str] = [
        "amzn.to",
        "amzn.in",
        "amzn.eu",
        "a.co",
        "bit.ly",
        "tinyurl.com",
        "t.co",
        "dl.flipkart.com",
    ]
    # Statuses that get one cloudscraper retry before giving up
    CHALLENGE_STATUSES: frozenset[int] = frozenset({403, 503})

    # --- Scheduling ---
    TICK_PERIOD_MS: int = _env_int("TICK_PERIOD_MS", 60_000)
    NOTIFICATION_COOLDOWN_HOURS: int = _env_int(
        "NOTIFICATION_COOLDOWN_HOURS", 24
    )
    MIN_CHECK_INTERVAL_MINUTES: int = _env_int(
        "MIN_CHECK_INTERVAL_MINUTES", 5
    )
    DEFAULT_CHECK_INTERVAL_MINUTES: int = 60

    # --- Extraction ---
    MAX_PRICE_TEXT_LENGTH: int = 100
    BLOCKED_TITLE_PHRASES: list[str] = [
        "robot check",
        "captcha",
        "enter the characters",
        "just a moment",
        "access denied",
    ]
    BLOCKED_PROMPT_PHRASES: list[str] = [
        "enter the characters",
        "type the characters",
        "not a robot",
    ]

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    USER_AGENTS: list[str] = [
        (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/131.0.0.0 Safari/537.36"
        ),
        (
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/130.0.0.0 Safari/537.36"
        ),
        (
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
            "AppleWebKit/605.1.15 (KHTML, like Gecko) "
            "Version/17.2 Safari/605.1.15"
        ),
        (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) "
            "Gecko/20100101 Firefox/121.0"
        ),
        (
            "Mozilla/5.0 (X11; Linux x86_64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/131.0.0.0 Safari/537.36"
        ),
    ]
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/avif,"
            "image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "en-US,en;q=0.9",
        "Referer": "https://www.google.com/",
        "Connection": "keep-alive",
        "DNT": "1",
        "Upgrade-Insecure-Requests": "1",
        "Sec-Fetch-Dest": "document",
        "Sec-Fetch-Mode": "navigate",
        "Sec-Fetch-Site": "cross-site",
        "Sec-Fetch-User": "?1",
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
    }

    # --- Notifications ---
    WEBHOOK_URL: str = os.getenv("PRICE_TRACKER_WEBHOOK_URL", "")
    WEBHOOK_TIMEOUT: int = 5
    WEBHOOK_RETRY_DELAYS: list[float] = [1.0, 3.0, 9.0]

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    SELECTORS_PATH: Path = BASE_DIR / "src" / "config" / "selectors.json"
    DB_PATH: Path = Path(
        os.getenv(
            "PRICE_TRACKER_DB_PATH",
            str(BASE_DIR / "data" / "price_tracker.db"),
        )
    )
    LOGS_DIR: Path = BASE_DIR / "logs"

    # --- Strategies (registration order matters) ---
    AVAILABLE_STRATEGIES: list[dict[str, str]] = [
        {
            "id": "amazon",
            "label": "Amazon",
            "strategy": "src.scrapers.amazon_strategy.AmazonStrategy",
        },
        {
            "id": "newegg",
            "label": "Newegg",
            "strategy": "src.scrapers.newegg_strategy.NeweggStrategy",
        },
    ]
    FALLBACK_STRATEGY: str = (
        "src.scrapers.generic_strategy.GenericStrategy"
    )
