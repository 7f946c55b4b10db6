# src/services/scrape_orchestrator.py

"""Public scraping entry point: fetch a page, pick a strategy, extract."""

import logging
from decimal import Decimal

from src.models.extraction_result import ExtractionResult
from src.scrapers.base_strategy import BaseStrategy
from src.scrapers.document_fetcher import DocumentFetcher
from src.scrapers.errors import (
    BlockedPageError,
    FetchTimeoutError,
    HttpStatusError,
    MalformedInputError,
    UnresolvableHostError,
)
from src.scrapers.registry import StrategyRegistry, build_fallback_strategy

logger = logging.getLogger("price_tracker.orchestrator")


class ScrapeOrchestrator:
    """Combines the fetcher and the strategy registry.

    Transport and extraction failures never escape: they are logged
    and turned into ``None`` / an empty result so a flaky retailer
    cannot destabilise the scheduler.  Only
    :class:`~src.scrapers.errors.MalformedInputError` propagates.
    """

    def __init__(
        self,
        fetcher: DocumentFetcher,
        registry: StrategyRegistry,
        fallback: BaseStrategy | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.registry = registry
        self.fallback = fallback or build_fallback_strategy()

    def resolve_strategy(self, url: str) -> BaseStrategy:
        """Registry match for *url*, else the generic fallback."""
        strategy = self.registry.find_strategy_for(url)
        if strategy is None:
            logger.debug(
                "Using generic extraction for URL: %s", url
            )
            return self.fallback
        return strategy

    def scrape_price(self, url: str) -> Decimal | None:
        """Return the current price at *url*, or None if not found."""
        try:
            target = self.fetcher.expand_url(url)
            doc = self.fetcher.fetch(target)
            strategy = self.resolve_strategy(target)
            logger.debug(
                "Using %s for URL: %s", type(strategy).__name__, target
            )
            price = strategy.extract_price(doc)
        except MalformedInputError:
            raise
        except Exception as exc:
            self._log_scraping_error("price", url, exc)
            return None

        if price is None:
            logger.info("No price found for URL: %s", url)
        return price

    def scrape_details(self, url: str) -> ExtractionResult:
        """Return name, image and price at *url* (empty on failure)."""
        try:
            target = self.fetcher.expand_url(url)
            doc = self.fetcher.fetch(target)
            strategy = self.resolve_strategy(target)
            result = strategy.extract_all(doc)
        except MalformedInputError:
            raise
        except Exception as exc:
            self._log_scraping_error("product details", url, exc)
            return ExtractionResult.empty()

        if result.is_empty:
            logger.info("No product details found for URL: %s", url)
        return result

    @staticmethod
    def _log_scraping_error(kind: str, url: str, exc: Exception) -> None:
        if isinstance(exc, HttpStatusError):
            logger.warning(
                "HTTP %d error while scraping %s from URL: %s",
                exc.status_code,
                kind,
                url,
            )
        elif isinstance(exc, FetchTimeoutError):
            logger.warning("Timeout while scraping %s from URL: %s", kind, url)
        elif isinstance(exc, UnresolvableHostError):
            logger.warning(
                "Unknown host while scraping %s from URL: %s", kind, url
            )
        elif isinstance(exc, BlockedPageError):
            logger.warning(
                "Verification page while scraping %s from URL: %s",
                kind,
                url,
            )
        else:
            logger.warning(
                "Error while scraping %s from URL: %s",
                kind,
                url,
                exc_info=exc,
            )
