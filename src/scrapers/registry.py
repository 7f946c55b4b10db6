# src/scrapers/registry.py

"""Ordered, immutable collection of extraction strategies."""

import importlib
import logging
from collections.abc import Iterable
from typing import Any

from src.config.settings import Settings
from src.scrapers.base_strategy import BaseStrategy

logger = logging.getLogger("price_tracker.registry")


def load_strategy_class(dotted_path: str) -> type[Any]:
    """Dynamically import a strategy class from its dotted module path."""
    module_path, class_name = dotted_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls: type[Any] = getattr(module, class_name)
    return cls


class StrategyRegistry:
    """Strategies in registration order, resolved by a linear scan.

    The registry is built once and passed to the fetcher, the
    orchestrator and the scheduler; it cannot be mutated afterwards.
    """

    def __init__(self, strategies: Iterable[BaseStrategy]) -> None:
        self._strategies: tuple[BaseStrategy, ...] = tuple(strategies)
        for strategy in self._strategies:
            logger.info(
                "Registered extraction strategy: %s",
                type(strategy).__name__,
            )

    @property
    def strategies(self) -> tuple[BaseStrategy, ...]:
        """Registered strategies, in order."""
        return self._strategies

    def __len__(self) -> int:
        return len(self._strategies)

    def find_strategy_for(self, url: str | None) -> BaseStrategy | None:
        """Return the first strategy whose ``can_handle`` accepts *url*."""
        if not url:
            return None
        for strategy in self._strategies:
            if strategy.can_handle(url):
                logger.debug(
                    "Found strategy %s for URL: %s",
                    type(strategy).__name__,
                    url,
                )
                return strategy
        logger.debug("No specific strategy found for URL: %s", url)
        return None

    def strategies_for(self, url: str | None) -> list[BaseStrategy]:
        """Every strategy that claims *url* (used for blocked-page checks)."""
        if not url:
            return []
        return [s for s in self._strategies if s.can_handle(url)]


def build_default_registry() -> StrategyRegistry:
    """Instantiate every strategy in ``Settings.AVAILABLE_STRATEGIES``."""
    strategies: list[BaseStrategy] = []
    for entry in Settings.AVAILABLE_STRATEGIES:
        cls = load_strategy_class(entry["strategy"])
        strategies.append(cls())
    return StrategyRegistry(strategies)


def build_fallback_strategy() -> BaseStrategy:
    """Instantiate the generic fallback strategy."""
    cls = load_strategy_class(Settings.FALLBACK_STRATEGY)
    strategy: BaseStrategy = cls()
    return strategy
