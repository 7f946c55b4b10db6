# tests/test_registry.py

"""Tests for strategy registration and URL resolution."""

import unittest

from src.scrapers.amazon_strategy import AmazonStrategy
from src.scrapers.base_strategy import BaseStrategy
from src.scrapers.generic_strategy import GenericStrategy
from src.scrapers.newegg_strategy import NeweggStrategy
from src.scrapers.registry import (
    StrategyRegistry,
    build_default_registry,
    build_fallback_strategy,
    load_strategy_class,
)


class _HostStrategy(BaseStrategy):
    """Claims URLs containing a fixed marker."""

    def __init__(self, marker: str) -> None:
        super().__init__(selectors={})
        self.marker = marker

    def can_handle(self, url: str) -> bool:
        return self.marker in url


class TestStrategyRegistry(unittest.TestCase):
    """Linear can_handle scan over registered strategies."""

    def test_matching_strategy_selected_after_non_matching(self) -> None:
        first = _HostStrategy("shop-b")
        second = _HostStrategy("shop-a")
        registry = StrategyRegistry([first, second])
        self.assertIs(
            registry.find_strategy_for("https://shop-a.example/p/1"),
            second,
        )

    def test_first_registered_wins_on_tie(self) -> None:
        first = _HostStrategy("shop")
        second = _HostStrategy("shop")
        registry = StrategyRegistry([first, second])
        self.assertIs(
            registry.find_strategy_for("https://shop.example/p/1"), first
        )

    def test_no_match_returns_none(self) -> None:
        registry = StrategyRegistry([_HostStrategy("shop-a")])
        self.assertIsNone(
            registry.find_strategy_for("https://elsewhere.example/")
        )

    def test_empty_url_returns_none(self) -> None:
        registry = StrategyRegistry([_HostStrategy("")])
        self.assertIsNone(registry.find_strategy_for(""))
        self.assertIsNone(registry.find_strategy_for(None))
        self.assertEqual(registry.strategies_for(None), [])

    def test_strategies_for_lists_every_claimant(self) -> None:
        a = _HostStrategy("shop")
        b = _HostStrategy("nothing")
        c = _HostStrategy("example")
        registry = StrategyRegistry([a, b, c])
        self.assertEqual(
            registry.strategies_for("https://shop.example/"), [a, c]
        )

    def test_registry_is_immutable(self) -> None:
        source = [_HostStrategy("shop")]
        registry = StrategyRegistry(source)
        source.append(_HostStrategy("other"))
        self.assertEqual(len(registry), 1)
        self.assertIsInstance(registry.strategies, tuple)


class TestDefaultRegistry(unittest.TestCase):
    """Strategies built from Settings."""

    def test_default_order(self) -> None:
        registry = build_default_registry()
        self.assertEqual(
            [type(s) for s in registry.strategies],
            [AmazonStrategy, NeweggStrategy],
        )

    def test_resolves_known_retailers(self) -> None:
        registry = build_default_registry()
        self.assertIsInstance(
            registry.find_strategy_for("https://www.amazon.in/dp/B0C1"),
            AmazonStrategy,
        )
        self.assertIsInstance(
            registry.find_strategy_for("https://www.newegg.com/p/N82E"),
            NeweggStrategy,
        )
        self.assertIsNone(
            registry.find_strategy_for("https://shop.example/p/1")
        )

    def test_fallback_is_generic(self) -> None:
        self.assertIsInstance(build_fallback_strategy(), GenericStrategy)

    def test_load_strategy_class(self) -> None:
        cls = load_strategy_class(
            "src.scrapers.newegg_strategy.NeweggStrategy"
        )
        self.assertIs(cls, NeweggStrategy)


if __name__ == "__main__":
    unittest.main()
