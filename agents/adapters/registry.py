"""
Adapter Registry

Registration and category-based selection of data source adapters.

Supports:
- Several adapters per category, ordered by priority (lower first)
- Construction from an AgentContext so keys and fetch settings come
  from configuration
- Listing for the CLI `adapters` command
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional, TYPE_CHECKING

from core.schemas import Category

from .base import BaseAdapter
from .binance import BinanceAdapter
from .coingecko import CoinGeckoAdapter
from .news import NewsAdapter
from .sports import SportsAdapter
from .weather import WeatherAdapter

if TYPE_CHECKING:
    from agents.context import AgentContext


@dataclass
class AdapterEntry:
    """
    Entry in the adapter registry.
    """
    name: str
    factory: Callable[["AgentContext"], BaseAdapter]
    categories: tuple[Category, ...]
    priority: int = 1
    metadata: dict[str, Any] = field(default_factory=dict)

    def covers(self, category: Category) -> bool:
        return category in self.categories


class AdapterRegistry:
    """
    Registry for adapter implementations.

    Usage:
        registry = AdapterRegistry()
        registry.register_class(CoinGeckoAdapter)

        adapters = registry.create_for_category(Category.CRYPTO, ctx)
    """

    def __init__(self) -> None:
        self._entries: dict[str, AdapterEntry] = {}

    def register(
        self,
        name: str,
        factory: Callable[["AgentContext"], BaseAdapter],
        categories: tuple[Category, ...],
        *,
        priority: int = 1,
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Register an adapter factory.

        Args:
            name: Unique adapter name (replaces an existing entry)
            factory: Function creating the adapter from a context
            categories: Market categories the adapter covers
            priority: Selection order, lower = preferred
            metadata: Additional metadata for listings
        """
        self._entries[name] = AdapterEntry(
            name=name,
            factory=factory,
            categories=tuple(categories),
            priority=priority,
            metadata=metadata or {},
        )

    def register_class(
        self,
        adapter_cls: type[BaseAdapter],
        factory: Optional[Callable[["AgentContext"], BaseAdapter]] = None,
        **metadata: Any,
    ) -> None:
        """Register an adapter class using its own name, categories and priority."""
        self.register(
            adapter_cls._name,
            factory or adapter_cls,
            adapter_cls.categories,
            priority=adapter_cls.priority,
            metadata=metadata,
        )

    def unregister(self, name: str) -> bool:
        return self._entries.pop(name, None) is not None

    def entries_for(self, category: Optional[Category] = None) -> list[AdapterEntry]:
        """Entries covering `category` (all when None), sorted by priority then name."""
        entries = [
            e for e in self._entries.values()
            if category is None or e.covers(category)
        ]
        return sorted(entries, key=lambda e: (e.priority, e.name))

    def create_for_category(self, category: Category, ctx: "AgentContext") -> list[BaseAdapter]:
        return [entry.factory(ctx) for entry in self.entries_for(category)]

    def create(self, name: str, ctx: "AgentContext") -> BaseAdapter:
        entry = self._entries.get(name)
        if entry is None:
            raise ValueError(f"Adapter not found: {name}")
        return entry.factory(ctx)

    def list_adapters(self, category: Optional[Category] = None) -> list[dict[str, Any]]:
        return [
            {
                "name": e.name,
                "categories": [c.value for c in e.categories],
                "priority": e.priority,
                **e.metadata,
            }
            for e in self.entries_for(category)
        ]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: str) -> bool:
        return name in self._entries


# =============================================================================
# Default registry
# =============================================================================

def _provider_key(ctx: "AgentContext", name: str) -> Optional[str]:
    if ctx.config is None:
        return None
    return getattr(ctx.config.providers, name, None)


def create_default_registry() -> AdapterRegistry:
    """Registry with every built-in adapter, keys read from ctx.config.providers."""
    registry = AdapterRegistry()
    registry.register_class(
        CoinGeckoAdapter,
        lambda ctx: CoinGeckoAdapter(ctx, api_key=_provider_key(ctx, "coingecko")),
        provider="api.coingecko.com",
    )
    registry.register_class(
        BinanceAdapter,
        lambda ctx: BinanceAdapter(ctx, api_key=_provider_key(ctx, "binance")),
        provider="api.binance.com",
    )
    registry.register_class(SportsAdapter, provider="ESPN, TheSportsDB")
    registry.register_class(WeatherAdapter, provider="Open-Meteo")
    registry.register_class(
        NewsAdapter,
        lambda ctx: NewsAdapter(
            ctx,
            gnews_key=_provider_key(ctx, "gnews"),
            mediastack_key=_provider_key(ctx, "mediastack"),
            brave_key=_provider_key(ctx, "brave"),
        ),
        provider="GNews, MediaStack, DuckDuckGo, Brave",
    )
    return registry
