"""
Test fixtures package for the oracle tests.

This package provides factory functions and fakes:
- markets.py: Market, SourceData and verdict factories
- adapters.py: scripted adapters and registry helper
- http.py: fake requests sessions (URL-routed and JSON-RPC)

Usage:
    from fixtures import make_market, make_verdict_args

    def test_something():
        market = make_market(market_id=7)
"""

from .adapters import FailingAdapter, SlowAdapter, StaticAdapter, make_registry
from .http import RoutedSession, RpcSession, make_http, make_response
from .markets import (
    FROZEN_NOW,
    make_fallback_source,
    make_market,
    make_news_source,
    make_price_source,
    make_verdict,
    make_verdict_args,
)

__all__ = [
    # Markets and data
    "FROZEN_NOW",
    "make_market",
    "make_price_source",
    "make_news_source",
    "make_fallback_source",
    "make_verdict",
    "make_verdict_args",
    # Adapters
    "StaticAdapter",
    "FailingAdapter",
    "SlowAdapter",
    "make_registry",
    # HTTP
    "RoutedSession",
    "RpcSession",
    "make_http",
    "make_response",
]
