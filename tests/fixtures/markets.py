"""
Market, source and verdict factories.

Timestamps line up with FrozenClock's default time (2026-01-01T00:00Z):
markets end a day earlier and sources are fetched "now".
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from core.schemas import (
    AIVerdict,
    Category,
    FallbackPayload,
    Market,
    NewsPayload,
    PricePayload,
    SourceData,
)

FROZEN_NOW = datetime(2026, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Market Factory
# =============================================================================

def make_market(
    market_id: int = 1,
    question: str = "Will BTC be above $100,000 on 31/12/2025?",
    category: Category = Category.CRYPTO,
    *,
    description: str = "",
    end_time: Optional[datetime] = None,
    resolved: bool = False,
    outcome: Optional[bool] = None,
) -> Market:
    """Create a Market that has ended relative to FROZEN_NOW."""
    return Market(
        id=market_id,
        question=question,
        description=description,
        category=category,
        creator="0x000000000000000000000000000000000000c0de",
        end_time=end_time or FROZEN_NOW - timedelta(days=1),
        resolved=resolved,
        outcome=outcome,
    )


# =============================================================================
# SourceData Factories
# =============================================================================

def make_price_source(
    price: float = 101_250.0,
    source: str = "CoinGecko",
    *,
    confidence: int = 9500,
    fetched_at: Optional[datetime] = None,
    category: Category = Category.CRYPTO,
) -> SourceData:
    return SourceData(
        source=source,
        category=category,
        fetched_at=fetched_at or FROZEN_NOW,
        data=PricePayload(
            symbol="BTC",
            price=price,
            volume_24h=35_000_000_000.0,
            market_cap=2_000_000_000_000.0,
            timestamp=fetched_at or FROZEN_NOW,
            source=source,
        ),
        confidence=confidence,
    )


def make_news_source(
    source: str = "News & Web Search",
    *,
    category: Category = Category.POLITICS,
    fetched_at: Optional[datetime] = None,
) -> SourceData:
    return SourceData(
        source=source,
        category=category,
        fetched_at=fetched_at or FROZEN_NOW,
        data=NewsPayload(key_facts=["The bill passed the senate vote"]),
        confidence=7500,
    )


def make_fallback_source(
    source: str = "Sports Data API",
    *,
    category: Category = Category.SPORTS,
    reason: str = "Sports data APIs unavailable",
) -> SourceData:
    return SourceData(
        source=source,
        category=category,
        fetched_at=FROZEN_NOW,
        data=FallbackPayload(reason=reason, suggested_sources=["espn.com"]),
        confidence=3000,
        metadata={"fallback": True},
    )


# =============================================================================
# Verdict Factories
# =============================================================================

def make_verdict_args(
    outcome: bool = True,
    confidence: int = 9200,
    **overrides: Any,
) -> dict[str, Any]:
    """Tool-call arguments in the shape the resolution tool schema asks for."""
    args: dict[str, Any] = {
        "outcome": outcome,
        "confidence": confidence,
        "reasoning": [
            "CoinGecko reports BTC at $101,250",
            "Binance close agrees within 0.1%",
        ],
        "dataPoints": ["CoinGecko: 101250 USD", "Binance: 101180 USDT"],
        "warnings": [],
        "alternativeOutcomes": [
            {"outcome": not outcome, "probability": 0.08, "reasoning": "Intraday dip"},
        ],
    }
    args.update(overrides)
    return args


def make_verdict(
    outcome: bool = True,
    confidence: int = 9200,
    *,
    warnings: Optional[list[str]] = None,
) -> AIVerdict:
    return AIVerdict(
        outcome=outcome,
        confidence=confidence,
        reasoning=["Price above threshold on the resolution date"],
        data_points=["CoinGecko: 101250 USD"],
        warnings=warnings or [],
        model="mock-model",
        tokens_used=150,
        cost=0.003,
        timestamp=FROZEN_NOW,
    )
