"""
Binance Adapter

Exchange prices for USDT trading pairs from the public Binance v3 API.
Current prices come from the 24h ticker; historical prices from the
daily kline close.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Optional

from core.schemas import (
    Category,
    DataSourceInvalidResponseException,
    Payload,
    PricePayload,
    SourceData,
)

from .base import BaseAdapter, ResolutionQuery, compare_to_target, extract_target_date, mentions_any
from .confidence import BINANCE_RUBRIC

logger = logging.getLogger(__name__)


TRADING_PAIRS: dict[str, str] = {
    "bitcoin": "BTCUSDT",
    "btc": "BTCUSDT",
    "ethereum": "ETHUSDT",
    "eth": "ETHUSDT",
    "bnb": "BNBUSDT",
    "binance coin": "BNBUSDT",
    "cardano": "ADAUSDT",
    "ada": "ADAUSDT",
    "solana": "SOLUSDT",
    "sol": "SOLUSDT",
    "dogecoin": "DOGEUSDT",
    "doge": "DOGEUSDT",
    "polkadot": "DOTUSDT",
    "dot": "DOTUSDT",
    "matic": "MATICUSDT",
    "polygon": "MATICUSDT",
    "avalanche": "AVAXUSDT",
    "avax": "AVAXUSDT",
    "chainlink": "LINKUSDT",
    "link": "LINKUSDT",
    "uniswap": "UNIUSDT",
    "uni": "UNIUSDT",
    "cosmos": "ATOMUSDT",
    "atom": "ATOMUSDT",
    "ripple": "XRPUSDT",
    "xrp": "XRPUSDT",
    "litecoin": "LTCUSDT",
    "ltc": "LTCUSDT",
}

KNOWN_TICKERS = ("BTC", "ETH", "BNB", "ADA", "SOL", "DOGE", "DOT")

HISTORICAL_KEYWORDS = (
    "was", "did", "historical", "past", "previous",
    "yesterday", "last week", "last month", "ended", "closed",
)

_PAIR_PATTERNS = [
    (name, re.compile(rf"\b{re.escape(name)}\b")) for name in TRADING_PAIRS
]
_USDT_PAIR = re.compile(r"\b([A-Z]{3,6}USDT)\b")
_TICKER = re.compile(r"\b([A-Z]{2,5})\b")

DAY_MS = 24 * 60 * 60 * 1000


# =============================================================================
# Question mapping
# =============================================================================

def extract_trading_pair(question: str) -> Optional[str]:
    """
    Map a question to a Binance USDT pair.

    Names and tickers match on word boundaries, so "whether" never
    matches "eth".
    """
    lowered = question.lower()
    for name, pattern in _PAIR_PATTERNS:
        if pattern.search(lowered):
            return TRADING_PAIRS[name]

    match = _USDT_PAIR.search(question)
    if match:
        return match.group(1)

    match = _TICKER.search(question)
    if match and match.group(1) in KNOWN_TICKERS:
        return f"{match.group(1)}USDT"
    return None


def needs_historical(question: str) -> bool:
    return mentions_any(question, HISTORICAL_KEYWORDS)


def start_of_day(when: datetime) -> datetime:
    return when.replace(hour=0, minute=0, second=0, microsecond=0)


def _ms_to_datetime(ms: Any) -> datetime:
    return datetime.fromtimestamp(int(ms) / 1000, tz=timezone.utc)


def parse_ticker(body: dict[str, Any]) -> PricePayload:
    try:
        return PricePayload(
            symbol=body["symbol"],
            price=float(body["lastPrice"]),
            price_change_24h=float(body.get("priceChangePercent", 0) or 0),
            volume_24h=float(body.get("quoteVolume", 0) or 0),
            timestamp=_ms_to_datetime(body["closeTime"]),
            source=BinanceAdapter._name,
        )
    except (KeyError, TypeError, ValueError) as e:
        raise DataSourceInvalidResponseException(
            f"Malformed 24hr ticker: {e}",
            source=BinanceAdapter._name,
            details={"symbol": (body or {}).get("symbol") if isinstance(body, dict) else None},
        ) from e


def parse_kline(symbol: str, rows: list[list[Any]], when: datetime) -> PricePayload:
    """Kline row layout: [openTime, open, high, low, close, volume, closeTime, quoteVolume, ...]."""
    if not rows:
        raise DataSourceInvalidResponseException(
            f"No historical data found for {symbol} on {when.date().isoformat()}",
            source=BinanceAdapter._name,
            details={"symbol": symbol, "date": when.isoformat()},
        )
    row = rows[0]
    try:
        return PricePayload(
            symbol=symbol,
            price=float(row[4]),
            volume_24h=float(row[7]),
            timestamp=_ms_to_datetime(row[6]),
            source=BinanceAdapter._name,
        )
    except (IndexError, TypeError, ValueError) as e:
        raise DataSourceInvalidResponseException(
            f"Malformed kline row for {symbol}: {e}",
            source=BinanceAdapter._name,
            details={"symbol": symbol},
        ) from e


def score_price(payload: PricePayload, now: datetime) -> int:
    present = {"volume"} if payload.volume_24h and payload.volume_24h > 0 else set()
    age = (now - payload.timestamp).total_seconds()
    return BINANCE_RUBRIC.score(age_seconds=age, present=present)


# =============================================================================
# Adapter
# =============================================================================

class BinanceAdapter(BaseAdapter):
    """Crypto price adapter backed by the Binance public market-data API."""

    _name = "Binance"
    _version = "v3"

    categories = (Category.CRYPTO,)
    priority = 2
    base_url = "https://api.binance.com/api/v3"
    health_endpoint = "/ping"
    fetch_overrides = {
        "timeout_s": 10.0,
        "initial_delay_s": 1.0,
        "max_delay_s": 5.0,
        "requests_per_minute": 1200,
        # 100k requests per day spread evenly over the hours
        "requests_per_hour": 100_000 // 24,
        "cache_ttl_s": 30.0,
    }
    bearer_auth = False

    def _headers(self) -> dict[str, str]:
        return {"X-MBX-APIKEY": self.api_key} if self.api_key else {}

    def _fetch(self, query: ResolutionQuery) -> SourceData:
        symbol = extract_trading_pair(query.question)
        if not symbol:
            return self._fallback(
                query,
                "Could not extract trading symbol from market question",
                suggestion="Check the pair price manually on binance.com.",
                suggested_sources=["binance.com"],
            )

        now = self.ctx.now()
        target = extract_target_date(query.question, now) if needs_historical(query.question) else None
        if target is not None:
            payload = self.get_historical_price(symbol, start_of_day(target))
        else:
            payload = self.get_current_price(symbol)

        return self._source(
            query,
            payload,
            score_price(payload, now),
            api_version="v3",
            rate_limit_remaining=max(0, self.fetcher.rate_limit.requests_per_minute - self.fetcher.request_count),
            **compare_to_target(query.question, payload.price),
        )

    def _validate_payload(self, payload: Payload) -> bool:
        return isinstance(payload, PricePayload) and bool(payload.symbol) and payload.price > 0

    def get_current_price(self, symbol: str) -> PricePayload:
        cache_key = f"current_{symbol}"
        cached = self.fetcher.get_cached(cache_key)
        if cached is not None:
            return cached

        body = self.fetcher.request("/ticker/24hr", params={"symbol": symbol}, headers=self._headers())
        payload = parse_ticker(body)
        self.fetcher.set_cached(cache_key, payload)
        return payload

    def get_historical_price(self, symbol: str, day: datetime) -> PricePayload:
        cache_key = f"historical_{symbol}_{day.date().isoformat()}"
        cached = self.fetcher.get_cached(cache_key)
        if cached is not None:
            return cached

        start_ms = int(day.timestamp() * 1000)
        rows = self.fetcher.request(
            "/klines",
            params={
                "symbol": symbol,
                "interval": "1d",
                "startTime": start_ms,
                "endTime": start_ms + DAY_MS,
                "limit": 1,
            },
            headers=self._headers(),
        )
        payload = parse_kline(symbol, rows, day)
        self.fetcher.set_cached(cache_key, payload)
        return payload
