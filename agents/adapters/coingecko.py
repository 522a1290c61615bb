"""
CoinGecko Adapter

Spot and historical cryptocurrency prices from the CoinGecko v3 API.

Question mapping (pure, no I/O):
    extract_symbol      "Will BTC exceed $100k?" -> "BTC"
    coin_id_for         "BTC" -> "bitcoin" (known table only)
    needs_historical    past-tense or relative-date wording
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, Optional

from core.schemas import (
    Category,
    DataSourceInvalidResponseException,
    Payload,
    PricePayload,
    SourceData,
)

from .base import BaseAdapter, ResolutionQuery, compare_to_target, extract_target_date, mentions_any
from .confidence import COINGECKO_RUBRIC

logger = logging.getLogger(__name__)


COIN_IDS: dict[str, str] = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "BNB": "binancecoin",
    "ADA": "cardano",
    "SOL": "solana",
    "DOGE": "dogecoin",
    "DOT": "polkadot",
    "MATIC": "matic-network",
    "AVAX": "avalanche-2",
    "LINK": "chainlink",
    "UNI": "uniswap",
    "ATOM": "cosmos",
    "XRP": "ripple",
    "LTC": "litecoin",
    "BCH": "bitcoin-cash",
}

_SYMBOL_PATTERNS = [
    re.compile(r"\b([A-Z]{2,5})\b"),
    re.compile(r"Bitcoin", re.IGNORECASE),
    re.compile(r"Ethereum", re.IGNORECASE),
    re.compile(r"BNB", re.IGNORECASE),
    re.compile(r"Binance Coin", re.IGNORECASE),
]

_NAME_TO_SYMBOL = {
    "bitcoin": "BTC",
    "ethereum": "ETH",
    "binance coin": "BNB",
}

HISTORICAL_KEYWORDS = (
    "was", "did", "historical", "past", "previous",
    "yesterday", "last week", "last month",
)


# =============================================================================
# Question mapping
# =============================================================================

def extract_symbol(question: str) -> Optional[str]:
    for pattern in _SYMBOL_PATTERNS:
        match = pattern.search(question)
        if match:
            matched = match.group(1) if match.groups() else match.group(0)
            return _NAME_TO_SYMBOL.get(matched.lower(), matched.upper())
    return None


def coin_id_for(symbol: str) -> Optional[str]:
    return COIN_IDS.get(symbol.upper())


def needs_historical(question: str) -> bool:
    return mentions_any(question, HISTORICAL_KEYWORDS)


def format_history_date(when: datetime) -> str:
    """CoinGecko's /history date format, DD-MM-YYYY."""
    return when.strftime("%d-%m-%Y")


def parse_simple_price(symbol: str, coin_id: str, body: dict[str, Any], now: datetime) -> PricePayload:
    entry = body.get(coin_id) if isinstance(body, dict) else None
    if not isinstance(entry, dict) or entry.get("usd") is None:
        raise DataSourceInvalidResponseException(
            f"No price data found for {symbol}",
            source=CoinGeckoAdapter._name,
            details={"symbol": symbol, "coin_id": coin_id},
        )
    try:
        return PricePayload(
            symbol=symbol.upper(),
            price=entry["usd"],
            price_change_24h=entry.get("usd_24h_change"),
            volume_24h=entry.get("usd_24h_vol"),
            market_cap=entry.get("usd_market_cap"),
            timestamp=now,
            source=CoinGeckoAdapter._name,
        )
    except (KeyError, TypeError, ValueError) as e:
        raise DataSourceInvalidResponseException(
            f"Malformed price data for {symbol}: {e}",
            source=CoinGeckoAdapter._name,
            details={"symbol": symbol, "coin_id": coin_id},
        ) from e


def parse_history(symbol: str, body: dict[str, Any], when: datetime) -> PricePayload:
    market_data = (body or {}).get("market_data") or {}
    price = (market_data.get("current_price") or {}).get("usd")
    if not price:
        raise DataSourceInvalidResponseException(
            f"No historical price data found for {symbol} on {format_history_date(when)}",
            source=CoinGeckoAdapter._name,
            details={"symbol": symbol, "date": format_history_date(when)},
        )
    try:
        return PricePayload(
            symbol=symbol.upper(),
            price=price,
            timestamp=when,
            source=CoinGeckoAdapter._name,
        )
    except (KeyError, TypeError, ValueError) as e:
        raise DataSourceInvalidResponseException(
            f"Malformed historical price for {symbol}: {e}",
            source=CoinGeckoAdapter._name,
            details={"symbol": symbol, "date": format_history_date(when)},
        ) from e


def score_price(payload: PricePayload, now: datetime) -> int:
    present = set()
    if payload.volume_24h:
        present.add("volume")
    if payload.market_cap:
        present.add("market_cap")
    age = (now - payload.timestamp).total_seconds()
    return COINGECKO_RUBRIC.score(age_seconds=age, present=present)


# =============================================================================
# Adapter
# =============================================================================

class CoinGeckoAdapter(BaseAdapter):
    """
    Crypto price adapter backed by CoinGecko.

    The keyed (Pro) tier gets a tenfold request allowance.
    """

    _name = "CoinGecko"
    _version = "v3"

    categories = (Category.CRYPTO,)
    priority = 1
    base_url = "https://api.coingecko.com/api/v3"
    health_endpoint = "/ping"
    fetch_overrides = {
        "timeout_s": 15.0,
        "initial_delay_s": 2.0,
        "max_delay_s": 10.0,
        "cache_ttl_s": 60.0,
    }
    bearer_auth = False

    def _overrides(self) -> dict[str, Any]:
        overrides = dict(self.fetch_overrides)
        if self.api_key:
            overrides.update(requests_per_minute=500, requests_per_hour=10000)
        else:
            overrides.update(requests_per_minute=50, requests_per_hour=1000)
        return overrides

    def _headers(self) -> dict[str, str]:
        return {"x-cg-pro-api-key": self.api_key} if self.api_key else {}

    def _fetch(self, query: ResolutionQuery) -> SourceData:
        symbol = extract_symbol(query.question)
        if not symbol:
            return self._fallback(
                query,
                "Could not extract coin symbol from market question",
                suggestion="Check the asset price manually on coingecko.com.",
                suggested_sources=["coingecko.com"],
            )

        coin_id = self.resolve_coin_id(symbol)
        if not coin_id:
            return self._fallback(
                query,
                f"Could not find CoinGecko ID for symbol: {symbol}",
                suggested_sources=["coingecko.com"],
                symbol=symbol,
            )

        now = self.ctx.now()
        target = extract_target_date(query.question, now) if needs_historical(query.question) else None
        if target is not None:
            payload = self.get_historical_price(symbol, coin_id, target)
        else:
            payload = self.get_current_price(symbol, coin_id)

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

    def resolve_coin_id(self, symbol: str) -> Optional[str]:
        """Known table first, then /search; the result is cached."""
        cache_key = f"coinId_{symbol.upper()}"
        cached = self.fetcher.get_cached(cache_key)
        if cached:
            return cached

        coin_id = coin_id_for(symbol)
        if coin_id is None:
            body = self.fetcher.request("/search", params={"query": symbol}, headers=self._headers())
            for coin in (body or {}).get("coins", []):
                if str(coin.get("symbol", "")).upper() == symbol.upper():
                    coin_id = coin.get("id")
                    break
        if coin_id:
            self.fetcher.set_cached(cache_key, coin_id)
        return coin_id

    def get_current_price(self, symbol: str, coin_id: str) -> PricePayload:
        cache_key = f"current_{symbol.upper()}_usd"
        cached = self.fetcher.get_cached(cache_key)
        if cached is not None:
            return cached

        body = self.fetcher.request(
            "/simple/price",
            params={
                "ids": coin_id,
                "vs_currencies": "usd",
                "include_24hr_change": "true",
                "include_market_cap": "true",
                "include_24hr_vol": "true",
            },
            headers=self._headers(),
        )
        payload = parse_simple_price(symbol, coin_id, body, self.ctx.now())
        self.fetcher.set_cached(cache_key, payload)
        return payload

    def get_historical_price(self, symbol: str, coin_id: str, when: datetime) -> PricePayload:
        cache_key = f"historical_{symbol.upper()}_{format_history_date(when)}"
        cached = self.fetcher.get_cached(cache_key)
        if cached is not None:
            return cached

        body = self.fetcher.request(
            f"/coins/{coin_id}/history",
            params={"date": format_history_date(when)},
            headers=self._headers(),
        )
        payload = parse_history(symbol, body, when)
        self.fetcher.set_cached(cache_key, payload)
        return payload
