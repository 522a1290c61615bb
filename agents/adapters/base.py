"""
Data Source Adapter Base

Common contract for every provider adapter:

    categories   which market categories the adapter covers
    priority     lower = preferred when several adapters cover a category
    fetch_data   market query -> SourceData (or a typed DataSource error)
    validate     structural gate applied before data reaches the analyzer
    is_available cheap reachability probe

Each adapter owns one ResilientFetcher, so retry, throttling and the
TTL cache are per provider and never shared between adapters.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timedelta, timezone
from typing import Any, ClassVar, Iterable, Optional, TYPE_CHECKING

from core.config import FetchConfig
from core.http import HttpClient, RateLimit, ResilientFetcher, RetryPolicy
from core.schemas import (
    MAX_CONFIDENCE,
    Category,
    DataSourceInvalidResponseException,
    FallbackPayload,
    Market,
    OracleException,
    Payload,
    SourceData,
)

from agents.base import AgentCapability, BaseAgent

from .confidence import FALLBACK_CONFIDENCE, clamp_confidence

if TYPE_CHECKING:
    from agents.context import AgentContext


STOP_WORDS = frozenset({
    "will", "the", "be", "to", "a", "an", "in", "on", "at", "by",
    "above", "below", "reach", "hit", "before", "after",
})

_NON_WORD = re.compile(r"[^\w\s]")


def extract_keywords(question: str, stop_words: Iterable[str] = STOP_WORDS) -> list[str]:
    """
    Lowercase, strip punctuation and drop stop-words and short words.

    Order of first appearance is preserved; duplicates are removed.
    """
    stop = set(stop_words)
    seen: dict[str, None] = {}
    for word in _NON_WORD.sub(" ", question.lower()).split():
        if len(word) > 2 and word not in stop:
            seen.setdefault(word, None)
    return list(seen)


def mentions_any(question: str, phrases: Iterable[str]) -> bool:
    """Case-insensitive substring check."""
    lowered = question.lower()
    return any(phrase in lowered for phrase in phrases)


def _months_back(when: datetime, months: int) -> datetime:
    month_index = when.month - 1 - months
    year = when.year + month_index // 12
    month = month_index % 12 + 1
    day = min(when.day, calendar.monthrange(year, month)[1])
    return when.replace(year=year, month=month, day=day)


_EXPLICIT_DATE = re.compile(r"(\d{1,2})[/-](\d{1,2})[/-](\d{4})")


def extract_target_date(question: str, now: datetime) -> Optional[datetime]:
    """
    Resolve the date a question refers to.

    Understands "yesterday", "last week", "last month" and an explicit
    day-first D/M/YYYY (or D-M-YYYY) date. Returns None otherwise.
    """
    lowered = question.lower()
    if "yesterday" in lowered:
        return now - timedelta(days=1)
    if "last week" in lowered:
        return now - timedelta(days=7)
    if "last month" in lowered:
        return _months_back(now, 1)

    match = _EXPLICIT_DATE.search(question)
    if match:
        day, month, year = (int(g) for g in match.groups())
        try:
            return datetime(year, month, day, tzinfo=now.tzinfo or timezone.utc)
        except ValueError:
            return None
    return None


_AMOUNT = r"(\d[\d,]*(?:\.\d+)?)"

# "$50,000" / "$50k", then "50000 USD", then a bare "50k"
_PRICE_TARGET_PATTERNS = (
    re.compile(r"\$\s?" + _AMOUNT + r"\s*(k)?\b", re.IGNORECASE),
    re.compile(_AMOUNT + r"\s*(k)?\s*usd\b", re.IGNORECASE),
    re.compile(r"\b" + _AMOUNT + r"(k)\b", re.IGNORECASE),
)


def extract_price_target(question: str) -> Optional[float]:
    """
    Price level a question asks about, e.g. "Will BTC reach $50k?" -> 50000.

    A "k" multiplies by 1000 only when it directly follows the amount.
    """
    for pattern in _PRICE_TARGET_PATTERNS:
        match = pattern.search(question)
        if match:
            value = float(match.group(1).replace(",", ""))
            return value * 1000 if match.group(2) else value
    return None


def compare_to_target(question: str, price: float) -> dict[str, Any]:
    """Source metadata placing `price` against the question's target, if any."""
    target = extract_price_target(question)
    if target is None:
        return {}
    return {"price_target": target, "above_target": price >= target}


@dataclass(frozen=True)
class ResolutionQuery:
    """What an adapter is asked to look up for one market."""
    market: Market
    keywords: list[str] = field(default_factory=list)
    date_range: Optional[tuple[datetime, datetime]] = None

    @classmethod
    def for_market(cls, market: Market) -> "ResolutionQuery":
        return cls(market=market, keywords=extract_keywords(market.question))

    @property
    def question(self) -> str:
        return self.market.question

    @property
    def category(self) -> Category:
        return self.market.category


class BaseAdapter(BaseAgent):
    """
    Base class for data source adapters.

    Subclasses set the class attributes below and implement `_fetch`.
    `fetch_overrides` holds FetchConfig field values that replace the
    configured defaults for this provider.
    """

    _capabilities = {AgentCapability.NETWORK}

    categories: ClassVar[tuple[Category, ...]] = ()
    priority: ClassVar[int] = 1
    base_url: ClassVar[str] = ""
    health_endpoint: ClassVar[str] = "/"
    fetch_overrides: ClassVar[dict[str, Any]] = {}
    bearer_auth: ClassVar[bool] = True

    def __init__(
        self,
        ctx: "AgentContext",
        *,
        api_key: Optional[str] = None,
        fetcher: Optional[ResilientFetcher] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.ctx = ctx
        self.api_key = api_key
        self.fetcher = fetcher or self._build_fetcher()

    # ------------------------------------------------------------------
    # Fetcher wiring
    # ------------------------------------------------------------------

    def fetch_settings(self) -> FetchConfig:
        """Configured fetch defaults with this provider's overrides applied."""
        base = self.ctx.config.fetch if self.ctx.config else FetchConfig()
        known = {f.name for f in fields(FetchConfig)}
        overrides = {k: v for k, v in self._overrides().items() if k in known}
        return replace(base, **overrides)

    def _overrides(self) -> dict[str, Any]:
        return dict(self.fetch_overrides)

    def _build_fetcher(self) -> ResilientFetcher:
        settings = self.fetch_settings()
        return ResilientFetcher(
            name=self.name,
            base_url=self.base_url,
            http=self.ctx.http or HttpClient(timeout=settings.timeout_s),
            timeout=settings.timeout_s,
            retry=RetryPolicy(
                max_attempts=settings.max_attempts,
                initial_delay=settings.initial_delay_s,
                backoff_multiplier=settings.backoff_multiplier,
                max_delay=settings.max_delay_s,
            ),
            rate_limit=RateLimit(
                requests_per_minute=settings.requests_per_minute,
                requests_per_hour=settings.requests_per_hour,
            ),
            cache_enabled=settings.cache_enabled,
            cache_ttl=settings.cache_ttl_s,
            api_key=self.api_key,
            bearer_auth=self.bearer_auth,
            time_fn=self.ctx.timestamp,
            sleep=self.ctx.sleep,
        )

    # ------------------------------------------------------------------
    # Adapter contract
    # ------------------------------------------------------------------

    def supports(self, category: Category) -> bool:
        return category in self.categories

    def fetch_data(self, query: ResolutionQuery) -> SourceData:
        """
        Fetch and normalize data for a market.

        Raises:
            DataSourceException: provider failure or payload rejected
                by `validate`.
        """
        self.ctx.debug("%s: fetching data for market %s", self.name, query.market.id)
        data = self._fetch(query)
        if not self.validate(data):
            raise DataSourceInvalidResponseException(
                f"{self.name}: payload failed validation",
                source=self.name,
                details={"kind": data.data.kind, "market_id": query.market.id},
            )
        return data

    def _fetch(self, query: ResolutionQuery) -> SourceData:
        raise NotImplementedError

    def validate(self, data: Any) -> bool:
        """Structural gate for adapter output."""
        if not isinstance(data, SourceData):
            return False
        if not data.source or not 0 <= data.confidence <= MAX_CONFIDENCE:
            return False
        if data.is_fallback:
            return isinstance(data.data, FallbackPayload)
        return self._validate_payload(data.data)

    def _validate_payload(self, payload: Payload) -> bool:
        return True

    def is_available(self) -> bool:
        try:
            self.fetcher.request(self.health_endpoint)
        except OracleException as e:
            self.ctx.debug("%s unavailable: %s", self.name, e.message)
            return False
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _source(
        self,
        query: ResolutionQuery,
        payload: Payload,
        confidence: float,
        **metadata: Any,
    ) -> SourceData:
        return SourceData(
            source=self.name,
            category=query.category,
            fetched_at=self.ctx.now(),
            data=payload,
            confidence=clamp_confidence(confidence),
            metadata=metadata,
        )

    def _fallback(
        self,
        query: ResolutionQuery,
        reason: str,
        *,
        suggestion: str = "",
        suggested_sources: Iterable[str] = (),
        confidence: int = FALLBACK_CONFIDENCE,
        **metadata: Any,
    ) -> SourceData:
        self.ctx.info("%s: returning fallback for market %s (%s)", self.name, query.market.id, reason)
        return self._source(
            query,
            FallbackPayload(
                reason=reason,
                suggestion=suggestion,
                suggested_sources=list(suggested_sources),
            ),
            confidence,
            fallback=True,
            **metadata,
        )

    def get_stats(self) -> dict[str, Any]:
        return self.fetcher.get_stats()

    def clear_cache(self) -> None:
        self.fetcher.clear_cache()
