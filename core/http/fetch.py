"""
Resilient Fetch

Per-provider request wrapper used by every data source adapter:
bounded retries with exponential backoff, self-throttling against the
provider's per-minute and per-hour quotas, and a small TTL cache keyed
by caller-supplied strings.

Each adapter owns one ResilientFetcher; limiter and cache state are
never shared between providers.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Optional

from core.schemas.errors import (
    DataSourceInvalidResponseException,
    DataSourceRateLimitException,
    DataSourceTimeoutException,
    NetworkException,
)

from .client import HttpClient, HttpError, HttpTimeoutError

logger = logging.getLogger(__name__)

HOUR_S = 3600.0


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff."""
    max_attempts: int = 3
    initial_delay: float = 1.0
    backoff_multiplier: float = 2.0
    max_delay: float = 10.0

    def delay_for(self, attempt: int) -> float:
        """Delay after the zero-based `attempt` failed, capped at max_delay."""
        return min(self.initial_delay * (self.backoff_multiplier ** attempt), self.max_delay)


@dataclass(frozen=True)
class RateLimit:
    """Provider quota used for self-throttling."""
    requests_per_minute: int = 60
    requests_per_hour: int = 1000

    @property
    def min_interval(self) -> float:
        """Minimum spacing between two requests, in seconds."""
        if self.requests_per_minute <= 0:
            return 0.0
        return 60.0 / self.requests_per_minute


class TTLCache:
    """
    Small time-based cache.

    Entries expire `ttl` seconds after they were written. Expired
    entries are purged whenever a new entry is written.
    """

    def __init__(self, ttl: float, time_fn: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._time = time_fn
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, value = entry
            if self._time() - stored_at >= self.ttl:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            now = self._time()
            expired = [k for k, (t, _) in self._entries.items() if now - t >= self.ttl]
            for k in expired:
                del self._entries[k]
            self._entries[key] = (now, value)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class ResilientFetcher:
    """
    HTTP caller for one provider.

    Usage:
        fetcher = ResilientFetcher(
            name="coingecko",
            base_url="https://api.coingecko.com/api/v3",
            http=HttpClient(),
        )
        data = fetcher.request("/ping")

    Terminal failures raise the DataSource* exceptions with the
    provider name, method, url, attempts and status in `details`.
    """

    def __init__(
        self,
        name: str,
        base_url: str = "",
        *,
        http: Optional[HttpClient] = None,
        timeout: float = 10.0,
        retry: Optional[RetryPolicy] = None,
        rate_limit: Optional[RateLimit] = None,
        cache_enabled: bool = True,
        cache_ttl: float = 60.0,
        api_key: Optional[str] = None,
        bearer_auth: bool = True,
        time_fn: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.name = name
        self.base_url = base_url.rstrip("/")
        self.http = http or HttpClient(timeout=timeout)
        self.timeout = timeout
        self.retry = retry or RetryPolicy()
        self.rate_limit = rate_limit or RateLimit()
        self.cache_enabled = cache_enabled
        self.api_key = api_key
        self.bearer_auth = bearer_auth
        self._time = time_fn
        self._sleep = sleep
        self.cache = TTLCache(cache_ttl, time_fn=time_fn)
        self.request_count = 0
        self.last_request: Optional[float] = None
        self._window: deque[float] = deque()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def request(
        self,
        endpoint: str,
        method: str = "GET",
        body: Optional[Any] = None,
        headers: Optional[dict[str, str]] = None,
        *,
        params: Optional[dict[str, Any]] = None,
        cache_key: Optional[str] = None,
    ) -> Any:
        """
        Call the provider and return the decoded JSON body.

        The cache is consulted first when `cache_key` is given and
        updated after a successful call.
        """
        if cache_key and self.cache_enabled:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug("%s cache hit: %s", self.name, cache_key)
                return cached

        url = self._build_url(endpoint)
        request_headers = self._build_headers(headers)
        context = {"method": method, "url": url}
        max_attempts = max(1, self.retry.max_attempts)

        for attempt in range(max_attempts):
            is_last = attempt == max_attempts - 1
            context["attempts"] = attempt + 1
            self._throttle()

            try:
                response = self.http.request(
                    method,
                    url,
                    headers=request_headers,
                    params=params,
                    json=body,
                    timeout=self.timeout,
                )
            except HttpTimeoutError as e:
                if is_last:
                    raise DataSourceTimeoutException(
                        f"{self.name}: request timed out after {self.timeout}s",
                        source=self.name,
                        details=dict(context, error=str(e)),
                    ) from e
                self._backoff(attempt, f"timeout: {e}")
                continue
            except HttpError as e:
                if is_last:
                    raise NetworkException(
                        f"{self.name}: network error: {e}",
                        source=self.name,
                        details=dict(context, error=str(e)),
                    ) from e
                self._backoff(attempt, f"network error: {e}")
                continue

            status = response.status_code
            if status == 429:
                if is_last:
                    raise DataSourceRateLimitException(
                        f"{self.name}: rate limit exceeded",
                        source=self.name,
                        details=dict(context, status=status),
                    )
                retry_after = self._retry_after(response.header("Retry-After"))
                if retry_after is not None:
                    logger.debug("%s: 429, honoring Retry-After %.2fs", self.name, retry_after)
                    self._sleep(retry_after)
                else:
                    self._backoff(attempt, "rate limited")
                continue

            if status >= 500:
                if is_last:
                    raise DataSourceInvalidResponseException(
                        f"{self.name}: server error {status}",
                        source=self.name,
                        details=dict(context, status=status),
                    )
                self._backoff(attempt, f"server error {status}")
                continue

            if not response.ok:
                raise DataSourceInvalidResponseException(
                    f"{self.name}: HTTP {status}",
                    source=self.name,
                    details=dict(context, status=status, body=response.text[:200]),
                )

            try:
                data = response.json()
            except ValueError as e:
                raise DataSourceInvalidResponseException(
                    f"{self.name}: response is not valid JSON",
                    source=self.name,
                    details=dict(context, status=status),
                ) from e

            if cache_key and self.cache_enabled:
                self.cache.set(cache_key, data)
            return data

        # max_attempts >= 1 and every branch above returns, raises or continues
        raise NetworkException(f"{self.name}: retries exhausted", source=self.name, details=context)

    def get_cached(self, cache_key: str) -> Any | None:
        if not self.cache_enabled:
            return None
        return self.cache.get(cache_key)

    def set_cached(self, cache_key: str, value: Any) -> None:
        if self.cache_enabled:
            self.cache.set(cache_key, value)

    def clear_cache(self) -> None:
        self.cache.clear()

    def get_stats(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "request_count": self.request_count,
            "last_request": self.last_request,
            "cache_size": len(self.cache),
        }

    def reset_stats(self) -> None:
        self.request_count = 0
        self.last_request = None
        self._window.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _build_url(self, endpoint: str) -> str:
        if endpoint.startswith("http://") or endpoint.startswith("https://"):
            return endpoint
        if not endpoint:
            return self.base_url
        if not endpoint.startswith("/"):
            endpoint = "/" + endpoint
        return f"{self.base_url}{endpoint}"

    def _build_headers(self, headers: Optional[dict[str, str]]) -> dict[str, str]:
        merged = {"Content-Type": "application/json"}
        if self.api_key and self.bearer_auth:
            merged["Authorization"] = f"Bearer {self.api_key}"
        if headers:
            merged.update(headers)
        return merged

    def _throttle(self) -> None:
        """Sleep until both the per-minute spacing and hourly quota allow a call."""
        now = self._time()
        if self.last_request is not None:
            elapsed = now - self.last_request
            wait = self.rate_limit.min_interval - elapsed
            if wait > 0:
                logger.debug("%s: throttling for %.3fs", self.name, wait)
                self._sleep(wait)
                now = self._time()

        per_hour = self.rate_limit.requests_per_hour
        if per_hour > 0:
            while self._window and now - self._window[0] >= HOUR_S:
                self._window.popleft()
            if len(self._window) >= per_hour:
                wait = self._window[0] + HOUR_S - now
                if wait > 0:
                    logger.warning("%s: hourly quota reached, waiting %.1fs", self.name, wait)
                    self._sleep(wait)
                    now = self._time()
                self._window.popleft()

        self.last_request = now
        self.request_count += 1
        self._window.append(now)

    def _backoff(self, attempt: int, reason: str) -> None:
        delay = self.retry.delay_for(attempt)
        logger.debug(
            "%s: attempt %d failed (%s), retrying in %.2fs",
            self.name, attempt + 1, reason, delay,
        )
        self._sleep(delay)

    def _retry_after(self, value: Optional[str]) -> Optional[float]:
        if not value:
            return None
        try:
            seconds = float(value)
        except ValueError:
            return None
        return max(0.0, min(seconds, self.retry.max_delay))
