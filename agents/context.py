"""
Agent Context

Provides dependency injection for adapters and the analyzer, containing:
- LLM client
- HTTP client
- Configuration
- Clock and sleep (can be frozen for determinism)
- Logger

Components receive context rather than creating their own clients,
so tests can substitute fakes and a frozen clock.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from core.config import RuntimeConfig
    from core.http import HttpClient
    from core.llm import LLMClient


class Clock(Protocol):
    """
    Protocol for time source.

    Can be real time or frozen for deterministic testing.
    """
    def now(self) -> datetime:
        """Get current UTC time."""
        ...


class RealClock:
    """Real-time clock implementation."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FrozenClock:
    """
    Frozen clock for deterministic testing.

    Time only moves through set_time() or advance(). Passing
    `clock.advance` as a sleep function makes backoff and throttling
    instantaneous while still moving time forward.
    """

    def __init__(self, frozen_time: Optional[datetime] = None) -> None:
        self._time = frozen_time or datetime(2026, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
        self.sleeps: list[float] = []

    def now(self) -> datetime:
        return self._time

    def set_time(self, time: datetime) -> None:
        """Set the frozen time."""
        self._time = time

    def advance(self, seconds: float) -> None:
        """Move the clock forward; records the amount for assertions."""
        self.sleeps.append(seconds)
        self._time = self._time + timedelta(seconds=seconds)


@dataclass
class AgentContext:
    """
    Context providing dependencies to adapters and the analyzer.

    Usage:
        ctx = AgentContext.create(config)
        adapter = CoinGeckoAdapter(ctx)
        source = adapter.fetch_data(query)
    """

    # Core dependencies
    llm: Optional["LLMClient"] = None
    http: Optional["HttpClient"] = None
    config: Optional["RuntimeConfig"] = None

    # Utilities
    clock: Clock = field(default_factory=RealClock)
    sleep: Callable[[float], None] = time.sleep
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("oracle.agents"))

    # Extra data for component-specific needs
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(cls, config: "RuntimeConfig") -> "AgentContext":
        """
        Create a fully configured context.

        An LLM client is created when the provider is "mock" or an API
        key is configured.
        """
        from core.http import HttpClient
        from core.llm import DecodingPolicy, LLMClient, create_provider

        llm = None
        if config.llm.api_key or config.llm.provider == "mock":
            provider_kwargs: dict[str, Any] = {}
            if config.llm.api_key:
                provider_kwargs["api_key"] = config.llm.api_key
            if config.llm.base_url:
                provider_kwargs["base_url"] = config.llm.base_url
            provider = create_provider(
                config.llm.provider,
                model=config.llm.model,
                timeout=config.llm.timeout_s,
                **provider_kwargs,
            )
            llm = LLMClient(
                provider,
                default_policy=DecodingPolicy(
                    temperature=config.llm.temperature,
                    max_tokens=config.llm.max_tokens,
                ),
            )

        http = HttpClient(
            timeout=config.fetch.timeout_s,
            default_headers={"Accept": "application/json"},
        )

        logger = logging.getLogger("oracle.agents")
        logger.setLevel(config.log_level.upper())

        return cls(llm=llm, http=http, config=config, logger=logger)

    @classmethod
    def create_minimal(cls, *, http: Optional["HttpClient"] = None) -> "AgentContext":
        """
        Create a minimal context for testing.

        Frozen clock whose advance() doubles as sleep; no LLM client.
        """
        clock = FrozenClock()
        return cls(http=http, clock=clock, sleep=clock.advance)

    @classmethod
    def create_mock(
        cls,
        *,
        llm_responses: Optional[list[Any]] = None,
        http: Optional["HttpClient"] = None,
    ) -> "AgentContext":
        """
        Create a mock context for testing.

        Args:
            llm_responses: Preset replies for MockProvider (str or dict)
            http: Optional HttpClient, usually wrapping a Mock session
        """
        from core.llm import LLMClient, MockProvider

        clock = FrozenClock()
        llm = LLMClient(MockProvider(responses=llm_responses or []))
        return cls(llm=llm, http=http, clock=clock, sleep=clock.advance)

    def now(self) -> datetime:
        """Get current time from clock."""
        return self.clock.now()

    def timestamp(self) -> float:
        """Current clock time as POSIX seconds."""
        return self.clock.now().timestamp()

    def log(self, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log a message."""
        self.logger.log(level, msg, *args, **kwargs)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log a debug message."""
        self.logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log an info message."""
        self.logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log a warning message."""
        self.logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log an error message."""
        self.logger.error(msg, *args, **kwargs)
