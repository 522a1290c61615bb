"""
In-flight resolution registry.

Keyed by market id. At most one attempt per market may hold a claim,
so two concurrent attempts never race each other to the chain. All
operations are guarded by a single lock and safe across worker threads.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from core.schemas import ResolutionInProgressException, ResolutionStatus


class InFlightRegistry:
    """
    Usage:
        with registry.claim(market.id):
            ...  # run the attempt
            registry.update(market.id, ResolutionStatus.ANALYZING)
    """

    def __init__(self) -> None:
        self._active: dict[int, ResolutionStatus] = {}
        self._lock = threading.Lock()

    def acquire(self, market_id: int) -> bool:
        """Claim `market_id`; False if another attempt holds it."""
        with self._lock:
            if market_id in self._active:
                return False
            self._active[market_id] = ResolutionStatus.PENDING
            return True

    def release(self, market_id: int) -> None:
        with self._lock:
            self._active.pop(market_id, None)

    @contextmanager
    def claim(self, market_id: int) -> Iterator[None]:
        """Hold the claim for the duration of the block."""
        if not self.acquire(market_id):
            raise ResolutionInProgressException(market_id)
        try:
            yield
        finally:
            self.release(market_id)

    def update(self, market_id: int, status: ResolutionStatus) -> None:
        with self._lock:
            if market_id in self._active:
                self._active[market_id] = status

    def status_of(self, market_id: int) -> ResolutionStatus | None:
        with self._lock:
            return self._active.get(market_id)

    def snapshot(self) -> dict[int, ResolutionStatus]:
        with self._lock:
            return dict(self._active)

    def __contains__(self, market_id: int) -> bool:
        with self._lock:
            return market_id in self._active

    def __len__(self) -> int:
        with self._lock:
            return len(self._active)
