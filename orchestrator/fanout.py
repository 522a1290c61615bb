"""
Fan-Out Fetch

Runs every selected adapter concurrently and collects the settled
results. One slow or broken provider never blocks the others: failures
become AgentResult.failure entries and the caller decides what an
empty success list means.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Optional

from agents.adapters import BaseAdapter, ResolutionQuery
from agents.base import AgentResult
from core.schemas import ErrorCodes, OracleException, SourceData

logger = logging.getLogger(__name__)


@dataclass
class FanOutResult:
    """Settled results of one fan-out, in adapter priority order."""

    results: list[AgentResult] = field(default_factory=list)

    @property
    def sources(self) -> list[SourceData]:
        return [r.output for r in self.results if r.success]

    @property
    def failures(self) -> list[AgentResult]:
        return [r for r in self.results if not r.success]

    def failure_summary(self) -> list[dict[str, Optional[str]]]:
        return [
            {"source": r.source, "code": r.error_code, "error": r.error}
            for r in self.failures
        ]


def _invoke(adapter: BaseAdapter, query: ResolutionQuery) -> AgentResult:
    try:
        source = adapter.fetch_data(query)
    except OracleException as e:
        return AgentResult.failure(e.message, error_code=e.code, source=adapter.name)
    except Exception as e:
        logger.exception("Adapter %s raised an unexpected error", adapter.name)
        return AgentResult.failure(
            str(e) or type(e).__name__,
            error_code=ErrorCodes.UNKNOWN_ERROR,
            source=adapter.name,
        )
    return AgentResult.ok(source, source=adapter.name)


def fan_out(
    adapters: list[BaseAdapter],
    query: ResolutionQuery,
    *,
    timeout: Optional[float] = None,
) -> FanOutResult:
    """
    Invoke all adapters concurrently and wait for every one to settle.

    Adapters still running after `timeout` seconds are reported as
    DATA_SOURCE_TIMEOUT failures; their threads are left to finish on
    their own.
    """
    if not adapters:
        return FanOutResult()

    executor = ThreadPoolExecutor(
        max_workers=len(adapters),
        thread_name_prefix="fanout",
    )
    try:
        futures = [executor.submit(_invoke, adapter, query) for adapter in adapters]
        wait(futures, timeout=timeout)
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    results: list[AgentResult] = []
    for adapter, future in zip(adapters, futures):
        if future.done() and not future.cancelled():
            result = future.result()
        else:
            result = AgentResult.failure(
                f"{adapter.name} did not settle within {timeout}s",
                error_code=ErrorCodes.DATA_SOURCE_TIMEOUT,
                source=adapter.name,
            )
        if not result.success:
            logger.warning(
                "Source %s failed for market %s: [%s] %s",
                result.source,
                query.market.id,
                result.error_code,
                result.error,
            )
        results.append(result)
    return FanOutResult(results=results)
