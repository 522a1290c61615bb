"""
Resolution Engine

Owns the lifecycle of one resolution attempt: Market in,
ResolutionResult out.

Stages (each one a potential exit point):
1. Fetching:        fan-out over the category's adapters
2. Analyzing:       AI verdict
3. ConfidenceGate:  verdict.confidence >= min_confidence
4. Compiling:       evidence package
5. Storing:         content-addressed upload
6. GasGate:         current gas price <= ceiling
7. Submitting:      resolution write, waits for confirmation

Every collaborator is injected through the constructor. The only
shared mutable state is the in-flight registry and the stats counters,
both lock-guarded.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, TYPE_CHECKING

from agents.adapters import AdapterRegistry, ResolutionQuery
from agents.analyzer import AIAnalyzer
from agents.evidence import EvidenceCompiler, EvidenceStorage
from core.chain import ChainClient, gas_cost_usd
from core.config import EngineConfig
from core.schemas import (
    ErrorCodes,
    GasTooHighException,
    InsufficientDataException,
    LowConfidenceException,
    Market,
    OracleException,
    ResolutionResult,
    ResolutionStage,
    ResolutionStatus,
    TransactionFailedException,
)

from .fanout import fan_out
from .inflight import InFlightRegistry
from .stages import ResolutionState, StageExecutor, make_stage

if TYPE_CHECKING:
    from agents.context import AgentContext

logger = logging.getLogger(__name__)

DEFAULT_MAX_GAS_PRICE_WEI = 10 * 1_000_000_000
DEFAULT_NATIVE_TOKEN_USD = 300.0
DEFAULT_MAX_TRACKED_ATTEMPTS = 1000

# Outcomes that need a human rather than another automatic attempt
MANUAL_REVIEW_CODES = frozenset({
    ErrorCodes.INSUFFICIENT_DATA,
    ErrorCodes.AI_LOW_CONFIDENCE,
    ErrorCodes.BLOCKCHAIN_UNAUTHORIZED,
})


def terminal_status(error: OracleException) -> ResolutionStatus:
    if error.code in MANUAL_REVIEW_CODES:
        return ResolutionStatus.MANUAL_REVIEW
    return ResolutionStatus.FAILED


@dataclass
class EngineStats:
    """Counters across all attempts of one engine instance."""

    completed: int = 0
    failed: int = 0
    manual_review: int = 0
    total_confidence: int = 0
    total_cost_usd: float = 0.0
    failures_by_code: dict[str, int] = field(default_factory=dict)
    last_attempt_at: Optional[datetime] = None

    @property
    def average_confidence(self) -> float:
        if self.completed == 0:
            return 0.0
        return self.total_confidence / self.completed

    def to_dict(self) -> dict[str, Any]:
        return {
            "completed": self.completed,
            "failed": self.failed,
            "manual_review": self.manual_review,
            "average_confidence": self.average_confidence,
            "total_cost_usd": self.total_cost_usd,
            "failures_by_code": dict(self.failures_by_code),
            "last_attempt_at": self.last_attempt_at.isoformat() if self.last_attempt_at else None,
        }


class ResolutionEngine:
    """
    Runs the resolution state machine for one market at a time per
    market id; different markets may be resolved concurrently.

    Usage:
        engine = ResolutionEngine(
            ctx,
            registry=create_default_registry(),
            analyzer=AIAnalyzer(ctx),
            compiler=EvidenceCompiler(ctx),
            storage=EvidenceStorage(InMemoryStorageBackend()),
            chain=InMemoryChain(),
        )
        result = engine.resolve(market)
    """

    def __init__(
        self,
        ctx: "AgentContext",
        *,
        registry: AdapterRegistry,
        analyzer: AIAnalyzer,
        compiler: EvidenceCompiler,
        storage: EvidenceStorage,
        chain: ChainClient,
        config: Optional[EngineConfig] = None,
        max_gas_price_wei: int = DEFAULT_MAX_GAS_PRICE_WEI,
        native_token_usd: float = DEFAULT_NATIVE_TOKEN_USD,
        max_tracked_attempts: int = DEFAULT_MAX_TRACKED_ATTEMPTS,
    ) -> None:
        self.ctx = ctx
        self.registry = registry
        self.analyzer = analyzer
        self.compiler = compiler
        self.storage = storage
        self.chain = chain
        self.config = config or EngineConfig()
        self.max_gas_price_wei = max_gas_price_wei
        self.native_token_usd = native_token_usd
        self.max_tracked_attempts = max_tracked_attempts

        self.in_flight = InFlightRegistry()
        self._stats = EngineStats()
        self._stats_lock = threading.Lock()
        # Most recent attempt per market, oldest market evicted first
        self._attempts: OrderedDict[int, ResolutionState] = OrderedDict()

    @property
    def min_confidence(self) -> int:
        return self.config.min_confidence

    # =========================================================================
    # Public API
    # =========================================================================

    def resolve(self, market: Market) -> ResolutionResult:
        """
        Run one resolution attempt for `market`.

        Raises:
            ResolutionInProgressException: another attempt holds the market
            OracleException: the first stage failure, with stage and
                market_id in its details
        """
        with self.in_flight.claim(market.id):
            state = ResolutionState(market=market)
            self._remember(state)
            executor = StageExecutor(now=self.ctx.now, on_enter=self._publish)
            self.ctx.info("Starting resolution for market %s: %s", market.id, market.question)

            try:
                state = executor.execute(self._build_stages(), state)
            except OracleException as e:
                state.set_status(terminal_status(e), self.ctx.now())
                self._record_failure(e)
                logger.error(
                    "Resolution failed for market %s at stage %s: %s %s",
                    market.id,
                    e.stage,
                    e.code,
                    e.message,
                )
                raise

            state.stage = ResolutionStage.DONE
            state.stages.append(ResolutionStage.DONE)
            state.set_status(ResolutionStatus.COMPLETED, self.ctx.now())
            result = self._build_result(state)
            self._record_success(result)
            self.ctx.info(
                "Market %s resolved: %s at %.2f%% (tx %s, $%.4f, %.2fs)",
                market.id,
                "YES" if result.outcome else "NO",
                result.confidence / 100,
                result.tx_hash,
                result.cost_usd,
                result.duration,
            )
            return result

    def get_stats(self) -> dict[str, Any]:
        with self._stats_lock:
            stats = self._stats.to_dict()
        stats["in_flight"] = len(self.in_flight)
        return stats

    def get_pending_resolutions(self) -> list[dict[str, Any]]:
        """In-flight market ids with their current status."""
        return [
            {"market_id": market_id, "status": status.value}
            for market_id, status in sorted(self.in_flight.snapshot().items())
        ]

    def get_attempt(self, market_id: int) -> Optional[ResolutionState]:
        """State of the most recent attempt for `market_id`."""
        return self._attempts.get(market_id)

    # =========================================================================
    # Stages
    # =========================================================================

    def _build_stages(self) -> list:
        return [
            make_stage(ResolutionStage.FETCHING, self._fetch),
            make_stage(ResolutionStage.ANALYZING, self._analyze),
            make_stage(ResolutionStage.CONFIDENCE_GATE, self._confidence_gate),
            make_stage(ResolutionStage.COMPILING, self._compile),
            make_stage(ResolutionStage.STORING, self._store),
            make_stage(ResolutionStage.GAS_GATE, self._gas_gate),
            make_stage(ResolutionStage.SUBMITTING, self._submit),
        ]

    def _publish(self, state: ResolutionState) -> None:
        self.in_flight.update(state.market_id, state.status)

    def _fetch(self, state: ResolutionState) -> ResolutionState:
        market = state.market
        adapters = self.registry.create_for_category(market.category, self.ctx)
        if not adapters:
            raise InsufficientDataException(
                f"No data sources registered for category {market.category.value}",
                market_id=market.id,
                category=market.category.value,
            )

        outcome = fan_out(
            adapters,
            ResolutionQuery.for_market(market),
            timeout=self.config.fetch_timeout_s,
        )
        state.sources = outcome.sources
        state.failures = outcome.failures

        if not state.sources:
            raise InsufficientDataException(
                f"No data sources available for category {market.category.value}",
                market_id=market.id,
                category=market.category.value,
                details={"failures": outcome.failure_summary()},
            )
        self.ctx.info(
            "Fetched %d/%d sources for market %s",
            len(state.sources),
            len(adapters),
            market.id,
        )
        return state

    def _analyze(self, state: ResolutionState) -> ResolutionState:
        state.verdict = self.analyzer.analyze(state.market, state.sources)
        return state

    def _confidence_gate(self, state: ResolutionState) -> ResolutionState:
        verdict = state.verdict
        if verdict is None or verdict.confidence < self.min_confidence:
            raise LowConfidenceException(
                verdict.confidence if verdict else 0,
                self.min_confidence,
                details={"market_id": state.market_id},
            )
        return state

    def _compile(self, state: ResolutionState) -> ResolutionState:
        state.evidence = self.compiler.compile(
            state.market,
            state.sources,
            state.verdict,
            submitted_by=self.chain.signer_address(),
        )
        return state

    def _store(self, state: ResolutionState) -> ResolutionState:
        receipt = self.storage.upload(state.evidence)
        state.storage_receipt = receipt
        state.evidence.record_content_id(receipt.content_id)
        return state

    def _gas_gate(self, state: ResolutionState) -> ResolutionState:
        try:
            gas_price = self.chain.get_gas_price()
        except OracleException:
            raise
        except Exception as e:
            raise TransactionFailedException(
                f"Failed to read gas price: {e}",
                details={"error": str(e)},
            ) from e

        state.gas_price_wei = gas_price
        if gas_price > self.max_gas_price_wei:
            raise GasTooHighException(
                gas_price,
                self.max_gas_price_wei,
                details={"content_id": state.content_id},
            )
        return state

    def _submit(self, state: ResolutionState) -> ResolutionState:
        try:
            receipt = self.chain.submit_resolution(
                state.market_id,
                state.verdict.outcome,
                state.verdict.confidence,
                state.content_id,
            )
        except OracleException as e:
            e.with_context(content_id=state.content_id)
            raise
        state.tx_receipt = receipt
        state.evidence.record_transaction(receipt.tx_hash, receipt.block_number)
        return state

    # =========================================================================
    # Accounting
    # =========================================================================

    def _build_result(self, state: ResolutionState) -> ResolutionResult:
        tx = state.tx_receipt
        gas_price = tx.effective_gas_price or state.gas_price_wei or 0
        gas_cost = gas_cost_usd(tx.gas_used, gas_price, self.native_token_usd)
        duration = (self.ctx.now() - state.started_at).total_seconds()
        return ResolutionResult(
            market_id=state.market_id,
            outcome=state.verdict.outcome,
            confidence=state.verdict.confidence,
            evidence_content_id=state.content_id,
            tx_hash=tx.tx_hash,
            block_number=tx.block_number,
            gas_used=tx.gas_used,
            cost_usd=state.verdict.cost + gas_cost,
            duration=max(duration, 0.0),
            stages=list(state.stages),
        )

    def _remember(self, state: ResolutionState) -> None:
        with self._stats_lock:
            self._attempts[state.market.id] = state
            self._attempts.move_to_end(state.market.id)
            while len(self._attempts) > self.max_tracked_attempts:
                self._attempts.popitem(last=False)

    def _record_success(self, result: ResolutionResult) -> None:
        with self._stats_lock:
            self._stats.completed += 1
            self._stats.total_confidence += result.confidence
            self._stats.total_cost_usd += result.cost_usd
            self._stats.last_attempt_at = self.ctx.now()

    def _record_failure(self, error: OracleException) -> None:
        with self._stats_lock:
            if terminal_status(error) == ResolutionStatus.MANUAL_REVIEW:
                self._stats.manual_review += 1
            else:
                self._stats.failed += 1
            counts = self._stats.failures_by_code
            counts[error.code] = counts.get(error.code, 0) + 1
            self._stats.last_attempt_at = self.ctx.now()
