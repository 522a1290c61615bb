"""
Stage Executor

Keeps the resolution state machine composable and testable:

    fetching -> analyzing -> confidence_gate -> compiling -> storing
             -> gas_gate -> submitting -> done

Provides:
- ResolutionState: artifacts of one attempt, filled in stage by stage
- Stage: protocol for a single stage
- StageExecutor: runs stages strictly in sequence; the first failure
  ends the attempt

Every stage is a potential exit point. A failure is recorded on the
state with its stage label and re-raised as an OracleException.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional, Protocol

from agents.base import AgentResult
from core.schemas import (
    AIVerdict,
    ErrorCodes,
    EvidencePackage,
    Market,
    OracleException,
    ResolutionStage,
    ResolutionStatus,
    SourceData,
    StorageReceipt,
    TxReceipt,
)

logger = logging.getLogger(__name__)


@dataclass
class ResolutionState:
    """
    Holds the artifacts of one resolution attempt.

    Fields are Optional so stages can populate them incrementally.
    """

    market: Market

    stage: Optional[ResolutionStage] = None
    status: ResolutionStatus = ResolutionStatus.PENDING
    started_at: Optional[datetime] = None

    # Fetching
    sources: list[SourceData] = field(default_factory=list)
    failures: list[AgentResult] = field(default_factory=list)

    # Analyzing
    verdict: Optional[AIVerdict] = None

    # Compiling / storing
    evidence: Optional[EvidencePackage] = None
    storage_receipt: Optional[StorageReceipt] = None

    # Gas gate / submitting
    gas_price_wei: Optional[int] = None
    tx_receipt: Optional[TxReceipt] = None

    # Audit trail
    stages: list[ResolutionStage] = field(default_factory=list)
    transitions: list[tuple[ResolutionStatus, datetime]] = field(default_factory=list)
    error: Optional[OracleException] = None

    @property
    def market_id(self) -> int:
        return self.market.id

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def content_id(self) -> Optional[str]:
        return self.storage_receipt.content_id if self.storage_receipt else None

    def set_status(self, status: ResolutionStatus, at: datetime) -> None:
        """Record a status transition; repeated statuses are not duplicated."""
        if self.transitions and self.transitions[-1][0] == status:
            return
        self.status = status
        self.transitions.append((status, at))

    def to_dict(self) -> dict:
        return {
            "market_id": self.market_id,
            "stage": self.stage.value if self.stage else None,
            "status": self.status.value,
            "sources": [s.source for s in self.sources],
            "failed_sources": [f.source for f in self.failures],
            "content_id": self.content_id,
            "tx_hash": self.tx_receipt.tx_hash if self.tx_receipt else None,
            "transitions": [
                {"status": status.value, "at": at.isoformat()}
                for status, at in self.transitions
            ],
            "error": self.error.to_error_model().model_dump() if self.error else None,
        }


class Stage(Protocol):
    """A single step of the state machine."""

    @property
    def name(self) -> ResolutionStage:
        ...

    def run(self, state: ResolutionState) -> ResolutionState:
        ...


@dataclass
class FunctionStage:
    """
    Adapter to create a Stage from a plain function.

    Example:
        stage = FunctionStage(ResolutionStage.FETCHING, engine._fetch)
    """

    _name: ResolutionStage
    _func: Callable[[ResolutionState], ResolutionState]

    @property
    def name(self) -> ResolutionStage:
        return self._name

    def run(self, state: ResolutionState) -> ResolutionState:
        return self._func(state)


def make_stage(
    name: ResolutionStage,
    func: Callable[[ResolutionState], ResolutionState],
) -> Stage:
    return FunctionStage(name, func)


class StageExecutor:
    """
    Runs stages in sequence.

    `on_enter` is called with the state before each stage runs, after
    the stage label and status have been updated; the engine uses it to
    publish progress to the in-flight registry.
    """

    def __init__(
        self,
        *,
        now: Callable[[], datetime],
        on_enter: Optional[Callable[[ResolutionState], None]] = None,
    ) -> None:
        self._now = now
        self._on_enter = on_enter
        self._stage_results: list[tuple[ResolutionStage, bool, Optional[str]]] = []

    def execute(self, stages: list[Stage], state: ResolutionState) -> ResolutionState:
        """
        Execute all stages in order.

        Raises:
            OracleException: the first stage failure, with `stage` and
                `market_id` added to its details
        """
        self._stage_results = []
        if state.started_at is None:
            state.started_at = self._now()

        for stage in stages:
            state.stage = stage.name
            state.stages.append(stage.name)
            state.set_status(stage.name.status, self._now())
            logger.info("Market %s: entering stage %s", state.market_id, stage.name.value)
            if self._on_enter is not None:
                self._on_enter(state)

            try:
                state = stage.run(state)
            except OracleException as e:
                self._fail(state, stage.name, e)
                raise
            except Exception as e:
                wrapped = OracleException(
                    f"Stage '{stage.name.value}' failed: {e}",
                    code=ErrorCodes.UNKNOWN_ERROR,
                    details={"error": str(e)},
                )
                self._fail(state, stage.name, wrapped)
                raise wrapped from e
            self._stage_results.append((stage.name, True, None))

        return state

    def _fail(self, state: ResolutionState, stage: ResolutionStage, error: OracleException) -> None:
        error.with_context(stage=stage.value, market_id=state.market_id)
        state.error = error
        self._stage_results.append((stage, False, error.message))

    @property
    def stage_results(self) -> list[tuple[ResolutionStage, bool, Optional[str]]]:
        """(stage, success, error message) for each executed stage."""
        return self._stage_results.copy()

    def get_failed_stages(self) -> list[ResolutionStage]:
        return [name for name, success, _ in self._stage_results if not success]
