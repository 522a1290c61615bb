"""
Resolution Orchestration

Drives a market through the resolution state machine and provides the
work queue that replaces chain event listeners.

Public API:
- ResolutionEngine: runs one attempt (Market in, ResolutionResult out)
- StageExecutor / ResolutionState: sequential stage runner and its state
- fan_out / FanOutResult: concurrent adapter invocation, settled results
- InFlightRegistry: one attempt per market at a time
- ResolutionQueue / ResolutionJob: job queue and worker pool
- OracleService / build_service: market reads plus wiring from config
"""

from orchestrator.engine import (
    MANUAL_REVIEW_CODES,
    EngineStats,
    ResolutionEngine,
    terminal_status,
)
from orchestrator.fanout import FanOutResult, fan_out
from orchestrator.inflight import InFlightRegistry
from orchestrator.jobs import JobStatus, ResolutionJob, ResolutionQueue
from orchestrator.service import OracleService, build_service, build_test_service
from orchestrator.stages import (
    FunctionStage,
    ResolutionState,
    Stage,
    StageExecutor,
    make_stage,
)

__all__ = [
    "ResolutionEngine",
    "EngineStats",
    "MANUAL_REVIEW_CODES",
    "terminal_status",
    "FanOutResult",
    "fan_out",
    "InFlightRegistry",
    "JobStatus",
    "ResolutionJob",
    "ResolutionQueue",
    "OracleService",
    "build_service",
    "build_test_service",
    "FunctionStage",
    "ResolutionState",
    "Stage",
    "StageExecutor",
    "make_stage",
]
