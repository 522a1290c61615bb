"""
Module 01 - Schemas & Canonicalization
File: resolution.py

Purpose: Status labels, boundary receipts and the terminal result of a
resolution attempt.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .source_data import MAX_CONFIDENCE


class ResolutionStatus(str, Enum):
    """Coarse status of an attempt, as reported to operators."""

    PENDING = "pending"
    FETCHING_DATA = "fetching_data"
    ANALYZING = "analyzing"
    UPLOADING_EVIDENCE = "uploading_evidence"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    FAILED = "failed"
    MANUAL_REVIEW = "manual_review"


class ResolutionStage(str, Enum):
    """Fine-grained stage of the resolution state machine."""

    FETCHING = "fetching"
    ANALYZING = "analyzing"
    CONFIDENCE_GATE = "confidence_gate"
    COMPILING = "compiling"
    STORING = "storing"
    GAS_GATE = "gas_gate"
    SUBMITTING = "submitting"
    DONE = "done"

    @property
    def status(self) -> ResolutionStatus:
        return _STAGE_STATUS[self]


_STAGE_STATUS: dict[ResolutionStage, ResolutionStatus] = {
    ResolutionStage.FETCHING: ResolutionStatus.FETCHING_DATA,
    ResolutionStage.ANALYZING: ResolutionStatus.ANALYZING,
    ResolutionStage.CONFIDENCE_GATE: ResolutionStatus.ANALYZING,
    ResolutionStage.COMPILING: ResolutionStatus.UPLOADING_EVIDENCE,
    ResolutionStage.STORING: ResolutionStatus.UPLOADING_EVIDENCE,
    ResolutionStage.GAS_GATE: ResolutionStatus.SUBMITTING,
    ResolutionStage.SUBMITTING: ResolutionStatus.SUBMITTING,
    ResolutionStage.DONE: ResolutionStatus.COMPLETED,
}


class StorageReceipt(BaseModel):
    """Result of a content-addressed upload."""

    model_config = ConfigDict(extra="forbid")

    content_id: str = Field(..., min_length=1)
    url: str = ""
    size: int = Field(default=0, ge=0)
    pinned: bool = False
    timestamp: datetime


class TxReceipt(BaseModel):
    """Confirmed chain transaction."""

    model_config = ConfigDict(extra="forbid")

    tx_hash: str = Field(..., min_length=1)
    gas_used: int = Field(default=0, ge=0)
    block_number: int | None = None
    effective_gas_price: int = Field(default=0, ge=0, description="wei")


class ResolutionResult(BaseModel):
    """Terminal output of one successful pipeline run."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    market_id: int
    outcome: bool
    confidence: int = Field(..., ge=0, le=MAX_CONFIDENCE)
    evidence_content_id: str
    tx_hash: str
    block_number: int | None = None
    gas_used: int = 0
    cost_usd: float = Field(default=0.0, ge=0.0)
    duration: float = Field(default=0.0, ge=0.0, description="seconds")
    stages: list[ResolutionStage] = Field(default_factory=list)
