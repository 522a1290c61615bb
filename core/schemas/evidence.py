"""
Module 01 - Schemas & Canonicalization
File: evidence.py

Purpose: The evidence package published to content-addressed storage.

The package is immutable once uploaded, except for the `metadata` block
which is append-only: the content id is recorded first, then the
transaction hash and block number.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .market import Category, Market
from .source_data import MAX_CONFIDENCE, SourceData
from .verdict import AIVerdict

EVIDENCE_VERSION = "1.0"


class MarketSnapshot(BaseModel):
    model_config = ConfigDict(extra="forbid")

    question: str
    description: str = ""
    category: Category
    end_time: datetime
    creator: str = ""

    @classmethod
    def from_market(cls, market: Market) -> "MarketSnapshot":
        return cls(
            question=market.question,
            description=market.description,
            category=market.category,
            end_time=market.end_time,
            creator=market.creator,
        )


class ResolutionSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    outcome: bool
    confidence: int = Field(..., ge=0, le=MAX_CONFIDENCE)
    timestamp: datetime
    submitted_by: str = ""


class Verification(BaseModel):
    """Cross-source checks computed at compile time."""

    model_config = ConfigDict(extra="forbid")

    multi_source_agreement: bool
    sources_used: int = Field(..., ge=0)
    data_freshness: int = Field(..., ge=0, description="Age of the oldest source, seconds")
    bias_check: str


class EvidenceMetadata(BaseModel):
    model_config = ConfigDict(extra="forbid")

    oracle_agent: str | None = Field(default=None, description="Submitter address")
    content_id: str | None = None
    tx_hash: str | None = None
    block_number: int | None = None


class EvidencePackage(BaseModel):
    """Everything needed to audit one resolution."""

    model_config = ConfigDict(extra="forbid")

    version: str = EVIDENCE_VERSION
    market_id: int
    market: MarketSnapshot
    resolution: ResolutionSummary
    sources: list[SourceData]
    ai_analysis: AIVerdict
    verification: Verification
    metadata: EvidenceMetadata = Field(default_factory=EvidenceMetadata)

    def content_dict(self) -> dict[str, Any]:
        """Model dump without the append-only metadata block."""
        return self.model_dump(mode="json", exclude={"metadata"})

    def record_content_id(self, content_id: str) -> None:
        if self.metadata.content_id and self.metadata.content_id != content_id:
            raise ValueError(
                f"content_id already recorded as {self.metadata.content_id!r}"
            )
        self.metadata = self.metadata.model_copy(update={"content_id": content_id})

    def record_transaction(self, tx_hash: str, block_number: int | None) -> None:
        if self.metadata.tx_hash and self.metadata.tx_hash != tx_hash:
            raise ValueError(f"tx_hash already recorded as {self.metadata.tx_hash!r}")
        self.metadata = self.metadata.model_copy(
            update={"tx_hash": tx_hash, "block_number": block_number}
        )
