"""
Module 01 - Schemas & Canonicalization
File: verdict.py

Purpose: Structured verdict returned by the AI analyzer.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from .source_data import MAX_CONFIDENCE


class AlternativeOutcome(BaseModel):
    """An outcome the model considered but did not choose."""

    model_config = ConfigDict(extra="ignore")

    outcome: bool
    probability: float = Field(default=0.0, ge=0.0, le=1.0)
    reasoning: str = ""


class AIVerdict(BaseModel):
    """
    The analyzer's decision for one market.

    `outcome` and `confidence` are always present together. `reasoning`
    and `data_points` may be empty on the model, but a verdict with
    either one empty never passes the analyzer's acceptance gate.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    outcome: bool
    confidence: int = Field(..., ge=0, le=MAX_CONFIDENCE)
    reasoning: list[str] = Field(default_factory=list)
    data_points: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    alternative_outcomes: list[AlternativeOutcome] = Field(default_factory=list)
    model: str = ""
    tokens_used: int = Field(default=0, ge=0)
    cost: float = Field(default=0.0, ge=0.0, description="USD")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def confidence_percent(self) -> float:
        return self.confidence / 100
