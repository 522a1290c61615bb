"""
Evidence Compiler

Builds the EvidencePackage for one resolution attempt from the market
snapshot, the SourceData the fan-out produced and the accepted verdict.

Verification checks computed here:
- multi_source_agreement: numeric sources within 1% of their mean
- data_freshness: age of the oldest source, in seconds
- bias_check: short audit string for operators and disputers
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Optional, TYPE_CHECKING

from core.schemas import (
    AIVerdict,
    EvidenceMetadata,
    EvidencePackage,
    Market,
    MarketSnapshot,
    ResolutionSummary,
    SourceData,
    Verification,
)

from agents.base import BaseAgent

if TYPE_CHECKING:
    from agents.context import AgentContext

AGREEMENT_TOLERANCE = 0.01
HIGH_CONFIDENCE = 9500
MODERATE_CONFIDENCE = 8500


def check_multi_source_agreement(
    sources: list[SourceData],
    tolerance: float = AGREEMENT_TOLERANCE,
) -> bool:
    """
    True when every numeric source lies within `tolerance` of the mean.

    Fewer than two numeric sources agree vacuously.
    """
    values = [s.numeric_value for s in sources if s.numeric_value is not None]
    if len(values) < 2:
        return True

    mean = sum(values) / len(values)
    if mean == 0:
        return all(v == 0 for v in values)
    max_deviation = max(abs(v - mean) / abs(mean) for v in values)
    return max_deviation < tolerance


def calculate_data_freshness(sources: list[SourceData], now: datetime) -> int:
    """Age in whole seconds of the oldest source; 0 with no sources."""
    if not sources:
        return 0
    oldest = min(s.fetched_at for s in sources)
    return max(0, math.ceil((now - oldest).total_seconds()))


def perform_bias_check(sources: list[SourceData], verdict: AIVerdict) -> str:
    checks = []
    if len(sources) < 2:
        checks.append("Single source - could not cross-verify")
    else:
        checks.append(f"{len(sources)} sources cross-verified")

    if verdict.confidence > HIGH_CONFIDENCE:
        checks.append("Very high confidence - strong data agreement")
    elif verdict.confidence < MODERATE_CONFIDENCE:
        checks.append("Moderate confidence - some uncertainty present")

    fallbacks = sum(1 for s in sources if s.is_fallback)
    if fallbacks:
        checks.append(f"{fallbacks} fallback source(s) without provider data")

    if verdict.warnings:
        checks.append(f"{len(verdict.warnings)} warning(s) noted by AI")

    return "; ".join(checks)


class EvidenceCompiler(BaseAgent):
    """
    Compiles evidence packages.

    Only the sources that succeeded are embedded; failed adapters
    contribute nothing.
    """

    _name = "EvidenceCompiler"
    _version = "v1"
    _capabilities = set()

    def __init__(self, ctx: "AgentContext", **kwargs) -> None:
        super().__init__(**kwargs)
        self.ctx = ctx

    def compile(
        self,
        market: Market,
        sources: list[SourceData],
        verdict: AIVerdict,
        submitted_by: Optional[str] = None,
    ) -> EvidencePackage:
        now = self.ctx.now()
        verification = Verification(
            multi_source_agreement=check_multi_source_agreement(sources),
            sources_used=len(sources),
            data_freshness=calculate_data_freshness(sources, now),
            bias_check=perform_bias_check(sources, verdict),
        )
        self.ctx.debug(
            "Compiled evidence for market %s: %d sources, agreement=%s",
            market.id,
            verification.sources_used,
            verification.multi_source_agreement,
        )
        return EvidencePackage(
            market_id=market.id,
            market=MarketSnapshot.from_market(market),
            resolution=ResolutionSummary(
                outcome=verdict.outcome,
                confidence=verdict.confidence,
                timestamp=now,
                submitted_by=submitted_by or "",
            ),
            sources=list(sources),
            ai_analysis=verdict,
            verification=verification,
            metadata=EvidenceMetadata(oracle_agent=submitted_by),
        )
