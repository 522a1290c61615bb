"""
AI Resolution Analyzer

Asks the LLM for a structured verdict on a market given every source
the fan-out produced.

Flow:
1. Category-aware system prompt plus a dump of each SourceData
2. Structured request through the resolution tool schema
3. Parse (tool arguments, else first JSON object in the text)
4. Acceptance gate (validate_response)
5. Confidence floor -> LowConfidenceException

A verdict below the floor is a failure, never a degraded success.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, TYPE_CHECKING

from pydantic import ValidationError

from agents.base import AgentCapability, BaseAgent
from core.llm import LLMResponse
from core.schemas import (
    MAX_CONFIDENCE,
    AIAnalysisException,
    AIVerdict,
    ErrorCodes,
    LowConfidenceException,
    Market,
    OracleException,
    SourceData,
)

from .prompts import RESOLUTION_TOOL_NAME, RESOLUTION_TOOL_SCHEMA, build_prompt, get_system_prompt

if TYPE_CHECKING:
    from agents.context import AgentContext

logger = logging.getLogger(__name__)

DEFAULT_MIN_CONFIDENCE = 8000
DEFAULT_COST_PER_1K_TOKENS = 0.02


def calculate_cost(tokens: int, cost_per_1k_tokens: float = DEFAULT_COST_PER_1K_TOKENS) -> float:
    """USD cost of a call; a flat blended rate per thousand tokens."""
    return tokens / 1000 * cost_per_1k_tokens


def validate_response(verdict: AIVerdict) -> bool:
    """Acceptance gate applied before a verdict may drive a resolution."""
    if not isinstance(verdict.outcome, bool):
        return False
    if not 0 <= verdict.confidence <= MAX_CONFIDENCE:
        return False
    if not verdict.reasoning or not verdict.data_points:
        return False
    return True


def _normalize_alternatives(items: Any) -> list[dict[str, Any]]:
    alternatives = []
    for item in items or []:
        if not isinstance(item, dict) or not isinstance(item.get("outcome"), bool):
            continue
        probability = item.get("probability", 0) or 0
        try:
            probability = float(probability)
        except (TypeError, ValueError):
            probability = 0.0
        # Some models answer on a 0-100 scale
        if probability > 1:
            probability = probability / 100
        alternatives.append({
            "outcome": item["outcome"],
            "probability": min(max(probability, 0.0), 1.0),
            "reasoning": str(item.get("reasoning", "")),
        })
    return alternatives


class AIAnalyzer(BaseAgent):
    """
    LLM-backed resolution analyzer.

    Usage:
        analyzer = AIAnalyzer(ctx)
        verdict = analyzer.analyze(market, sources)
    """

    _name = "AIAnalyzer"
    _version = "v1"
    _capabilities = {AgentCapability.LLM}

    def __init__(
        self,
        ctx: "AgentContext",
        *,
        min_confidence: Optional[int] = None,
        cost_per_1k_tokens: Optional[float] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.ctx = ctx
        analyzer_config = ctx.config.analyzer if ctx.config else None
        self.min_confidence = (
            min_confidence if min_confidence is not None
            else analyzer_config.min_confidence if analyzer_config
            else DEFAULT_MIN_CONFIDENCE
        )
        self.cost_per_1k_tokens = (
            cost_per_1k_tokens if cost_per_1k_tokens is not None
            else analyzer_config.cost_per_1k_tokens if analyzer_config
            else DEFAULT_COST_PER_1K_TOKENS
        )

    def analyze(self, market: Market, sources: list[SourceData]) -> AIVerdict:
        """
        Produce an accepted verdict for `market`.

        Raises:
            AIAnalysisException: no LLM, provider error, unparseable or
                structurally invalid answer.
            LowConfidenceException: confidence below the floor.
        """
        if self.ctx.llm is None:
            raise AIAnalysisException(
                "No LLM client configured",
                code=ErrorCodes.AI_API_ERROR,
                details={"market_id": market.id},
            )

        messages = [
            {"role": "system", "content": get_system_prompt(market.category)},
            {"role": "user", "content": build_prompt(market, sources, self.min_confidence)},
        ]

        self.ctx.info("Running AI analysis for market %s with %d sources", market.id, len(sources))
        try:
            response = self.ctx.llm.chat(
                messages,
                json_schema=RESOLUTION_TOOL_SCHEMA,
                tool_name=RESOLUTION_TOOL_NAME,
            )
        except OracleException:
            raise
        except Exception as e:
            raise AIAnalysisException(
                f"AI analysis failed: {e}",
                code=ErrorCodes.AI_API_ERROR,
                details={"market_id": market.id, "error": str(e)},
            ) from e

        verdict = self.parse_verdict(response)
        if not validate_response(verdict):
            raise AIAnalysisException(
                "AI response failed validation: reasoning and data points are required",
                details={
                    "market_id": market.id,
                    "reasoning_steps": len(verdict.reasoning),
                    "data_points": len(verdict.data_points),
                },
            )

        if verdict.confidence < self.min_confidence:
            raise LowConfidenceException(
                verdict.confidence,
                self.min_confidence,
                details={"market_id": market.id, "outcome": verdict.outcome},
            )

        self.ctx.info(
            "AI verdict for market %s: %s at %.2f%% (%d tokens, $%.4f)",
            market.id,
            "YES" if verdict.outcome else "NO",
            verdict.confidence_percent,
            verdict.tokens_used,
            verdict.cost,
        )
        return verdict

    def parse_verdict(self, response: LLMResponse) -> AIVerdict:
        """Turn a raw LLM response into an AIVerdict, or raise AIAnalysisException."""
        args = response.as_json()
        if args is None:
            raise AIAnalysisException(
                "AI did not provide a structured response",
                details={"content": response.content[:200]},
            )

        outcome = args.get("outcome")
        if not isinstance(outcome, bool):
            raise AIAnalysisException(
                "AI response is missing a boolean outcome",
                details={"outcome": repr(outcome)},
            )
        confidence = args.get("confidence")
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            raise AIAnalysisException(
                "AI response is missing a numeric confidence",
                details={"confidence": repr(confidence)},
            )
        if not 0 <= confidence <= MAX_CONFIDENCE:
            raise AIAnalysisException(
                f"AI confidence {confidence} outside 0-{MAX_CONFIDENCE}",
                details={"confidence": confidence},
            )

        tokens = response.total_tokens
        try:
            return AIVerdict(
                outcome=outcome,
                confidence=round(confidence),
                reasoning=[str(s) for s in args.get("reasoning") or []],
                data_points=[str(s) for s in args.get("dataPoints") or args.get("data_points") or []],
                warnings=[str(s) for s in args.get("warnings") or []],
                alternative_outcomes=_normalize_alternatives(
                    args.get("alternativeOutcomes") or args.get("alternative_outcomes")
                ),
                model=response.model,
                tokens_used=tokens,
                cost=calculate_cost(tokens, self.cost_per_1k_tokens),
                timestamp=self.ctx.now(),
            )
        except ValidationError as e:
            raise AIAnalysisException(
                "AI returned a malformed verdict",
                details={"errors": e.errors(include_url=False)},
            ) from e
