"""
Confidence rubric shared by all adapters.

Every adapter scores its output the same way:

    score = base trust
            - sum of penalties whose age threshold the data exceeds
            + sum of bonuses for auxiliary fields that are present
    clamped to [0, 10000]

Only the constants differ per provider. The rubric keeps each
provider's historical constants so scores stay comparable with
previously published evidence.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from core.schemas import MAX_CONFIDENCE

FALLBACK_CONFIDENCE = 3000


def clamp_confidence(value: float) -> int:
    """Round and clamp a score to the 0-10000 fixed-point range."""
    return int(min(max(round(value), 0), MAX_CONFIDENCE))


@dataclass(frozen=True)
class ConfidenceRubric:
    """
    Per-provider scoring constants.

    Attributes:
        base: Trust level of the provider when data is fresh.
        age_penalties: (age_seconds, penalty) pairs; every threshold
            strictly exceeded subtracts its penalty.
        bonuses: Named bonuses applied when the caller reports the
            auxiliary field as present.
    """
    base: int
    age_penalties: tuple[tuple[float, int], ...] = ()
    bonuses: dict[str, int] = field(default_factory=dict)

    def score(self, age_seconds: float = 0.0, present: tuple[str, ...] | set[str] = ()) -> int:
        value = self.base
        for threshold, penalty in self.age_penalties:
            if age_seconds > threshold:
                value -= penalty
        for name in present:
            value += self.bonuses.get(name, 0)
        return clamp_confidence(value)


# Spot prices from an aggregator: older than 5 min loses 500, older than 15 min loses another 1000
COINGECKO_RUBRIC = ConfidenceRubric(
    base=9000,
    age_penalties=((300, 500), (900, 1000)),
    bonuses={"volume": 300, "market_cap": 200},
)

# Exchange prices: older than 2 min loses 500, older than 5 min loses another 1000
BINANCE_RUBRIC = ConfidenceRubric(
    base=9500,
    age_penalties=((120, 500), (300, 1000)),
    bonuses={"volume": 500},
)

SPORTS_RUBRIC = ConfidenceRubric(base=5000, bonuses={"results": 3500})
WEATHER_RUBRIC = ConfidenceRubric(base=8500)
NEWS_RUBRIC = ConfidenceRubric(base=5000, bonuses={"articles": 2500})
NEWS_FALLBACK_CONFIDENCE = 4000
