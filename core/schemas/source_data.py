"""
Module 01 - Schemas & Canonicalization
File: source_data.py

Purpose: Normalized adapter output. Provider payloads are a tagged
union keyed by `kind`; each adapter decodes its own provider JSON into
one of these variants before it reaches the rest of the pipeline.
"""

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from .market import Category

MAX_CONFIDENCE = 10000


# =============================================================================
# Payload variants
# =============================================================================

class PricePayload(BaseModel):
    """Spot or historical asset price."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["price"] = "price"
    symbol: str = Field(..., min_length=1)
    price: float = Field(..., gt=0)
    price_change_24h: float | None = None
    volume_24h: float | None = None
    market_cap: float | None = None
    timestamp: datetime
    source: str = Field(..., description="Provider the price was read from")


class GameResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    home_team: str
    away_team: str
    home_score: int | None = None
    away_score: int | None = None
    status: str = ""
    league: str = ""
    date: str = ""


class SportsPayload(BaseModel):
    """Recent game results for a sport."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["sports"] = "sports"
    sport: str
    provider: str
    results: list[GameResult] = Field(default_factory=list)
    analysis: dict[str, Any] = Field(default_factory=dict)


class Coordinates(BaseModel):
    model_config = ConfigDict(extra="forbid")

    lat: float
    lon: float


class ForecastDay(BaseModel):
    model_config = ConfigDict(extra="forbid")

    date: str
    temp_high: float | None = None
    temp_low: float | None = None
    conditions: str = ""
    precipitation: float | None = None


class WeatherPayload(BaseModel):
    """Current conditions plus a daily forecast for one location."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["weather"] = "weather"
    location: str
    coordinates: Coordinates
    temperature: float | None = None
    temperature_unit: str = "°C"
    conditions: str = ""
    humidity: float | None = None
    wind_speed: float | None = None
    forecast: list[ForecastDay] = Field(default_factory=list)
    analysis: dict[str, Any] = Field(default_factory=dict)


class Article(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str
    description: str = ""
    source: str = ""
    url: str = ""
    published_at: str = ""
    relevance: float = Field(default=0.0, ge=0.0, le=1.0)


class Sentiment(BaseModel):
    model_config = ConfigDict(extra="forbid")

    positive: int = 0
    negative: int = 0
    neutral: int = 0


class NewsPayload(BaseModel):
    """Articles and web results relevant to a question."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["news"] = "news"
    articles: list[Article] = Field(default_factory=list)
    analysis: dict[str, Any] = Field(default_factory=dict)
    sentiment: Sentiment = Field(default_factory=Sentiment)
    key_facts: list[str] = Field(default_factory=list)


class FallbackPayload(BaseModel):
    """Placeholder returned when an adapter found nothing it could use."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["fallback"] = "fallback"
    reason: str
    suggestion: str = ""
    suggested_sources: list[str] = Field(default_factory=list)


Payload = Annotated[
    Union[PricePayload, SportsPayload, WeatherPayload, NewsPayload, FallbackPayload],
    Field(discriminator="kind"),
]


# =============================================================================
# SourceData
# =============================================================================

class SourceData(BaseModel):
    """
    One adapter's normalized result for one market.

    Produced once per adapter invocation and never mutated afterwards.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    source: str = Field(..., description="Adapter name", min_length=1)
    category: Category
    fetched_at: datetime
    data: Payload
    confidence: int = Field(..., ge=0, le=MAX_CONFIDENCE, description="0-10000 = 0-100.00%")
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_fallback(self) -> bool:
        return self.data.kind == "fallback" or bool(self.metadata.get("fallback"))

    @property
    def numeric_value(self) -> float | None:
        """The comparable number this source reports, if any."""
        if isinstance(self.data, PricePayload):
            return self.data.price
        return None
