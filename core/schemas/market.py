"""
Module 01 - Schemas & Canonicalization
File: market.py

Purpose: Market snapshot read from the ledger and the closed category
set shared with every adapter.
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Category(str, Enum):
    """Closed set of market categories."""

    CRYPTO = "Crypto"
    SPORTS = "Sports"
    POLITICS = "Politics"
    WEATHER = "Weather"
    ENTERTAINMENT = "Entertainment"
    TECHNOLOGY = "Technology"
    FINANCE = "Finance"
    OTHER = "Other"


# Substring -> category, checked in order
_CATEGORY_KEYWORDS: tuple[tuple[str, Category], ...] = (
    ("crypto", Category.CRYPTO),
    ("sport", Category.SPORTS),
    ("politic", Category.POLITICS),
    ("weather", Category.WEATHER),
    ("entertainment", Category.ENTERTAINMENT),
    ("tech", Category.TECHNOLOGY),
    ("finance", Category.FINANCE),
)


def parse_category(text: str | None) -> Category:
    """
    Map a free-form category label to a Category.

    Matching is a case-insensitive substring test, so "Crypto Markets"
    and "cryptocurrency" both map to CRYPTO. Anything unknown is OTHER.
    """
    lowered = (text or "").lower()
    for needle, category in _CATEGORY_KEYWORDS:
        if needle in lowered:
            return category
    return Category.OTHER


class Market(BaseModel):
    """
    Read-only market snapshot.

    The pipeline never mutates a Market; the model is frozen.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: int = Field(..., description="On-chain market id", ge=0)
    question: str = Field(..., description="Question the market resolves", min_length=1)
    description: str = Field(default="", description="Longer market description")
    category: Category = Field(default=Category.OTHER, description="Market category")
    creator: str = Field(default="", description="Creator address")
    end_time: datetime = Field(..., description="Time after which the market can resolve (UTC)")
    resolved: bool = Field(default=False, description="Whether the ledger holds an outcome")
    outcome: bool | None = Field(default=None, description="Outcome, once resolved")
    ai_oracle_enabled: bool = Field(default=True, description="Whether AI resolution is allowed")

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, v):
        if isinstance(v, Category):
            return v
        if isinstance(v, str):
            try:
                return Category(v)
            except ValueError:
                return parse_category(v)
        return v

    @field_validator("end_time")
    @classmethod
    def ensure_utc_end_time(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    def has_ended(self, now: datetime) -> bool:
        """True once `now` is at or after end_time."""
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now >= self.end_time
