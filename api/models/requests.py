"""
API Request Models

Pydantic models for API request validation.
"""

from pydantic import BaseModel, ConfigDict, Field


class JobRequest(BaseModel):
    """Request body for POST /jobs."""

    model_config = ConfigDict(extra="forbid")

    market_id: int = Field(
        ...,
        ge=0,
        description="On-chain id of the market to resolve",
    )
