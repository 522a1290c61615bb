"""
API Response Models

Pydantic models for API response serialization.
"""

from typing import Any

from pydantic import BaseModel, Field

from core.schemas import ResolutionResult


class HealthResponse(BaseModel):
    """Response for GET /health endpoint."""

    ok: bool = True
    service: str = "ai-oracle-api"
    version: str = "v1"


class ResolveResponse(BaseModel):
    """Response for POST /resolve/{market_id}."""

    ok: bool = True
    result: ResolutionResult = Field(..., description="Terminal result of the pipeline run")


class JobInfo(BaseModel):
    """Serialized ResolutionJob."""

    id: str
    market_id: int
    status: str
    attempts: int = 0
    max_attempts: int = 0
    errors: list[dict[str, Any]] = Field(default_factory=list)
    created_at: str
    started_at: str | None = None
    completed_at: str | None = None
    result: dict[str, Any] | None = None


class JobResponse(BaseModel):
    """Response for POST /jobs and GET /jobs/{job_id}."""

    ok: bool = True
    job: JobInfo


class StatusResponse(BaseModel):
    """Response for GET /status."""

    ok: bool = True
    signer: str = ""
    authorized: bool = False
    market_count: int | None = None
    pending: list[dict[str, Any]] = Field(default_factory=list)
    stats: dict[str, Any] = Field(default_factory=dict)
    queued_jobs: int = 0


class ErrorDetail(BaseModel):
    """Detailed error information."""

    code: str = Field(..., description="Error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Standard error response."""

    ok: bool = False
    error: ErrorDetail = Field(..., description="Error details")
