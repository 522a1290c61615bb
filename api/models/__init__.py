"""API request and response models."""

from api.models.requests import JobRequest
from api.models.responses import (
    ErrorDetail,
    ErrorResponse,
    HealthResponse,
    JobInfo,
    JobResponse,
    ResolveResponse,
    StatusResponse,
)

__all__ = [
    "JobRequest",
    "HealthResponse",
    "ResolveResponse",
    "JobInfo",
    "JobResponse",
    "StatusResponse",
    "ErrorDetail",
    "ErrorResponse",
]
