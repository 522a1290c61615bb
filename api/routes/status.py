"""
Status Route

Signer identity, authorization, in-flight resolutions and engine stats.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from api.deps import get_queue, get_service
from api.models.responses import StatusResponse
from orchestrator import OracleService, ResolutionQueue


router = APIRouter(tags=["status"])


@router.get("/status", response_model=StatusResponse)
def oracle_status(
    service: OracleService = Depends(get_service),
    jobs: ResolutionQueue = Depends(get_queue),
) -> StatusResponse:
    return StatusResponse(ok=True, queued_jobs=jobs.pending, **service.status())
