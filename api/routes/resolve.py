"""
Resolve Route

Synchronous resolution: the request blocks until the market is
resolved on-chain or the pipeline fails.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from api.deps import get_service
from api.models.responses import ResolveResponse
from orchestrator import OracleService


logger = logging.getLogger(__name__)

router = APIRouter(tags=["resolution"])


@router.post("/resolve/{market_id}", response_model=ResolveResponse)
def resolve_market(
    market_id: int,
    service: OracleService = Depends(get_service),
) -> ResolveResponse:
    """
    Run the full pipeline for one market.

    Pipeline failures are turned into an ErrorResponse by the
    OracleException handler.
    """
    logger.info("API resolve request for market %s", market_id)
    result = service.resolve_market(market_id)
    return ResolveResponse(ok=True, result=result)
