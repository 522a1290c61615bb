"""
API Error Handling

Maps pipeline exceptions to a JSON ErrorResponse with a status code.
No handler ever returns a stack trace.
"""

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from api.models.responses import ErrorDetail, ErrorResponse
from core.schemas import ErrorCodes, OracleException

_STATUS_BY_CODE: dict[str, int] = {
    ErrorCodes.RESOLUTION_IN_PROGRESS: 409,
    ErrorCodes.MARKET_ALREADY_RESOLVED: 409,
    ErrorCodes.MARKET_NOT_ENDED: 409,
    ErrorCodes.AI_LOW_CONFIDENCE: 422,
    ErrorCodes.INSUFFICIENT_DATA: 422,
    ErrorCodes.INVALID_MARKET: 404,
    ErrorCodes.BLOCKCHAIN_GAS_TOO_HIGH: 503,
    ErrorCodes.BLOCKCHAIN_TX_FAILED: 503,
    ErrorCodes.BLOCKCHAIN_UNAUTHORIZED: 503,
    ErrorCodes.BLOCKCHAIN_CONTRACT_ERROR: 503,
}


def status_for(exc: OracleException) -> int:
    return _STATUS_BY_CODE.get(exc.code, 500)


class APIError(Exception):
    """Base API error with structured response."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            ok=False,
            error=ErrorDetail(
                code=self.code,
                message=self.message,
                details=self.details,
            ),
        )


class NotFoundError(APIError):
    """Requested resource does not exist."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            code="NOT_FOUND",
            message=message,
            status_code=404,
            details=details,
        )


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle APIError exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(mode="json"),
    )


async def oracle_error_handler(request: Request, exc: OracleException) -> JSONResponse:
    """Handle pipeline exceptions: stage label plus error kind."""
    return JSONResponse(
        status_code=status_for(exc),
        content=ErrorResponse(
            ok=False,
            error=ErrorDetail(
                code=exc.code,
                message=exc.message,
                details={**exc.details, "retryable": exc.retryable},
            ),
        ).model_dump(mode="json"),
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            ok=False,
            error=ErrorDetail(
                code=ErrorCodes.UNKNOWN_ERROR,
                message="An unexpected error occurred",
                details={"type": type(exc).__name__},
            ),
        ).model_dump(mode="json"),
    )
