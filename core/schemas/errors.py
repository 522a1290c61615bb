"""
Module 01 - Schemas & Errors
File: errors.py

Purpose: Error taxonomy for the resolution pipeline.
Defines both Pydantic models for structured error communication
and Python exceptions for control flow.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Error Codes (Machine-Readable Constants)
# =============================================================================

class ErrorCodes:
    """Stable machine-readable error codes used across the pipeline."""

    # Data source errors (absorbed by the fan-out)
    DATA_SOURCE_UNAVAILABLE = "DATA_SOURCE_UNAVAILABLE"
    DATA_SOURCE_RATE_LIMIT = "DATA_SOURCE_RATE_LIMIT"
    DATA_SOURCE_INVALID_RESPONSE = "DATA_SOURCE_INVALID_RESPONSE"
    DATA_SOURCE_TIMEOUT = "DATA_SOURCE_TIMEOUT"

    # AI errors
    AI_ANALYSIS_FAILED = "AI_ANALYSIS_FAILED"
    AI_LOW_CONFIDENCE = "AI_LOW_CONFIDENCE"
    AI_API_ERROR = "AI_API_ERROR"

    # Storage errors
    STORAGE_UPLOAD_FAILED = "STORAGE_UPLOAD_FAILED"
    STORAGE_RETRIEVAL_FAILED = "STORAGE_RETRIEVAL_FAILED"
    STORAGE_PIN_FAILED = "STORAGE_PIN_FAILED"

    # Chain errors
    BLOCKCHAIN_TX_FAILED = "BLOCKCHAIN_TX_FAILED"
    BLOCKCHAIN_GAS_TOO_HIGH = "BLOCKCHAIN_GAS_TOO_HIGH"
    BLOCKCHAIN_UNAUTHORIZED = "BLOCKCHAIN_UNAUTHORIZED"
    BLOCKCHAIN_CONTRACT_ERROR = "BLOCKCHAIN_CONTRACT_ERROR"

    # Market errors
    INVALID_MARKET = "INVALID_MARKET"
    MARKET_NOT_ENDED = "MARKET_NOT_ENDED"
    MARKET_ALREADY_RESOLVED = "MARKET_ALREADY_RESOLVED"
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"
    RESOLUTION_IN_PROGRESS = "RESOLUTION_IN_PROGRESS"

    # System errors
    CONFIG_ERROR = "CONFIG_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    SCHEMA_VALIDATION_ERROR = "SCHEMA_VALIDATION_ERROR"
    CANONICALIZATION_ERROR = "CANONICALIZATION_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


# =============================================================================
# Pydantic Error Model (Structured Communication)
# =============================================================================

class OracleError(BaseModel):
    """
    Error model for structured error communication.

    Used when an error has to cross a boundary as data (API responses,
    job records) instead of being raised.
    """

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
    )

    code: str = Field(
        ...,
        description="Stable machine-readable error code",
        examples=[ErrorCodes.INSUFFICIENT_DATA],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Structured context (market_id, source, stage, ...)",
    )
    retryable: bool = Field(
        default=False,
        description="Whether the operation can be retried",
    )

    def to_exception(self) -> "OracleException":
        """Convert this error model to a raisable exception."""
        return OracleException(
            code=self.code,
            message=self.message,
            details=self.details,
            retryable=self.retryable,
        )


# =============================================================================
# Python Exceptions (Control Flow)
# =============================================================================

class OracleException(Exception):
    """
    Base exception for all oracle pipeline errors.

    Carries a stable code, structured details and a retryable flag, and
    can be converted to an OracleError model.
    """

    def __init__(
        self,
        message: str,
        code: str = ErrorCodes.UNKNOWN_ERROR,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.retryable = retryable

    @property
    def stage(self) -> str | None:
        """Pipeline stage the error was raised in, if known."""
        return self.details.get("stage")

    def with_context(self, **context: Any) -> "OracleException":
        """Add context keys that are not already set. Returns self."""
        for key, value in context.items():
            if value is not None:
                self.details.setdefault(key, value)
        return self

    def to_error_model(self) -> OracleError:
        """Convert this exception to an OracleError model."""
        return OracleError(
            code=self.code,
            message=self.message,
            details=self.details,
            retryable=self.retryable,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


def _merge(details: dict[str, Any] | None, **extra: Any) -> dict[str, Any]:
    full_details = dict(details or {})
    for key, value in extra.items():
        if value is not None:
            full_details[key] = value
    return full_details


# -----------------------------------------------------------------------------
# Data source errors
# -----------------------------------------------------------------------------

class DataSourceException(OracleException):
    """Base class for per-adapter failures."""

    def __init__(
        self,
        message: str,
        code: str,
        source: str | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool = True,
    ) -> None:
        super().__init__(
            message=message,
            code=code,
            details=_merge(details, source=source),
            retryable=retryable,
        )

    @property
    def source(self) -> str | None:
        return self.details.get("source")


class DataSourceTimeoutException(DataSourceException):
    """Raised when a provider call times out after all retries."""

    def __init__(self, message: str, source: str | None = None, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, ErrorCodes.DATA_SOURCE_TIMEOUT, source, details)


class DataSourceRateLimitException(DataSourceException):
    """Raised when a provider keeps answering 429 after all retries."""

    def __init__(self, message: str, source: str | None = None, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, ErrorCodes.DATA_SOURCE_RATE_LIMIT, source, details)


class DataSourceInvalidResponseException(DataSourceException):
    """Raised on a non-retryable HTTP status or a malformed payload."""

    def __init__(self, message: str, source: str | None = None, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, ErrorCodes.DATA_SOURCE_INVALID_RESPONSE, source, details)


class NetworkException(DataSourceException):
    """Raised when a provider is unreachable after all retries."""

    def __init__(self, message: str, source: str | None = None, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, ErrorCodes.NETWORK_ERROR, source, details)


# -----------------------------------------------------------------------------
# Market errors
# -----------------------------------------------------------------------------

class InvalidMarketException(OracleException):
    """Raised when a market cannot be interpreted."""

    def __init__(self, message: str, market_id: int | None = None, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.INVALID_MARKET,
            details=_merge(details, market_id=market_id),
            retryable=False,
        )


class MarketNotEndedException(OracleException):
    """Raised when resolution is requested before the market end time."""

    def __init__(self, message: str, market_id: int | None = None, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.MARKET_NOT_ENDED,
            details=_merge(details, market_id=market_id),
            retryable=True,
        )


class MarketAlreadyResolvedException(OracleException):
    """Raised when the ledger already holds an outcome for the market."""

    def __init__(self, message: str, market_id: int | None = None, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.MARKET_ALREADY_RESOLVED,
            details=_merge(details, market_id=market_id),
            retryable=False,
        )


class InsufficientDataException(OracleException):
    """Raised when no adapter produced usable data for the market."""

    def __init__(
        self,
        message: str,
        market_id: int | None = None,
        category: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.INSUFFICIENT_DATA,
            details=_merge(details, market_id=market_id, category=category),
            retryable=True,
        )


class ResolutionInProgressException(OracleException):
    """Raised when a second attempt targets a market already in flight."""

    def __init__(self, market_id: int) -> None:
        super().__init__(
            message=f"Resolution already in progress for market {market_id}",
            code=ErrorCodes.RESOLUTION_IN_PROGRESS,
            details={"market_id": market_id},
            retryable=True,
        )


# -----------------------------------------------------------------------------
# AI errors
# -----------------------------------------------------------------------------

class AIAnalysisException(OracleException):
    """Raised when the analyzer cannot produce an acceptable verdict."""

    def __init__(
        self,
        message: str,
        code: str = ErrorCodes.AI_ANALYSIS_FAILED,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=code,
            details=details,
            retryable=False,
        )


class LowConfidenceException(OracleException):
    """Raised when a verdict's confidence is below the configured floor."""

    def __init__(
        self,
        confidence: int,
        threshold: int,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=(
                f"AI confidence ({confidence / 100:.2f}%) below minimum "
                f"threshold ({threshold / 100:.2f}%)"
            ),
            code=ErrorCodes.AI_LOW_CONFIDENCE,
            details=_merge(details, confidence=confidence, threshold=threshold),
            retryable=False,
        )


# -----------------------------------------------------------------------------
# Storage errors
# -----------------------------------------------------------------------------

class StorageUploadException(OracleException):
    """Raised when evidence could not be made durable."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.STORAGE_UPLOAD_FAILED,
            details=details,
            retryable=True,
        )


class StorageRetrievalException(OracleException):
    """Raised when stored evidence cannot be fetched or decoded."""

    def __init__(self, message: str, cid: str | None = None, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.STORAGE_RETRIEVAL_FAILED,
            details=_merge(details, cid=cid),
            retryable=True,
        )


class StoragePinException(OracleException):
    """Raised when a pin request fails."""

    def __init__(self, message: str, cid: str | None = None, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.STORAGE_PIN_FAILED,
            details=_merge(details, cid=cid),
            retryable=True,
        )


# -----------------------------------------------------------------------------
# Chain errors
# -----------------------------------------------------------------------------

class GasTooHighException(OracleException):
    """Raised when network gas price exceeds the configured ceiling."""

    def __init__(self, gas_price_wei: int, max_gas_price_wei: int, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=(
                f"Gas price ({gas_price_wei / 1e9:g} gwei) exceeds maximum "
                f"({max_gas_price_wei / 1e9:g} gwei)"
            ),
            code=ErrorCodes.BLOCKCHAIN_GAS_TOO_HIGH,
            details=_merge(details, gas_price=str(gas_price_wei), max_gas_price=str(max_gas_price_wei)),
            retryable=True,
        )


class UnauthorizedException(OracleException):
    """Raised when the signing identity lacks the resolver role."""

    def __init__(self, message: str = "Oracle agent not authorized", details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.BLOCKCHAIN_UNAUTHORIZED,
            details=details,
            retryable=False,
        )


class ContractCallException(OracleException):
    """Raised when a read-only contract call or RPC request fails."""

    def __init__(self, message: str, method: str | None = None, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.BLOCKCHAIN_CONTRACT_ERROR,
            details=_merge(details, method=method),
            retryable=True,
        )


class TransactionFailedException(OracleException):
    """Raised on revert, dropped transaction or confirmation timeout."""

    def __init__(self, message: str, tx_hash: str | None = None, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.BLOCKCHAIN_TX_FAILED,
            details=_merge(details, tx_hash=tx_hash),
            retryable=True,
        )


# -----------------------------------------------------------------------------
# System errors
# -----------------------------------------------------------------------------

class ConfigurationException(OracleException):
    """Raised when a component is misconfigured."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.CONFIG_ERROR,
            details=details,
            retryable=False,
        )


class CanonicalizationException(OracleException):
    """Raised when canonical serialization fails."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.CANONICALIZATION_ERROR,
            details=details,
            retryable=False,
        )
