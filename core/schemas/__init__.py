"""
Module 01 - Schemas & Canonicalization
File: __init__.py

Purpose: Export the public API for the schemas module.
This is the main entry point for other modules to import schema definitions.
"""

# Canonical serialization API
from .canonical import (
    CANONICAL_JSON_SEPARATORS,
    canonical_bytes,
    canonical_equals,
    canonicalize_value,
    dumps_canonical,
    ensure_utc,
    format_datetime_canonical,
    loads_canonical,
)

# Error models and exceptions
from .errors import (
    AIAnalysisException,
    CanonicalizationException,
    ConfigurationException,
    ContractCallException,
    DataSourceException,
    DataSourceInvalidResponseException,
    DataSourceRateLimitException,
    DataSourceTimeoutException,
    ErrorCodes,
    GasTooHighException,
    InsufficientDataException,
    InvalidMarketException,
    LowConfidenceException,
    MarketAlreadyResolvedException,
    MarketNotEndedException,
    NetworkException,
    OracleError,
    OracleException,
    ResolutionInProgressException,
    StoragePinException,
    StorageRetrievalException,
    StorageUploadException,
    TransactionFailedException,
    UnauthorizedException,
)

# Market schemas
from .market import Category, Market, parse_category

# Source data schemas
from .source_data import (
    MAX_CONFIDENCE,
    Article,
    Coordinates,
    FallbackPayload,
    ForecastDay,
    GameResult,
    NewsPayload,
    Payload,
    PricePayload,
    Sentiment,
    SourceData,
    SportsPayload,
    WeatherPayload,
)

# Verdict schemas
from .verdict import AIVerdict, AlternativeOutcome

# Evidence schemas
from .evidence import (
    EVIDENCE_VERSION,
    EvidenceMetadata,
    EvidencePackage,
    MarketSnapshot,
    ResolutionSummary,
    Verification,
)

# Resolution schemas
from .resolution import (
    ResolutionResult,
    ResolutionStage,
    ResolutionStatus,
    StorageReceipt,
    TxReceipt,
)


__all__ = [
    # Canonical serialization
    "dumps_canonical",
    "canonical_bytes",
    "canonicalize_value",
    "ensure_utc",
    "format_datetime_canonical",
    "loads_canonical",
    "canonical_equals",
    "CANONICAL_JSON_SEPARATORS",
    # Errors
    "ErrorCodes",
    "OracleError",
    "OracleException",
    "DataSourceException",
    "DataSourceTimeoutException",
    "DataSourceRateLimitException",
    "DataSourceInvalidResponseException",
    "NetworkException",
    "InvalidMarketException",
    "MarketNotEndedException",
    "MarketAlreadyResolvedException",
    "InsufficientDataException",
    "ResolutionInProgressException",
    "AIAnalysisException",
    "LowConfidenceException",
    "StorageUploadException",
    "StorageRetrievalException",
    "StoragePinException",
    "GasTooHighException",
    "ContractCallException",
    "UnauthorizedException",
    "TransactionFailedException",
    "ConfigurationException",
    "CanonicalizationException",
    # Market
    "Category",
    "Market",
    "parse_category",
    # Source data
    "MAX_CONFIDENCE",
    "SourceData",
    "Payload",
    "PricePayload",
    "SportsPayload",
    "GameResult",
    "WeatherPayload",
    "Coordinates",
    "ForecastDay",
    "NewsPayload",
    "Article",
    "Sentiment",
    "FallbackPayload",
    # Verdict
    "AIVerdict",
    "AlternativeOutcome",
    # Evidence
    "EVIDENCE_VERSION",
    "EvidencePackage",
    "EvidenceMetadata",
    "MarketSnapshot",
    "ResolutionSummary",
    "Verification",
    # Resolution
    "ResolutionStatus",
    "ResolutionStage",
    "ResolutionResult",
    "StorageReceipt",
    "TxReceipt",
]
