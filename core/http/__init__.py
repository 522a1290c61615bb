"""
HTTP Client Module

requests-backed HTTP client plus the resilient per-provider fetcher.
"""

from .client import HttpClient, HttpError, HttpResponse, HttpTimeoutError
from .fetch import RateLimit, ResilientFetcher, RetryPolicy, TTLCache

__all__ = [
    "HttpClient",
    "HttpError",
    "HttpResponse",
    "HttpTimeoutError",
    "RateLimit",
    "ResilientFetcher",
    "RetryPolicy",
    "TTLCache",
]
