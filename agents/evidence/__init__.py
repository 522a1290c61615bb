"""
Evidence compilation and content-addressed storage.
"""

from .backends import InMemoryStorageBackend, PinataBackend, StorageBackend
from .compiler import (
    EvidenceCompiler,
    calculate_data_freshness,
    check_multi_source_agreement,
    perform_bias_check,
)
from .storage import EvidenceStorage, create_storage, evidence_fingerprint

__all__ = [
    "EvidenceCompiler",
    "check_multi_source_agreement",
    "calculate_data_freshness",
    "perform_bias_check",
    "StorageBackend",
    "PinataBackend",
    "InMemoryStorageBackend",
    "EvidenceStorage",
    "create_storage",
    "evidence_fingerprint",
]
