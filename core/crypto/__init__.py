"""
Core cryptographic utilities.

Hashing and content-id helpers used by evidence storage.
"""
from .hashing import (
    CONTENT_ID_PREFIX,
    content_id_for,
    from_hex,
    hash_canonical,
    sha256,
    to_hex,
)

__all__ = [
    "CONTENT_ID_PREFIX",
    "sha256",
    "hash_canonical",
    "to_hex",
    "from_hex",
    "content_id_for",
]
