"""
Module 02 - Hashing Utilities
Hashing helpers for evidence packages and content ids.

This module provides:
- SHA-256 hashing for raw bytes
- Canonical hashing for objects (via dumps_canonical)
- Hex encoding/decoding with 0x prefix
- Local content ids for backends without a real IPFS node

All operations are deterministic.
"""
from __future__ import annotations

import hashlib
from typing import Any

from core.schemas.canonical import dumps_canonical

CONTENT_ID_PREFIX = "bafy"


def sha256(data: bytes) -> bytes:
    """
    Compute SHA-256 hash of raw bytes.

    Example:
        >>> sha256(b"hello").hex()
        '2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824'
    """
    return hashlib.sha256(data).digest()


def hash_canonical(obj: Any) -> bytes:
    """
    Hash an object using canonical JSON serialization.

    Rule: digest = sha256(dumps_canonical(obj).encode("utf-8"))

    Two objects that differ only in dict insertion order hash the same.
    """
    return sha256(dumps_canonical(obj).encode("utf-8"))


def to_hex(data: bytes) -> str:
    """
    Convert bytes to a 0x-prefixed hex string.

    >>> to_hex(bytes.fromhex("deadbeef"))
    '0xdeadbeef'
    """
    return "0x" + data.hex()


def from_hex(hex_string: str) -> bytes:
    """
    Convert a 0x-prefixed hex string to bytes.

    Raises:
        ValueError: If the prefix is missing, the length is odd, or the
            string contains non-hex characters.
    """
    if not hex_string.startswith("0x"):
        raise ValueError(
            f"Hex string must start with '0x' prefix, got: {hex_string[:10]}..."
        )
    hex_content = hex_string[2:]
    if len(hex_content) % 2 != 0:
        raise ValueError(
            f"Hex string must have even length after 0x prefix, "
            f"got length {len(hex_content)}"
        )
    try:
        return bytes.fromhex(hex_content)
    except ValueError as e:
        raise ValueError(f"Invalid hex characters in string: {e}") from e


def content_id_for(data: bytes) -> str:
    """Deterministic content id for raw bytes: "bafy" + hex sha256."""
    return CONTENT_ID_PREFIX + sha256(data).hex()


__all__ = [
    "CONTENT_ID_PREFIX",
    "sha256",
    "hash_canonical",
    "to_hex",
    "from_hex",
    "content_id_for",
]
