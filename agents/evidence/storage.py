"""
Evidence Storage

Front end over a content-addressed backend:
- Idempotent upload: one network upload per (market, evidence content)
- Bounded retry with linear backoff, then StorageUploadException
- retrieve() decodes and validates an EvidencePackage
- verify() is an existence check for audit and dispute flows

The idempotency key hashes the package without its append-only
metadata block, so recording the content id or tx hash afterwards
does not change the key.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from pydantic import ValidationError

from core.config import StorageConfig
from core.crypto import sha256
from core.http import HttpClient
from core.schemas import (
    ConfigurationException,
    EvidencePackage,
    OracleException,
    StorageReceipt,
    StorageRetrievalException,
    StorageUploadException,
    canonical_bytes,
)

from .backends import InMemoryStorageBackend, PinataBackend, StorageBackend

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
RETRY_DELAY_S = 1.0


def evidence_fingerprint(package: EvidencePackage) -> str:
    """Hex sha256 of the package's canonical content, metadata excluded."""
    return sha256(canonical_bytes(package.content_dict())).hex()


def pin_keyvalues(package: EvidencePackage) -> dict[str, str]:
    return {
        "marketId": str(package.market_id),
        "category": package.market.category.value,
        "outcome": str(package.resolution.outcome).lower(),
        "confidence": str(package.resolution.confidence),
    }


class EvidenceStorage:
    """
    Evidence upload, retrieval and verification.

    Usage:
        storage = EvidenceStorage(InMemoryStorageBackend())
        receipt = storage.upload(package)
        package = storage.retrieve(receipt.content_id)
    """

    def __init__(
        self,
        backend: StorageBackend,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ConfigurationException("Storage max_attempts must be at least 1")
        self.backend = backend
        self.max_attempts = max_attempts
        self._sleep = sleep
        self._cache: dict[tuple[int, str], StorageReceipt] = {}
        self._lock = threading.Lock()

    @property
    def provider(self) -> str:
        return getattr(self.backend, "name", type(self.backend).__name__)

    def upload(self, package: EvidencePackage) -> StorageReceipt:
        """
        Upload `package` unless identical evidence for the market is cached.

        Raises:
            StorageUploadException: after max_attempts failed attempts
        """
        key = (package.market_id, evidence_fingerprint(package))
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            logger.info(
                "Evidence for market %s already uploaded as %s",
                package.market_id,
                cached.content_id,
            )
            return cached

        data = canonical_bytes(package.model_dump(mode="json"))
        name = f"Market_{package.market_id}_Evidence"
        keyvalues = pin_keyvalues(package)

        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                receipt = self.backend.put(data, name, keyvalues)
            except (OracleException, OSError, ValueError) as e:
                last_error = e
            else:
                with self._lock:
                    self._cache[key] = receipt
                logger.info(
                    "Evidence for market %s uploaded: %s (%d bytes)",
                    package.market_id,
                    receipt.url or receipt.content_id,
                    receipt.size,
                )
                return receipt

            logger.warning(
                "Evidence upload attempt %d/%d for market %s failed: %s",
                attempt,
                self.max_attempts,
                package.market_id,
                last_error,
            )
            if attempt < self.max_attempts:
                self._sleep(RETRY_DELAY_S * attempt)

        raise StorageUploadException(
            f"Failed to upload evidence after {self.max_attempts} attempts: {last_error}",
            details={
                "market_id": package.market_id,
                "provider": self.provider,
                "attempts": self.max_attempts,
                "error": str(last_error),
            },
        ) from last_error

    def retrieve(self, cid: str) -> EvidencePackage:
        """Fetch and validate a stored package."""
        try:
            data = self.backend.get(cid)
        except StorageRetrievalException:
            raise
        except Exception as e:
            raise StorageRetrievalException(
                f"Failed to retrieve evidence: {e}",
                cid=cid,
                details={"error": str(e)},
            ) from e

        try:
            return EvidencePackage.model_validate_json(data)
        except ValidationError as e:
            raise StorageRetrievalException(
                "Stored content is not a valid evidence package",
                cid=cid,
                details={"errors": e.errors(include_url=False)},
            ) from e

    def verify(self, cid: str) -> bool:
        """True when the content id is retrievable."""
        return self.backend.exists(cid)

    def pin(self, cid: str) -> None:
        if not isinstance(self.backend, PinataBackend):
            raise ConfigurationException(
                f"Pinning not supported for provider: {self.provider}",
                details={"provider": self.provider, "cid": cid},
            )
        self.backend.pin(cid)

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    @property
    def cache_size(self) -> int:
        return len(self._cache)


def create_storage(
    config: StorageConfig,
    *,
    http: Optional[HttpClient] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> EvidenceStorage:
    """Build EvidenceStorage for the configured provider."""
    provider = (config.provider or "").lower()
    if provider == "memory":
        backend: StorageBackend = InMemoryStorageBackend()
    elif provider == "pinata":
        backend = PinataBackend(
            http or HttpClient(timeout=config.timeout_s),
            api_key=config.api_key or "",
            secret_key=config.secret_key,
            gateway=config.gateway,
            timeout=config.timeout_s,
        )
    else:
        raise ConfigurationException(
            f"Unsupported storage provider: {config.provider}",
            details={"provider": config.provider},
        )
    return EvidenceStorage(backend, max_attempts=config.max_attempts, sleep=sleep)
