"""
Content-Addressed Storage Backends

A backend stores opaque bytes and hands back a content id. The
EvidenceStorage front end layers caching, retry and decoding on top.

Backends:
- PinataBackend: Pinata pinning API plus an IPFS gateway
- InMemoryStorageBackend: dict-backed, deterministic ids, for tests and
  ORACLE_MODE=test
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol, runtime_checkable

from core.crypto import content_id_for
from core.http import HttpClient, HttpError
from core.schemas import (
    ConfigurationException,
    StoragePinException,
    StorageReceipt,
    StorageRetrievalException,
    StorageUploadException,
)

logger = logging.getLogger(__name__)

PINATA_API = "https://api.pinata.cloud"
DEFAULT_GATEWAY = "https://gateway.pinata.cloud"


@runtime_checkable
class StorageBackend(Protocol):
    """Byte-level content-addressed store."""

    name: str

    def put(self, data: bytes, name: str, keyvalues: dict[str, str]) -> StorageReceipt:
        ...

    def get(self, cid: str) -> bytes:
        ...

    def exists(self, cid: str) -> bool:
        ...

    def pin(self, cid: str) -> None:
        ...


# =============================================================================
# Pinata
# =============================================================================

class PinataBackend:
    """
    Pinata pinning service.

    Uploads go through pinJSONToIPFS with CID v1; reads and existence
    checks go through the configured gateway.
    """

    name = "pinata"

    def __init__(
        self,
        http: HttpClient,
        *,
        api_key: str,
        secret_key: Optional[str] = None,
        gateway: str = DEFAULT_GATEWAY,
        api_url: str = PINATA_API,
        timeout: float = 30.0,
    ) -> None:
        if not api_key:
            raise ConfigurationException("Pinata storage requires an API key")
        self.http = http
        self.api_key = api_key
        self.secret_key = secret_key or ""
        self.gateway = gateway.rstrip("/")
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    def _auth_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "pinata_api_key": self.api_key,
            "pinata_secret_api_key": self.secret_key,
        }

    def gateway_url(self, cid: str) -> str:
        return f"{self.gateway}/ipfs/{cid}"

    def put(self, data: bytes, name: str, keyvalues: dict[str, str]) -> StorageReceipt:
        try:
            content = json.loads(data)
        except ValueError as e:
            raise StorageUploadException(
                "Pinata backend only accepts JSON content",
                details={"error": str(e)},
            ) from e

        body = {
            "pinataContent": content,
            "pinataMetadata": {"name": name, "keyvalues": keyvalues},
            "pinataOptions": {"cidVersion": 1},
        }
        try:
            response = self.http.post(
                f"{self.api_url}/pinning/pinJSONToIPFS",
                headers=self._auth_headers(),
                json=body,
                timeout=self.timeout,
            )
        except HttpError as e:
            raise StorageUploadException(
                f"Pinata upload failed: {e}",
                details={"provider": self.name, "error": str(e)},
            ) from e

        if not response.ok:
            raise StorageUploadException(
                f"Pinata upload failed: {response.status_code} - {response.text[:200]}",
                details={"provider": self.name, "status": response.status_code},
            )

        try:
            payload = response.json()
            cid = payload["IpfsHash"]
        except (ValueError, KeyError, TypeError) as e:
            raise StorageUploadException(
                "Pinata returned an unexpected upload response",
                details={"provider": self.name, "error": str(e)},
            ) from e

        return StorageReceipt(
            content_id=cid,
            url=self.gateway_url(cid),
            size=int(payload.get("PinSize") or len(data)),
            pinned=True,
            timestamp=payload.get("Timestamp") or datetime.now(timezone.utc),
        )

    def get(self, cid: str) -> bytes:
        try:
            response = self.http.get(self.gateway_url(cid), timeout=self.timeout)
        except HttpError as e:
            raise StorageRetrievalException(f"Gateway request failed: {e}", cid=cid) from e
        if not response.ok:
            raise StorageRetrievalException(f"HTTP {response.status_code}", cid=cid)
        return response.content

    def exists(self, cid: str) -> bool:
        try:
            response = self.http.head(self.gateway_url(cid), timeout=self.timeout)
        except HttpError as e:
            logger.warning("Gateway HEAD for %s failed: %s", cid, e)
            return False
        return response.ok

    def pin(self, cid: str) -> None:
        try:
            response = self.http.post(
                f"{self.api_url}/pinning/pinByHash",
                headers=self._auth_headers(),
                json={"hashToPin": cid},
                timeout=self.timeout,
            )
        except HttpError as e:
            raise StoragePinException(f"Failed to pin content: {e}", cid=cid) from e
        if not response.ok:
            raise StoragePinException(
                f"Failed to pin content: HTTP {response.status_code}",
                cid=cid,
                details={"status": response.status_code},
            )


# =============================================================================
# In-memory
# =============================================================================

class InMemoryStorageBackend:
    """
    Dict-backed store with deterministic content ids.

    `uploads` counts every put that reached the backend; `fail_next`
    makes the next N puts raise, for retry tests.
    """

    name = "memory"

    def __init__(self, *, now: Optional[Callable[[], datetime]] = None) -> None:
        self._blobs: dict[str, bytes] = {}
        self._names: dict[str, str] = {}
        self._lock = threading.Lock()
        self._now = now or (lambda: datetime.now(timezone.utc))
        self.uploads = 0
        self.pinned: set[str] = set()
        self.fail_next = 0

    def put(self, data: bytes, name: str, keyvalues: dict[str, str]) -> StorageReceipt:
        with self._lock:
            self.uploads += 1
            if self.fail_next > 0:
                self.fail_next -= 1
                raise StorageUploadException(
                    "In-memory upload failure",
                    details={"provider": self.name},
                )
            cid = content_id_for(data)
            self._blobs[cid] = data
            self._names[cid] = name
            self.pinned.add(cid)
        return StorageReceipt(
            content_id=cid,
            url=f"memory://{cid}",
            size=len(data),
            pinned=True,
            timestamp=self._now(),
        )

    def get(self, cid: str) -> bytes:
        with self._lock:
            data = self._blobs.get(cid)
        if data is None:
            raise StorageRetrievalException("Content not found", cid=cid)
        return data

    def exists(self, cid: str) -> bool:
        with self._lock:
            return cid in self._blobs

    def pin(self, cid: str) -> None:
        raise ConfigurationException(
            "Pinning is only supported by the Pinata backend",
            details={"provider": self.name, "cid": cid},
        )

    def __len__(self) -> int:
        return len(self._blobs)
