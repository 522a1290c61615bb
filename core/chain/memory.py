"""
In-memory ledger.

Used by tests and by `ORACLE_MODE=test` wiring. Behaves like the
oracle contract for the operations the pipeline uses: unknown markets
are invalid, unauthorized signers revert, and a submission resolves
the market.
"""

from __future__ import annotations

import hashlib
import threading
from dataclasses import dataclass
from typing import Optional

from core.schemas import (
    InvalidMarketException,
    Market,
    TransactionFailedException,
    TxReceipt,
    UnauthorizedException,
)

from .base import NOT_AUTHORIZED_REASON, WEI_PER_GWEI


@dataclass(frozen=True)
class Submission:
    market_id: int
    outcome: bool
    confidence: int
    evidence_cid: str
    tx_hash: str
    block_number: int


class InMemoryChain:
    """
    Thread-safe fake ledger.

    Usage:
        chain = InMemoryChain(gas_price_wei=5 * WEI_PER_GWEI)
        chain.add_market(market)
        chain.set_authorized(False)
    """

    def __init__(
        self,
        *,
        signer: str = "0x00000000000000000000000000000000000a1a1a",
        gas_price_wei: int = 5 * WEI_PER_GWEI,
        authorized: bool = True,
        gas_used: int = 150_000,
    ) -> None:
        self._signer = signer
        self._gas_price = gas_price_wei
        self._authorized = authorized
        self._gas_used = gas_used
        self._markets: dict[int, Market] = {}
        self._block = 1_000_000
        self._pending_failures = 0
        self._lock = threading.Lock()
        self.submissions: list[Submission] = []
        self.gas_price_reads = 0

    # ------------------------------------------------------------------
    # Test controls
    # ------------------------------------------------------------------

    def add_market(self, market: Market) -> None:
        with self._lock:
            self._markets[market.id] = market

    def set_gas_price(self, wei: int) -> None:
        self._gas_price = wei

    def set_authorized(self, authorized: bool) -> None:
        self._authorized = authorized

    def fail_next_submissions(self, count: int = 1) -> None:
        """Make the next `count` submissions revert with a generic error."""
        self._pending_failures = count

    # ------------------------------------------------------------------
    # ChainClient
    # ------------------------------------------------------------------

    def get_market(self, market_id: int) -> Market:
        with self._lock:
            market = self._markets.get(market_id)
        if market is None:
            raise InvalidMarketException(f"Market {market_id} not found", market_id=market_id)
        return market

    def get_gas_price(self) -> int:
        self.gas_price_reads += 1
        return self._gas_price

    def submit_resolution(
        self,
        market_id: int,
        outcome: bool,
        confidence: int,
        evidence_cid: str,
    ) -> TxReceipt:
        with self._lock:
            if not self._authorized:
                raise UnauthorizedException(details={"error": NOT_AUTHORIZED_REASON})
            if self._pending_failures > 0:
                self._pending_failures -= 1
                raise TransactionFailedException("Blockchain transaction failed: reverted")
            market = self._markets.get(market_id)
            if market is None:
                raise TransactionFailedException(
                    "Blockchain transaction failed: Market does not exist",
                    details={"market_id": market_id},
                )
            if market.resolved:
                raise TransactionFailedException(
                    "Blockchain transaction failed: Market already resolved",
                    details={"market_id": market_id},
                )

            self._block += 1
            seed = f"{market_id}:{outcome}:{confidence}:{evidence_cid}:{self._block}"
            tx_hash = "0x" + hashlib.sha256(seed.encode("utf-8")).hexdigest()
            self._markets[market_id] = market.model_copy(update={"resolved": True, "outcome": outcome})
            self.submissions.append(Submission(
                market_id=market_id,
                outcome=outcome,
                confidence=confidence,
                evidence_cid=evidence_cid,
                tx_hash=tx_hash,
                block_number=self._block,
            ))
            return TxReceipt(
                tx_hash=tx_hash,
                gas_used=self._gas_used,
                block_number=self._block,
                effective_gas_price=self._gas_price,
            )

    def signer_address(self) -> str:
        return self._signer

    def is_authorized(self) -> bool:
        return self._authorized

    def market_count(self) -> Optional[int]:
        with self._lock:
            return len(self._markets)
