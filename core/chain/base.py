"""
Chain Boundary

The resolution pipeline reads markets and gas prices from the ledger
and writes one resolution per market. Everything else about the ledger
(positions, payouts, fees) is outside this package.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from core.schemas import Market, TxReceipt

WEI_PER_GWEI = 1_000_000_000
WEI_PER_ETHER = 10 ** 18

# Revert reason the oracle contract uses for callers without the resolver role
NOT_AUTHORIZED_REASON = "Not authorized"


@runtime_checkable
class ChainClient(Protocol):
    """Ledger operations the resolution pipeline depends on."""

    def get_market(self, market_id: int) -> Market:
        ...

    def get_gas_price(self) -> int:
        """Current network gas price in wei."""
        ...

    def submit_resolution(
        self,
        market_id: int,
        outcome: bool,
        confidence: int,
        evidence_cid: str,
    ) -> TxReceipt:
        """Submit and wait for confirmation."""
        ...

    def signer_address(self) -> str:
        ...

    def is_authorized(self) -> bool:
        ...

    def market_count(self) -> Optional[int]:
        """Number of markets, or None if the ledger cannot say."""
        ...


def gas_cost_usd(gas_used: int, gas_price_wei: int, native_token_usd: float) -> float:
    """Cost of a transaction in USD at a fixed native-token price."""
    return gas_used * gas_price_wei / WEI_PER_ETHER * native_token_usd


def is_not_authorized(message: str) -> bool:
    return NOT_AUTHORIZED_REASON.lower() in (message or "").lower()
