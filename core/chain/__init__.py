"""
Chain Module

Ledger boundary used by the resolution pipeline: the ChainClient
protocol, an in-memory ledger for tests, and a JSON-RPC client.
"""

from .base import (
    NOT_AUTHORIZED_REASON,
    WEI_PER_ETHER,
    WEI_PER_GWEI,
    ChainClient,
    gas_cost_usd,
    is_not_authorized,
)
from .memory import InMemoryChain, Submission
from .rpc import JsonRpcChain, RpcError, decode_market, encode_call, function_selector

__all__ = [
    "ChainClient",
    "InMemoryChain",
    "Submission",
    "JsonRpcChain",
    "RpcError",
    "decode_market",
    "encode_call",
    "function_selector",
    "gas_cost_usd",
    "is_not_authorized",
    "NOT_AUTHORIZED_REASON",
    "WEI_PER_ETHER",
    "WEI_PER_GWEI",
]
