"""
JSON-RPC ledger client.

Talks to an EVM node over JSON-RPC 2.0 through HttpClient. Calldata is
ABI-encoded with eth-abi, transactions are signed locally with
eth-account, and function selectors come from eth-utils' keccak.

Contract surface used:
    PredictionMarket.markets(uint256) -> Market struct
    PredictionMarket.marketCount() -> uint256
    AIOracle.provideResolution(uint256,bool,uint256,string)
    AIOracle.aiAgents(address) -> bool
"""

from __future__ import annotations

import itertools
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from eth_abi import decode, encode
from eth_account import Account
from eth_utils import keccak, to_checksum_address, to_hex

from core.config import ChainConfig
from core.crypto import from_hex
from core.http import HttpClient, HttpError
from core.schemas import (
    ConfigurationException,
    ContractCallException,
    InvalidMarketException,
    Market,
    TransactionFailedException,
    TxReceipt,
    UnauthorizedException,
    parse_category,
)

from .base import is_not_authorized

logger = logging.getLogger(__name__)

MARKET_STRUCT_TYPES = [
    "uint256",  # id
    "string",   # question
    "string",   # description
    "string",   # category
    "address",  # creator
    "uint256",  # endTime
    "uint256",  # totalYesAmount
    "uint256",  # totalNoAmount
    "bool",     # resolved
    "bool",     # outcome
    "uint256",  # resolvedAt
    "bool",     # aiOracleEnabled
]

PROVIDE_RESOLUTION_TYPES = ["uint256", "bool", "uint256", "string"]


def function_selector(signature: str) -> bytes:
    """First four bytes of keccak256(signature)."""
    return keccak(text=signature)[:4]


def encode_call(signature: str, types: list[str], args: list[Any]) -> bytes:
    return function_selector(signature) + encode(types, args)


def decode_market(market_id: int, raw: bytes) -> Market:
    """Decode the `markets(uint256)` return data into a Market."""
    values = decode(MARKET_STRUCT_TYPES, raw)
    (
        onchain_id, question, description, category, creator, end_time,
        _total_yes, _total_no, resolved, outcome, _resolved_at, ai_enabled,
    ) = values
    if onchain_id == 0 and not question:
        raise InvalidMarketException(f"Market {market_id} not found", market_id=market_id)
    return Market(
        id=onchain_id,
        question=question,
        description=description,
        category=parse_category(category),
        creator=creator,
        end_time=datetime.fromtimestamp(end_time, tz=timezone.utc),
        resolved=resolved,
        outcome=outcome if resolved else None,
        ai_oracle_enabled=ai_enabled,
    )


class RpcError(Exception):
    """Error object returned by the node."""

    def __init__(self, method: str, message: str, data: Any = None) -> None:
        super().__init__(f"{method}: {message}")
        self.method = method
        self.message = message
        self.data = data

    @property
    def full_message(self) -> str:
        if isinstance(self.data, str):
            return f"{self.message} {self.data}"
        return self.message


class JsonRpcChain:
    """
    ChainClient backed by a JSON-RPC node.

    Usage:
        chain = JsonRpcChain.from_config(config.chain)
        market = chain.get_market(3)
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        market_address: str,
        oracle_address: str,
        private_key: Optional[str] = None,
        chain_id: int = 97,
        gas_limit: int = 500_000,
        confirmation_timeout_s: float = 120.0,
        poll_interval_s: float = 2.0,
        http: Optional[HttpClient] = None,
        time_fn: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.rpc_url = rpc_url
        self.market_address = to_checksum_address(market_address)
        self.oracle_address = to_checksum_address(oracle_address)
        self._private_key = private_key
        self._account = Account.from_key(private_key) if private_key else None
        self.chain_id = chain_id
        self.gas_limit = gas_limit
        self.confirmation_timeout_s = confirmation_timeout_s
        self.poll_interval_s = poll_interval_s
        self.http = http or HttpClient(timeout=30.0)
        self._time = time_fn
        self._sleep = sleep
        self._ids = itertools.count(1)

    @classmethod
    def from_config(cls, config: ChainConfig, http: Optional[HttpClient] = None) -> "JsonRpcChain":
        missing = [
            name for name, value in (
                ("rpc_url", config.rpc_url),
                ("market_address", config.market_address),
                ("oracle_address", config.oracle_address),
            ) if not value
        ]
        if missing:
            raise ConfigurationException(
                f"Chain configuration incomplete: missing {', '.join(missing)}",
                details={"missing": missing},
            )
        return cls(
            config.rpc_url,
            market_address=config.market_address,
            oracle_address=config.oracle_address,
            private_key=config.private_key,
            chain_id=config.chain_id,
            gas_limit=config.gas_limit,
            confirmation_timeout_s=config.confirmation_timeout_s,
            poll_interval_s=config.poll_interval_s,
            http=http,
        )

    # ------------------------------------------------------------------
    # JSON-RPC plumbing
    # ------------------------------------------------------------------

    def _rpc(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = self.http.post(self.rpc_url, json=payload)
        except HttpError as e:
            raise ContractCallException(f"RPC {method} failed: {e}", method=method) from e
        if not response.ok:
            raise ContractCallException(
                f"RPC {method} failed with HTTP {response.status_code}",
                method=method,
                details={"status": response.status_code},
            )
        try:
            body = response.json()
        except ValueError as e:
            raise ContractCallException(f"RPC {method} returned invalid JSON", method=method) from e
        if not isinstance(body, dict):
            raise ContractCallException(
                f"RPC {method} returned a non-object response",
                method=method,
                details={"type": type(body).__name__},
            )

        error = body.get("error")
        if isinstance(error, dict):
            raise RpcError(method, str(error.get("message", "")), error.get("data"))
        if error:
            raise RpcError(method, str(error))
        return body.get("result")

    def _call(self, to: str, data: bytes, from_address: Optional[str] = None) -> bytes:
        tx: dict[str, Any] = {"to": to, "data": to_hex(data)}
        if from_address:
            tx["from"] = from_address
        try:
            result = self._rpc("eth_call", [tx, "latest"])
        except RpcError as e:
            raise ContractCallException(f"eth_call reverted: {e.full_message}", method="eth_call") from e
        if not result or result == "0x":
            return b""
        return from_hex(result)

    # ------------------------------------------------------------------
    # ChainClient
    # ------------------------------------------------------------------

    def get_market(self, market_id: int) -> Market:
        raw = self._call(
            self.market_address,
            encode_call("markets(uint256)", ["uint256"], [market_id]),
        )
        if not raw:
            raise InvalidMarketException(f"Market {market_id} not found", market_id=market_id)
        return decode_market(market_id, raw)

    def get_gas_price(self) -> int:
        try:
            result = self._rpc("eth_gasPrice", [])
        except (RpcError, ContractCallException) as e:
            raise TransactionFailedException(f"Failed to read gas price: {e}") from e
        return int(result, 16)

    def signer_address(self) -> str:
        return self._account.address if self._account else ""

    def is_authorized(self) -> bool:
        if not self._account:
            return False
        raw = self._call(
            self.oracle_address,
            encode_call("aiAgents(address)", ["address"], [self._account.address]),
        )
        if not raw:
            return False
        (authorized,) = decode(["bool"], raw)
        return bool(authorized)

    def market_count(self) -> Optional[int]:
        try:
            raw = self._call(self.market_address, encode_call("marketCount()", [], []))
        except ContractCallException as e:
            logger.warning("marketCount() unavailable: %s", e.message)
            return None
        if not raw:
            return None
        (count,) = decode(["uint256"], raw)
        return int(count)

    def submit_resolution(
        self,
        market_id: int,
        outcome: bool,
        confidence: int,
        evidence_cid: str,
    ) -> TxReceipt:
        if not self._account:
            raise ConfigurationException("PRIVATE_KEY is required to submit resolutions")

        data = encode_call(
            "provideResolution(uint256,bool,uint256,string)",
            PROVIDE_RESOLUTION_TYPES,
            [market_id, outcome, confidence, evidence_cid],
        )
        address = self._account.address

        # Simulate first so an authorization revert surfaces before spending gas
        try:
            self._rpc("eth_call", [{"from": address, "to": self.oracle_address, "data": to_hex(data)}, "latest"])
        except RpcError as e:
            raise self._map_revert(e) from e
        except ContractCallException as e:
            raise TransactionFailedException(f"Blockchain transaction failed: {e.message}") from e

        gas_price = self.get_gas_price()
        try:
            nonce = int(self._rpc("eth_getTransactionCount", [address, "pending"]), 16)
            signed = Account.sign_transaction(
                {
                    "to": self.oracle_address,
                    "value": 0,
                    "data": to_hex(data),
                    "gas": self.gas_limit,
                    "gasPrice": gas_price,
                    "nonce": nonce,
                    "chainId": self.chain_id,
                },
                self._private_key,
            )
            tx_hash = self._rpc("eth_sendRawTransaction", [to_hex(signed.raw_transaction)])
        except RpcError as e:
            raise self._map_revert(e) from e
        except ContractCallException as e:
            raise TransactionFailedException(f"Blockchain transaction failed: {e.message}") from e

        logger.info("Transaction submitted: %s", tx_hash)
        receipt = self._wait_for_receipt(tx_hash)

        if int(receipt.get("status", "0x0"), 16) != 1:
            raise TransactionFailedException(
                "Blockchain transaction failed: reverted",
                tx_hash=tx_hash,
            )
        effective = receipt.get("effectiveGasPrice")
        return TxReceipt(
            tx_hash=tx_hash,
            gas_used=int(receipt.get("gasUsed", "0x0"), 16),
            block_number=int(receipt["blockNumber"], 16) if receipt.get("blockNumber") else None,
            effective_gas_price=int(effective, 16) if effective else gas_price,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _wait_for_receipt(self, tx_hash: str) -> dict[str, Any]:
        deadline = self._time() + self.confirmation_timeout_s
        while True:
            try:
                receipt = self._rpc("eth_getTransactionReceipt", [tx_hash])
            except (RpcError, ContractCallException) as e:
                raise TransactionFailedException(
                    f"Failed to read transaction receipt: {e}", tx_hash=tx_hash,
                ) from e
            if receipt:
                return receipt
            if self._time() >= deadline:
                raise TransactionFailedException(
                    f"Timed out after {self.confirmation_timeout_s}s waiting for confirmation",
                    tx_hash=tx_hash,
                )
            self._sleep(self.poll_interval_s)

    @staticmethod
    def _map_revert(error: RpcError) -> Exception:
        message = error.full_message
        if is_not_authorized(message):
            return UnauthorizedException(details={"error": message})
        return TransactionFailedException(
            f"Blockchain transaction failed: {message}",
            details={"method": error.method},
        )
