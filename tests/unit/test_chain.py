"""
Ledger client tests: the in-memory ledger and the JSON-RPC client
against a scripted node.
"""

import pytest
from eth_abi import decode, encode

from core.chain import (
    InMemoryChain,
    JsonRpcChain,
    decode_market,
    encode_call,
    function_selector,
    gas_cost_usd,
    is_not_authorized,
    WEI_PER_GWEI,
)
from core.chain.rpc import MARKET_STRUCT_TYPES, PROVIDE_RESOLUTION_TYPES
from core.config import ChainConfig
from core.schemas import (
    Category,
    ConfigurationException,
    ContractCallException,
    InvalidMarketException,
    TransactionFailedException,
    UnauthorizedException,
)

from fixtures import RoutedSession, RpcSession, make_http, make_market, make_response

# Well-known development key (first Hardhat account)
TEST_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
TEST_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

RPC_URL = "https://rpc.test.local"
MARKET_ADDRESS = "0x" + "11" * 20
ORACLE_ADDRESS = "0x" + "22" * 20
TX_HASH = "0x" + "ab" * 32


def hexed(data: bytes) -> str:
    return "0x" + data.hex()


def market_return(market_id=3, question="Will it rain in London tomorrow?", *, resolved=False, outcome=False):
    return encode(MARKET_STRUCT_TYPES, [
        market_id,
        question,
        "Rain gauge at Heathrow",
        "Weather",
        "0x" + "33" * 20,
        1767225600,
        10**18,
        2 * 10**18,
        resolved,
        outcome,
        0,
        True,
    ])


def rpc_chain(results, *, private_key=TEST_KEY, **kwargs):
    session = RpcSession(results)
    sleeps = []
    chain = JsonRpcChain(
        RPC_URL,
        market_address=MARKET_ADDRESS,
        oracle_address=ORACLE_ADDRESS,
        private_key=private_key,
        http=make_http(session),
        sleep=sleeps.append,
        **kwargs,
    )
    return chain, session, sleeps


def submit_results(**overrides):
    results = {
        "eth_call": "0x",
        "eth_gasPrice": hex(5 * WEI_PER_GWEI),
        "eth_getTransactionCount": "0x7",
        "eth_sendRawTransaction": TX_HASH,
        "eth_getTransactionReceipt": {
            "status": "0x1",
            "gasUsed": hex(150_000),
            "blockNumber": hex(1_234),
            "effectiveGasPrice": hex(4 * WEI_PER_GWEI),
        },
    }
    results.update(overrides)
    return results


# =============================================================================
# Helpers
# =============================================================================

class TestHelpers:
    """Selectors, encoding and cost."""

    def test_function_selector(self):
        # keccak256("transfer(address,uint256)")[:4]
        assert function_selector("transfer(address,uint256)").hex() == "a9059cbb"

    def test_encode_call(self):
        data = encode_call("markets(uint256)", ["uint256"], [5])
        assert data[:4] == function_selector("markets(uint256)")
        assert decode(["uint256"], data[4:]) == (5,)

    def test_gas_cost_usd(self):
        assert gas_cost_usd(150_000, 5 * WEI_PER_GWEI, 300.0) == pytest.approx(0.225)

    def test_not_authorized_match(self):
        assert is_not_authorized("execution reverted: Not authorized")
        assert is_not_authorized("NOT AUTHORIZED")
        assert not is_not_authorized("execution reverted: Market closed")
        assert not is_not_authorized(None)

    def test_decode_market(self):
        market = decode_market(3, market_return())
        assert market.id == 3
        assert market.category == Category.WEATHER
        assert market.end_time.year == 2026
        assert market.outcome is None
        assert market.ai_oracle_enabled
        assert market.creator.lower() == "0x" + "33" * 20

    def test_decode_resolved_market(self):
        market = decode_market(3, market_return(resolved=True, outcome=True))
        assert market.resolved
        assert market.outcome is True

    def test_decode_empty_struct(self):
        with pytest.raises(InvalidMarketException):
            decode_market(9, market_return(market_id=0, question=""))


# =============================================================================
# In-memory ledger
# =============================================================================

class TestInMemoryChain:
    """Fake ledger behaviour the engine relies on."""

    def test_submit_resolves_market(self):
        chain = InMemoryChain()
        chain.add_market(make_market())

        receipt = chain.submit_resolution(1, True, 9200, "bafyabc")

        assert receipt.tx_hash.startswith("0x")
        assert receipt.gas_used == 150_000
        assert receipt.block_number == 1_000_001
        assert chain.get_market(1).resolved
        assert chain.get_market(1).outcome is True
        assert chain.submissions[0].evidence_cid == "bafyabc"

    def test_second_submission_reverts(self):
        chain = InMemoryChain()
        chain.add_market(make_market())
        chain.submit_resolution(1, True, 9200, "bafyabc")
        with pytest.raises(TransactionFailedException, match="already resolved"):
            chain.submit_resolution(1, False, 9200, "bafyabc")

    def test_unknown_market(self):
        chain = InMemoryChain()
        with pytest.raises(InvalidMarketException):
            chain.get_market(1)
        with pytest.raises(TransactionFailedException):
            chain.submit_resolution(1, True, 9000, "bafyabc")

    def test_unauthorized(self):
        chain = InMemoryChain(authorized=False)
        chain.add_market(make_market())
        with pytest.raises(UnauthorizedException):
            chain.submit_resolution(1, True, 9000, "bafyabc")
        assert not chain.get_market(1).resolved

    def test_scripted_failures(self):
        chain = InMemoryChain()
        chain.add_market(make_market())
        chain.fail_next_submissions(1)
        with pytest.raises(TransactionFailedException):
            chain.submit_resolution(1, True, 9000, "bafyabc")
        assert chain.submit_resolution(1, True, 9000, "bafyabc").tx_hash

    def test_gas_price_and_count(self):
        chain = InMemoryChain(gas_price_wei=7 * WEI_PER_GWEI)
        chain.add_market(make_market(1))
        chain.add_market(make_market(2))
        assert chain.get_gas_price() == 7 * WEI_PER_GWEI
        assert chain.gas_price_reads == 1
        assert chain.market_count() == 2


# =============================================================================
# JSON-RPC client
# =============================================================================

class TestJsonRpcReads:
    """eth_call based reads."""

    def test_get_market(self):
        chain, session, _ = rpc_chain({"eth_call": hexed(market_return())})

        market = chain.get_market(3)

        assert market.question == "Will it rain in London tomorrow?"
        payload = session.calls[0]
        assert payload["jsonrpc"] == "2.0"
        assert payload["method"] == "eth_call"
        tx, block = payload["params"]
        assert block == "latest"
        assert tx["to"].lower() == MARKET_ADDRESS
        assert tx["data"] == hexed(encode_call("markets(uint256)", ["uint256"], [3]))

    def test_get_market_empty_result(self):
        chain, _, _ = rpc_chain({"eth_call": "0x"})
        with pytest.raises(InvalidMarketException):
            chain.get_market(3)

    def test_call_revert(self):
        chain, _, _ = rpc_chain({"eth_call": {"error": {"code": 3, "message": "execution reverted"}}})
        with pytest.raises(ContractCallException) as exc_info:
            chain.get_market(3)
        assert exc_info.value.retryable

    def test_http_error_status(self):
        session = RoutedSession({"rpc.test": make_response(status_code=502)})
        chain = JsonRpcChain(
            RPC_URL,
            market_address=MARKET_ADDRESS,
            oracle_address=ORACLE_ADDRESS,
            http=make_http(session),
        )
        with pytest.raises(ContractCallException) as exc_info:
            chain.get_market(3)
        assert exc_info.value.details["status"] == 502

    def test_non_object_response(self):
        session = RoutedSession({"rpc.test": make_response(["unexpected"])})
        chain = JsonRpcChain(
            RPC_URL,
            market_address=MARKET_ADDRESS,
            oracle_address=ORACLE_ADDRESS,
            http=make_http(session),
        )
        with pytest.raises(ContractCallException) as exc_info:
            chain.get_market(3)
        assert exc_info.value.details["type"] == "list"

    def test_string_error_object(self):
        chain, _, _ = rpc_chain({"eth_call": {"error": "backend unavailable"}})
        with pytest.raises(ContractCallException, match="backend unavailable"):
            chain.get_market(3)

    def test_request_ids_increase(self):
        chain, session, _ = rpc_chain({"eth_call": hexed(market_return())})
        chain.get_market(3)
        chain.get_market(3)
        assert [c["id"] for c in session.calls] == [1, 2]

    def test_gas_price(self):
        chain, _, _ = rpc_chain({"eth_gasPrice": hex(3 * WEI_PER_GWEI)})
        assert chain.get_gas_price() == 3 * WEI_PER_GWEI

    def test_gas_price_error(self):
        chain, _, _ = rpc_chain({"eth_gasPrice": {"error": {"message": "node syncing"}}})
        with pytest.raises(TransactionFailedException):
            chain.get_gas_price()

    def test_signer_and_authorization(self):
        chain, session, _ = rpc_chain({"eth_call": hexed(encode(["bool"], [True]))})

        assert chain.signer_address() == TEST_ADDRESS
        assert chain.is_authorized()
        tx = session.calls[0]["params"][0]
        assert tx["to"].lower() == ORACLE_ADDRESS

    def test_no_key_not_authorized(self):
        chain, session, _ = rpc_chain({}, private_key=None)
        assert chain.signer_address() == ""
        assert not chain.is_authorized()
        assert session.calls == []

    def test_market_count(self):
        chain, _, _ = rpc_chain({"eth_call": hexed(encode(["uint256"], [42]))})
        assert chain.market_count() == 42

    def test_market_count_unavailable(self):
        chain, _, _ = rpc_chain({"eth_call": {"error": {"message": "execution reverted"}}})
        assert chain.market_count() is None


class TestJsonRpcSubmit:
    """Simulate, sign, send and confirm."""

    def test_submit_flow(self):
        chain, session, sleeps = rpc_chain(submit_results(
            eth_getTransactionReceipt=[None, submit_results()["eth_getTransactionReceipt"]],
        ))

        receipt = chain.submit_resolution(3, True, 9200, "bafyabc")

        assert receipt.tx_hash == TX_HASH
        assert receipt.gas_used == 150_000
        assert receipt.block_number == 1_234
        assert receipt.effective_gas_price == 4 * WEI_PER_GWEI
        assert session.methods() == [
            "eth_call",
            "eth_gasPrice",
            "eth_getTransactionCount",
            "eth_sendRawTransaction",
            "eth_getTransactionReceipt",
            "eth_getTransactionReceipt",
        ]
        assert sleeps == [2.0]

    def test_simulation_carries_calldata(self):
        chain, session, _ = rpc_chain(submit_results())
        chain.submit_resolution(3, False, 8800, "bafyabc")

        tx = session.calls[0]["params"][0]
        data = bytes.fromhex(tx["data"][2:])
        assert data[:4] == function_selector("provideResolution(uint256,bool,uint256,string)")
        assert decode(PROVIDE_RESOLUTION_TYPES, data[4:]) == (3, False, 8800, "bafyabc")
        assert tx["from"] == TEST_ADDRESS

    def test_raw_transaction_signed(self):
        chain, session, _ = rpc_chain(submit_results())
        chain.submit_resolution(3, True, 9200, "bafyabc")

        raw = session.calls[3]["params"][0]
        assert raw.startswith("0x")
        assert len(raw) > 200

    def test_missing_key(self):
        chain, session, _ = rpc_chain(submit_results(), private_key=None)
        with pytest.raises(ConfigurationException):
            chain.submit_resolution(3, True, 9200, "bafyabc")
        assert session.calls == []

    def test_not_authorized_revert(self):
        chain, session, _ = rpc_chain(submit_results(
            eth_call={"error": {"code": 3, "message": "execution reverted", "data": "Not authorized"}},
        ))
        with pytest.raises(UnauthorizedException):
            chain.submit_resolution(3, True, 9200, "bafyabc")
        assert "eth_sendRawTransaction" not in session.methods()

    def test_other_revert(self):
        chain, _, _ = rpc_chain(submit_results(
            eth_call={"error": {"message": "execution reverted: Market not ended"}},
        ))
        with pytest.raises(TransactionFailedException, match="Market not ended"):
            chain.submit_resolution(3, True, 9200, "bafyabc")

    def test_simulation_transport_failure(self):
        session = RoutedSession({"rpc.test": make_response(status_code=502)})
        chain = JsonRpcChain(
            RPC_URL,
            market_address=MARKET_ADDRESS,
            oracle_address=ORACLE_ADDRESS,
            private_key=TEST_KEY,
            http=make_http(session),
        )
        with pytest.raises(TransactionFailedException, match="HTTP 502"):
            chain.submit_resolution(3, True, 9200, "bafyabc")
        assert len(session.calls) == 1

    def test_reverted_receipt(self):
        chain, _, _ = rpc_chain(submit_results(
            eth_getTransactionReceipt={"status": "0x0", "gasUsed": "0x1", "blockNumber": "0x2"},
        ))
        with pytest.raises(TransactionFailedException) as exc_info:
            chain.submit_resolution(3, True, 9200, "bafyabc")
        assert exc_info.value.details["tx_hash"] == TX_HASH

    def test_confirmation_timeout(self):
        ticks = iter([0.0, 0.5, 2.0])
        chain, _, sleeps = rpc_chain(
            submit_results(eth_getTransactionReceipt=None),
            confirmation_timeout_s=1.0,
            time_fn=lambda: next(ticks),
        )
        with pytest.raises(TransactionFailedException, match="Timed out"):
            chain.submit_resolution(3, True, 9200, "bafyabc")
        assert sleeps == [2.0]


class TestFromConfig:
    """Construction from ChainConfig."""

    def test_complete_config(self):
        config = ChainConfig(
            rpc_url=RPC_URL,
            private_key=TEST_KEY,
            market_address=MARKET_ADDRESS,
            oracle_address=ORACLE_ADDRESS,
            chain_id=56,
            gas_limit=300_000,
        )
        chain = JsonRpcChain.from_config(config)
        assert chain.chain_id == 56
        assert chain.gas_limit == 300_000
        assert chain.signer_address() == TEST_ADDRESS

    def test_missing_fields(self):
        with pytest.raises(ConfigurationException) as exc_info:
            JsonRpcChain.from_config(ChainConfig(rpc_url=RPC_URL))
        assert exc_info.value.details["missing"] == ["market_address", "oracle_address"]
