"""
Oracle Service

Entry point used by the queue, the API and the CLI. Reads the market
from the ledger, checks that it can be resolved, then runs the engine.

`build_service` is the single place where configuration is turned into
concrete collaborators; the engine itself only sees what it is given.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from agents.adapters import AdapterRegistry, create_default_registry
from agents.analyzer import AIAnalyzer
from agents.context import AgentContext
from agents.evidence import (
    EvidenceCompiler,
    EvidenceStorage,
    InMemoryStorageBackend,
    create_storage,
)
from core.chain import ChainClient, InMemoryChain, JsonRpcChain
from core.config import RuntimeConfig
from core.http import HttpClient
from core.schemas import (
    Market,
    MarketAlreadyResolvedException,
    MarketNotEndedException,
    OracleException,
    ResolutionResult,
)

from .engine import ResolutionEngine

logger = logging.getLogger(__name__)


class OracleService:
    """
    Usage:
        service = build_service(RuntimeConfig.from_env())
        result = service.resolve_market(3)
    """

    def __init__(self, engine: ResolutionEngine, chain: ChainClient) -> None:
        self.engine = engine
        self.chain = chain

    @property
    def ctx(self) -> AgentContext:
        return self.engine.ctx

    def resolve_market(self, market_id: int) -> ResolutionResult:
        """
        Resolve one market by id.

        Raises:
            InvalidMarketException: unknown market
            MarketAlreadyResolvedException: the ledger already holds an outcome
            MarketNotEndedException: end_time is still in the future
            OracleException: any engine stage failure
        """
        market = self.chain.get_market(market_id)
        if market.resolved:
            raise MarketAlreadyResolvedException(
                f"Market {market_id} is already resolved",
                market_id=market_id,
            )
        now = self.ctx.now()
        if market.end_time > now:
            raise MarketNotEndedException(
                f"Market {market_id} has not ended yet",
                market_id=market_id,
                details={"end_time": market.end_time.isoformat()},
            )
        return self.engine.resolve(market)

    def status(self) -> dict[str, Any]:
        """Signer, authorization, market count and engine stats."""
        try:
            authorized = self.chain.is_authorized()
        except OracleException as e:
            logger.warning("Authorization check failed: %s", e.message)
            authorized = False
        try:
            market_count = self.chain.market_count()
        except OracleException as e:
            logger.warning("Market count unavailable: %s", e.message)
            market_count = None
        return {
            "signer": self.chain.signer_address(),
            "authorized": authorized,
            "market_count": market_count,
            "pending": self.engine.get_pending_resolutions(),
            "stats": self.engine.get_stats(),
        }


def build_service(
    config: RuntimeConfig,
    *,
    ctx: Optional[AgentContext] = None,
    chain: Optional[ChainClient] = None,
    storage: Optional[EvidenceStorage] = None,
    registry: Optional[AdapterRegistry] = None,
) -> OracleService:
    """
    Wire an OracleService from configuration.

    Any collaborator passed in is used as-is; the rest are built from
    `config`.
    """
    ctx = ctx or AgentContext.create(config)
    if chain is None:
        chain = JsonRpcChain.from_config(config.chain, http=ctx.http)
    if storage is None:
        storage = create_storage(config.storage, http=ctx.http, sleep=ctx.sleep)

    engine = ResolutionEngine(
        ctx,
        registry=registry or create_default_registry(),
        analyzer=AIAnalyzer(ctx, min_confidence=config.engine.min_confidence),
        compiler=EvidenceCompiler(ctx),
        storage=storage,
        chain=chain,
        config=config.engine,
        max_gas_price_wei=config.chain.max_gas_price_wei,
        native_token_usd=config.chain.native_token_usd,
    )
    return OracleService(engine, chain)


def build_test_service(
    config: RuntimeConfig,
    *,
    markets: Iterable[Market] = (),
    llm_responses: Optional[list[Any]] = None,
    registry: Optional[AdapterRegistry] = None,
) -> OracleService:
    """
    Service wired with in-memory fakes: ledger, storage and a mock LLM.

    Adapters still come from `registry` (the default registry when None).
    """
    ctx = AgentContext.create_mock(
        llm_responses=llm_responses,
        http=HttpClient(timeout=config.fetch.timeout_s),
    )
    ctx.config = config
    chain = InMemoryChain()
    for market in markets:
        chain.add_market(market)
    storage = EvidenceStorage(
        InMemoryStorageBackend(now=ctx.now),
        max_attempts=config.storage.max_attempts,
        sleep=ctx.sleep,
    )
    return build_service(config, ctx=ctx, chain=chain, storage=storage, registry=registry)
