"""
Resolution engine and service tests.

Runs the full state machine over the in-memory ledger and storage with
scripted adapters and the mock LLM.
"""

from datetime import timedelta

import pytest

from agents.analyzer import AIAnalyzer
from core.chain import WEI_PER_GWEI
from core.schemas import (
    AIAnalysisException,
    Category,
    ErrorCodes,
    GasTooHighException,
    InsufficientDataException,
    InvalidMarketException,
    LowConfidenceException,
    MarketAlreadyResolvedException,
    MarketNotEndedException,
    ResolutionInProgressException,
    ResolutionStage,
    ResolutionStatus,
    TransactionFailedException,
    UnauthorizedException,
)
from orchestrator import MANUAL_REVIEW_CODES, build_test_service, terminal_status

from fixtures import (
    FROZEN_NOW,
    FailingAdapter,
    StaticAdapter,
    make_market,
    make_price_source,
    make_registry,
    make_verdict_args,
)


def service_with(test_config, *, reply=None, registry=None, markets=None):
    return build_test_service(
        test_config,
        markets=markets or [make_market()],
        llm_responses=[reply or make_verdict_args()],
        registry=registry,
    )


@pytest.fixture
def down_registry():
    return make_registry([("Down", lambda c: FailingAdapter(c, name="Down"))])


class TestSuccessfulResolution:
    """Happy path through every stage."""

    def test_result(self, service):
        result = service.resolve_market(1)

        assert result.market_id == 1
        assert result.outcome is True
        assert result.confidence == 9200
        assert result.tx_hash.startswith("0x")
        assert result.evidence_content_id.startswith("bafy")
        assert result.gas_used == 150_000
        # 0.003 for tokens + 150k gas at 5 gwei and $300 per native token
        assert result.cost_usd == pytest.approx(0.228)
        assert result.duration == 0.0

    def test_stage_trail(self, service):
        result = service.resolve_market(1)
        assert result.stages == [
            ResolutionStage.FETCHING,
            ResolutionStage.ANALYZING,
            ResolutionStage.CONFIDENCE_GATE,
            ResolutionStage.COMPILING,
            ResolutionStage.STORING,
            ResolutionStage.GAS_GATE,
            ResolutionStage.SUBMITTING,
            ResolutionStage.DONE,
        ]

    def test_status_transitions(self, service):
        service.resolve_market(1)
        attempt = service.engine.get_attempt(1)
        assert [status for status, _ in attempt.transitions] == [
            ResolutionStatus.FETCHING_DATA,
            ResolutionStatus.ANALYZING,
            ResolutionStatus.UPLOADING_EVIDENCE,
            ResolutionStatus.SUBMITTING,
            ResolutionStatus.COMPLETED,
        ]
        assert attempt.to_dict()["sources"] == ["PriceA", "PriceB"]

    def test_submission_references_evidence(self, service):
        result = service.resolve_market(1)

        submission = service.chain.submissions[0]
        assert submission.evidence_cid == result.evidence_content_id
        assert submission.outcome is True
        assert submission.confidence == 9200

    def test_stored_evidence(self, service):
        result = service.resolve_market(1)

        package = service.engine.storage.retrieve(result.evidence_content_id)
        assert package.market_id == 1
        assert package.resolution.submitted_by == service.chain.signer_address()
        assert [s.source for s in package.sources] == ["PriceA", "PriceB"]
        assert package.verification.multi_source_agreement is True

    def test_attempt_metadata_recorded(self, service):
        result = service.resolve_market(1)
        evidence = service.engine.get_attempt(1).evidence
        assert evidence.metadata.content_id == result.evidence_content_id
        assert evidence.metadata.tx_hash == result.tx_hash

    def test_market_resolved_on_ledger(self, service):
        service.resolve_market(1)
        assert service.chain.get_market(1).resolved
        with pytest.raises(MarketAlreadyResolvedException):
            service.resolve_market(1)

    def test_claim_released(self, service):
        service.resolve_market(1)
        assert len(service.engine.in_flight) == 0

    def test_partial_source_failure_tolerated(self, test_config):
        registry = make_registry([
            ("Down", lambda c: FailingAdapter(c, name="Down")),
            ("Up", lambda c: StaticAdapter(c, make_price_source(), name="Up")),
        ])
        service = service_with(test_config, registry=registry)

        service.resolve_market(1)

        attempt = service.engine.get_attempt(1)
        assert [s.source for s in attempt.sources] == ["Up"]
        assert [f.source for f in attempt.failures] == ["Down"]


class TestPreconditions:
    """Checks made before the engine runs."""

    def test_unknown_market(self, service):
        with pytest.raises(InvalidMarketException):
            service.resolve_market(99)

    def test_already_resolved(self, test_config, price_registry):
        service = service_with(
            test_config,
            registry=price_registry,
            markets=[make_market(resolved=True, outcome=False)],
        )
        with pytest.raises(MarketAlreadyResolvedException):
            service.resolve_market(1)

    def test_not_ended(self, test_config, price_registry):
        service = service_with(
            test_config,
            registry=price_registry,
            markets=[make_market(end_time=FROZEN_NOW + timedelta(hours=1))],
        )
        with pytest.raises(MarketNotEndedException) as exc_info:
            service.resolve_market(1)
        assert exc_info.value.retryable

    def test_in_progress(self, service):
        service.engine.in_flight.acquire(1)
        with pytest.raises(ResolutionInProgressException):
            service.resolve_market(1)
        assert service.engine.get_stats()["failed"] == 0


class TestStageFailures:
    """Each stage is an exit point with a typed error."""

    def test_all_sources_failed(self, test_config, down_registry):
        service = service_with(test_config, registry=down_registry)

        with pytest.raises(InsufficientDataException) as exc_info:
            service.resolve_market(1)

        error = exc_info.value
        assert error.stage == "fetching"
        assert error.details["market_id"] == 1
        assert error.details["failures"][0]["code"] == ErrorCodes.NETWORK_ERROR
        assert service.ctx.llm.provider.calls == []
        assert service.engine.get_attempt(1).status == ResolutionStatus.MANUAL_REVIEW

    def test_no_adapters_for_category(self, test_config):
        registry = make_registry(
            [("SportsOnly", lambda c: StaticAdapter(c, make_price_source(), name="SportsOnly"))],
            categories=(Category.SPORTS,),
        )
        service = service_with(test_config, registry=registry)

        with pytest.raises(InsufficientDataException, match="No data sources registered"):
            service.resolve_market(1)

    def test_low_confidence_from_analyzer(self, test_config, price_registry):
        service = service_with(
            test_config,
            registry=price_registry,
            reply=make_verdict_args(confidence=7000),
        )

        with pytest.raises(LowConfidenceException) as exc_info:
            service.resolve_market(1)

        assert exc_info.value.stage == "analyzing"
        assert service.engine.storage.backend.uploads == 0
        assert service.chain.submissions == []

    def test_confidence_gate_backstop(self, test_config, price_registry):
        service = service_with(
            test_config,
            registry=price_registry,
            reply=make_verdict_args(confidence=7999),
        )
        service.engine.analyzer = AIAnalyzer(service.ctx, min_confidence=0)

        with pytest.raises(LowConfidenceException) as exc_info:
            service.resolve_market(1)

        assert exc_info.value.stage == "confidence_gate"
        assert exc_info.value.details["threshold"] == 8000

    def test_at_floor_passes(self, test_config, price_registry):
        service = service_with(
            test_config,
            registry=price_registry,
            reply=make_verdict_args(confidence=8000),
        )
        assert service.resolve_market(1).confidence == 8000

    def test_unparseable_verdict(self, test_config, price_registry):
        service = service_with(test_config, registry=price_registry, reply="no idea")
        with pytest.raises(AIAnalysisException) as exc_info:
            service.resolve_market(1)
        assert exc_info.value.code == ErrorCodes.AI_ANALYSIS_FAILED
        assert exc_info.value.stage == "analyzing"
        assert service.engine.get_attempt(1).status == ResolutionStatus.FAILED

    def test_gas_too_high(self, service):
        service.chain.set_gas_price(20 * WEI_PER_GWEI)

        with pytest.raises(GasTooHighException) as exc_info:
            service.resolve_market(1)

        error = exc_info.value
        assert error.stage == "gas_gate"
        assert error.retryable
        content_id = error.details["content_id"]
        assert service.engine.storage.verify(content_id)
        assert service.chain.submissions == []

    def test_unauthorized_keeps_evidence(self, service):
        service.chain.set_authorized(False)

        with pytest.raises(UnauthorizedException) as exc_info:
            service.resolve_market(1)

        error = exc_info.value
        assert error.stage == "submitting"
        package = service.engine.storage.retrieve(error.details["content_id"])
        assert package.market_id == 1
        assert service.engine.get_attempt(1).status == ResolutionStatus.MANUAL_REVIEW

    def test_transaction_failure(self, service):
        service.chain.fail_next_submissions()

        with pytest.raises(TransactionFailedException) as exc_info:
            service.resolve_market(1)

        assert exc_info.value.retryable
        assert service.engine.get_attempt(1).status == ResolutionStatus.FAILED

    def test_retry_reuses_uploaded_evidence(self, service):
        service.chain.fail_next_submissions()
        with pytest.raises(TransactionFailedException):
            service.resolve_market(1)

        result = service.resolve_market(1)

        assert service.engine.storage.backend.uploads == 1
        assert service.chain.submissions[0].evidence_cid == result.evidence_content_id


class TestStatsAndStatus:
    """Counters and the operator status view."""

    def test_stats_after_mixed_outcomes(self, test_config, price_registry):
        service = service_with(
            test_config,
            registry=price_registry,
            markets=[make_market(1), make_market(2)],
        )
        service.resolve_market(1)
        service.chain.set_gas_price(20 * WEI_PER_GWEI)
        with pytest.raises(GasTooHighException):
            service.resolve_market(2)

        stats = service.engine.get_stats()
        assert stats["completed"] == 1
        assert stats["failed"] == 1
        assert stats["manual_review"] == 0
        assert stats["average_confidence"] == 9200
        assert stats["total_cost_usd"] == pytest.approx(0.228)
        assert stats["failures_by_code"] == {ErrorCodes.BLOCKCHAIN_GAS_TOO_HIGH: 1}
        assert stats["in_flight"] == 0
        assert stats["last_attempt_at"] == FROZEN_NOW.isoformat()

    def test_manual_review_counted_separately(self, test_config, down_registry):
        service = service_with(test_config, registry=down_registry)
        with pytest.raises(InsufficientDataException):
            service.resolve_market(1)
        stats = service.engine.get_stats()
        assert stats["manual_review"] == 1
        assert stats["failed"] == 0

    def test_attempt_history_bounded(self, test_config, down_registry):
        service = service_with(
            test_config,
            registry=down_registry,
            markets=[make_market(1), make_market(2), make_market(3)],
        )
        service.engine.max_tracked_attempts = 2

        for market_id in (1, 2, 3, 2, 1):
            with pytest.raises(InsufficientDataException):
                service.resolve_market(market_id)

        assert service.engine.get_attempt(3) is None
        assert service.engine.get_attempt(1).market.id == 1
        assert service.engine.get_attempt(2).market.id == 2

    def test_service_status(self, service):
        status = service.status()
        assert status["signer"] == service.chain.signer_address()
        assert status["authorized"] is True
        assert status["market_count"] == 1
        assert status["pending"] == []
        assert status["stats"]["completed"] == 0

    def test_terminal_status(self):
        assert ErrorCodes.INSUFFICIENT_DATA in MANUAL_REVIEW_CODES
        assert terminal_status(UnauthorizedException()) == ResolutionStatus.MANUAL_REVIEW
        assert terminal_status(TransactionFailedException("reverted")) == ResolutionStatus.FAILED
