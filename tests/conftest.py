"""
Pytest configuration and shared fixtures for the oracle tests.

This conftest.py:
1. Adds project root to sys.path for imports
2. Provides commonly-used fixtures via pytest's autodiscovery
3. Configures pytest markers and settings
"""

import sys
from pathlib import Path

import pytest

# =============================================================================
# Path Setup - Must happen before any local imports
# =============================================================================

# Get the project root (parent of tests/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_TESTS_ROOT = Path(__file__).resolve().parent

# Add both project root and tests root to sys.path
for _path in [str(_PROJECT_ROOT), str(_TESTS_ROOT)]:
    if _path not in sys.path:
        sys.path.insert(0, _path)

# =============================================================================
# Import fixtures using importlib (more robust for pytest loading)
# =============================================================================

import importlib

_markets = importlib.import_module("fixtures.markets")
_adapters = importlib.import_module("fixtures.adapters")

make_market = _markets.make_market
make_price_source = _markets.make_price_source
make_verdict = _markets.make_verdict
make_verdict_args = _markets.make_verdict_args

StaticAdapter = _adapters.StaticAdapter
make_registry = _adapters.make_registry

from agents.context import AgentContext  # noqa: E402
from core.config import RuntimeConfig  # noqa: E402
from orchestrator import build_test_service  # noqa: E402


# =============================================================================
# Environment isolation
# =============================================================================

_ORACLE_ENV_VARS = (
    "ORACLE_MODE",
    "ORACLE_LOG_LEVEL",
    "ORACLE_LLM_PROVIDER",
    "ORACLE_LLM_MODEL",
    "ORACLE_LLM_API_KEY",
    "ORACLE_STORAGE_PROVIDER",
    "ORACLE_WORKERS",
    "COINGECKO_API_KEY",
    "BINANCE_API_KEY",
    "GNEWS_API_KEY",
    "MEDIASTACK_API_KEY",
    "BRAVE_SEARCH_API_KEY",
    "PINATA_API_KEY",
    "PINATA_SECRET_KEY",
    "AI_ORACLE_ADDRESS",
    "PREDICTION_MARKET_ADDRESS",
    "MIN_CONFIDENCE_THRESHOLD",
    "MAX_GAS_PRICE_GWEI",
    "CHAIN_ID",
    "RPC_URL",
    "PRIVATE_KEY",
)


@pytest.fixture(autouse=True)
def _clean_oracle_env(monkeypatch):
    """Keep a developer's .env or shell from leaking into tests."""
    for name in _ORACLE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# =============================================================================
# Pytest Fixtures (autodiscovered by pytest)
# =============================================================================

@pytest.fixture
def market():
    """Provide a default ended crypto Market."""
    return make_market()


@pytest.fixture
def ctx():
    """Minimal AgentContext: frozen clock, no LLM, no HTTP client."""
    return AgentContext.create_minimal()


@pytest.fixture
def test_config():
    """RuntimeConfig for in-memory wiring with a mock LLM."""
    return RuntimeConfig.from_dict({
        "llm": {"provider": "mock"},
        "storage": {"provider": "memory"},
        "engine": {"min_confidence": 8000, "fetch_timeout_s": 5.0, "job_max_attempts": 2},
    })


@pytest.fixture
def price_registry():
    """Two crypto adapters that always answer with agreeing prices."""
    return make_registry([
        ("PriceA", lambda c: StaticAdapter(c, make_price_source(101_250.0), name="PriceA")),
        ("PriceB", lambda c: StaticAdapter(c, make_price_source(101_180.0), name="PriceB")),
    ])


@pytest.fixture
def service(test_config, market, price_registry):
    """OracleService over the in-memory ledger holding `market`."""
    return build_test_service(
        test_config,
        markets=[market],
        llm_responses=[make_verdict_args()],
        registry=price_registry,
    )


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
