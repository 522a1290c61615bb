"""
CLI Configuration

Loads RuntimeConfig for the CLI and builds the OracleService the
commands run against.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from core.config import RuntimeConfig, load_runtime_config
from orchestrator import OracleService, build_service, build_test_service


def is_test_mode() -> bool:
    return os.getenv("ORACLE_MODE", "").lower() == "test"


def load_config(path: Optional[Path] = None) -> RuntimeConfig:
    """Config file (explicit or discovered) with env overrides applied."""
    return load_runtime_config(path)


def build_cli_service(config: RuntimeConfig) -> OracleService:
    """Service for one CLI invocation; in-memory fakes under ORACLE_MODE=test."""
    if is_test_mode():
        return build_test_service(config)
    return build_service(config)


def get_default_config_template() -> str:
    """YAML template written by `config --init`."""
    return """\
# AI Oracle configuration.
# Secrets are better supplied through the environment (.env is loaded).
log_level: INFO

llm:
  provider: openai          # openai | anthropic | google | mock
  model: gpt-4-turbo-preview
  temperature: 0.1
  max_tokens: 2000

fetch:
  timeout_s: 10
  max_attempts: 3
  requests_per_minute: 60
  requests_per_hour: 1000
  cache_ttl_s: 60

analyzer:
  min_confidence: 8000
  cost_per_1k_tokens: 0.02

storage:
  provider: pinata          # pinata | memory
  gateway: https://gateway.pinata.cloud

chain:
  rpc_url: https://data-seed-prebsc-1-s1.binance.org:8545
  chain_id: 97
  max_gas_price_gwei: 10
  native_token_usd: 300

engine:
  min_confidence: 8000
  fetch_timeout_s: 30
  workers: 4
  job_max_attempts: 3
"""
