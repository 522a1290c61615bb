"""
CLI Resolve Command

Resolve one market synchronously.

Usage:
    oracle resolve <market_id> [--json]
"""

from __future__ import annotations

import logging
from argparse import Namespace

from core.schemas import ResolutionResult
from oracle_cli.config import build_cli_service
from oracle_cli.output import EXIT_SUCCESS, print_json


logger = logging.getLogger(__name__)


def print_result_human(result: ResolutionResult) -> None:
    print(f"market_id: {result.market_id}")
    print(f"outcome: {'YES' if result.outcome else 'NO'}")
    print(f"confidence: {result.confidence / 100:.2f}%")
    print(f"evidence: {result.evidence_content_id}")
    print(f"tx_hash: {result.tx_hash}")
    if result.block_number is not None:
        print(f"block: {result.block_number}")
    print(f"gas_used: {result.gas_used}")
    print(f"cost_usd: {result.cost_usd:.4f}")
    print(f"duration: {result.duration:.2f}s")
    print(f"stages: {' -> '.join(s.value for s in result.stages)}")


def resolve_cmd(args: Namespace) -> int:
    """
    Execute the resolve command.

    Pipeline failures propagate as OracleException; main() turns them
    into the error line and exit code.
    """
    service = build_cli_service(args.runtime_config)
    result = service.resolve_market(args.market_id)

    if args.json:
        print_json(result.model_dump(mode="json"))
    else:
        print_result_human(result)
    return EXIT_SUCCESS
