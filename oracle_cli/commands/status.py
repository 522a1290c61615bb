"""
CLI Status Command

Usage:
    oracle status [--json]
"""

from __future__ import annotations

from argparse import Namespace

from oracle_cli.config import build_cli_service
from oracle_cli.output import EXIT_SUCCESS, print_json


def status_cmd(args: Namespace) -> int:
    """Print signer, authorization, market count and engine stats."""
    service = build_cli_service(args.runtime_config)
    info = service.status()

    if args.json:
        print_json(info)
        return EXIT_SUCCESS

    stats = info["stats"]
    market_count = info["market_count"]
    print(f"signer: {info['signer']}")
    print(f"authorized: {str(info['authorized']).lower()}")
    print(f"markets: {market_count if market_count is not None else 'unavailable'}")
    print(f"in_flight: {stats['in_flight']}")
    print(f"completed: {stats['completed']}")
    print(f"failed: {stats['failed']}")
    print(f"manual_review: {stats['manual_review']}")
    print(f"average_confidence: {stats['average_confidence']:.0f}")
    return EXIT_SUCCESS
