"""
CLI Main Entry Point

Parses command-line arguments and dispatches to subcommands.

Usage:
    python -m oracle_cli resolve <market_id> [--json]
    python -m oracle_cli status [--json]
    python -m oracle_cli worker <market_id>... [--workers N] [--json]
    python -m oracle_cli config --show | --init [--path PATH]
    python -m oracle_cli adapters [--category C] [--json]

Environment Variables:
    ORACLE_MODE                 "test" wires the in-memory ledger, storage and mock LLM
    ORACLE_LOG_LEVEL            Log level (default: INFO)
    ORACLE_LLM_PROVIDER         LLM provider (openai, anthropic, google, mock)
    RPC_URL / PRIVATE_KEY       Ledger access
    PINATA_API_KEY              Evidence storage
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

import yaml

from core.schemas import OracleException
from oracle_cli.commands import adapters, resolve, status, worker
from oracle_cli.config import get_default_config_template, load_config
from oracle_cli.output import EXIT_RUNTIME_ERROR, EXIT_SUCCESS, print_json, report_error


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the CLI."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="oracle",
        description="AI Oracle CLI - Resolve prediction markets and inspect the oracle.",
    )
    parser.add_argument(
        "--version", action="version", version="%(prog)s 0.1.0"
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="Path to a YAML config file (default: ./oracle.yaml or ~/.config/ai-oracle/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (overrides ORACLE_LOG_LEVEL and config)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- resolve command ---
    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Resolve one market",
        description="Fetch data, analyze, store evidence and submit the outcome on-chain.",
    )
    resolve_parser.add_argument("market_id", type=int, help="On-chain market id")
    resolve_parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Output the ResolutionResult as JSON",
    )
    resolve_parser.set_defaults(func=resolve.resolve_cmd)

    # --- status command ---
    status_parser = subparsers.add_parser(
        "status",
        help="Show signer, authorization and engine stats",
    )
    status_parser.add_argument("--json", action="store_true", default=False, help="JSON output")
    status_parser.set_defaults(func=status.status_cmd)

    # --- worker command ---
    worker_parser = subparsers.add_parser(
        "worker",
        help="Resolve several markets through the job queue",
        description="Queue the given markets and run them on a worker pool until done.",
    )
    worker_parser.add_argument("market_ids", type=int, nargs="+", help="Market ids to resolve")
    worker_parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Worker threads (default: engine.workers from config)",
    )
    worker_parser.add_argument("--json", action="store_true", default=False, help="JSON output")
    worker_parser.set_defaults(func=worker.worker_cmd)

    # --- config command ---
    config_parser = subparsers.add_parser(
        "config",
        help="Manage configuration",
        description="Initialize or display configuration. Secrets are redacted.",
    )
    config_parser.add_argument(
        "--init",
        action="store_true",
        default=False,
        help="Create a template configuration file",
    )
    config_parser.add_argument(
        "--show",
        action="store_true",
        default=False,
        help="Show the effective configuration",
    )
    config_parser.add_argument(
        "--path",
        type=str,
        default="oracle.yaml",
        help="Path for --init (default: oracle.yaml)",
    )
    config_parser.set_defaults(func=config_cmd)

    # --- adapters command ---
    adapters_parser = subparsers.add_parser(
        "adapters",
        help="List registered data source adapters",
    )
    adapters_parser.add_argument(
        "--category",
        type=str,
        default=None,
        help="Only adapters covering this category (e.g. crypto, sports)",
    )
    adapters_parser.add_argument("--json", action="store_true", default=False, help="JSON output")
    adapters_parser.set_defaults(func=adapters.adapters_cmd)

    return parser


def config_cmd(args: argparse.Namespace) -> int:
    """Handle config command."""
    if args.init:
        config_path = Path(args.path)
        if config_path.exists():
            print(f"Error: Config file already exists: {config_path}", file=sys.stderr)
            return EXIT_RUNTIME_ERROR

        config_path.write_text(get_default_config_template())
        print(f"Created configuration file: {config_path}")
        print("\nSecrets (API keys, PRIVATE_KEY) belong in the environment or .env.")
        return EXIT_SUCCESS

    if args.show:
        data = args.runtime_config.to_dict(redact=True)
        if getattr(args, "json", False):
            print_json(data)
        else:
            print(yaml.safe_dump(data, sort_keys=False), end="")
        return EXIT_SUCCESS

    print("Usage: oracle config [--init|--show]")
    print("  --init  Create a template configuration file")
    print("  --show  Show current configuration")
    return EXIT_SUCCESS


def main(argv: Sequence[str] | None = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0=success, 1=error, 3=retryable failure)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_RUNTIME_ERROR

    # Load configuration
    try:
        config = load_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    setup_logging(level=args.log_level or config.log_level)

    # Attach config to args for commands to use
    args.runtime_config = config

    try:
        return args.func(args)
    except OracleException as e:
        return report_error(e)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_RUNTIME_ERROR


if __name__ == "__main__":
    sys.exit(main())
