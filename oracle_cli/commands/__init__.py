"""
CLI command modules.
"""

from oracle_cli.commands import adapters, resolve, status, worker

__all__ = ["adapters", "resolve", "status", "worker"]
