"""
CLI output helpers: exit codes and error reporting.
"""

from __future__ import annotations

import json
import sys
from typing import Any

from core.schemas import OracleException

# Exit codes
EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_RETRYABLE = 3


def format_error(error: OracleException) -> str:
    stage = error.stage or "-"
    return f"Error [{stage}] {error.code}: {error.message}"


def exit_code_for(error: OracleException) -> int:
    return EXIT_RETRYABLE if error.retryable else EXIT_RUNTIME_ERROR


def report_error(error: OracleException) -> int:
    """Print the operator-facing error line and return the exit code."""
    print(format_error(error), file=sys.stderr)
    return exit_code_for(error)


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))
