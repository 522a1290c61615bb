"""
AI Oracle CLI

Command-line interface for resolving markets and inspecting the oracle.

Usage:
    python -m oracle_cli resolve 3
    python -m oracle_cli status --json
    python -m oracle_cli worker 3 4 5 --workers 2
    python -m oracle_cli config --show
    python -m oracle_cli adapters --category crypto
"""

__version__ = "0.1.0"
