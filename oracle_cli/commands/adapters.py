"""
CLI Adapters Command

List the registered data source adapters.

Usage:
    oracle adapters [--category crypto] [--json]
"""

from __future__ import annotations

from argparse import Namespace

from agents.adapters import create_default_registry
from core.schemas import parse_category
from oracle_cli.output import EXIT_SUCCESS, print_json


def adapters_cmd(args: Namespace) -> int:
    registry = create_default_registry()
    category = parse_category(args.category) if args.category else None
    adapters = registry.list_adapters(category)

    if args.json:
        print_json(adapters)
        return EXIT_SUCCESS

    if not adapters:
        print("No adapters registered")
        return EXIT_SUCCESS

    for a in adapters:
        print(f"- {a['name']} [priority={a['priority']}]")
        print(f"    categories: {', '.join(a['categories'])}")
        if a.get("provider"):
            print(f"    provider: {a['provider']}")
    return EXIT_SUCCESS
