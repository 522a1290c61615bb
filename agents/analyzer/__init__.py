"""
AI analyzer.

Turns a market plus its SourceData into an accepted AIVerdict.
"""

from .agent import AIAnalyzer, calculate_cost, validate_response
from .prompts import (
    CATEGORY_GUIDANCE,
    RESOLUTION_TOOL_NAME,
    RESOLUTION_TOOL_SCHEMA,
    build_prompt,
    get_system_prompt,
)

__all__ = [
    "AIAnalyzer",
    "calculate_cost",
    "validate_response",
    "CATEGORY_GUIDANCE",
    "RESOLUTION_TOOL_NAME",
    "RESOLUTION_TOOL_SCHEMA",
    "build_prompt",
    "get_system_prompt",
]
