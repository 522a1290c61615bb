"""
Agents Module

Components of the resolution pipeline that do the actual work:
- Data source adapters (one per provider)
- AI analyzer
- Evidence compiler and storage

All of them are built around an AgentContext, which carries the
injected LLM and HTTP clients, configuration, clock and logger.
"""

from .base import AgentCapability, AgentResult, BaseAgent
from .context import AgentContext, Clock, FrozenClock, RealClock

__all__ = [
    "AgentCapability",
    "AgentContext",
    "AgentResult",
    "BaseAgent",
    "Clock",
    "FrozenClock",
    "RealClock",
]
