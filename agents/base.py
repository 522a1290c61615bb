"""
Agent Base Classes

Defines the shared component interface for data source adapters and
the AI analyzer.

Every component:
1. Has a stable name and version
2. Declares its capabilities
3. Is built around an AgentContext instead of creating its own clients
"""

from __future__ import annotations

from abc import ABC
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol, runtime_checkable


class AgentCapability(str, Enum):
    """
    Capabilities that a component may have.

    Used for listing and selection.
    """
    LLM = "llm"                # Uses an LLM for reasoning
    NETWORK = "network"        # Makes network requests
    PRICE_FEED = "price_feed"  # Reports numeric prices
    WEB_SEARCH = "web_search"  # Searches news or the open web
    API_KEY = "api_key"        # Has a keyed tier with better limits


@dataclass
class AgentResult:
    """
    Settled result of one component invocation.

    Used by the fan-out to collect successes and failures side by side
    instead of short-circuiting on the first error.
    """
    output: Any

    success: bool = True
    error: Optional[str] = None
    error_code: Optional[str] = None

    # Name of the component that produced this result
    source: Optional[str] = None

    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, output: Any, source: Optional[str] = None, **metadata: Any) -> "AgentResult":
        """Create a success result."""
        return cls(output=output, source=source, metadata=metadata)

    @classmethod
    def failure(
        cls,
        error: str,
        *,
        error_code: Optional[str] = None,
        source: Optional[str] = None,
        output: Any = None,
    ) -> "AgentResult":
        """Create a failure result."""
        return cls(
            output=output,
            success=False,
            error=error,
            error_code=error_code,
            source=source,
        )


@runtime_checkable
class Agent(Protocol):
    """
    Protocol defining the component interface.
    """

    @property
    def name(self) -> str:
        """Unique name identifying this implementation."""
        ...

    @property
    def version(self) -> str:
        """Version string (must change when behavior changes)."""
        ...

    @property
    def capabilities(self) -> set[AgentCapability]:
        """Set of capabilities this component has."""
        ...


class BaseAgent(ABC):
    """
    Abstract base class for components.

    Provides naming, versioning and capability checks.
    """

    # Subclasses must define these
    _name: str
    _version: str
    _capabilities: set[AgentCapability]

    def __init__(
        self,
        *,
        name: Optional[str] = None,
        version: Optional[str] = None,
    ) -> None:
        self._name_override = name
        self._version_override = version

    @property
    def name(self) -> str:
        """Component name."""
        return self._name_override or getattr(self, "_name", self.__class__.__name__)

    @property
    def version(self) -> str:
        """Component version."""
        return self._version_override or getattr(self, "_version", "v1")

    @property
    def capabilities(self) -> set[AgentCapability]:
        """Component capabilities."""
        return getattr(self, "_capabilities", set())

    def has_capability(self, cap: AgentCapability) -> bool:
        """Check if the component has a specific capability."""
        return cap in self.capabilities

    @property
    def uses_llm(self) -> bool:
        return AgentCapability.LLM in self.capabilities

    @property
    def uses_network(self) -> bool:
        return AgentCapability.NETWORK in self.capabilities

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, version={self.version!r})"
