"""
LLM Decoding Policy

Sampling controls passed to every provider call. The analyzer runs at
a low temperature so repeated analyses of the same evidence agree.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class DecodingPolicy:
    """
    Sampling parameters for one LLM call.

    json_mode=True asks the provider for a JSON object when no tool
    schema is supplied.
    """
    temperature: float = 0.1
    top_p: float = 1.0
    seed: Optional[int] = None
    max_tokens: int = 2000
    json_mode: bool = True
    stop_sequences: tuple[str, ...] = field(default_factory=tuple)

    def with_temperature(self, temp: float) -> "DecodingPolicy":
        """Return a new policy with modified temperature."""
        return replace(self, temperature=temp)

    def with_max_tokens(self, tokens: int) -> "DecodingPolicy":
        """Return a new policy with modified max_tokens."""
        return replace(self, max_tokens=tokens)


def policy_to_provider_args(policy: DecodingPolicy, provider: str = "openai") -> Dict[str, Any]:
    """
    Convert a DecodingPolicy to provider-specific API arguments.

    Unknown providers get OpenAI-style arguments.
    """
    if provider == "anthropic":
        args: Dict[str, Any] = {
            "temperature": policy.temperature,
            "max_tokens": policy.max_tokens,
            "top_p": policy.top_p,
        }
        if policy.stop_sequences:
            args["stop_sequences"] = list(policy.stop_sequences)
        return args

    if provider == "google":
        return {
            "temperature": policy.temperature,
            "max_output_tokens": policy.max_tokens,
            "top_p": policy.top_p,
        }

    args = {
        "temperature": policy.temperature,
        "max_tokens": policy.max_tokens,
        "top_p": policy.top_p,
    }
    if policy.seed is not None:
        args["seed"] = policy.seed
    if policy.stop_sequences:
        args["stop"] = list(policy.stop_sequences)
    return args
