"""
LLM Client

Provider-agnostic chat interface. A call can carry a JSON schema and a
tool name; providers that support function calling return the tool
arguments, the others fall back to JSON text.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from .policy import DecodingPolicy

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)


def extract_json_object(text: str) -> Optional[dict[str, Any]]:
    """
    Pull the first JSON object out of free text.

    Tries a fenced code block, then the outermost {...} slice, then the
    raw text. Returns None when nothing parses to a dict.
    """
    candidates: list[str] = []
    match = _CODE_FENCE.search(text)
    if match:
        candidates.append(match.group(1))
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start:end + 1])
    candidates.append(text.strip())

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


@dataclass
class LLMResponse:
    """
    Response from an LLM call.

    `tool_arguments` is set when the provider answered with a function
    call; `content` then holds whatever text accompanied it.
    """
    content: str
    model: str
    provider: str
    input_tokens: int = 0
    output_tokens: int = 0
    finish_reason: str = "stop"
    tool_arguments: Optional[dict[str, Any]] = None
    raw_response: Optional[dict[str, Any]] = None

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def as_json(self) -> Optional[dict[str, Any]]:
        """
        Structured payload of the response.

        Tool-call arguments win; otherwise the first JSON object in the
        text content. Returns None if neither is available.
        """
        if self.tool_arguments is not None:
            return self.tool_arguments
        return extract_json_object(self.content)


class LLMClient:
    """
    Provider-agnostic LLM client.

    Usage:
        from core.llm import LLMClient, create_provider

        provider = create_provider("openai", api_key="...")
        client = LLMClient(provider)

        response = client.chat(
            [{"role": "user", "content": "Resolve this market"}],
            json_schema=SCHEMA,
            tool_name="resolve_prediction_market",
        )
        payload = response.as_json()
    """

    def __init__(
        self,
        provider: "LLMProvider",
        *,
        default_policy: Optional[DecodingPolicy] = None,
    ) -> None:
        self.provider = provider
        self.default_policy = default_policy or DecodingPolicy()

    @property
    def model(self) -> str:
        return self.provider.model

    def chat(
        self,
        messages: list[dict[str, Any]],
        *,
        policy: Optional[DecodingPolicy] = None,
        json_schema: Optional[dict[str, Any]] = None,
        tool_name: Optional[str] = None,
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        """
        Send a chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content'
            policy: Decoding policy (temperature, etc.)
            json_schema: Optional JSON schema for structured output
            tool_name: Function name to force when json_schema is given
            system_prompt: Optional system prompt to prepend
        """
        effective_policy = policy or self.default_policy

        if system_prompt:
            messages = [{"role": "system", "content": system_prompt}] + messages

        logger.debug(
            "LLM call provider=%s model=%s tool=%s",
            self.provider.name, self.provider.model, tool_name,
        )
        return self.provider.chat(
            messages=messages,
            policy=effective_policy,
            json_schema=json_schema,
            tool_name=tool_name,
        )


# Import here to avoid circular imports
from .providers import LLMProvider  # noqa: E402
