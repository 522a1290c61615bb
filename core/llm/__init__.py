"""
LLM Client Module

Provider-agnostic LLM client with support for:
- OpenAI (GPT-4, etc.)
- Anthropic (Claude)
- Google (Gemini)
- Mock responses for tests

Structured output goes through a JSON schema and an optional tool name.
"""

from typing import Any, Optional

from .client import LLMClient, LLMResponse, extract_json_object
from .policy import DecodingPolicy, policy_to_provider_args
from .providers import (
    PROVIDER_DEFAULT_MODELS,
    PROVIDER_ENV_KEYS,
    AnthropicProvider,
    GoogleProvider,
    LLMProvider,
    MockProvider,
    OpenAIProvider,
    create_provider,
    get_configured_providers,
)


def create_llm_client(
    provider: str,
    *,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    endpoint: Optional[str] = None,
    proxy: Optional[str] = None,
    default_policy: Optional[DecodingPolicy] = None,
    **kwargs: Any,
) -> LLMClient:
    """
    Convenience function to create an LLMClient.

    Example:
        client = create_llm_client(
            provider="openai",
            api_key="sk-...",
            model="gpt-4-turbo-preview",
        )
    """
    provider_kwargs: dict[str, Any] = {}
    if api_key:
        provider_kwargs["api_key"] = api_key
    if endpoint:
        provider_kwargs["base_url"] = endpoint
    provider_kwargs.update(kwargs)

    llm_provider = create_provider(provider, model=model, proxy=proxy, **provider_kwargs)
    return LLMClient(provider=llm_provider, default_policy=default_policy)


__all__ = [
    "LLMClient",
    "LLMResponse",
    "extract_json_object",
    "DecodingPolicy",
    "policy_to_provider_args",
    "LLMProvider",
    "OpenAIProvider",
    "AnthropicProvider",
    "GoogleProvider",
    "MockProvider",
    "create_provider",
    "create_llm_client",
    "PROVIDER_ENV_KEYS",
    "PROVIDER_DEFAULT_MODELS",
    "get_configured_providers",
]
