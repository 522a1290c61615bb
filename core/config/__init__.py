"""
Runtime Configuration Module

Provides configuration loading and management for the oracle.
"""

from .runtime import (
    AnalyzerConfig,
    ChainConfig,
    EngineConfig,
    FetchConfig,
    LLMConfig,
    ProviderKeysConfig,
    RuntimeConfig,
    StorageConfig,
    config_search_paths,
    get_default_config,
    load_runtime_config,
    set_default_config,
)

__all__ = [
    "RuntimeConfig",
    "LLMConfig",
    "FetchConfig",
    "ProviderKeysConfig",
    "AnalyzerConfig",
    "StorageConfig",
    "ChainConfig",
    "EngineConfig",
    "get_default_config",
    "load_runtime_config",
    "config_search_paths",
    "set_default_config",
]
