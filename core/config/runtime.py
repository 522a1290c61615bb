"""
Runtime Configuration

Central configuration for the resolution pipeline: LLM, provider fetch
behaviour, API keys, evidence storage, chain access and engine limits.

Only the CLI/API wiring reads a process-wide default. The engine and
its collaborators receive their settings through constructors.
"""

from __future__ import annotations

import copy
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

load_dotenv()

_REDACTED = "***"


@dataclass
class LLMConfig:
    """Configuration for the analyzer's LLM provider."""
    provider: str = "openai"
    model: str = "gpt-4-turbo-preview"
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    temperature: float = 0.1
    max_tokens: int = 2000
    timeout_s: float = 60.0

    def __post_init__(self):
        if self.api_key is None and self.provider != "mock":
            self.api_key = os.getenv(f"{self.provider.upper()}_API_KEY")


@dataclass
class FetchConfig:
    """Default resilient-fetch settings; adapters override per provider."""
    timeout_s: float = 10.0
    max_attempts: int = 3
    initial_delay_s: float = 1.0
    backoff_multiplier: float = 2.0
    max_delay_s: float = 10.0
    requests_per_minute: int = 60
    requests_per_hour: int = 1000
    cache_enabled: bool = True
    cache_ttl_s: float = 60.0


@dataclass
class ProviderKeysConfig:
    """API keys for data providers. All optional."""
    coingecko: Optional[str] = None
    binance: Optional[str] = None
    gnews: Optional[str] = None
    mediastack: Optional[str] = None
    brave: Optional[str] = None


@dataclass
class AnalyzerConfig:
    """AI analyzer acceptance and accounting."""
    min_confidence: int = 8000
    cost_per_1k_tokens: float = 0.02


@dataclass
class StorageConfig:
    """Content-addressed evidence storage."""
    provider: str = "pinata"  # pinata | memory
    api_key: Optional[str] = None
    secret_key: Optional[str] = None
    gateway: str = "https://gateway.pinata.cloud"
    max_attempts: int = 3
    timeout_s: float = 30.0


@dataclass
class ChainConfig:
    """Ledger access for market reads and resolution writes."""
    rpc_url: Optional[str] = None
    private_key: Optional[str] = None
    oracle_address: Optional[str] = None
    market_address: Optional[str] = None
    chain_id: int = 97
    max_gas_price_gwei: float = 10.0
    gas_limit: int = 500000
    native_token_usd: float = 300.0
    confirmation_timeout_s: float = 120.0
    poll_interval_s: float = 2.0

    @property
    def max_gas_price_wei(self) -> int:
        return int(self.max_gas_price_gwei * 1_000_000_000)


@dataclass
class EngineConfig:
    """Resolution engine and worker pool limits."""
    min_confidence: int = 8000
    fetch_timeout_s: float = 30.0
    workers: int = 4
    job_max_attempts: int = 3


_SECTIONS: dict[str, type] = {
    "llm": LLMConfig,
    "fetch": FetchConfig,
    "providers": ProviderKeysConfig,
    "analyzer": AnalyzerConfig,
    "storage": StorageConfig,
    "chain": ChainConfig,
    "engine": EngineConfig,
}

_SECRET_FIELDS: dict[str, tuple[str, ...]] = {
    "llm": ("api_key",),
    "providers": ("coingecko", "binance", "gnews", "mediastack", "brave"),
    "storage": ("api_key", "secret_key"),
    "chain": ("private_key",),
}

# env var -> (section, field, type); section None means a top-level field
_ENV_VARS: dict[str, tuple[Optional[str], str, type]] = {
    "ORACLE_LLM_PROVIDER": ("llm", "provider", str),
    "ORACLE_LLM_MODEL": ("llm", "model", str),
    "ORACLE_LLM_API_KEY": ("llm", "api_key", str),
    "COINGECKO_API_KEY": ("providers", "coingecko", str),
    "BINANCE_API_KEY": ("providers", "binance", str),
    "GNEWS_API_KEY": ("providers", "gnews", str),
    "MEDIASTACK_API_KEY": ("providers", "mediastack", str),
    "BRAVE_SEARCH_API_KEY": ("providers", "brave", str),
    "ORACLE_STORAGE_PROVIDER": ("storage", "provider", str),
    "PINATA_API_KEY": ("storage", "api_key", str),
    "PINATA_SECRET_KEY": ("storage", "secret_key", str),
    "RPC_URL": ("chain", "rpc_url", str),
    "PRIVATE_KEY": ("chain", "private_key", str),
    "AI_ORACLE_ADDRESS": ("chain", "oracle_address", str),
    "PREDICTION_MARKET_ADDRESS": ("chain", "market_address", str),
    "CHAIN_ID": ("chain", "chain_id", int),
    "MAX_GAS_PRICE_GWEI": ("chain", "max_gas_price_gwei", float),
    "MIN_CONFIDENCE_THRESHOLD": ("engine", "min_confidence", int),
    "ORACLE_WORKERS": ("engine", "workers", int),
    "ORACLE_LOG_LEVEL": (None, "log_level", str),
}


def _build_section(section_cls: type, data: Optional[dict[str, Any]]):
    """Construct a section dataclass, ignoring unknown keys."""
    if not data:
        return section_cls()
    known = {f.name for f in fields(section_cls)}
    return section_cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class RuntimeConfig:
    """
    Complete runtime configuration for the oracle.

    Can be loaded from:
    - Environment variables
    - YAML file
    - Programmatic construction
    """
    llm: LLMConfig = field(default_factory=LLMConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    providers: ProviderKeysConfig = field(default_factory=ProviderKeysConfig)
    analyzer: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    chain: ChainConfig = field(default_factory=ChainConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    log_level: str = "INFO"

    @staticmethod
    def _get_env_overrides() -> dict[str, Any]:
        """
        Get configuration overrides from environment variables.

        This is the SINGLE source of truth for all env var reading.
        See _ENV_VARS for the supported names. Values that fail type
        conversion raise ValueError naming the variable.
        """
        overrides: dict[str, Any] = {}
        for env_var, (section, key, cast) in _ENV_VARS.items():
            raw = os.getenv(env_var)
            if raw is None or raw == "":
                continue
            try:
                value = cast(raw)
            except ValueError as e:
                raise ValueError(f"Invalid value for {env_var}: {raw!r}") from e
            if section is None:
                overrides[key] = value
            else:
                overrides.setdefault(section, {})[key] = value
        return overrides

    @classmethod
    def from_env(cls) -> "RuntimeConfig":
        """Load configuration purely from environment variables."""
        return cls.from_dict(cls._get_env_overrides())

    @classmethod
    def from_yaml(cls, path: str | Path) -> "RuntimeConfig":
        """Load configuration from a YAML file."""
        import yaml
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RuntimeConfig":
        """Load configuration from a dictionary (supports partial data)."""
        sections = {
            name: _build_section(section_cls, data.get(name))
            for name, section_cls in _SECTIONS.items()
        }
        return cls(**sections, log_level=data.get("log_level", "INFO"))

    def with_env_overrides(self) -> "RuntimeConfig":
        """
        Return a new config with environment variable overrides applied.

        This allows loading from a config file first, then overlaying env vars.
        """
        overrides = self._get_env_overrides()
        if not overrides:
            return self

        new_config = copy.deepcopy(self)
        for key, value in overrides.items():
            if key in _SECTIONS:
                section = getattr(new_config, key)
                for field_name, field_value in value.items():
                    setattr(section, field_name, field_value)
            else:
                setattr(new_config, key, value)
        return new_config

    def to_dict(self, redact: bool = True) -> dict[str, Any]:
        """Convert configuration to a dictionary. Secrets are redacted by default."""
        result: dict[str, Any] = {}
        for name in _SECTIONS:
            section = asdict(getattr(self, name))
            if redact:
                for secret in _SECRET_FIELDS.get(name, ()):
                    if section.get(secret):
                        section[secret] = _REDACTED
            result[name] = section
        result["log_level"] = self.log_level
        return result


# Global default configuration
_default_config: Optional[RuntimeConfig] = None


def get_default_config() -> RuntimeConfig:
    """Get the default runtime configuration."""
    global _default_config
    if _default_config is None:
        _default_config = RuntimeConfig.from_env()
    return _default_config


def set_default_config(config: Optional[RuntimeConfig]) -> None:
    """Set (or clear, with None) the default runtime configuration."""
    global _default_config
    _default_config = config


# =============================================================================
# Config file discovery
# =============================================================================

def config_search_paths() -> list[Path]:
    return [
        Path.cwd() / "oracle.yaml",
        Path.cwd() / ".oracle.yaml",
        Path.home() / ".config" / "ai-oracle" / "config.yaml",
    ]


def load_runtime_config(path: Optional[str | Path] = None) -> RuntimeConfig:
    """
    Load RuntimeConfig from a YAML file, then overlay environment variables.

    An explicit `path` must exist. Otherwise the first file found is used:
      1. ./oracle.yaml
      2. ./.oracle.yaml
      3. ~/.config/ai-oracle/config.yaml
    """
    if path is not None:
        return RuntimeConfig.from_yaml(path).with_env_overrides()

    for candidate in config_search_paths():
        if candidate.exists():
            return RuntimeConfig.from_yaml(candidate).with_env_overrides()

    return RuntimeConfig().with_env_overrides()
