"""
Data source adapters.

One adapter per provider; each turns a market question into a provider
query and normalizes the response into SourceData.
"""

from .base import (
    STOP_WORDS,
    BaseAdapter,
    ResolutionQuery,
    compare_to_target,
    extract_keywords,
    extract_price_target,
    extract_target_date,
    mentions_any,
)
from .binance import BinanceAdapter, extract_trading_pair
from .coingecko import CoinGeckoAdapter, coin_id_for, extract_symbol
from .confidence import (
    BINANCE_RUBRIC,
    COINGECKO_RUBRIC,
    FALLBACK_CONFIDENCE,
    ConfidenceRubric,
    clamp_confidence,
)
from .news import NewsAdapter, build_search_query, compute_sentiment, extract_key_facts
from .registry import AdapterEntry, AdapterRegistry, create_default_registry
from .sports import SportsAdapter, analyze_results, detect_sport
from .weather import WeatherAdapter, analyze_weather, condition_for, extract_location

__all__ = [
    "BaseAdapter",
    "ResolutionQuery",
    "STOP_WORDS",
    "extract_keywords",
    "extract_price_target",
    "compare_to_target",
    "extract_target_date",
    "mentions_any",
    "ConfidenceRubric",
    "clamp_confidence",
    "FALLBACK_CONFIDENCE",
    "COINGECKO_RUBRIC",
    "BINANCE_RUBRIC",
    "CoinGeckoAdapter",
    "extract_symbol",
    "coin_id_for",
    "BinanceAdapter",
    "extract_trading_pair",
    "SportsAdapter",
    "detect_sport",
    "analyze_results",
    "WeatherAdapter",
    "extract_location",
    "condition_for",
    "analyze_weather",
    "NewsAdapter",
    "build_search_query",
    "compute_sentiment",
    "extract_key_facts",
    "AdapterEntry",
    "AdapterRegistry",
    "create_default_registry",
]
