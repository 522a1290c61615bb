"""
Data source adapter tests.

Each adapter runs against a RoutedSession keyed by provider URL, with
the minimal context's frozen clock standing in for time and sleep.
Unrouted URLs answer 404.
"""

from datetime import datetime, timezone

import pytest

from agents.adapters import (
    BinanceAdapter,
    CoinGeckoAdapter,
    NewsAdapter,
    ResolutionQuery,
    SportsAdapter,
    WeatherAdapter,
    build_search_query,
    coin_id_for,
    compute_sentiment,
    condition_for,
    create_default_registry,
    detect_sport,
    extract_keywords,
    extract_location,
    extract_price_target,
    extract_symbol,
    extract_target_date,
    extract_trading_pair,
)
from agents.adapters.coingecko import parse_history, parse_simple_price
from agents.adapters.confidence import COINGECKO_RUBRIC, ConfidenceRubric, clamp_confidence
from agents.adapters.sports import parse_espn_scoreboard, parse_sportsdb_events
from agents.adapters.weather import parse_geocode
from agents.context import AgentContext
from core.config import RuntimeConfig
from core.schemas import Article, Category, DataSourceInvalidResponseException

from fixtures import FROZEN_NOW, RoutedSession, make_http, make_market, make_response

FROZEN_MS = int(FROZEN_NOW.timestamp() * 1000)


def make_ctx(routes):
    session = RoutedSession(routes)
    return AgentContext.create_minimal(http=make_http(session)), session


def query_for(question, category, description=""):
    return ResolutionQuery.for_market(
        make_market(question=question, category=category, description=description)
    )


# =============================================================================
# Shared helpers
# =============================================================================

class TestQuestionHelpers:
    """Pure question parsing shared by adapters."""

    def test_extract_keywords(self):
        keywords = extract_keywords("Will BTC be above $100,000 by the end of 2025?")
        assert keywords == ["btc", "100", "000", "end", "2025"]

    def test_target_date_relative(self):
        assert extract_target_date("What was it yesterday?", FROZEN_NOW) == datetime(2025, 12, 31, tzinfo=timezone.utc)
        assert extract_target_date("last week", FROZEN_NOW) == datetime(2025, 12, 25, tzinfo=timezone.utc)
        assert extract_target_date("last month", FROZEN_NOW) == datetime(2025, 12, 1, tzinfo=timezone.utc)

    def test_target_date_explicit_day_first(self):
        assert extract_target_date("on 5/12/2025", FROZEN_NOW) == datetime(2025, 12, 5, tzinfo=timezone.utc)

    def test_target_date_invalid(self):
        assert extract_target_date("on 31/02/2025", FROZEN_NOW) is None
        assert extract_target_date("no date here", FROZEN_NOW) is None

    def test_price_target(self):
        assert extract_price_target("Will BTC be above $100,000 on 31/12/2025?") == 100_000
        assert extract_price_target("Will Bitcoin reach $50k?") == 50_000
        assert extract_price_target("ETH over 4,500 USD by March?") == 4_500
        assert extract_price_target("Will SOL hit 250k?") == 250_000
        assert extract_price_target("Will DOGE reach $0.5?") == 0.5

    def test_price_target_k_must_follow_amount(self):
        assert extract_price_target("Will the stock market keep above $400?") == 400
        assert extract_price_target("Will BTC go up this week?") is None


class TestConfidenceRubric:
    """Unified scoring rubric."""

    def test_clamped(self):
        assert clamp_confidence(12_000) == 10_000
        assert clamp_confidence(-5) == 0

    def test_penalties_strictly_exceeded(self):
        rubric = ConfidenceRubric(base=9000, age_penalties=((300, 500), (900, 1000)))
        assert rubric.score(age_seconds=300) == 9000
        assert rubric.score(age_seconds=301) == 8500
        assert rubric.score(age_seconds=901) == 7500

    def test_bonuses(self):
        assert COINGECKO_RUBRIC.score(present={"volume", "market_cap"}) == 9500
        assert COINGECKO_RUBRIC.score(present={"unknown"}) == 9000


# =============================================================================
# CoinGecko
# =============================================================================

class TestCoinGecko:
    """CoinGecko price adapter."""

    def test_symbol_mapping(self):
        assert extract_symbol("Will BTC exceed $100k?") == "BTC"
        assert extract_symbol("Will Bitcoin hit a new high?") == "BTC"
        assert extract_symbol("Will the price go up?") is None
        assert coin_id_for("eth") == "ethereum"
        assert coin_id_for("PEPE") is None

    def test_current_price(self):
        ctx, session = make_ctx({"/simple/price": make_response({
            "bitcoin": {
                "usd": 101_250.5,
                "usd_24h_change": 1.2,
                "usd_24h_vol": 35_000_000_000,
                "usd_market_cap": 2_000_000_000_000,
            },
        })})
        adapter = CoinGeckoAdapter(ctx)

        source = adapter.fetch_data(query_for("Will BTC be above $100,000?", Category.CRYPTO))

        assert source.source == "CoinGecko"
        assert source.data.kind == "price"
        assert source.data.symbol == "BTC"
        assert source.numeric_value == 101_250.5
        assert source.confidence == 9500
        assert source.metadata["price_target"] == 100_000
        assert source.metadata["above_target"] is True
        assert session.calls[0]["params"]["ids"] == "bitcoin"

    def test_historical_price(self):
        ctx, session = make_ctx({"/coins/bitcoin/history": make_response({
            "market_data": {"current_price": {"usd": 91_000.0}},
        })})
        adapter = CoinGeckoAdapter(ctx)

        source = adapter.fetch_data(query_for("Was BTC above $90,000 on 15/12/2025?", Category.CRYPTO))

        assert source.numeric_value == 91_000.0
        assert session.calls[0]["params"]["date"] == "15-12-2025"
        # 17 days old: both age penalties apply
        assert source.confidence == 7500

    def test_unknown_symbol_searched(self):
        ctx, session = make_ctx({
            "/search": make_response({"coins": [{"id": "pepe", "symbol": "pepe"}]}),
            "/simple/price": make_response({"pepe": {"usd": 0.00002}}),
        })
        adapter = CoinGeckoAdapter(ctx)

        source = adapter.fetch_data(query_for("Will PEPE reach $1?", Category.CRYPTO))

        assert source.data.symbol == "PEPE"
        assert any("/search" in url for url in session.urls())

    def test_no_symbol_fallback(self):
        ctx, session = make_ctx({})
        adapter = CoinGeckoAdapter(ctx)

        source = adapter.fetch_data(query_for("Will the market go up?", Category.CRYPTO))

        assert source.is_fallback
        assert source.confidence == 3000
        assert session.calls == []

    def test_missing_price_rejected(self):
        ctx, _ = make_ctx({"/simple/price": make_response({"bitcoin": {}})})
        adapter = CoinGeckoAdapter(ctx)

        with pytest.raises(DataSourceInvalidResponseException):
            adapter.fetch_data(query_for("Will BTC be above $100,000?", Category.CRYPTO))

    def test_zero_price_rejected(self):
        with pytest.raises(DataSourceInvalidResponseException) as exc:
            parse_simple_price("BTC", "bitcoin", {"bitcoin": {"usd": 0}}, FROZEN_NOW)
        assert exc.value.details["coin_id"] == "bitcoin"

    def test_non_numeric_price_rejected(self):
        ctx, _ = make_ctx({"/simple/price": make_response({"bitcoin": {"usd": "n/a"}})})
        adapter = CoinGeckoAdapter(ctx)

        with pytest.raises(DataSourceInvalidResponseException):
            adapter.fetch_data(query_for("Will BTC be above $100,000?", Category.CRYPTO))

    def test_non_numeric_historical_price_rejected(self):
        body = {"market_data": {"current_price": {"usd": "unknown"}}}
        with pytest.raises(DataSourceInvalidResponseException):
            parse_history("BTC", body, FROZEN_NOW)

    def test_pro_key_header_and_quota(self):
        ctx, session = make_ctx({"/simple/price": make_response({"bitcoin": {"usd": 1.0}})})
        adapter = CoinGeckoAdapter(ctx, api_key="cg-key")

        adapter.fetch_data(query_for("Will BTC be above $1?", Category.CRYPTO))

        assert session.calls[0]["headers"]["x-cg-pro-api-key"] == "cg-key"
        assert "Authorization" not in session.calls[0]["headers"]
        assert adapter.fetcher.rate_limit.requests_per_minute == 500

    def test_is_available(self):
        ctx, _ = make_ctx({"/ping": make_response({"gecko_says": "(V3) To the Moon!"})})
        assert CoinGeckoAdapter(ctx).is_available()

        ctx, _ = make_ctx({})
        assert not CoinGeckoAdapter(ctx).is_available()


# =============================================================================
# Binance
# =============================================================================

class TestBinance:
    """Binance price adapter."""

    def test_trading_pair_word_boundaries(self):
        assert extract_trading_pair("Will ETH be above $4,000?") == "ETHUSDT"
        assert extract_trading_pair("Will bitcoin hit $150k?") == "BTCUSDT"
        assert extract_trading_pair("Will it rain, whether or not the forecast holds?") is None
        assert extract_trading_pair("Will PEPEUSDT list?") == "PEPEUSDT"

    def test_current_price(self):
        ctx, session = make_ctx({"/ticker/24hr": make_response({
            "symbol": "ETHUSDT",
            "lastPrice": "4012.50",
            "priceChangePercent": "2.1",
            "quoteVolume": "1500000000",
            "closeTime": FROZEN_MS,
        })})
        adapter = BinanceAdapter(ctx)

        source = adapter.fetch_data(query_for("Will ETH be above $4,000?", Category.CRYPTO))

        assert source.source == "Binance"
        assert source.numeric_value == 4012.5
        # 9500 base + 500 volume bonus, clamped
        assert source.confidence == 10_000
        assert session.calls[0]["params"] == {"symbol": "ETHUSDT"}

    def test_historical_kline(self):
        day_start_ms = 1_767_139_200_000  # 2025-12-31T00:00Z
        ctx, session = make_ctx({"/klines": make_response([
            [day_start_ms, "94000", "96000", "93000", "95000.5", "1200", FROZEN_MS - 1, "114000000"],
        ])})
        adapter = BinanceAdapter(ctx)

        source = adapter.fetch_data(query_for("Did BTC close above $90,000 yesterday?", Category.CRYPTO))

        assert source.numeric_value == 95_000.5
        params = session.calls[0]["params"]
        assert params["startTime"] == day_start_ms
        assert params["interval"] == "1d"

    def test_empty_klines_rejected(self):
        ctx, _ = make_ctx({"/klines": make_response([])})
        adapter = BinanceAdapter(ctx)

        with pytest.raises(DataSourceInvalidResponseException):
            adapter.fetch_data(query_for("Did BTC close above $90,000 yesterday?", Category.CRYPTO))

    def test_malformed_ticker_rejected(self):
        ctx, _ = make_ctx({"/ticker/24hr": make_response({"symbol": "BTCUSDT"})})
        adapter = BinanceAdapter(ctx)

        with pytest.raises(DataSourceInvalidResponseException):
            adapter.fetch_data(query_for("Will BTC be above $1?", Category.CRYPTO))


# =============================================================================
# Sports
# =============================================================================

ESPN_BODY = {
    "events": [
        {
            "date": "2025-12-30T03:00Z",
            "league": {"name": "NBA"},
            "status": {"type": {"description": "Final"}},
            "competitions": [{
                "competitors": [
                    {"homeAway": "home", "score": "110", "team": {"displayName": "Los Angeles Lakers"}},
                    {"homeAway": "away", "score": "102", "team": {"displayName": "Boston Celtics"}},
                ],
            }],
        },
    ],
}


class TestSports:
    """Sports results adapter."""

    def test_detect_sport(self):
        assert detect_sport("will the lakers win") == ("basketball", "basketball/nba")
        assert detect_sport("premier league title") == ("soccer", "soccer/eng.1")
        assert detect_sport("who wins the spelling bee") == ("general", "football/nfl")

    def test_espn_results(self):
        ctx, _ = make_ctx({"basketball/nba/scoreboard": make_response(ESPN_BODY)})
        adapter = SportsAdapter(ctx)

        source = adapter.fetch_data(query_for(
            "Did the Los Angeles Lakers beat the Boston Celtics?", Category.SPORTS,
        ))

        assert source.data.provider == "ESPN"
        assert source.data.sport == "basketball"
        assert source.data.results[0].home_score == 110
        assert source.data.analysis["summary"] == (
            "Found relevant match: Los Angeles Lakers 110 - 102 Boston Celtics (Final)"
        )
        assert source.confidence == 8500

    def test_missing_score_is_none(self):
        body = {"events": [{
            "competitions": [{"competitors": [
                {"homeAway": "home", "score": "", "team": {"displayName": "Lakers"}},
                {"homeAway": "away", "team": {"displayName": "Celtics"}},
            ]}],
        }]}
        ctx, _ = make_ctx({"basketball/nba/scoreboard": make_response(body)})

        source = SportsAdapter(ctx).fetch_data(query_for("Will the Lakers win?", Category.SPORTS))

        game = source.data.results[0]
        assert game.home_score is None
        assert game.away_score is None
        assert "Lakers - - - Celtics" in source.data.analysis["summary"]

    def test_sportsdb_used_when_espn_fails(self):
        ctx, session = make_ctx({"eventsseason.php": make_response({"events": [{
            "strHomeTeam": "Arsenal",
            "strAwayTeam": "Chelsea",
            "intHomeScore": "2",
            "intAwayScore": "1",
            "dateEvent": "2025-12-28",
        }]})})

        source = SportsAdapter(ctx).fetch_data(query_for("Will Arsenal beat Chelsea?", Category.SPORTS))

        assert source.data.provider == "TheSportsDB"
        assert source.data.results[0].home_score == 2
        sportsdb_call = [c for c in session.calls if "eventsseason.php" in c["url"]][0]
        assert sportsdb_call["params"] == {"id": "4328", "s": 2026}

    def test_null_events_is_empty(self):
        assert parse_espn_scoreboard({"events": None}, "basketball/nba") == []
        assert parse_sportsdb_events({"events": None}, "soccer") == []

    def test_malformed_espn_event_uses_sportsdb(self):
        ctx, _ = make_ctx({
            "basketball/nba/scoreboard": make_response({"events": ["not-an-event"]}),
            "eventsseason.php": make_response({"events": [{
                "strHomeTeam": "Los Angeles Lakers",
                "strAwayTeam": "Boston Celtics",
                "intHomeScore": "99",
                "intAwayScore": "98",
            }]}),
        })

        source = SportsAdapter(ctx).fetch_data(query_for("Will the Lakers win?", Category.SPORTS))

        assert source.data.provider == "TheSportsDB"
        assert source.data.results[0].home_score == 99

    def test_non_string_team_rejected(self):
        body = {"events": [{"strHomeTeam": {"name": "Arsenal"}, "strAwayTeam": "Chelsea"}]}
        with pytest.raises(DataSourceInvalidResponseException):
            parse_sportsdb_events(body, "soccer")

    def test_all_providers_fail(self):
        ctx, _ = make_ctx({})

        source = SportsAdapter(ctx).fetch_data(query_for("Will the Lakers win?", Category.SPORTS))

        assert source.is_fallback
        assert source.confidence == 3000
        assert source.metadata["sport"] == "basketball"


# =============================================================================
# Weather
# =============================================================================

FORECAST_BODY = {
    "current": {
        "temperature_2m": 18.5,
        "relative_humidity_2m": 70,
        "weather_code": 61,
        "wind_speed_10m": 12.0,
    },
    "daily": {
        "time": ["2026-01-01", "2026-01-02", "2026-01-03"],
        "temperature_2m_max": [25.0, 31.0, 28.0],
        "temperature_2m_min": [14.0, 17.0, 16.0],
        "weather_code": [0, 2, 61],
        "precipitation_probability_max": [10, 60, 80],
    },
}


class TestWeather:
    """Open-Meteo weather adapter."""

    def test_extract_location(self):
        assert extract_location("Will the temperature in London exceed 30 degrees?") == "London"
        assert extract_location("Rainfall totals for Tokyo") == "Tokyo"
        assert extract_location("Will it snow?") is None

    def test_condition_codes(self):
        assert condition_for(0) == "Clear sky"
        assert condition_for("61") == "Slight rain"
        assert condition_for(None) == "Unknown"
        assert condition_for(42) == "Unknown"

    def test_forecast(self):
        ctx, session = make_ctx({
            "geocoding-api": make_response({"results": [{"latitude": 51.5, "longitude": -0.12}]}),
            "/v1/forecast": make_response(FORECAST_BODY),
        })

        source = WeatherAdapter(ctx).fetch_data(query_for(
            "Will the temperature in London exceed 30 degrees?", Category.WEATHER,
        ))

        weather = source.data
        assert weather.location == "London"
        assert weather.coordinates.lat == 51.5
        assert weather.conditions == "Slight rain"
        assert len(weather.forecast) == 3
        assert weather.analysis["target_temperature"] == 30
        assert weather.analysis["target_likely"] is True
        assert source.confidence == 8500
        forecast_call = [c for c in session.calls if "/v1/forecast" in c["url"]][0]
        assert forecast_call["params"]["latitude"] == 51.5

    def test_no_location_fallback(self):
        ctx, session = make_ctx({})

        source = WeatherAdapter(ctx).fetch_data(query_for("Will it snow?", Category.WEATHER))

        assert source.is_fallback
        assert session.calls == []

    def test_geocode_miss_fallback(self):
        ctx, _ = make_ctx({"geocoding-api": make_response({"results": []})})

        source = WeatherAdapter(ctx).fetch_data(query_for(
            "Will the temperature in Atlantis exceed 30 degrees?", Category.WEATHER,
        ))

        assert source.is_fallback
        assert source.metadata["location"] == "Atlantis"

    def test_provider_error_fallback(self):
        ctx, _ = make_ctx({"geocoding-api": make_response(status_code=400)})

        source = WeatherAdapter(ctx).fetch_data(query_for(
            "Will the temperature in London exceed 30 degrees?", Category.WEATHER,
        ))

        assert source.is_fallback
        assert source.metadata["error_code"] == "DATA_SOURCE_INVALID_RESPONSE"

    def test_malformed_forecast_fallback(self):
        ctx, _ = make_ctx({
            "geocoding-api": make_response({"results": [{"latitude": 51.5, "longitude": -0.12}]}),
            "/v1/forecast": make_response({"current": {"temperature_2m": "warm"}}),
        })

        source = WeatherAdapter(ctx).fetch_data(query_for(
            "Will the temperature in London exceed 30 degrees?", Category.WEATHER,
        ))

        assert source.is_fallback
        assert source.metadata["error_code"] == "DATA_SOURCE_INVALID_RESPONSE"

    def test_malformed_coordinates_rejected(self):
        with pytest.raises(DataSourceInvalidResponseException):
            parse_geocode({"results": [{"latitude": "north", "longitude": -0.12}]})


# =============================================================================
# News
# =============================================================================

DDG_BODY = {
    "Heading": "Climate bill",
    "Abstract": "The Senate passed the climate bill on Tuesday after a long debate.",
    "AbstractURL": "https://example.org/climate-bill",
    "RelatedTopics": [
        {"Text": "Climate bill - passed with 51 votes", "FirstURL": "https://example.org/votes"},
        {"Name": "grouped topic without text"},
    ],
}


class TestNews:
    """News and web search adapter."""

    def test_build_search_query(self):
        assert build_search_query("Will the Senate pass the bill?") == "the Senate pass the bill"
        assert build_search_query("x" * 150) == "x" * 100

    def test_sentiment(self):
        articles = [
            Article(title="Bill approved", description="a success"),
            Article(title="Vote delays", description="problems ahead"),
            Article(title="Weather today"),
            Article(title="Launch confirmed"),
        ]
        sentiment = compute_sentiment(articles)
        assert (sentiment.positive, sentiment.negative, sentiment.neutral) == (50, 25, 25)

    def test_duckduckgo_only_without_keys(self):
        ctx, session = make_ctx({"api.duckduckgo.com": make_response(DDG_BODY)})

        source = NewsAdapter(ctx).fetch_data(query_for(
            "Will the Senate pass the climate bill?", Category.POLITICS,
        ))

        assert [c["url"] for c in session.calls] == ["https://api.duckduckgo.com/"]
        assert len(source.data.articles) == 2
        assert source.data.articles[0].source == "Web Search"
        assert source.confidence == 7500
        assert any("The Senate passed the climate bill" in fact for fact in source.data.key_facts)

    def test_gnews_queried_with_key(self):
        ctx, session = make_ctx({
            "gnews.io": make_response({"articles": [{
                "title": "Senate passes climate bill",
                "description": "Lawmakers approved the measure.",
                "source": {"name": "Reuters"},
                "url": "https://reuters.example/1",
                "publishedAt": "2025-12-30T10:00:00Z",
            }]}),
            "api.duckduckgo.com": make_response({}),
        })

        source = NewsAdapter(ctx, gnews_key="gn").fetch_data(query_for(
            "Will the Senate pass the climate bill?", Category.POLITICS,
        ))

        gnews_call = [c for c in session.calls if "gnews.io" in c["url"]][0]
        assert gnews_call["params"]["apikey"] == "gn"
        assert source.data.articles[0].source == "Reuters"
        assert source.metadata["sources"] == ["Reuters"]

    def test_provider_failure_recorded(self):
        ctx, _ = make_ctx({"api.duckduckgo.com": make_response(DDG_BODY)})

        source = NewsAdapter(ctx, gnews_key="gn").fetch_data(query_for(
            "Will the Senate pass the climate bill?", Category.POLITICS,
        ))

        assert not source.is_fallback
        assert source.metadata["failed_providers"] == ["GNews"]

    def test_no_provider_answered(self):
        ctx, _ = make_ctx({})

        source = NewsAdapter(ctx).fetch_data(query_for("Will the Senate pass the bill?", Category.POLITICS))

        assert source.is_fallback
        assert source.confidence == 4000
        assert source.metadata["failed_providers"] == ["DuckDuckGo"]


# =============================================================================
# Registry
# =============================================================================

class TestRegistry:
    """Default adapter registry."""

    def test_crypto_priority_order(self):
        registry = create_default_registry()
        names = [e.name for e in registry.entries_for(Category.CRYPTO)]
        assert names == ["CoinGecko", "Binance"]

    def test_open_categories_use_news(self):
        registry = create_default_registry()
        for category in (Category.POLITICS, Category.FINANCE, Category.OTHER):
            assert [e.name for e in registry.entries_for(category)] == ["News & Web Search"]

    def test_list_adapters_includes_provider(self):
        listing = create_default_registry().list_adapters(Category.WEATHER)
        assert listing == [{
            "name": "Weather Data",
            "categories": ["Weather"],
            "priority": 1,
            "provider": "Open-Meteo",
        }]

    def test_keys_from_config(self):
        ctx = AgentContext.create_minimal()
        ctx.config = RuntimeConfig.from_dict({
            "llm": {"provider": "mock"},
            "providers": {"coingecko": "cg", "brave": "br"},
        })
        registry = create_default_registry()

        coingecko = registry.create("CoinGecko", ctx)
        news = registry.create("News & Web Search", ctx)

        assert coingecko.api_key == "cg"
        assert news.brave_key == "br"
        assert news.gnews_key is None

    def test_unknown_adapter(self):
        with pytest.raises(ValueError):
            create_default_registry().create("Nope", AgentContext.create_minimal())
