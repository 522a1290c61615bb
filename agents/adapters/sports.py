"""
Sports Adapter

Recent game results from the ESPN public scoreboard, with TheSportsDB
season listings as a second provider.

The sport is detected from keywords in the question and description;
the analysis looks for a game involving a team named in the question.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from core.schemas import (
    Category,
    DataSourceException,
    DataSourceInvalidResponseException,
    GameResult,
    Payload,
    SourceData,
    SportsPayload,
)

from .base import BaseAdapter, ResolutionQuery
from .confidence import SPORTS_RUBRIC

logger = logging.getLogger(__name__)

ESPN_API = "https://site.api.espn.com/apis/site/v2/sports"
THESPORTSDB_API = "https://www.thesportsdb.com/api/v1/json/3"

MAX_EVENTS = 10
DEFAULT_SPORT = "general"
DEFAULT_ESPN_PATH = "football/nfl"

# Checked in order; the first sport with a matching keyword wins
SPORT_PATTERNS: list[tuple[str, str, tuple[str, ...]]] = [
    ("football", "football/nfl", (
        "nfl", "football", "touchdown", "quarterback", "super bowl",
        "chiefs", "eagles", "cowboys",
    )),
    ("soccer", "soccer/eng.1", (
        "soccer", "premier league", "uefa", "champions league", "world cup",
        "fifa", "manchester", "liverpool", "arsenal", "chelsea",
    )),
    ("basketball", "basketball/nba", (
        "nba", "basketball", "lakers", "celtics", "warriors", "lebron",
        "dunk", "three-pointer",
    )),
    ("baseball", "baseball/mlb", (
        "mlb", "baseball", "world series", "yankees", "dodgers", "home run",
    )),
    ("hockey", "hockey/nhl", ("nhl", "hockey", "stanley cup", "puck")),
    ("tennis", "tennis", (
        "tennis", "wimbledon", "us open", "french open", "australian open",
        "grand slam",
    )),
    ("mma", "mma", ("ufc", "mma", "knockout", "submission", "cage")),
    ("boxing", "boxing", ("boxing", "heavyweight", "title fight", "knockout", "bout")),
]

LEAGUE_IDS = {
    "soccer": "4328",      # English Premier League
    "football": "4391",    # NFL
    "basketball": "4387",  # NBA
    "baseball": "4424",    # MLB
    "hockey": "4380",      # NHL
}
DEFAULT_LEAGUE_ID = "4328"

FALLBACK_REASON = "Sports data APIs unavailable. Resolution requires manual verification."
FALLBACK_SUGGESTION = "Consider checking ESPN, official league websites, or sports news for results."


# =============================================================================
# Question mapping and parsing
# =============================================================================

def detect_sport(text: str) -> tuple[str, str]:
    """Return (sport, espn_path) for free text; defaults to ("general", NFL)."""
    lowered = text.lower()
    for sport, path, keywords in SPORT_PATTERNS:
        if any(keyword in lowered for keyword in keywords):
            return sport, path
    return DEFAULT_SPORT, DEFAULT_ESPN_PATH


def league_id_for(sport: str) -> str:
    return LEAGUE_IDS.get(sport, DEFAULT_LEAGUE_ID)


def _to_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _malformed(provider: str, e: Exception) -> DataSourceInvalidResponseException:
    return DataSourceInvalidResponseException(
        f"Malformed {provider} response: {e}",
        source=SportsAdapter._name,
        details={"provider": provider},
    )


def parse_espn_scoreboard(body: dict[str, Any], espn_path: str) -> list[GameResult]:
    results: list[GameResult] = []
    try:
        for event in ((body or {}).get("events") or [])[:MAX_EVENTS]:
            competitions = event.get("competitions") or []
            if not competitions:
                continue
            competitors = competitions[0].get("competitors") or []
            home = next((c for c in competitors if c.get("homeAway") == "home"), {})
            away = next((c for c in competitors if c.get("homeAway") == "away"), {})
            results.append(GameResult(
                home_team=(home.get("team") or {}).get("displayName") or "Unknown",
                away_team=(away.get("team") or {}).get("displayName") or "Unknown",
                home_score=_to_int(home.get("score")),
                away_score=_to_int(away.get("score")),
                status=((event.get("status") or {}).get("type") or {}).get("description") or "Unknown",
                league=(event.get("league") or {}).get("name") or espn_path,
                date=event.get("date") or "",
            ))
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise _malformed("ESPN", e) from e
    return results


def parse_sportsdb_events(body: dict[str, Any], sport: str) -> list[GameResult]:
    results: list[GameResult] = []
    try:
        for event in ((body or {}).get("events") or [])[:MAX_EVENTS]:
            results.append(GameResult(
                home_team=event.get("strHomeTeam") or "Unknown",
                away_team=event.get("strAwayTeam") or "Unknown",
                home_score=_to_int(event.get("intHomeScore")),
                away_score=_to_int(event.get("intAwayScore")),
                status=event.get("strStatus") or "Finished",
                league=event.get("strLeague") or sport,
                date=event.get("dateEvent") or "",
            ))
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise _malformed("TheSportsDB", e) from e
    return results


def find_relevant_game(results: list[GameResult], question: str) -> Optional[GameResult]:
    lowered = question.lower()
    for game in results:
        if game.home_team.lower() in lowered or game.away_team.lower() in lowered:
            return game
    return None


def _score(value: Optional[int]) -> str:
    return "-" if value is None else str(value)


def analyze_results(results: list[GameResult], question: str) -> dict[str, Any]:
    if not results:
        return {"summary": "No matching games found in recent data.", "relevant_game": None}

    game = find_relevant_game(results, question)
    if game is not None:
        summary = (
            f"Found relevant match: {game.home_team} {_score(game.home_score)} - "
            f"{_score(game.away_score)} {game.away_team} ({game.status})"
        )
        return {"summary": summary, "relevant_game": game.model_dump()}

    first = results[0]
    return {
        "summary": f"Found {len(results)} recent games. Most recent: {first.home_team} vs {first.away_team}",
        "relevant_game": None,
    }


# =============================================================================
# Adapter
# =============================================================================

class SportsAdapter(BaseAdapter):
    """
    Sports results adapter.

    ESPN is tried first; TheSportsDB is used when ESPN fails or has no
    events. A fallback payload is returned only when no provider answered.
    """

    _name = "Sports Data API"
    _version = "v1"

    categories = (Category.SPORTS,)
    priority = 1
    health_endpoint = f"{ESPN_API}/{DEFAULT_ESPN_PATH}/scoreboard"
    bearer_auth = False

    def _fetch(self, query: ResolutionQuery) -> SourceData:
        question = query.question.lower()
        text = f"{question} {query.market.description.lower()}"
        sport, espn_path = detect_sport(text)

        provider: Optional[str] = None
        results: list[GameResult] = []

        try:
            results = self.fetch_espn(espn_path)
            provider = "ESPN"
        except DataSourceException as e:
            logger.warning("%s: ESPN failed (%s), trying TheSportsDB", self.name, e.code)

        if not results:
            try:
                results = self.fetch_sportsdb(sport)
                provider = "TheSportsDB"
            except DataSourceException as e:
                logger.warning("%s: TheSportsDB failed (%s)", self.name, e.code)

        if provider is None:
            return self._fallback(
                query,
                FALLBACK_REASON,
                suggestion=FALLBACK_SUGGESTION,
                suggested_sources=["espn.com", "thesportsdb.com"],
                sport=sport,
            )

        payload = SportsPayload(
            sport=sport,
            provider=provider,
            results=results,
            analysis=analyze_results(results, question),
        )
        present = {"results"} if results else set()
        return self._source(
            query,
            payload,
            SPORTS_RUBRIC.score(present=present),
            sport=sport,
            matches_found=len(results),
        )

    def _validate_payload(self, payload: Payload) -> bool:
        return isinstance(payload, SportsPayload) and bool(payload.sport)

    def fetch_espn(self, espn_path: str) -> list[GameResult]:
        body = self.fetcher.request(
            f"{ESPN_API}/{espn_path}/scoreboard",
            headers={"Accept": "application/json", "User-Agent": "ai-oracle/1.0"},
            cache_key=f"espn_{espn_path}",
        )
        return parse_espn_scoreboard(body, espn_path)

    def fetch_sportsdb(self, sport: str) -> list[GameResult]:
        league_id = league_id_for(sport)
        season = self.ctx.now().year
        body = self.fetcher.request(
            f"{THESPORTSDB_API}/eventsseason.php",
            params={"id": league_id, "s": season},
            cache_key=f"sportsdb_{league_id}_{season}",
        )
        return parse_sportsdb_events(body, sport)
