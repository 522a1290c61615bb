"""
News & Web Search Adapter

Covers open-ended markets (politics, technology, entertainment,
finance, other) with articles from GNews and MediaStack and web
results from DuckDuckGo Instant Answer and Brave Search.

Keyed providers are skipped when no key is configured. DuckDuckGo
needs no key and is always queried.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Optional, TYPE_CHECKING

from core.schemas import (
    Article,
    Category,
    DataSourceException,
    NewsPayload,
    Payload,
    Sentiment,
    SourceData,
)

from .base import BaseAdapter, ResolutionQuery
from .confidence import NEWS_FALLBACK_CONFIDENCE, NEWS_RUBRIC

if TYPE_CHECKING:
    from agents.context import AgentContext

logger = logging.getLogger(__name__)

GNEWS_API = "https://gnews.io/api/v4/search"
MEDIASTACK_API = "http://api.mediastack.com/v1/news"
DUCKDUCKGO_API = "https://api.duckduckgo.com/"
BRAVE_API = "https://api.search.brave.com/res/v1/web/search"

MAX_ARTICLES = 10
MIN_RESULTS = 5
MAX_KEY_FACTS = 5
MAX_QUERY_LENGTH = 100
WEB_RESULT_RELEVANCE = 0.5

POSITIVE_WORDS = (
    "success", "win", "achieve", "approved", "passed",
    "confirmed", "yes", "will", "announces", "launches",
)
NEGATIVE_WORDS = (
    "fail", "lose", "reject", "denied", "cancelled",
    "no", "won't", "delays", "problems", "issues",
)
ENTITY_SKIP_WORDS = frozenset({
    "will", "when", "what", "where", "which", "with", "have", "that", "this",
    "from", "been", "they", "their", "there", "about", "would", "could", "should",
})

FALLBACK_REASON = "News APIs unavailable. Consider checking major news sources manually."
FALLBACK_SOURCES = ["news.google.com", "reuters.com", "apnews.com"]

_LEADING_QUESTION_WORD = re.compile(
    r"^(will|when|what|who|where|how|is|are|does|did|can|should|would)\s*",
    re.IGNORECASE,
)
_SENTENCE_SPLIT = re.compile(r"[.!?]")
_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


# =============================================================================
# Text helpers
# =============================================================================

def build_search_query(question: str) -> str:
    query = _LEADING_QUESTION_WORD.sub("", question)
    return query.replace("?", "").strip()[:MAX_QUERY_LENGTH]


def relevance(text: str, question: str) -> float:
    """Share of the question's words (longer than 3 chars) found in text."""
    lowered = text.lower()
    words = question.lower().split()
    matches = sum(1 for word in words if len(word) > 3 and word in lowered)
    return matches / max(len(words), 1)


def extract_entities(question: str) -> list[str]:
    seen: dict[str, None] = {}
    for raw in question.split():
        word = _NON_ALNUM.sub("", raw).lower()
        if len(word) > 3 and word not in ENTITY_SKIP_WORDS:
            seen.setdefault(word, None)
    return list(seen)


def compute_sentiment(articles: list[Article]) -> Sentiment:
    """Per-article word-list vote, reported as rounded percentages."""
    positive = negative = neutral = 0
    for article in articles:
        text = f"{article.title} {article.description}".lower()
        pos = sum(1 for word in POSITIVE_WORDS if word in text)
        neg = sum(1 for word in NEGATIVE_WORDS if word in text)
        if pos > neg:
            positive += 1
        elif neg > pos:
            negative += 1
        else:
            neutral += 1

    total = len(articles) or 1
    return Sentiment(
        positive=round(positive / total * 100),
        negative=round(negative / total * 100),
        neutral=round(neutral / total * 100),
    )


def extract_key_facts(articles: list[Article], question: str) -> list[str]:
    entities = extract_entities(question.lower())
    facts: list[str] = []
    for article in articles[:5]:
        text = f"{article.title} {article.description}"
        for sentence in _SENTENCE_SPLIT.split(text):
            sentence = sentence.strip()
            if len(sentence) <= 20:
                continue
            if any(entity in sentence.lower() for entity in entities):
                facts.append(sentence)
                if len(facts) >= MAX_KEY_FACTS:
                    return facts
    return facts


def summarize(articles: list[Article]) -> str:
    if not articles:
        return "No relevant news articles found. Unable to provide data-driven analysis."
    headlines = "\n".join(f'- "{a.title}" ({a.source})' for a in articles[:5])
    return (
        f"Found {len(articles)} relevant articles.\n\n"
        f"Top headlines:\n{headlines}\n\n"
        "Consider these sources when determining market outcome."
    )


# =============================================================================
# Provider parsing
# =============================================================================

def parse_gnews(body: dict[str, Any], question: str) -> list[Article]:
    articles = []
    for item in (body or {}).get("articles") or []:
        title = item.get("title") or ""
        description = item.get("description") or ""
        articles.append(Article(
            title=title,
            description=description,
            source=(item.get("source") or {}).get("name") or "GNews",
            url=item.get("url") or "",
            published_at=item.get("publishedAt") or "",
            relevance=relevance(f"{title} {description}", question),
        ))
    return articles


def parse_mediastack(body: dict[str, Any], question: str) -> list[Article]:
    articles = []
    for item in (body or {}).get("data") or []:
        title = item.get("title") or ""
        description = item.get("description") or ""
        articles.append(Article(
            title=title,
            description=description,
            source=item.get("source") or "MediaStack",
            url=item.get("url") or "",
            published_at=item.get("published_at") or "",
            relevance=relevance(f"{title} {description}", question),
        ))
    return articles


def parse_duckduckgo(body: dict[str, Any]) -> list[dict[str, str]]:
    results = []
    body = body or {}
    if body.get("Abstract"):
        results.append({
            "title": body.get("Heading") or "DuckDuckGo Summary",
            "snippet": body["Abstract"],
            "url": body.get("AbstractURL") or "",
        })
    for topic in (body.get("RelatedTopics") or [])[:5]:
        text = topic.get("Text") if isinstance(topic, dict) else None
        if not text:
            continue
        results.append({
            "title": text.split(" - ")[0],
            "snippet": text,
            "url": topic.get("FirstURL") or "",
        })
    return results


def parse_brave(body: dict[str, Any]) -> list[dict[str, str]]:
    return [
        {
            "title": item.get("title") or "",
            "snippet": item.get("description") or "",
            "url": item.get("url") or "",
        }
        for item in ((body or {}).get("web") or {}).get("results") or []
    ]


def web_results_to_articles(results: list[dict[str, str]], published_at: str) -> list[Article]:
    return [
        Article(
            title=r["title"],
            description=r["snippet"],
            source="Web Search",
            url=r["url"],
            published_at=published_at,
            relevance=WEB_RESULT_RELEVANCE,
        )
        for r in results
    ]


# =============================================================================
# Adapter
# =============================================================================

class NewsAdapter(BaseAdapter):
    """
    News and web search adapter.

    Usage:
        adapter = NewsAdapter(ctx, gnews_key="...", brave_key="...")
        source = adapter.fetch_data(ResolutionQuery.for_market(market))
    """

    _name = "News & Web Search"
    _version = "v1"

    categories = (
        Category.POLITICS,
        Category.TECHNOLOGY,
        Category.ENTERTAINMENT,
        Category.FINANCE,
        Category.OTHER,
    )
    priority = 2
    health_endpoint = f"{DUCKDUCKGO_API}?q=ping&format=json"
    bearer_auth = False

    def __init__(
        self,
        ctx: "AgentContext",
        *,
        gnews_key: Optional[str] = None,
        mediastack_key: Optional[str] = None,
        brave_key: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(ctx, **kwargs)
        self.gnews_key = gnews_key
        self.mediastack_key = mediastack_key
        self.brave_key = brave_key

    def _fetch(self, query: ResolutionQuery) -> SourceData:
        question = query.question
        search = build_search_query(question)
        answered = 0
        failures: list[str] = []

        news: list[Article] = []
        if self.gnews_key:
            answered += self._collect(news, failures, "GNews", lambda: self.search_gnews(search, question))
        if self.mediastack_key and len(news) < MIN_RESULTS:
            answered += self._collect(news, failures, "MediaStack", lambda: self.search_mediastack(search, question))
        news.sort(key=lambda a: a.relevance, reverse=True)

        web: list[dict[str, str]] = []
        answered += self._collect(web, failures, "DuckDuckGo", lambda: self.search_duckduckgo(search))
        if self.brave_key and len(web) < MIN_RESULTS:
            answered += self._collect(web, failures, "Brave", lambda: self.search_brave(search))

        if not answered:
            return self._fallback(
                query,
                FALLBACK_REASON,
                suggestion="Check major news sources manually.",
                suggested_sources=FALLBACK_SOURCES,
                confidence=NEWS_FALLBACK_CONFIDENCE,
                failed_providers=failures,
            )

        articles = news + web_results_to_articles(web, self.ctx.now().isoformat())
        payload = NewsPayload(
            articles=articles[:MAX_ARTICLES],
            analysis={"summary": summarize(articles)},
            sentiment=compute_sentiment(articles),
            key_facts=extract_key_facts(articles, question),
        )
        present = {"articles"} if articles else set()
        return self._source(
            query,
            payload,
            NEWS_RUBRIC.score(present=present),
            articles_found=len(articles),
            sources=sorted({a.source for a in articles}),
            failed_providers=failures,
        )

    def _collect(
        self,
        into: list[Any],
        failures: list[str],
        provider: str,
        call: Callable[[], list[Any]],
    ) -> int:
        """Run one provider call; a failure is logged and recorded, not raised."""
        try:
            into.extend(call())
        except DataSourceException as e:
            logger.warning("%s: %s failed (%s)", self.name, provider, e.code)
            failures.append(provider)
            return 0
        return 1

    def _validate_payload(self, payload: Payload) -> bool:
        return isinstance(payload, NewsPayload)

    def search_gnews(self, search: str, question: str) -> list[Article]:
        body = self.fetcher.request(
            GNEWS_API,
            params={"q": search, "lang": "en", "max": MAX_ARTICLES, "apikey": self.gnews_key},
            cache_key=f"gnews_{search}",
        )
        return parse_gnews(body, question)

    def search_mediastack(self, search: str, question: str) -> list[Article]:
        body = self.fetcher.request(
            MEDIASTACK_API,
            params={
                "access_key": self.mediastack_key,
                "keywords": search,
                "languages": "en",
                "limit": MAX_ARTICLES,
            },
            cache_key=f"mediastack_{search}",
        )
        return parse_mediastack(body, question)

    def search_duckduckgo(self, search: str) -> list[dict[str, str]]:
        body = self.fetcher.request(
            DUCKDUCKGO_API,
            params={"q": search, "format": "json", "no_html": 1},
            cache_key=f"ddg_{search}",
        )
        return parse_duckduckgo(body)

    def search_brave(self, search: str) -> list[dict[str, str]]:
        body = self.fetcher.request(
            BRAVE_API,
            params={"q": search, "count": MAX_ARTICLES},
            headers={"X-Subscription-Token": self.brave_key, "Accept": "application/json"},
            cache_key=f"brave_{search}",
        )
        return parse_brave(body)
