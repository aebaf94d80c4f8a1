"""Candidate sources: RSS feeds, search-prompt models and WordPress."""

import asyncio
import json
import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import feedparser
import httpx
import pendulum
from openai import AsyncOpenAI

from ..config import SourceConfig
from ..db.base import JobStore
from ..models import ContentItem, JobParameters
from ..normalization import strip_markup
from .models import CandidateItem

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_PROMPT = """Search for the latest news and developments related to the following topics in the mortgage and housing industry.

Please return information in the following format for each article:
{
  "articles": [
    {
      "title": "Article title",
      "url": "https://article-url.com",
      "source": "Source name",
      "summary": "A brief summary of the article",
      "relevance_score": 0.95
    }
  ]
}"""

SYSTEM_PROMPT = "You are a research assistant that helps find relevant news articles."

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")


class CandidateSource(ABC):
    """Something that can offer new items for ingestion."""

    name: str = "source"

    @abstractmethod
    async def fetch_candidates(self, parameters: JobParameters) -> List[CandidateItem]:
        """Return candidates; raising fails the whole import."""


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = pendulum.parse(str(value), strict=False)
    except ValueError:
        return None
    return parsed if isinstance(parsed, datetime) else None


def _matches_keywords(candidate: CandidateItem, keywords: List[str]) -> bool:
    if not keywords:
        return True
    haystack = f"{candidate.headline} {candidate.summary or ''}".lower()
    return any(keyword.lower() in haystack for keyword in keywords)


class FeedSource(CandidateSource):
    """Fetch and parse RSS/Atom feeds concurrently."""

    name = "feeds"

    def __init__(
        self,
        sources: List[SourceConfig],
        timeout: float = 30.0,
        max_concurrent: int = 5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.sources = sources
        self.timeout = timeout
        self.max_concurrent = max_concurrent
        self.transport = transport

    async def fetch_feed(self, source: SourceConfig) -> List[CandidateItem]:
        """Fetch one feed. Raises on HTTP or parse failure."""
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.get(source.url)
            response.raise_for_status()

        feed = feedparser.parse(response.text)
        if feed.bozo and not feed.entries:
            raise ValueError(f"Invalid feed: {feed.bozo_exception}")

        items = []
        for entry in feed.entries:
            parsed = entry.get("published_parsed") or entry.get("updated_parsed")
            published = pendulum.datetime(*parsed[:6]) if parsed else None
            items.append(
                CandidateItem(
                    headline=strip_markup(entry.get("title", "")),
                    url=entry.get("link", ""),
                    summary=entry.get("summary") or entry.get("description"),
                    source=source.name,
                    score=source.weight,
                    timestamp=published,
                    external_id=entry.get("id"),
                )
            )
        return items

    async def fetch_candidates(self, parameters: JobParameters) -> List[CandidateItem]:
        enabled = [s for s in self.sources if s.enabled and s.kind == "rss"]
        if not enabled:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def fetch_with_semaphore(source: SourceConfig) -> Tuple[SourceConfig, Any]:
            async with semaphore:
                try:
                    return source, await self.fetch_feed(source)
                except (httpx.HTTPError, ValueError) as e:
                    return source, e

        results = await asyncio.gather(*(fetch_with_semaphore(s) for s in enabled))

        candidates: List[CandidateItem] = []
        failed = 0
        for source, outcome in results:
            if isinstance(outcome, Exception):
                failed += 1
                logger.warning("Feed %s failed: %s", source.name, outcome)
                continue
            candidates.extend(c for c in outcome if _matches_keywords(c, parameters.keywords))

        if failed == len(enabled):
            raise RuntimeError(f"All {failed} feeds failed")
        logger.info("Fetched %d candidates from %d feeds", len(candidates), len(enabled) - failed)
        return candidates


def parse_search_response(text: str) -> List[Dict[str, Any]]:
    """Pull the article list out of a model reply.

    Accepts a fenced ```json block, a bare object with an ``articles`` or
    ``results`` key, or a bare array. Raises ValueError when nothing parses.
    """
    fenced = _FENCED_JSON.search(text)
    body = fenced.group(1) if fenced else text.strip()

    for pattern in (None, _JSON_OBJECT, _JSON_ARRAY):
        candidate = body
        if pattern is not None:
            match = pattern.search(body)
            if not match:
                continue
            candidate = match.group(0)
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, list):
            return [a for a in data if isinstance(a, dict)]
        if isinstance(data, dict):
            articles = data.get("articles", data.get("results", []))
            return [a for a in articles if isinstance(a, dict)]

    raise ValueError("Failed to parse articles from search response")


class SearchPromptSource(CandidateSource):
    """Ask an OpenAI-compatible search model (Perplexity by default) for news."""

    name = "search"

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = "https://api.perplexity.ai",
        model: str = "sonar",
        timeout: float = 60.0,
        prompts: Optional[JobStore] = None,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self.model = model
        self.prompts = prompts
        self.client = client or AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    async def build_prompt(self, parameters: JobParameters) -> Tuple[str, str]:
        """Return (prompt text, model) for a run."""
        prompt_text = DEFAULT_SEARCH_PROMPT
        model = self.model

        if parameters.prompt_id:
            if self.prompts is None:
                raise ValueError("Prompt lookups are not configured")
            prompt = await self.prompts.get_prompt(parameters.prompt_id)
            if prompt is None or not prompt.is_active:
                raise LookupError(f"No active prompt with id {parameters.prompt_id}")
            prompt_text = prompt.prompt_text or DEFAULT_SEARCH_PROMPT
            model = prompt.model or model

        if parameters.model_override:
            model = parameters.model_override

        keywords = parameters.keywords
        if keywords:
            if "[QUERY]" in prompt_text:
                prompt_text = prompt_text.replace("[QUERY]", ", ".join(keywords))
            elif len(keywords) == 1:
                prompt_text += f"\n\nKEYWORDS: {keywords[0]}"
            else:
                listed = "\n".join(f"{i}. {k}" for i, k in enumerate(keywords, 1))
                prompt_text += f"\n\nKEYWORDS: {listed}"

        return prompt_text, model

    async def fetch_candidates(self, parameters: JobParameters) -> List[CandidateItem]:
        prompt_text, model = await self.build_prompt(parameters)
        logger.info("Searching for news with model %s", model)

        response = await self.client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt_text},
            ],
        )
        articles = parse_search_response(response.choices[0].message.content or "")

        candidates = []
        for article in articles:
            candidates.append(
                CandidateItem(
                    headline=str(article.get("title") or article.get("headline") or ""),
                    url=str(article.get("url") or ""),
                    summary=article.get("summary"),
                    source=article.get("source"),
                    # Missing scores count as fully relevant.
                    score=article.get("relevance_score") or 1.0,
                    timestamp=_parse_datetime(article.get("date") or article.get("published")),
                )
            )
        logger.info("Search returned %d articles", len(candidates))
        return candidates


class WordPressClient(CandidateSource):
    """Read posts from the WordPress REST API (``/wp-json/wp/v2/posts``)."""

    name = "wordpress"

    def __init__(
        self,
        base_url: str,
        auth: Optional[Tuple[str, str]] = None,
        timeout: float = 30.0,
        per_page: int = 20,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_url = base_url.rstrip("/") + "/wp-json/wp/v2/posts"
        self.auth = auth
        self.timeout = timeout
        self.per_page = per_page
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            auth=self.auth,
            follow_redirects=True,
            transport=self.transport,
        )

    @staticmethod
    def _rendered(post: Dict[str, Any], field: str) -> str:
        value = post.get(field) or {}
        if isinstance(value, dict):
            return value.get("rendered") or ""
        return str(value)

    def _to_candidate(self, post: Dict[str, Any]) -> CandidateItem:
        return CandidateItem(
            headline=strip_markup(self._rendered(post, "title")),
            url=post.get("link") or "",
            summary=strip_markup(self._rendered(post, "excerpt")) or None,
            content=self._rendered(post, "content") or None,
            source=self.name,
            timestamp=_parse_datetime(post.get("date_gmt") or post.get("date")),
            external_id=str(post["id"]) if post.get("id") is not None else None,
        )

    async def list_posts(self, search: Optional[str] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"per_page": min(limit or self.per_page, 100)}
        if search:
            params["search"] = search
        async with self._client() as client:
            response = await client.get(self.api_url, params=params)
            response.raise_for_status()
            return response.json()

    async def get_post(self, post_id: str) -> Optional[Dict[str, Any]]:
        async with self._client() as client:
            response = await client.get(f"{self.api_url}/{post_id}")
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json()

    async def fetch_candidates(self, parameters: JobParameters) -> List[CandidateItem]:
        search = " ".join(parameters.keywords) or None
        posts = await self.list_posts(search=search, limit=parameters.limit)
        return [self._to_candidate(post) for post in posts]

    async def fetch_post_content(self, item: ContentItem) -> Optional[str]:
        """Current rendered content of the post matching ``item``, or None.

        Matches on the stored post id, falling back to a headline search
        compared by link or title.
        """
        if item.external_id:
            post = await self.get_post(item.external_id)
            return self._rendered(post, "content") if post else None

        if not item.headline:
            return None
        for post in await self.list_posts(search=item.headline, limit=5):
            title = strip_markup(self._rendered(post, "title"))
            if (item.url and post.get("link") == item.url) or title.lower() == item.headline.lower():
                return self._rendered(post, "content")
        return None
