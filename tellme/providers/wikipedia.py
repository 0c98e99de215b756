"""Wikipedia (MediaWiki Action API) client."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)

WIKIPEDIA_API_URL = "https://en.wikipedia.org/w/api.php"
WIKIPEDIA_USER_AGENT = "tellme/0.2.0 (https://github.com/xeij/tellme)"


class WikipediaError(Exception):
    """Base exception for Wikipedia API errors."""


class WikipediaRateLimitError(WikipediaError):
    """Rate limit exceeded after all retries."""


@dataclass(frozen=True)
class ArticleExtract:
    """Plain-text intro of one article."""

    title: str
    text: str
    url: str


def article_url(title: str, api_url: str = WIKIPEDIA_API_URL) -> str:
    """Human-facing page URL for an article title on the same wiki."""
    base = api_url.split("/w/api.php")[0]
    return f"{base}/wiki/{quote(title.replace(' ', '_'))}"


class WikipediaClient:
    """Client for article search and intro extracts."""

    def __init__(
        self,
        api_url: str = WIKIPEDIA_API_URL,
        user_agent: str = WIKIPEDIA_USER_AGENT,
        *,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._api_url = api_url
        self._client = httpx.Client(
            headers={"User-Agent": user_agent},
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "WikipediaClient":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _get_with_retry(
        self,
        params: dict[str, Any],
        *,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
    ) -> Any:
        """GET the API with exponential backoff on 429 and return decoded JSON.

        Raises:
            WikipediaRateLimitError: If rate limited after all retries
            WikipediaError: On any other HTTP or decoding failure
        """
        delay = base_delay

        for attempt in range(max_retries + 1):
            try:
                resp = self._client.get(self._api_url, params=params)
            except httpx.HTTPError as e:
                raise WikipediaError(f"Request failed: {e}") from e

            if resp.status_code == 429:
                if attempt == max_retries:
                    raise WikipediaRateLimitError(
                        f"Rate limit exceeded after {max_retries} retries"
                    )

                retry_after = resp.headers.get("Retry-After")
                try:
                    wait_time = float(retry_after) if retry_after else delay
                except ValueError:
                    wait_time = delay

                wait_time = min(wait_time, max_delay)
                logger.warning(
                    f"Rate limited (429). Waiting {wait_time:.1f}s "
                    f"(attempt {attempt + 1}/{max_retries + 1})"
                )
                time.sleep(wait_time)
                delay = min(delay * 2, max_delay)
                continue

            if resp.status_code >= 400:
                raise WikipediaError(f"HTTP {resp.status_code} from Wikipedia API")

            try:
                return resp.json()
            except ValueError as e:
                raise WikipediaError("Invalid JSON from Wikipedia API") from e

        raise WikipediaRateLimitError("Rate limit handling failed")

    def search_articles(self, query: str, limit: int = 50) -> list[str]:
        """Article titles matching ``query`` (opensearch, main namespace)."""
        logger.info(f"Searching for: {query} (limit: {limit})")
        data = self._get_with_retry(
            {
                "action": "opensearch",
                "search": query,
                "limit": limit,
                "namespace": 0,
                "format": "json",
            }
        )
        # Response shape: [query, [titles], [descriptions], [urls]]
        if not isinstance(data, list) or len(data) < 2 or not isinstance(data[1], list):
            return []
        return [t for t in data[1] if isinstance(t, str)]

    def get_article_extract(self, title: str) -> ArticleExtract | None:
        """Plain-text intro of an article, or None if the page has no extract."""
        logger.debug(f"Fetching article: {title}")
        data = self._get_with_retry(
            {
                "action": "query",
                "format": "json",
                "titles": title,
                "prop": "extracts",
                "exintro": "",
                "explaintext": "",
                "exsectionformat": "plain",
            }
        )
        pages = (data.get("query") or {}).get("pages") if isinstance(data, dict) else None
        if not pages:
            return None
        page = next(iter(pages.values()))
        extract = page.get("extract")
        if not extract:
            return None
        return ArticleExtract(
            title=page.get("title", title),
            text=extract,
            url=article_url(page.get("title", title), self._api_url),
        )
