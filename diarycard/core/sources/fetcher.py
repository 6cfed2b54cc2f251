"""
Source Fetchers
===============

HTTP access to the Letterboxd diary page, RSS feed and poster previews.
The aiohttp session and the feed parser are injected so tests can run
without network access.
"""

from typing import Any, Callable, Dict, Optional, Tuple
from urllib.parse import quote

import aiohttp
import feedparser

from diarycard.config.logging import get_logger
from diarycard.config.settings import Settings, get_settings
from diarycard.core.exceptions import FetchError
from diarycard.models.schemas import FeedSource

logger = get_logger(__name__)

FeedParser = Callable[[bytes], Any]


class DiaryFetcher:
    """Fetch remote documents for one card render."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        feed_parser: Optional[FeedParser] = None,
        settings: Optional[Settings] = None,
    ):
        self.session = session
        self.feed_parser: FeedParser = feed_parser or feedparser.parse
        self.settings = settings or get_settings()
        self.base_url = self.settings.letterboxd_base_url
        self.logger: Any = logger.bind(component="fetcher")  # structlog.BoundLoggerBase

    def profile_url(self, user_id: str, source: FeedSource) -> str:
        """URL of the diary page or RSS feed of a member."""
        user = quote(user_id, safe="")
        if source == FeedSource.RSS:
            return f"{self.base_url}/{user}/rss/"
        return f"{self.base_url}/{user}/films/diary/"

    def poster_url(self, film_slug: str, cache_key: str) -> str:
        """URL of the small poster preview fragment of a film."""
        slug = quote(film_slug, safe="-")
        return f"{self.base_url}/ajax/poster/film/{slug}/std/35x52/?k={quote(cache_key, safe='')}"

    def _request_kwargs(self) -> Dict[str, Any]:
        headers = {"Cache-Control": "no-cache", "Pragma": "no-cache"}
        if self.settings.user_agent:
            headers["User-Agent"] = self.settings.user_agent

        kwargs: Dict[str, Any] = {"headers": headers}
        if self.settings.fetch_timeout:
            kwargs["timeout"] = aiohttp.ClientTimeout(total=self.settings.fetch_timeout)
        return kwargs

    async def fetch_text(self, url: str) -> str:
        """
        Fetch a document as text.

        Raises:
            FetchError: On a non-success status or a transport failure
        """
        try:
            async with self.session.get(url, **self._request_kwargs()) as response:
                if not 200 <= response.status < 300:
                    raise FetchError(f"Failed to fetch HTML data: {response.reason}")
                text = await response.text()
        except aiohttp.ClientError as e:
            raise FetchError(f"Failed to fetch HTML data: {e}") from e

        self.logger.debug("Fetched document", url=url, length=len(text))
        return text

    async def fetch_bytes(self, url: str) -> Tuple[bytes, str]:
        """
        Fetch a binary resource.

        Returns:
            Tuple of body bytes and the response content type (without parameters)

        Raises:
            FetchError: On a non-success status or a transport failure
        """
        try:
            async with self.session.get(url, **self._request_kwargs()) as response:
                if not 200 <= response.status < 300:
                    raise FetchError(f"Failed to fetch {url}: {response.reason}")
                body = await response.read()
                content_type = response.content_type or ""
        except aiohttp.ClientError as e:
            raise FetchError(f"Failed to fetch {url}: {e}") from e

        self.logger.debug("Fetched resource", url=url, size=len(body), content_type=content_type)
        return body, content_type

    async def fetch_feed(self, url: str) -> Any:
        """
        Fetch and parse an RSS feed.

        Raises:
            FetchError: When the feed cannot be fetched or is unparsable
        """
        raw, _ = await self.fetch_bytes(url)
        try:
            parsed = self.feed_parser(raw)
        except Exception as e:
            raise FetchError(f"Failed to parse RSS feed: {e}") from e

        # feedparser flags recoverable oddities as bozo too; only an empty
        # result is treated as a parse failure.
        if parsed.get("bozo") and not parsed.get("entries"):
            raise FetchError(f"Failed to parse RSS feed: {parsed.get('bozo_exception')}")

        self.logger.debug("Parsed feed", url=url, entries=len(parsed.get("entries", [])))
        return parsed
