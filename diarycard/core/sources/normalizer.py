"""
Record Normalizer
=================

Convert the Letterboxd diary page or RSS feed into DiaryEntry records.
Both variants share one interface so the renderer never needs to know which
source an entry came from.
"""

from typing import Any, Callable, Dict, List, Optional, Type
from abc import ABC, abstractmethod
from urllib.parse import urljoin
import asyncio
import html
import math

from bs4 import BeautifulSoup, Tag

from diarycard.config.logging import get_logger
from diarycard.config.settings import Settings, get_settings
from diarycard.core.exceptions import FetchError
from diarycard.core.sources.fetcher import DiaryFetcher
from diarycard.models.schemas import DiaryEntry, FeedSource, LetterboxdItem

logger = get_logger(__name__)

FULL_STAR = "★"
HALF_STAR = "½"

DocumentParser = Callable[[str], BeautifulSoup]


def parse_html(markup: str) -> BeautifulSoup:
    """Parse an HTML document or fragment."""
    return BeautifulSoup(markup, "html.parser")


def rating_to_stars(rating: float) -> str:
    """
    Convert a 0-5 rating into star glyphs.

    One full star per whole point, plus a half star for any fractional
    remainder: 3.5 -> "★★★½", 4.0 -> "★★★★", 0 -> "".

    Raises:
        ValueError: If the rating is outside 0-5
    """
    if not 0 <= rating <= 5:
        raise ValueError(f"Rating must be between 0 and 5, got {rating}")

    full = math.floor(rating)
    stars = FULL_STAR * full
    if rating - full > 0:
        stars += HALF_STAR
    return stars


def add_class(tag: Tag, class_name: str) -> Tag:
    classes = list(tag.get("class") or [])
    if class_name not in classes:
        classes.append(class_name)
    tag["class"] = classes
    return tag


class BaseDiaryNormalizer(ABC):
    """Abstract base class for diary normalizers."""

    source: FeedSource

    def __init__(
        self,
        fetcher: DiaryFetcher,
        settings: Optional[Settings] = None,
        document_parser: DocumentParser = parse_html,
    ):
        self.fetcher = fetcher
        self.settings = settings or get_settings()
        self.parse_document = document_parser
        self.max_entries = self.settings.max_entries
        self.logger: Any = logger.bind(normalizer=self.source.value)  # structlog.BoundLoggerBase

    @abstractmethod
    async def normalize(self, user_id: str) -> List[DiaryEntry]:
        """Fetch the member's diary and return at most ``max_entries`` entries."""
        pass

    def image_markup(self, image: Tag) -> str:
        """
        Serialize a remote ``<img>`` with its ``src`` made absolute.

        Image references in fetched markup are relative to the Letterboxd
        site, never to this service's files.
        """
        src = image.get("src")
        if src:
            image["src"] = urljoin(self.settings.letterboxd_base_url + "/", src)
        return str(image)


class HTMLDiaryNormalizer(BaseDiaryNormalizer):
    """Scrape the diary table of the member's profile page."""

    source = FeedSource.HTML

    async def normalize(self, user_id: str) -> List[DiaryEntry]:
        url = self.fetcher.profile_url(user_id, self.source)
        document = self.parse_document(await self.fetcher.fetch_text(url))
        rows = self.select_rows(document)

        # All rows run concurrently; with the fail_fast policy the first
        # failing row fails the whole batch.
        entries = await asyncio.gather(*(self.normalize_row(row) for row in rows))

        self.logger.info("Diary page normalized", user_id=user_id, entries=len(entries))
        return list(entries)

    def select_rows(self, document: BeautifulSoup) -> List[Tag]:
        table = document.find(id="diary-table")
        if table is None:
            self.logger.warning("Diary table not found")
            return []
        return table.select("tbody > tr.diary-entry-row")[: self.max_entries]

    async def normalize_row(self, row: Tag) -> DiaryEntry:
        film_details = row.select_one("td.td-film-details")

        poster = await self._poster_markup(film_details)

        title = ""
        anchor = film_details.find("a") if film_details is not None else None
        if anchor is not None:
            href = anchor.get("href")
            if href:
                anchor["href"] = urljoin(self.settings.letterboxd_base_url + "/", href)
            title = str(add_class(anchor, "movie-title"))

        released = row.select_one("td.td-released")
        rating = row.select_one("td.td-rating span.rating")

        return DiaryEntry(
            title_markup=title,
            release_year=released.get_text(strip=True) if released is not None else "",
            poster_markup=poster,
            rating_glyphs=rating.get_text(strip=True) if rating is not None else "",
        )

    async def _poster_markup(self, film_details: Optional[Tag]) -> str:
        """Look up the poster preview when the row hints at one."""
        if film_details is None or film_details.select_one("img.image") is None:
            return ""

        poster = film_details.select_one("div.linked-film-poster")
        slug = poster.get("data-film-slug") if poster is not None else None
        if not slug:
            self.logger.warning("Poster hint without film slug")
            return ""
        key = poster.get("data-cache-busting-key") or ""

        try:
            preview = self.parse_document(
                await self.fetcher.fetch_text(self.fetcher.poster_url(slug, key))
            )
        except FetchError as e:
            if self.settings.poster_failure_policy != "isolate":
                raise
            self.logger.warning("Poster lookup failed, row kept without poster", slug=slug, error=str(e))
            return ""

        image = preview.select_one("img.image")
        return self.image_markup(image) if image is not None else ""


class RSSDiaryNormalizer(BaseDiaryNormalizer):
    """Read diary activity from the member's RSS feed."""

    source = FeedSource.RSS

    async def normalize(self, user_id: str) -> List[DiaryEntry]:
        url = self.fetcher.profile_url(user_id, self.source)
        parsed = await self.fetcher.fetch_feed(url)

        items = [LetterboxdItem.from_feed_entry(e) for e in parsed.get("entries", [])]
        diary_items = [item for item in items if item.is_diary_activity][: self.max_entries]
        entries = [self.normalize_item(item) for item in diary_items]

        self.logger.info(
            "RSS feed normalized", user_id=user_id, items=len(items), entries=len(entries)
        )
        return entries

    def normalize_item(self, item: LetterboxdItem) -> DiaryEntry:
        poster = ""
        if item.content:
            image = self.parse_document(item.content).find("img")
            if image is not None:
                poster = self.image_markup(add_class(image, "image"))

        title = (
            f'<a href="{html.escape(item.link)}" class="movie-title">'
            f"{html.escape(item.film_title)}</a>"
        )

        return DiaryEntry(
            title_markup=title,
            release_year=item.film_year,
            poster_markup=poster,
            rating_glyphs=self._rating(item),
        )

    def _rating(self, item: LetterboxdItem) -> str:
        if not item.member_rating:
            return ""
        try:
            return rating_to_stars(float(item.member_rating))
        except ValueError:
            self.logger.warning("Unusable member rating", item_id=item.id, rating=item.member_rating)
            return ""


class DiaryNormalizerFactory:
    """Factory for creating diary normalizers."""

    _normalizers: Dict[FeedSource, Type[BaseDiaryNormalizer]] = {
        FeedSource.HTML: HTMLDiaryNormalizer,
        FeedSource.RSS: RSSDiaryNormalizer,
    }

    @classmethod
    def create(
        cls,
        source: FeedSource,
        fetcher: DiaryFetcher,
        settings: Optional[Settings] = None,
    ) -> BaseDiaryNormalizer:
        """
        Create a normalizer for a diary source.

        Raises:
            ValueError: If the source is not supported
        """
        try:
            normalizer_class = cls._normalizers[FeedSource(source)]
        except (KeyError, ValueError):
            raise ValueError(f"Unsupported diary source: {source}")

        return normalizer_class(fetcher, settings)
