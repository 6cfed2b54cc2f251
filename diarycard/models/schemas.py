"""
Pydantic Models and Schemas
===========================

Core data models for diary entries, Letterboxd feed items and API responses.
"""

from typing import Any, Dict, Mapping
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# Enums
class FeedSource(str, Enum):
    """Remote representation a card is normalized from."""
    HTML = "html"
    RSS = "rss"


# Letterboxd extension fields as they appear in the feed, mapped to the keys
# feedparser exposes them under (namespace prefix joined with "_", lowercased).
LETTERBOXD_ITEM_FIELDS: Dict[str, str] = {
    "letterboxd:watchedDate": "letterboxd_watcheddate",
    "letterboxd:rewatch": "letterboxd_rewatch",
    "letterboxd:filmTitle": "letterboxd_filmtitle",
    "letterboxd:filmYear": "letterboxd_filmyear",
    "letterboxd:memberRating": "letterboxd_memberrating",
    "tmdb:movieId": "tmdb_movieid",
    "dc:creator": "author",
}

# Item identifiers that describe a diary activity. List updates and other
# feed items use different prefixes.
DIARY_ITEM_PREFIXES = ("letterboxd-review-", "letterboxd-watch-")


class DiaryEntry(BaseModel):
    """One watched title, ready to be spliced into the card markup."""
    model_config = ConfigDict(frozen=True)

    title_markup: str = Field(default="", description="Anchor linking the film detail page")
    release_year: str = Field(default="", description="Release year label")
    poster_markup: str = Field(default="", description="Thumbnail <img> markup")
    rating_glyphs: str = Field(default="", description="Star rating glyphs")


class LetterboxdItem(BaseModel):
    """Typed view over a single Letterboxd RSS item."""
    model_config = ConfigDict(frozen=True)

    id: str = ""
    title: str = ""
    link: str = ""
    content: str = ""
    creator: str = ""
    watched_date: str = ""
    rewatch: str = ""
    film_title: str = ""
    film_year: str = ""
    member_rating: str = ""
    tmdb_movie_id: str = ""

    @property
    def is_diary_activity(self) -> bool:
        return self.id.startswith(DIARY_ITEM_PREFIXES)

    @classmethod
    def from_feed_entry(cls, entry: Mapping[str, Any]) -> "LetterboxdItem":
        """Build an item from a feedparser entry."""
        fields = LETTERBOXD_ITEM_FIELDS

        def text(key: str) -> str:
            value = entry.get(key)
            return str(value).strip() if value is not None else ""

        content = ""
        if entry.get("content"):
            content = entry["content"][0].get("value", "")
        elif entry.get("summary"):
            content = entry["summary"]

        return cls(
            id=text("id"),
            title=text("title"),
            link=text("link"),
            content=content,
            creator=text(fields["dc:creator"]),
            watched_date=text(fields["letterboxd:watchedDate"]),
            rewatch=text(fields["letterboxd:rewatch"]),
            film_title=text(fields["letterboxd:filmTitle"]),
            film_year=text(fields["letterboxd:filmYear"]),
            member_rating=text(fields["letterboxd:memberRating"]),
            tmdb_movie_id=text(fields["tmdb:movieId"]),
        )


# API Models
class HealthStatus(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Overall status: healthy or degraded")
    version: str
    browser_pool: bool = Field(..., description="Whether a browser is available for PNG output")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
