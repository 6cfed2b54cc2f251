"""
SVG Generator
=============

Turn the minified card page into a fixed-size SVG image. The page body is
hosted in a ``<foreignObject>`` and the display font is embedded as a data
URI, so the resulting file renders identically wherever it is opened.
"""

from typing import Any, Optional, Tuple
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from urllib.parse import urlparse
import base64
import jinja2

from bs4 import BeautifulSoup, Doctype

from diarycard.config.logging import get_logger
from diarycard.config.settings import Settings, get_settings
from diarycard.core.exceptions import FetchError, ImageError
from diarycard.core.sources.fetcher import DiaryFetcher

logger = get_logger(__name__)

# suffix -> (mime type, @font-face format)
FONT_FORMATS = {
    ".ttf": ("font/ttf", "truetype"),
    ".otf": ("font/otf", "opentype"),
    ".woff": ("font/woff", "woff"),
    ".woff2": ("font/woff2", "woff2"),
}


@dataclass(frozen=True)
class EmbeddedFont:
    name: str
    weight: int
    data: bytes
    mime_type: str = "font/ttf"
    format: str = "truetype"

    @property
    def base64_data(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


class FontLoader:
    """Fetch the display font, falling back to a second URL once."""

    def __init__(self, fetcher: DiaryFetcher, settings: Optional[Settings] = None):
        self.fetcher = fetcher
        self.settings = settings or get_settings()
        self.logger: Any = logger.bind(component="font_loader")  # structlog.BoundLoggerBase

    async def load(self) -> EmbeddedFont:
        """
        Load the primary font, or the fallback font if the primary fails.

        Raises:
            ImageError: If neither font can be fetched
        """
        primary = self.settings.font_primary_url
        fallback = self.settings.font_fallback_url

        try:
            return await self._fetch(primary)
        except FetchError as e:
            self.logger.warning("Primary font unavailable, using fallback", url=primary, error=str(e))

        try:
            return await self._fetch(fallback)
        except FetchError as e:
            raise ImageError(f"Font fetch failed: {e}") from e

    async def _fetch(self, url: str) -> EmbeddedFont:
        data, _ = await self.fetcher.fetch_bytes(url)
        # Hosting pages sometimes answer a font URL with an HTML page.
        if not data or b"<html" in data[:512].lower():
            raise FetchError(f"Font response from {url} is not a font file")

        suffix = PurePosixPath(urlparse(url).path).suffix.lower()
        mime_type, font_format = FONT_FORMATS.get(suffix, FONT_FORMATS[".ttf"])
        return EmbeddedFont(
            name=self.settings.font_name,
            weight=self.settings.font_weight,
            data=data,
            mime_type=mime_type,
            format=font_format,
        )


class SVGCardGenerator:
    """Render card HTML into an SVG image of fixed dimensions."""

    def __init__(self, font_loader: FontLoader, settings: Optional[Settings] = None):
        self.font_loader = font_loader
        self.settings = settings or get_settings()
        self.width = self.settings.card_width
        self.height = self.settings.card_height
        self.logger: Any = logger.bind(generator="svg")  # structlog.BoundLoggerBase
        self.env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(Path(__file__).parent / "templates")),
            autoescape=jinja2.select_autoescape(["html", "xml", "svg"]),
            enable_async=True,
        )

    @staticmethod
    def prepare_html(html_content: str) -> BeautifulSoup:
        """Drop the page title and swap the star glyph for a plain asterisk."""
        # The embedded font may not carry the star glyph.
        document = BeautifulSoup(html_content.replace("★", "*"), "html.parser")
        for title in document.find_all("title"):
            title.decompose()
        return document

    @staticmethod
    def split_document(document: BeautifulSoup) -> Tuple[str, str]:
        """Separate the page CSS from the body markup."""
        css = "\n".join(style.get_text() for style in document.find_all("style"))
        for tag in document.find_all(["style", "script"]):
            tag.decompose()
        for item in list(document.contents):
            if isinstance(item, Doctype):
                item.extract()

        # The minifier may omit an attribute-less <body> start tag.
        container = document.body
        if container is None:
            for head in document.find_all("head"):
                head.decompose()
            container = document.find("html") or document

        return css, container.decode_contents().strip()

    async def generate(self, html_content: Optional[str]) -> str:
        """
        Generate the SVG card.

        Raises:
            ImageError: If no HTML is given, the font cannot be loaded or rendering fails
        """
        if not html_content:
            raise ImageError("No HTML provided")

        css, body = self.split_document(self.prepare_html(html_content))
        font = await self.font_loader.load()

        try:
            template = self.env.get_template("card.svg")
            svg = await template.render_async(
                width=self.width, height=self.height, font=font, css=css, body=body
            )
        except jinja2.TemplateError as e:
            raise ImageError(f"SVG rendering failed: {e}") from e

        self.logger.info("SVG generated", width=self.width, height=self.height, size=len(svg))
        return svg
