"""
HTML Post-processing
====================

Make the rendered page self-contained by inlining its stylesheets, scripts
and images, then minify it.
"""

from typing import Any, Optional, Tuple
from pathlib import Path
from urllib.parse import urlparse
import asyncio
import base64
import mimetypes

from bs4 import BeautifulSoup, Tag
import minify_html

from diarycard.config.logging import get_logger
from diarycard.config.settings import Settings, get_settings
from diarycard.core.exceptions import DiaryCardError, FetchError, RenderError
from diarycard.core.sources.fetcher import DiaryFetcher

logger = get_logger(__name__)


def _is_remote(ref: str) -> bool:
    return urlparse(ref).scheme in ("http", "https") or ref.startswith("//")


class AssetInliner:
    """Replace references to external assets with inline equivalents."""

    def __init__(self, fetcher: Optional[DiaryFetcher] = None, settings: Optional[Settings] = None):
        self.fetcher = fetcher
        self.settings = settings or get_settings()
        self.logger: Any = logger.bind(component="asset_inliner")  # structlog.BoundLoggerBase

    async def inline(self, markup: str, base_dir: Path) -> str:
        """
        Inline stylesheets, scripts and images referenced by ``markup``.

        Relative references are read from ``base_dir``; paths resolving
        outside it and non-http schemes are left alone. Absolute http(s)
        references are fetched when remote inlining is enabled and left alone
        otherwise.
        """
        document = BeautifulSoup(markup, "html.parser")

        for link in document.find_all("link", rel="stylesheet", href=True):
            asset = await self._load(link["href"], base_dir)
            if asset is None:
                continue
            style = document.new_tag("style")
            style.string = asset[0].decode("utf-8")
            link.replace_with(style)

        for script in document.find_all("script", src=True):
            asset = await self._load(script["src"], base_dir)
            if asset is None:
                continue
            del script["src"]
            script.string = asset[0].decode("utf-8")

        images = [img for img in document.find_all("img", src=True) if not img["src"].startswith("data:")]
        await asyncio.gather(*(self._inline_image(img, base_dir) for img in images))

        return str(document)

    async def _inline_image(self, img: Tag, base_dir: Path) -> None:
        try:
            asset = await self._load(img["src"], base_dir)
        except FetchError as e:
            if self.settings.poster_failure_policy != "isolate":
                raise
            # Same outcome as a failed poster lookup: the row keeps no poster.
            self.logger.warning("Image fetch failed, image dropped", src=img["src"], error=str(e))
            img.decompose()
            return
        if asset is None:
            return
        data, mime_type = asset
        img["src"] = f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"

    async def _load(self, ref: str, base_dir: Path) -> Optional[Tuple[bytes, str]]:
        """Load an asset as bytes plus mime type, or None when it stays external."""
        if _is_remote(ref):
            if not self.settings.inline_remote_assets or self.fetcher is None:
                return None
            url = f"https:{ref}" if ref.startswith("//") else ref
            data, content_type = await self.fetcher.fetch_bytes(url)
            return data, content_type or mimetypes.guess_type(urlparse(url).path)[0] or "application/octet-stream"

        parsed = urlparse(ref)
        if parsed.scheme:
            return None

        # Only files shipped next to the page template are ever read.
        root = base_dir.resolve()
        path = (root / parsed.path).resolve()
        if not path.is_relative_to(root):
            self.logger.warning("Local reference outside asset directory left as is", ref=ref)
            return None

        data = await asyncio.to_thread(path.read_bytes)
        self.logger.debug("Inlined local asset", path=str(path), size=len(data))
        return data, mimetypes.guess_type(path.name)[0] or "application/octet-stream"


class HTMLPostProcessor:
    """Asset inlining followed by minification."""

    def __init__(self, inliner: AssetInliner):
        self.inliner = inliner
        self.logger: Any = logger.bind(component="postprocessor")  # structlog.BoundLoggerBase

    @staticmethod
    def minify(markup: str) -> str:
        """Collapse whitespace, minify embedded CSS/JS and strip comments."""
        # Closing tags are kept so the result re-parses as well-formed XHTML
        # for the SVG card.
        return minify_html.minify(
            markup,
            minify_css=True,
            minify_js=True,
            keep_closing_tags=True,
            keep_html_and_head_opening_tags=True,
        )

    async def process(self, markup: str, base_dir: Path) -> str:
        """
        Inline assets and minify the rendered page.

        Raises:
            RenderError: If an asset cannot be loaded or minification fails
        """
        try:
            inlined = await self.inliner.inline(markup, base_dir)
        except (DiaryCardError, OSError, UnicodeDecodeError) as e:
            raise RenderError(f"Asset inlining failed: {e}") from e

        try:
            minified = self.minify(inlined)
        except Exception as e:
            raise RenderError(f"Minification failed: {e}") from e

        self.logger.info(
            "HTML inlined and minified", original_length=len(markup), minified_length=len(minified)
        )
        return minified
