"""
Card Pipeline
=============

Orchestrates the stages that turn a member's diary into a card:
source normalization -> markup rendering -> post-processing -> SVG -> PNG.
Each stage raises typed errors; nothing is swallowed here.
"""

from typing import Any, List, Optional, Union

import aiohttp

from diarycard.config.logging import get_logger
from diarycard.config.settings import Settings, get_settings
from diarycard.core.exceptions import ImageError
from diarycard.core.rendering.html_generator import DiaryMarkupRenderer
from diarycard.core.rendering.png_generator import BrowserPool, PlaywrightSVGRasterizer
from diarycard.core.rendering.postprocess import AssetInliner, HTMLPostProcessor
from diarycard.core.rendering.svg_generator import FontLoader, SVGCardGenerator
from diarycard.core.sources.fetcher import DiaryFetcher, FeedParser
from diarycard.core.sources.normalizer import DiaryNormalizerFactory
from diarycard.models.schemas import DiaryEntry, FeedSource

logger = get_logger(__name__)


class DiaryCardPipeline:
    """Render diary cards from explicitly constructed collaborators."""

    def __init__(
        self,
        fetcher: DiaryFetcher,
        renderer: DiaryMarkupRenderer,
        postprocessor: HTMLPostProcessor,
        svg_generator: SVGCardGenerator,
        rasterizer: Optional[PlaywrightSVGRasterizer] = None,
        settings: Optional[Settings] = None,
    ):
        self.fetcher = fetcher
        self.renderer = renderer
        self.postprocessor = postprocessor
        self.svg_generator = svg_generator
        self.rasterizer = rasterizer
        self.settings = settings or get_settings()
        self.logger: Any = logger.bind(component="pipeline")  # structlog.BoundLoggerBase

    def resolve_source(self, source: Optional[Union[FeedSource, str]]) -> FeedSource:
        return FeedSource(source or self.settings.default_source)

    async def collect_entries(
        self, user_id: str, source: Optional[Union[FeedSource, str]] = None
    ) -> List[DiaryEntry]:
        """Fetch and normalize the member's most recent diary entries."""
        normalizer = DiaryNormalizerFactory.create(
            self.resolve_source(source), self.fetcher, self.settings
        )
        return await normalizer.normalize(user_id)

    async def generate_html(
        self, user_id: str, source: Optional[Union[FeedSource, str]] = None
    ) -> str:
        """Render the self-contained, minified card page."""
        entries = await self.collect_entries(user_id, source)
        page = await self.renderer.render(entries)
        return await self.postprocessor.process(page, self.renderer.asset_dir)

    async def generate_svg(
        self, user_id: str, source: Optional[Union[FeedSource, str]] = None
    ) -> str:
        """Render the card as an SVG image."""
        html_content = await self.generate_html(user_id, source)
        return await self.svg_generator.generate(html_content)

    async def generate_png(
        self, user_id: str, source: Optional[Union[FeedSource, str]] = None
    ) -> bytes:
        """Render the card as a PNG image."""
        if self.rasterizer is None:
            raise ImageError("PNG rasterization is not available")
        svg = await self.generate_svg(user_id, source)
        return await self.rasterizer.rasterize(svg)


def build_pipeline(
    session: aiohttp.ClientSession,
    browser_pool: Optional[BrowserPool] = None,
    settings: Optional[Settings] = None,
    feed_parser: Optional[FeedParser] = None,
) -> DiaryCardPipeline:
    """Wire the default pipeline around a shared HTTP session and browser pool."""
    settings = settings or get_settings()
    fetcher = DiaryFetcher(session, feed_parser=feed_parser, settings=settings)

    return DiaryCardPipeline(
        fetcher=fetcher,
        renderer=DiaryMarkupRenderer(settings),
        postprocessor=HTMLPostProcessor(AssetInliner(fetcher, settings)),
        svg_generator=SVGCardGenerator(FontLoader(fetcher, settings), settings),
        rasterizer=PlaywrightSVGRasterizer(browser_pool, settings) if browser_pool else None,
        settings=settings,
    )
