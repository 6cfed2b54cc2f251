"""
Unit Tests for Card Pipeline
============================

Tests for source resolution, stage wiring and rasterizer availability.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from diarycard.core.exceptions import FetchError, ImageError, RenderError
from diarycard.core.pipeline import DiaryCardPipeline, build_pipeline
from diarycard.core.rendering.png_generator import BrowserPool, PlaywrightSVGRasterizer
from diarycard.models.schemas import FeedSource

from tests.data import ANATOMY_OF_A_FALL_FEED, BASE_URL, POSTER_BYTES, diary_page, diary_row

RSS_URL = f"{BASE_URL}/member/rss/"
FEED_POSTER_URL = "https://a.ltrbxd.com/resized/film-poster/poster-0-600-0-900-crop.jpg"
DIARY_URL = f"{BASE_URL}/member/films/diary/"
FEED_RESPONSES = {RSS_URL: ANATOMY_OF_A_FALL_FEED, FEED_POSTER_URL: (POSTER_BYTES, "image/jpeg")}


class TestResolveSource:
    """Test source selection."""

    def test_default_source(self, make_pipeline):
        assert make_pipeline({}).resolve_source(None) == FeedSource.RSS

    def test_configured_default(self, make_pipeline, test_settings):
        pipeline = make_pipeline({})
        pipeline.settings = test_settings.model_copy(update={"default_source": "html"})

        assert pipeline.resolve_source(None) == FeedSource.HTML

    @pytest.mark.parametrize("source", [FeedSource.HTML, "html"])
    def test_explicit_source(self, make_pipeline, source):
        assert make_pipeline({}).resolve_source(source) == FeedSource.HTML


class TestDiaryCardPipeline:
    """Test stage orchestration."""

    @pytest.mark.asyncio
    async def test_collect_entries_from_feed(self, make_pipeline):
        entries = await make_pipeline(FEED_RESPONSES).collect_entries("member")

        assert len(entries) == 1
        assert "Anatomy of a Fall" in entries[0].title_markup

    @pytest.mark.asyncio
    async def test_collect_entries_from_diary_page(self, make_pipeline):
        pipeline = make_pipeline({DIARY_URL: diary_page([diary_row("past-lives", "Past Lives", with_poster=False)])})

        entries = await pipeline.collect_entries("member", FeedSource.HTML)

        assert len(entries) == 1
        assert pipeline.fetcher.requested == [DIARY_URL]

    @pytest.mark.asyncio
    async def test_generate_html(self, make_pipeline):
        html = await make_pipeline(FEED_RESPONSES).generate_html("member")

        assert "Anatomy of a Fall" in html
        assert "<!--" not in html

    @pytest.mark.asyncio
    async def test_generate_svg(self, make_pipeline):
        svg = await make_pipeline(FEED_RESPONSES).generate_svg("member")

        assert svg.startswith("<svg")
        assert "Anatomy of a Fall" in svg

    @pytest.mark.asyncio
    async def test_fetch_failure_propagates(self, make_pipeline):
        with pytest.raises(FetchError):
            await make_pipeline({}).generate_svg("member")

    @pytest.mark.asyncio
    async def test_poster_image_failure_fails_card(self, make_pipeline):
        with pytest.raises(RenderError, match="Asset inlining failed"):
            await make_pipeline({RSS_URL: ANATOMY_OF_A_FALL_FEED}).generate_html("member")

    @pytest.mark.asyncio
    async def test_isolated_poster_image_failure_keeps_card(self, make_pipeline, test_settings):
        pipeline = make_pipeline({RSS_URL: ANATOMY_OF_A_FALL_FEED})
        pipeline.postprocessor.inliner.settings = test_settings.model_copy(
            update={"poster_failure_policy": "isolate"}
        )

        html = await pipeline.generate_html("member")

        assert "Anatomy of a Fall" in html
        assert "<img" not in html
        assert FEED_POSTER_URL in pipeline.fetcher.requested

    @pytest.mark.asyncio
    async def test_png_without_rasterizer(self, make_pipeline):
        pipeline = make_pipeline(FEED_RESPONSES)

        with pytest.raises(ImageError, match="not available"):
            await pipeline.generate_png("member")

    @pytest.mark.asyncio
    async def test_png_uses_rasterizer(self, make_pipeline):
        pipeline = make_pipeline(FEED_RESPONSES)
        pipeline.rasterizer = AsyncMock(spec=PlaywrightSVGRasterizer)
        pipeline.rasterizer.rasterize.return_value = b"png"

        assert await pipeline.generate_png("member") == b"png"
        [svg], _ = pipeline.rasterizer.rasterize.call_args
        assert svg.startswith("<svg")


class TestBuildPipeline:
    """Test default wiring."""

    def test_without_browser_pool(self, test_settings):
        pipeline = build_pipeline(MagicMock(), settings=test_settings)

        assert isinstance(pipeline, DiaryCardPipeline)
        assert pipeline.rasterizer is None
        assert pipeline.postprocessor.inliner.fetcher is pipeline.fetcher
        assert pipeline.svg_generator.font_loader.fetcher is pipeline.fetcher

    def test_with_browser_pool(self, test_settings):
        pool = BrowserPool(pool_size=1, settings=test_settings)
        pipeline = build_pipeline(MagicMock(), browser_pool=pool, settings=test_settings)

        assert isinstance(pipeline.rasterizer, PlaywrightSVGRasterizer)
        assert pipeline.rasterizer.browser_pool is pool

    def test_custom_feed_parser(self, test_settings):
        feed_parser = MagicMock()
        pipeline = build_pipeline(MagicMock(), settings=test_settings, feed_parser=feed_parser)

        assert pipeline.fetcher.feed_parser is feed_parser
