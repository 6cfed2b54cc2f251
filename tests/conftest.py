"""
Test Configuration
==================

Pytest configuration with fixtures shared by unit and integration tests.
Everything runs offline: remote documents come from tests/data.
"""

from typing import Callable, Dict

import pytest
from pydantic_settings import SettingsConfigDict

from diarycard.config.settings import Settings
from diarycard.core.pipeline import DiaryCardPipeline
from diarycard.core.rendering.html_generator import DiaryMarkupRenderer
from diarycard.core.rendering.postprocess import AssetInliner, HTMLPostProcessor
from diarycard.core.rendering.svg_generator import FontLoader, SVGCardGenerator

from tests.data import BASE_URL
from tests.utils.mocks import StubFetcher, StubResponse

PRIMARY_FONT_URL = "https://fonts.example.com/TiemposText-Semibold.ttf"
FALLBACK_FONT_URL = "https://fonts.example.com/CantataOne-Regular.ttf"
FONT_BYTES = b"\x00\x01\x00\x00fake-truetype-font"


# Test settings override
class TestSettings(Settings):
    """Test-specific settings."""

    environment: str = "testing"
    debug: bool = True
    log_level: str = "DEBUG"
    letterboxd_base_url: str = BASE_URL
    font_primary_url: str = PRIMARY_FONT_URL
    font_fallback_url: str = FALLBACK_FONT_URL
    optimize_png: bool = False
    browser_pool_size: int = 1

    model_config = SettingsConfigDict(env_file=".env.test", env_prefix="DIARYCARD_TEST_")


@pytest.fixture
def test_settings() -> TestSettings:
    """Test settings fixture."""
    return TestSettings()


@pytest.fixture
def stub_fetcher(test_settings: TestSettings) -> Callable[[Dict[str, StubResponse]], StubFetcher]:
    """Factory for fetchers answering from a URL table."""

    def make(responses: Dict[str, StubResponse]) -> StubFetcher:
        return StubFetcher(responses, settings=test_settings)

    return make


@pytest.fixture
def font_responses() -> Dict[str, StubResponse]:
    """Font table where the primary font is reachable."""
    return {PRIMARY_FONT_URL: (FONT_BYTES, "font/ttf")}


@pytest.fixture
def make_pipeline(
    test_settings: TestSettings,
    stub_fetcher: Callable[[Dict[str, StubResponse]], StubFetcher],
    font_responses: Dict[str, StubResponse],
) -> Callable[[Dict[str, StubResponse]], DiaryCardPipeline]:
    """Factory for a full pipeline wired to a stub fetcher."""

    def make(responses: Dict[str, StubResponse]) -> DiaryCardPipeline:
        fetcher = stub_fetcher({**font_responses, **responses})
        return DiaryCardPipeline(
            fetcher=fetcher,
            renderer=DiaryMarkupRenderer(test_settings),
            postprocessor=HTMLPostProcessor(AssetInliner(fetcher, test_settings)),
            svg_generator=SVGCardGenerator(FontLoader(fetcher, test_settings), test_settings),
            settings=test_settings,
        )

    return make
