"""
PNG Generator
=============

Playwright-based rasterization of SVG cards.
Manages browser instances, viewport configuration, and image optimization.
"""

from typing import Optional, Dict, Any, List, AsyncGenerator
import asyncio
from contextlib import asynccontextmanager

from playwright.async_api import async_playwright, Browser, BrowserContext, Page, Route
from PIL import Image  # type: ignore
import io

from diarycard.config.logging import get_logger
from diarycard.config.settings import Settings, get_settings
from diarycard.core.exceptions import ImageError

logger = get_logger(__name__)

PAGE_TEMPLATE = (
    "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
    "<style>html,body{{margin:0;padding:0;background:transparent;}}svg{{display:block;}}</style>"
    "</head><body>{svg}</body></html>"
)


class BrowserPool:
    """Browser instance pool for efficient resource management."""

    def __init__(self, pool_size: int = 2, settings: Optional[Settings] = None):
        self.pool_size = pool_size
        self.browsers: List[Browser] = []
        self._semaphore = asyncio.Semaphore(pool_size)
        self._playwright = None
        self.settings = settings or get_settings()
        self.logger: Any = logger.bind(component="browser_pool")  # structlog.BoundLoggerBase

    @property
    def available(self) -> int:
        return len(self.browsers)

    async def initialize(self) -> None:
        """Initialize browser pool."""
        try:
            self._playwright = await async_playwright().start()

            for _ in range(self.pool_size):
                browser = await self._playwright.chromium.launch(
                    headless=self.settings.playwright_headless,
                    args=[
                        "--no-sandbox",
                        "--disable-setuid-sandbox",
                        "--disable-dev-shm-usage",
                        "--disable-gpu",
                        "--font-render-hinting=none",
                    ],
                )
                self.browsers.append(browser)

            self.logger.info("Browser pool initialized", pool_size=self.pool_size)
        except Exception as e:
            raise ImageError(f"Browser pool initialization failed: {e}") from e

    async def close(self) -> None:
        """Close all browsers in the pool."""
        for browser in self.browsers:
            await browser.close()
        self.browsers = []

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

        self.logger.info("Browser pool closed")

    @asynccontextmanager
    async def get_browser(self) -> AsyncGenerator[Browser, None]:
        """Get a browser instance from the pool."""
        async with self._semaphore:
            if not self.browsers:
                raise ImageError("Browser pool not initialized")

            browser = self.browsers.pop()
            try:
                yield browser
            finally:
                self.browsers.append(browser)


class PlaywrightSVGRasterizer:
    """Render SVG cards to PNG in headless Chromium."""

    def __init__(self, browser_pool: BrowserPool, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.browser_pool = browser_pool
        self.width = self.settings.card_width
        self.height = self.settings.card_height
        self.zoom = self.settings.png_zoom
        self.logger: Any = logger.bind(generator="playwright")  # structlog.BoundLoggerBase

    async def rasterize(self, svg: str) -> bytes:
        """
        Rasterize an SVG card at the configured zoom level.

        Args:
            svg: SVG document produced by the SVG generator

        Returns:
            PNG bytes of size (width * zoom) x (height * zoom)

        Raises:
            ImageError: If rasterization fails
        """
        if not svg:
            raise ImageError("No SVG provided")

        try:
            async with self.browser_pool.get_browser() as browser:
                context = await self._create_browser_context(browser)

                try:
                    page = await context.new_page()
                    await self._configure_page(page)

                    await page.set_content(PAGE_TEMPLATE.format(svg=svg), wait_until="load")

                    png_bytes = await page.screenshot(
                        type="png",
                        clip={"x": 0, "y": 0, "width": self.width, "height": self.height},
                        omit_background=True,
                    )
                finally:
                    await context.close()

            if self.settings.optimize_png:
                png_bytes = await self._optimize_png(png_bytes)

        except ImageError:
            raise
        except Exception as e:
            raise ImageError(f"PNG rasterization failed: {e}") from e

        self.logger.info("PNG generated", zoom=self.zoom, file_size=len(png_bytes))
        return png_bytes

    async def _create_browser_context(self, browser: Browser) -> BrowserContext:
        """Create browser context sized to the card."""
        context_options: Dict[str, Any] = {
            "viewport": {"width": self.width, "height": self.height},
            "device_scale_factor": self.zoom,
        }
        return await browser.new_context(**context_options)  # type: ignore[arg-type]

    async def _configure_page(self, page: Page) -> None:
        """Configure page settings."""
        page.set_default_timeout(self.settings.playwright_timeout)

        # The card is self-contained; nothing may be loaded from outside,
        # so the embedded font is the only one it can use.
        await page.route("**/*", self._handle_route)

    async def _handle_route(self, route: Route) -> None:
        """Block every outgoing request."""
        await route.abort()

    async def _optimize_png(self, png_bytes: bytes) -> bytes:
        """
        Re-encode PNG bytes with Pillow's optimizer.

        Args:
            png_bytes: Original PNG bytes

        Returns:
            Optimized PNG bytes
        """
        image = Image.open(io.BytesIO(png_bytes))

        output = io.BytesIO()
        image.save(output, format="PNG", optimize=True)
        optimized_bytes = output.getvalue()

        self.logger.debug(
            "PNG optimization completed",
            original_size=len(png_bytes),
            optimized_size=len(optimized_bytes),
        )
        return optimized_bytes
