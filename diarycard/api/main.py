"""
FastAPI Application
==================

Main FastAPI application serving Letterboxd diary cards as HTML, SVG and PNG.
"""

from contextlib import asynccontextmanager
import uuid
from typing import AsyncGenerator, Any, Optional

import aiohttp
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import PlainTextResponse, Response
import uvicorn

from diarycard import __version__
from diarycard.config.settings import get_settings, Settings
from diarycard.config.logging import bind_request_context, clear_request_context, get_logger
from diarycard.core.exceptions import DiaryCardError, ImageError
from diarycard.core.pipeline import DiaryCardPipeline, build_pipeline
from diarycard.core.rendering.png_generator import BrowserPool
from diarycard.api.routes.health import router as health_router
from diarycard.api.routes.render import router as render_router

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None, pipeline: Optional[DiaryCardPipeline] = None
) -> FastAPI:
    """
    Application factory.

    Args:
        settings: Settings to use instead of the environment-derived ones
        pipeline: Prebuilt pipeline; when given, no HTTP session or browser
            pool is created at startup

    Returns:
        FastAPI application instance
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan manager."""
        if pipeline is not None:
            app.state.pipeline = pipeline
            app.state.browser_pool = None
            yield
            return

        logger.info("Starting FastAPI application")
        session = aiohttp.ClientSession()

        # PNG output needs a browser; HTML and SVG cards work without one
        browser_pool: Optional[BrowserPool] = BrowserPool(settings.browser_pool_size, settings)
        try:
            await browser_pool.initialize()
            logger.info("Browser pool initialized")
        except ImageError as e:
            logger.error("Browser pool initialization failed", error=str(e))
            logger.warning("Continuing without PNG rendering")
            await browser_pool.close()
            browser_pool = None

        app.state.browser_pool = browser_pool
        app.state.pipeline = build_pipeline(session, browser_pool, settings)

        try:
            yield
        finally:
            logger.info("Shutting down FastAPI application")

            if browser_pool is not None:
                try:
                    await browser_pool.close()
                    logger.info("Browser pool closed")
                except Exception as e:
                    logger.error("Error closing browser pool", error=str(e))

            await session.close()
            logger.info("HTTP session closed")

    app = FastAPI(
        title=settings.app_name,
        description="Render Letterboxd diary activity as HTML, SVG and PNG cards",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # Add middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_hosts,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.add_middleware(GZipMiddleware, minimum_size=1000)

    @app.middleware("http")
    async def add_cache_headers(request: Request, call_next: Any) -> Response:
        """Let clients and CDNs cache every response for `cache_max_age` seconds."""
        response = await call_next(request)
        response.headers["Cache-Control"] = f"public, max-age={settings.cache_max_age}"
        return response

    # Request ID middleware
    @app.middleware("http")
    async def add_request_id(request: Request, call_next: Any) -> Response:
        """Add request ID to all requests and to every record logged while serving them."""
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        bind_request_context(request_id, request.url.path)

        try:
            response = await call_next(request)
        finally:
            clear_request_context()
        response.headers["X-Request-ID"] = request_id

        return response

    @app.exception_handler(DiaryCardError)
    async def pipeline_exception_handler(request: Request, exc: DiaryCardError) -> PlainTextResponse:
        """Log pipeline failures once and answer with the error message."""
        # request_id and path come from the bound request context
        logger.error("Card generation failed", error_type=type(exc).__name__, error=str(exc))
        return PlainTextResponse(str(exc), status_code=500)

    app.include_router(render_router)
    app.include_router(health_router)

    return app


app = create_app()


# Development server runner
def run_development_server() -> None:
    """Run development server with auto-reload."""
    settings = get_settings()
    uvicorn.run(
        "diarycard.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    run_development_server()
