"""
Render Routes
=============

FastAPI routes serving the diary card as HTML, SVG and PNG.
Each endpoint runs a prefix of the card pipeline.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query, Request
from fastapi.responses import HTMLResponse, Response

from diarycard.core.pipeline import DiaryCardPipeline
from diarycard.models.schemas import FeedSource

router = APIRouter(prefix="/api", tags=["Cards"])

UserId = Annotated[
    str,
    Path(pattern=r"^[A-Za-z0-9_-]+$", max_length=64, description="Letterboxd username"),
]
Source = Annotated[
    Optional[FeedSource],
    Query(description="Diary source; defaults to the configured one"),
]


def get_pipeline(request: Request) -> DiaryCardPipeline:
    """Dependency returning the application's card pipeline."""
    return request.app.state.pipeline


@router.get("/html/{user_id}", response_class=HTMLResponse)
async def render_html(
    user_id: UserId,
    source: Source = None,
    pipeline: DiaryCardPipeline = Depends(get_pipeline),
) -> HTMLResponse:
    """Self-contained, minified card page."""
    html_content = await pipeline.generate_html(user_id, source)
    return HTMLResponse(content=html_content)


@router.get("/svg/{user_id}")
async def render_svg(
    user_id: UserId,
    source: Source = None,
    pipeline: DiaryCardPipeline = Depends(get_pipeline),
) -> Response:
    """Card as a vector image."""
    svg_content = await pipeline.generate_svg(user_id, source)
    return Response(content=svg_content, media_type="image/svg+xml")


@router.get("/png/{user_id}")
async def render_png(
    user_id: UserId,
    source: Source = None,
    pipeline: DiaryCardPipeline = Depends(get_pipeline),
) -> Response:
    """Card as a raster image."""
    png_content = await pipeline.generate_png(user_id, source)
    return Response(content=png_content, media_type="image/png")
