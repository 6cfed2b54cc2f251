"""
Integration Tests for API Contracts
===================================

Tests for the card endpoints: media types, caching headers, error
responses and path validation. The pipeline is mocked so no network or
browser is needed.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import structlog
from fastapi import status
from fastapi.testclient import TestClient

from diarycard.api.main import create_app
from diarycard.core.exceptions import FetchError, ImageError, RenderError
from diarycard.core.pipeline import DiaryCardPipeline
from diarycard.models.schemas import FeedSource

from tests.data import POSTER_BYTES


@pytest.fixture
def mock_pipeline():
    """Pipeline double returning canned outputs."""
    pipeline = MagicMock(spec=DiaryCardPipeline)
    pipeline.generate_html = AsyncMock(return_value="<html><body><div class=card></div></body></html>")
    pipeline.generate_svg = AsyncMock(return_value='<svg xmlns="http://www.w3.org/2000/svg"></svg>')
    pipeline.generate_png = AsyncMock(return_value=POSTER_BYTES)
    return pipeline


@pytest.fixture
def client(test_settings, mock_pipeline):
    """Test client running the application lifespan."""
    app = create_app(settings=test_settings, pipeline=mock_pipeline)
    with TestClient(app) as test_client:
        yield test_client


class TestCardEndpoints:
    """Test successful card responses."""

    def test_html_card(self, client, mock_pipeline):
        response = client.get("/api/html/member")

        assert response.status_code == status.HTTP_200_OK
        assert response.headers["content-type"].startswith("text/html")
        assert response.text == "<html><body><div class=card></div></body></html>"
        mock_pipeline.generate_html.assert_awaited_once_with("member", None)

    def test_svg_card(self, client, mock_pipeline):
        response = client.get("/api/svg/member")

        assert response.status_code == status.HTTP_200_OK
        assert response.headers["content-type"] == "image/svg+xml"
        assert response.text.startswith("<svg")
        mock_pipeline.generate_svg.assert_awaited_once_with("member", None)

    def test_png_card(self, client, mock_pipeline):
        response = client.get("/api/png/member")

        assert response.status_code == status.HTTP_200_OK
        assert response.headers["content-type"] == "image/png"
        assert response.content == POSTER_BYTES

    @pytest.mark.parametrize("path", ["/api/html/member", "/api/svg/member", "/api/png/member"])
    def test_success_is_cacheable(self, client, path):
        response = client.get(path)

        assert response.headers["cache-control"] == "public, max-age=57600"

    def test_source_query_forwarded(self, client, mock_pipeline):
        response = client.get("/api/html/member", params={"source": "html"})

        assert response.status_code == status.HTTP_200_OK
        mock_pipeline.generate_html.assert_awaited_once_with("member", FeedSource.HTML)

    def test_request_id_header(self, client):
        first = client.get("/api/html/member")
        second = client.get("/api/html/member")

        assert first.headers["x-request-id"]
        assert first.headers["x-request-id"] != second.headers["x-request-id"]


class TestCardErrors:
    """Test failure responses."""

    @pytest.mark.parametrize(
        "path, method, error",
        [
            ("/api/html/member", "generate_html", FetchError("Failed to fetch HTML data: Not Found")),
            ("/api/svg/member", "generate_svg", ImageError("Font fetch failed: Forbidden")),
            ("/api/png/member", "generate_png", ImageError("PNG rasterization is not available")),
            ("/api/html/member", "generate_html", RenderError("Asset inlining failed: timeout")),
        ],
    )
    def test_pipeline_failure(self, client, mock_pipeline, path, method, error):
        getattr(mock_pipeline, method).side_effect = error

        response = client.get(path)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == str(error)
        assert response.headers["cache-control"] == "public, max-age=57600"

    @pytest.mark.parametrize("user_id", ["bad.user", "a%20b", "x" * 65])
    def test_invalid_user_id(self, client, mock_pipeline, user_id):
        response = client.get(f"/api/svg/{user_id}")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.headers["cache-control"] == "public, max-age=57600"
        mock_pipeline.generate_svg.assert_not_called()

    def test_unknown_source(self, client, mock_pipeline):
        response = client.get("/api/html/member", params={"source": "atom"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        mock_pipeline.generate_html.assert_not_called()

    def test_failure_logged_with_request_context(self, client, mock_pipeline):
        mock_pipeline.generate_html.side_effect = FetchError("Failed to fetch HTML data: Not Found")
        logged = {}

        with patch("diarycard.api.main.logger") as mock_logger:
            mock_logger.error.side_effect = lambda *args, **kwargs: logged.update(
                structlog.contextvars.get_contextvars()
            )
            response = client.get("/api/html/member")

        mock_logger.error.assert_called_once_with(
            "Card generation failed", error_type="FetchError", error="Failed to fetch HTML data: Not Found"
        )
        assert logged == {"request_id": response.headers["x-request-id"], "path": "/api/html/member"}


class TestHealthEndpoint:
    """Test health reporting."""

    def test_degraded_without_browser(self, client):
        response = client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "degraded"
        assert data["browser_pool"] is False
        assert data["version"] == "1.0.0"
        assert "timestamp" in data

    def test_health_carries_cache_header(self, client):
        response = client.get("/health")

        assert response.headers["cache-control"] == "public, max-age=57600"

    def test_healthy_with_browser(self, test_settings, mock_pipeline):
        app = create_app(settings=test_settings, pipeline=mock_pipeline)
        with TestClient(app) as test_client:
            pool = MagicMock()
            pool.available = 1
            app.state.browser_pool = pool

            data = test_client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["browser_pool"] is True
