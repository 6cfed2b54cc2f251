"""
Application Settings
===================

Main application settings and environment configuration using Pydantic Settings.
Supports development, testing, and production environments.
"""

from typing import Optional, List, Union, Literal
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import json
from pathlib import Path

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "core" / "rendering" / "templates"


class Settings(BaseSettings):
    """Main application settings with environment variable support."""

    # Application Configuration
    app_name: str = Field(default="Letterboxd Diary Card", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(
        default="development", description="Environment: development, testing, production"
    )
    debug: bool = Field(default=True, description="Debug mode")

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")
    cache_max_age: int = Field(
        default=16 * 60 * 60, ge=0, description="Cache-Control max-age sent with every response"
    )

    # Source Configuration
    letterboxd_base_url: str = Field(
        default="https://letterboxd.com", description="Base URL of the Letterboxd site"
    )
    default_source: Literal["html", "rss"] = Field(
        default="rss", description="Diary source used when a request does not pick one"
    )
    max_entries: int = Field(default=4, ge=1, description="Maximum diary entries per card")
    poster_failure_policy: Literal["fail_fast", "isolate"] = Field(
        default="fail_fast", description="How a failed poster lookup affects the other rows"
    )
    fetch_timeout: Optional[float] = Field(
        default=None, gt=0, description="Total timeout for remote fetches in seconds"
    )
    user_agent: Optional[str] = Field(default=None, description="User agent for remote fetches")

    # Rendering Configuration
    template_path: Path = Field(
        default=TEMPLATE_DIR / "index.html", description="Page template with a content marker"
    )
    inline_remote_assets: bool = Field(
        default=True, description="Inline absolute http(s) assets as well as local ones"
    )

    # Card Configuration
    font_primary_url: str = Field(
        default="https://8font.com/wp-content/uploads/2023/10/TiemposText-Semibold.ttf",
        description="Primary display font",
    )
    font_fallback_url: str = Field(
        default="https://github.com/google/fonts/raw/main/ofl/cantataone/CantataOne-Regular.ttf",
        description="Display font used when the primary one cannot be fetched",
    )
    font_name: str = Field(default="TiemposText-Semibold", description="Embedded font family")
    font_weight: int = Field(default=600, description="Embedded font weight")
    card_width: int = Field(default=854, gt=0, description="Card width in pixels")
    card_height: int = Field(default=160, gt=0, description="Card height in pixels")
    png_zoom: float = Field(default=3.0, gt=0, description="Rasterization zoom level")
    optimize_png: bool = Field(default=True, description="Re-encode PNG output with Pillow")

    # Browser Configuration
    playwright_headless: bool = Field(default=True, description="Run browser in headless mode")
    playwright_timeout: int = Field(default=30000, description="Playwright timeout in milliseconds")
    browser_pool_size: int = Field(default=2, ge=1, description="Browser instance pool size")

    # Security Configuration
    allowed_hosts: List[str] = Field(default=["*"], description="Allowed hosts for CORS")

    # Monitoring Configuration
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = {"development", "testing", "production"}
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("letterboxd_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("allowed_hosts", mode="before")
    @classmethod
    def parse_allowed_hosts(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse allowed hosts from string or list."""
        if isinstance(v, str):
            # Handle JSON-like string: ["*"] or ["host1", "host2"]
            v = v.strip()
            if v.startswith("[") and v.endswith("]"):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            # Handle comma-separated string: "*" or "host1,host2"
            return [host.strip() for host in v.split(",") if host.strip()]
        return v

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, env_prefix="DIARYCARD_"
    )


# Global settings instance - will be initialized when needed
settings = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global settings
    settings = Settings()
    return settings
