"""
HTML Generator
==============

Render normalized diary entries into markup and splice them into the static
page template.
"""

from typing import Any, Iterable, Optional
from pathlib import Path
import jinja2

from diarycard.config.logging import get_logger
from diarycard.config.settings import Settings, get_settings
from diarycard.core.exceptions import TemplateError
from diarycard.models.schemas import DiaryEntry

logger = get_logger(__name__)

CONTENT_MARKER = "<!-- content -->"


class DiaryMarkupRenderer:
    """Jinja2-based renderer for diary entry fragments."""

    def __init__(self, settings: Optional[Settings] = None, template_path: Optional[Path] = None):
        self.settings = settings or get_settings()
        self.template_path = Path(template_path or self.settings.template_path)
        self.logger: Any = logger.bind(component="markup_renderer")  # structlog.BoundLoggerBase
        self._setup_jinja2_environment()

    def _setup_jinja2_environment(self) -> None:
        """Setup Jinja2 template environment."""
        template_dir = Path(__file__).parent / "templates"
        self.env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            autoescape=jinja2.select_autoescape(["html", "xml"]),
            enable_async=True,
        )

    @property
    def asset_dir(self) -> Path:
        """Directory relative template assets are resolved against."""
        return self.template_path.parent

    async def render_entries(self, entries: Iterable[DiaryEntry]) -> str:
        """Render each entry into a movie block and concatenate them."""
        template = self.env.get_template("entry.html")
        blocks = [await template.render_async(entry=entry) for entry in entries]
        return "".join(blocks)

    def apply_body(self, body: str) -> str:
        """
        Splice rendered entries into the page template.

        Raises:
            TemplateError: If the template cannot be read or lacks the content marker
        """
        try:
            document = self.template_path.read_text(encoding="utf-8")
        except OSError as e:
            raise TemplateError(f"Failed to read template {self.template_path}: {e}") from e

        if CONTENT_MARKER not in document:
            raise TemplateError(f"Template {self.template_path} has no {CONTENT_MARKER} marker")

        return document.replace(CONTENT_MARKER, body, 1)

    async def render(self, entries: Iterable[DiaryEntry]) -> str:
        """Render entries into the complete page."""
        entries = list(entries)
        page = self.apply_body(await self.render_entries(entries))
        self.logger.info("Page rendered", entries=len(entries), html_length=len(page))
        return page
