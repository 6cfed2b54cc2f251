"""
Pipeline Errors
===============

Typed errors raised by the card pipeline stages. They propagate unchanged to
the HTTP boundary, which logs them once and answers with a 500.
"""


class DiaryCardError(Exception):
    """Base class for every pipeline failure."""

    pass


class FetchError(DiaryCardError):
    """Raised when a remote document cannot be fetched or parsed."""

    pass


class TemplateError(DiaryCardError):
    """Raised when the page template is unreadable or has no content marker."""

    pass


class RenderError(DiaryCardError):
    """Raised when asset inlining or minification fails."""

    pass


class ImageError(DiaryCardError):
    """Raised when SVG or PNG generation fails."""

    pass
