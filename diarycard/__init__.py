"""
Letterboxd Diary Card
=====================

Render a Letterboxd member's recent diary activity into an HTML fragment,
an SVG card and a PNG image, served over HTTP.

This package provides:
- Source fetchers for the diary page and the RSS feed
- Normalization of both sources into a common diary entry shape
- HTML rendering, asset inlining and minification
- SVG card generation and Playwright-based rasterization
- FastAPI endpoints with caching headers
"""

__version__ = "1.0.0"
__author__ = "Diary Card Team"
