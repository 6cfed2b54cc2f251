"""
Rendering Module
===============

HTML generation and image creation.

Components:
- html_generator: Render diary entries into the page template
- postprocess: Asset inlining and minification
- svg_generator: Vector card generation with an embedded font
- png_generator: Browser automation for PNG rasterization
- templates: HTML, entry and SVG templates
"""
