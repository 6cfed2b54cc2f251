"""
Core Business Logic
==================

Core business logic modules for turning diary activity into cards.

Modules:
- sources: Fetching and normalizing the diary page and RSS feed
- rendering: HTML generation, post-processing, SVG and PNG creation
- pipeline: Orchestration of the stages above
"""
