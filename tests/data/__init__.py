"""
Test Data Package
================

Captured-style Letterboxd documents used to exercise the pipeline offline.
"""

from .sample_diary_documents import (
    BASE_URL,
    POSTER_BYTES,
    diary_row,
    diary_page,
    poster_fragment,
    rss_item,
    rss_feed,
    ANATOMY_OF_A_FALL_FEED,
    EMPTY_DIARY_PAGE,
)
