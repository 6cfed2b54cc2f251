"""
Data Models
===========

Pydantic models for diary entries, feed items and API responses.
"""
