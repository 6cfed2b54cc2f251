"""
Test Suite
==========

Test suite matching the diarycard/ package structure.

Test Categories:
- unit: Unit tests for individual components
- integration: API contracts and end-to-end pipeline runs without network access
"""
