"""
Diary Sources
=============

Fetchers and normalizers for the two diary representations.

Components:
- fetcher: HTTP access to the profile page, RSS feed and poster previews
- normalizer: Conversion of either source into DiaryEntry records
"""
