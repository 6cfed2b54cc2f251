"""
Test Utilities
==============

Stub collaborators shared by unit and integration tests.
"""
