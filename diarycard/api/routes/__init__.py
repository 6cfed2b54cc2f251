"""
API Routes
==========

Route modules for card rendering and health checks.
"""
