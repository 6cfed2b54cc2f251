"""
API Module
==========

FastAPI application exposing the HTML, SVG and PNG card endpoints.
"""
