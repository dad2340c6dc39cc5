"""
ZPL Render Service
==================

An HTTP service that converts ZPL label markup into PNG images.

This package provides:
- FastAPI REST endpoints for HTTP access
- A ZPL parser producing label document models
- A Pillow-based rasterizer producing PNG output
- The request pipeline tying validation, parsing and rendering together
"""

__version__ = "1.0.0"
__author__ = "ZPL Render Team"
