"""
Test Suite
==========

Test suite matching the zpl_render/ package structure.

Test Categories:
- unit: Unit tests for individual components
- integration: HTTP surface tests through the ASGI app
"""
