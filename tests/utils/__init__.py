"""
Test Utilities
==============

Assertion helpers and capability fakes.
"""
