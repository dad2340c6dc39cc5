"""
Test Data
=========

Sample ZPL payloads for tests.
"""
