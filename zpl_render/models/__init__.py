"""
Data Models
===========

Pydantic data models for request/response validation and internal data structures.

Models:
- schemas: label document models, render pipeline values and API responses
"""
