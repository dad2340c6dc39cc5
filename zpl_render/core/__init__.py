"""
Core Business Logic
==================

Core business logic modules for ZPL processing and PNG generation.

Modules:
- zpl: ZPL tokenizing and parsing into label documents
- rendering: rasterization of label documents into PNG images
- pipeline: the per-request render pipeline and its failure kinds
"""
