"""
Rendering Module
===============

Rasterization of parsed labels.

Components:
- png_generator: Pillow drawing of label fields and PNG encoding
"""
