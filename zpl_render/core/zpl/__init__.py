"""
ZPL Processing Module
=====================

ZPL label markup parsing.

Components:
- parser: tokenizer, label assembly and the parser capability interface
"""
