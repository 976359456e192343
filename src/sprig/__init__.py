"""Sprig: lexer and parser for the Sprig language."""

__version__ = "0.1.0"
