"""Narrated video rendering from web page text."""

__version__ = "0.1.0"
