"""Command line interface for narrator."""

from .main import main

__all__ = ["main"]
