"""Command-line interface for the property store."""

from .runner import main

__all__ = ["main"]
