"""Terrenos PY: property listings mirrored to a GitHub Gist with a local cache."""

__version__ = "0.1.0"
