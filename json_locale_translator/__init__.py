"""Translate nested JSON localization files through a remote translation API."""

__version__ = "0.1.0"
