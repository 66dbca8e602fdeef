"""Fictional school website generator service."""

__version__ = "0.1.0"
