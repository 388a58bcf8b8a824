"""Command-line interface for planmap."""

__version__ = "0.1.0"
