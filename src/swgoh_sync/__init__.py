"""Staleness-aware cache of scraped player profiles."""

__version__ = "0.1.0"
