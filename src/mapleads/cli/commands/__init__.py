"""CLI command modules."""

from . import businesses, scraper

__all__ = [
    "businesses",
    "scraper",
]
