"""Parser package exports."""

from .html_parser import LinkExtractor

__all__ = [
    "LinkExtractor",
]
