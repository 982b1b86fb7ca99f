"""Fetchers package for retrieving portfolio content from the backend."""

from .content_fetcher import ContentFetcher

__all__ = [
    'ContentFetcher'
]
