"""
Adapters package for the Schema Service.

Contains the HTTP client for the upstream values origin. Adapters map
transport and status failures onto shared errors and keep no state beyond
their connection pool.
"""

from .values_fetcher import ValuesFetcher

__all__ = ["ValuesFetcher"]
