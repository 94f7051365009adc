"""
Schema caching package.

Generated schemas are kept in process memory for the lifetime of the
service. Entries are never evicted or expired.
"""

from .result_cache import ReadWriteLock, ResultCache

__all__ = ["ReadWriteLock", "ResultCache"]
