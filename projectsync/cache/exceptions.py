"""
Exceptions for the local cache store.
"""


class CacheError(Exception):
    """Base exception for cache operations."""


class CacheNotConfiguredError(CacheError):
    """Raised when the cache storage path has not been configured."""


class CacheStorageError(CacheError):
    """Raised when a filesystem operation on the cache fails."""


class CacheKeyError(CacheError):
    """Raised when a cache key is invalid."""
