"""
Local cache store.

Durable key/value storage and staging of upload-ready file copies,
scoped to a single cache root directory.
"""

from .exceptions import (
    CacheError,
    CacheKeyError,
    CacheNotConfiguredError,
    CacheStorageError,
)
from .storage import LocalCacheStore, StagedFile

__all__ = [
    "LocalCacheStore",
    "StagedFile",
    "CacheError",
    "CacheKeyError",
    "CacheNotConfiguredError",
    "CacheStorageError",
]
