"""File synchronization between a local project and a remote vector store.

This module provides:
- SyncEngine: Incremental reconciliation of local files with a remote store
- IdentityMap: Persisted mapping of staged files to remote file IDs
- RemoteFiles: Interface for the remote file operations the engine consumes
"""

from projectsync.sync.engine import SyncEngine, SyncResult
from projectsync.sync.identity_map import FileRecord, IdentityMap
from projectsync.sync.remote import RemoteFiles

__all__ = [
    "SyncEngine",
    "SyncResult",
    "IdentityMap",
    "FileRecord",
    "RemoteFiles",
]
