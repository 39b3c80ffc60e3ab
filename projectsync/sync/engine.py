"""Incremental synchronization of local files into a remote vector store.

One pass reconciles a list of local files against the identity map persisted in
the local cache store:

- files never uploaded, or modified since their last upload, are uploaded
  (replacing the previous remote copy);
- files unchanged since their last upload are skipped;
- files in the identity map but missing from the input are deleted remotely.

Per-file failures are logged and absorbed so one bad file cannot stall the
rest of the pass. Only a missing cache root aborts a pass.
"""

import inspect
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Awaitable, Callable, Iterable, Optional, Union

from projectsync.cache import (
    CacheNotConfiguredError,
    CacheStorageError,
    LocalCacheStore,
    StagedFile,
)
from projectsync.sync.identity_map import FileRecord, IdentityMap
from projectsync.sync.remote import RemoteFiles

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], Union[None, Awaitable[None]]]

# Share of the progress range spent on per-file work; the rest is reserved
# for deletion reconciliation, persistence and cleanup.
FILE_PROGRESS_SHARE = 98


@dataclass
class SyncResult:
    """Summary of one sync pass, keyed by identity map path."""

    uploaded: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    duration: float = 0.0

    @property
    def total(self) -> int:
        """Get total number of files handled."""
        return (
            len(self.uploaded)
            + len(self.skipped)
            + len(self.deleted)
            + len(self.failed)
        )

    @property
    def success(self) -> bool:
        return not self.failed


class SyncEngine:
    """Reconcile local files with one remote store.

    Passes are strictly sequential: each file's delete/upload/indexing sequence
    completes before the next file starts. Callers must not run two passes
    against the same cache root at once.
    """

    def __init__(
        self,
        cache: LocalCacheStore,
        remote: RemoteFiles,
        id_map_key: str,
        ext: str = ".txt",
    ):
        """Initialize sync engine.

        Args:
            cache: Local cache store holding the identity map and staging area
            remote: Remote file operations of the target store
            id_map_key: Cache key of the persisted identity map
            ext: Extension given to staged files
        """
        self.cache = cache
        self.remote = remote
        self.id_map_key = id_map_key
        self.ext = ext

    def load_identity_map(self) -> IdentityMap:
        return IdentityMap.load(self.cache, self.id_map_key)

    async def synchronize(
        self,
        file_paths: Iterable[Union[str, Path]],
        progress: Optional[ProgressCallback] = None,
    ) -> SyncResult:
        """Run one sync pass over ``file_paths``.

        Args:
            file_paths: Absolute local paths, in the order they should be processed
            progress: Optional callback receiving non-decreasing percentages
                from 0 to 100; may be a coroutine function

        Returns:
            SyncResult summarizing the pass

        Raises:
            CacheNotConfiguredError: If the cache store has no storage path
        """
        if not self.cache.is_configured:
            raise CacheNotConfiguredError("Storage path is not set")

        start_time = time.time()
        result = SyncResult()

        await _report(progress, 0)

        identity_map = self.load_identity_map()

        try:
            staged, present = self._stage(file_paths, result)

            if staged:
                increment = FILE_PROGRESS_SHARE / len(staged)
                for i, staged_file in enumerate(staged):
                    await _report(progress, round(i * increment))
                    await self._sync_file(staged_file, identity_map, result)
                await _report(progress, 99)
            else:
                await _report(progress, FILE_PROGRESS_SHARE)

            await self._remove_missing(identity_map, present, result)

            identity_map.save(self.cache, self.id_map_key)
        finally:
            self.cache.clear_staged_files()

        result.duration = time.time() - start_time
        await _report(progress, 100)

        logger.info(
            f"Sync finished in {result.duration:.1f}s: "
            f"{len(result.uploaded)} uploaded, {len(result.skipped)} skipped, "
            f"{len(result.deleted)} deleted, {len(result.failed)} failed"
        )
        return result

    def _stage(
        self, file_paths: Iterable[Union[str, Path]], result: SyncResult
    ) -> tuple[list[StagedFile], set[str]]:
        """Stage every input file.

        Returns the staged files plus the identity map keys of every input,
        including inputs that could not be staged, so their entries survive
        the deletion pass and are retried next time.
        """
        staged = []
        present = set()

        for path in file_paths:
            key = self.cache.relative_key(self.cache.staged_path_for(path, self.ext))
            present.add(key)
            try:
                staged.extend(self.cache.stage_files([path], ext=self.ext))
            except CacheStorageError as e:
                logger.error(f"Failed to stage file {path}: {e}")
                result.failed.append(key)

        return staged, present

    async def _sync_file(
        self,
        staged_file: StagedFile,
        identity_map: IdentityMap,
        result: SyncResult,
    ) -> None:
        """Upload one staged file unless its identity map entry is current."""
        key = self.cache.relative_key(staged_file.cached_path)
        record = identity_map.get(key)

        try:
            stat_info = staged_file.original_path.stat()
            modified_at = datetime.fromtimestamp(stat_info.st_mtime, tz=timezone.utc)

            if record and modified_at <= record.created_at:
                logger.debug(f"Skipping unchanged file {staged_file.original_path}")
                result.skipped.append(key)
                return

            if record:
                await self._delete_remote(record.file_id, key)

            file_id = await self.remote.upload(staged_file.cached_path)
            try:
                await self.remote.attach(file_id)
            except Exception:
                await self._delete_remote(file_id, key)
                raise

            identity_map.set(key, FileRecord(file_id=file_id, created_at=modified_at))
            result.uploaded.append(key)
            logger.debug(f"Uploaded {staged_file.original_path} as {file_id}")

        except Exception as e:
            logger.error(f"Failed to upload file {staged_file.original_path}: {e}")
            result.failed.append(key)

    async def _remove_missing(
        self, identity_map: IdentityMap, present: set[str], result: SyncResult
    ) -> None:
        """Delete remote files whose source is no longer in the input set.

        Entries are dropped even when the remote delete fails; the remote copy
        may already be gone and retrying forever would not help.
        """
        for key in identity_map.keys():
            if key in present:
                continue

            record = identity_map.remove(key)
            await self._delete_remote(record.file_id, key)
            result.deleted.append(key)

    async def _delete_remote(self, file_id: str, key: str) -> bool:
        """Best-effort delete of a remote file."""
        try:
            await self.remote.delete(file_id)
            return True
        except Exception as e:
            logger.warning(f"Failed to delete remote file {file_id} ({key}): {e}")
            return False


async def _report(progress: Optional[ProgressCallback], percent: int) -> None:
    if progress is None:
        return
    outcome = progress(percent)
    if inspect.isawaitable(outcome):
        await outcome
