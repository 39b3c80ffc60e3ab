"""
Local cache store backed by the filesystem.

Values are kept one file per key under ``<root>/kv/`` and written atomically.
Staged copies of source files live under ``<root>/staged/``, mirroring the
absolute path of the original so the same source always lands on the same
staged path.
"""

import fcntl
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from .exceptions import CacheKeyError, CacheNotConfiguredError, CacheStorageError

logger = logging.getLogger(__name__)

KV_DIR = "kv"
STAGED_DIR = "staged"


@dataclass(frozen=True)
class StagedFile:
    """Correspondence between a source file and its staged copy."""

    original_path: Path
    cached_path: Path


class LocalCacheStore:
    """
    Key/value store and staging area rooted at ``storage_path``.

    The store may be constructed without a root; every operation that needs
    the filesystem then raises ``CacheNotConfiguredError``.
    """

    def __init__(self, storage_path: str | Path | None = None):
        """
        Initialize the cache store.

        Args:
            storage_path: Root directory of the cache. ``None`` leaves the
                store unconfigured.
        """
        self.storage_path: Optional[Path] = (
            Path(storage_path).expanduser().resolve() if storage_path else None
        )
        self._staged: list[Path] = []

    @property
    def is_configured(self) -> bool:
        return self.storage_path is not None

    def _require_root(self) -> Path:
        if self.storage_path is None:
            raise CacheNotConfiguredError("Cache storage path is not set")
        return self.storage_path

    @property
    def staging_dir(self) -> Path:
        return self._require_root() / STAGED_DIR

    def _key_path(self, key: str) -> Path:
        """
        Validate a key and map it to its file under the key/value directory.

        Raises:
            CacheKeyError: If the key is empty or would escape the store
        """
        if not key:
            raise CacheKeyError("Key cannot be empty")

        key = key.replace("\\", "/")
        if key.startswith("/") or ".." in key.split("/"):
            raise CacheKeyError(f"Invalid cache key: {key}")

        kv_root = self._require_root() / KV_DIR
        full_path = (kv_root / key).resolve()
        try:
            full_path.relative_to(kv_root)
        except ValueError:
            raise CacheKeyError(f"Key escapes cache directory: {key}")
        return full_path

    def get(self, key: str) -> Optional[str]:
        """Return the stored value for ``key``, or None when absent."""
        full_path = self._key_path(key)

        if not full_path.is_file():
            return None

        try:
            with open(full_path, "r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    return f.read()
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except OSError as e:
            raise CacheStorageError(f"Failed to read {key}: {e}") from e

    def set(self, key: str, value: str) -> None:
        """
        Store ``value`` under ``key``.

        Uses a temp file and an atomic rename so a reader never observes a
        partially written value.
        """
        full_path = self._key_path(key)

        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                dir=full_path.parent,
                prefix=f".{full_path.name}.",
                suffix=".tmp",
                text=True,
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    fcntl.flock(f.fileno(), fcntl.LOCK_EX)
                    try:
                        f.write(value)
                        f.flush()
                        os.fsync(f.fileno())
                    finally:
                        fcntl.flock(f.fileno(), fcntl.LOCK_UN)

                os.replace(temp_path, full_path)
            except BaseException:
                if os.path.exists(temp_path):
                    os.unlink(temp_path)
                raise
        except OSError as e:
            raise CacheStorageError(f"Failed to write {key}: {e}") from e

        logger.debug(f"Stored cache entry {key} ({len(value)} chars)")

    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""
        full_path = self._key_path(key)
        try:
            full_path.unlink(missing_ok=True)
        except OSError as e:
            raise CacheStorageError(f"Failed to delete {key}: {e}") from e

    def staged_path_for(self, original_path: str | Path, ext: str = ".txt") -> Path:
        """
        Compute the staged location of ``original_path``.

        The absolute source path (without its drive or root) is mirrored under
        the staging directory and ``ext`` is appended to the file name. ``..``
        segments are collapsed first, so every spelling of a path maps to the
        same staged file.

        Raises:
            CacheKeyError: If the staged path would fall outside the staging
                directory
        """
        original = Path(os.path.normpath(Path(original_path).expanduser().absolute()))
        relative_parts = original.parts[1:] if original.anchor else original.parts
        if not relative_parts:
            raise CacheKeyError(f"Cannot stage {original_path}: no file name")

        staging_dir = self.staging_dir
        staged = staging_dir.joinpath(*relative_parts[:-1], original.name + ext)
        try:
            Path(os.path.normpath(staged)).relative_to(staging_dir)
        except ValueError:
            raise CacheKeyError(f"Staged path escapes staging directory: {original_path}")
        return staged

    def stage_files(
        self, paths: Iterable[str | Path], ext: str = ".txt"
    ) -> List[StagedFile]:
        """
        Write a normalized plain-text copy of every path into the staging area.

        Content is decoded as UTF-8 with undecodable bytes replaced and written
        back as UTF-8.

        Args:
            paths: Source files to stage, in order
            ext: Extension appended to each staged file name

        Returns:
            One StagedFile per input path, in input order

        Raises:
            CacheStorageError: If a source cannot be read or the copy written
        """
        staged = []

        for path in paths:
            original = Path(path)
            cached = self.staged_path_for(original, ext)

            try:
                content = original.read_bytes().decode("utf-8", errors="replace")
                cached.parent.mkdir(parents=True, exist_ok=True)
                cached.write_text(content, encoding="utf-8")
            except OSError as e:
                raise CacheStorageError(f"Failed to stage {original}: {e}") from e

            self._staged.append(cached)
            staged.append(StagedFile(original_path=original, cached_path=cached))

        logger.debug(f"Staged {len(staged)} files under {self.staging_dir}")
        return staged

    def clear_staged_files(self) -> None:
        """Remove every file produced by ``stage_files`` since the last clear."""
        for cached in self._staged:
            try:
                cached.unlink(missing_ok=True)
            except OSError as e:
                raise CacheStorageError(f"Failed to remove {cached}: {e}") from e
        self._staged = []

        if self.storage_path is not None and self.staging_dir.exists():
            shutil.rmtree(self.staging_dir)

    def relative_key(self, path: str | Path) -> str:
        """Return ``path`` relative to the cache root, using ``/`` separators."""
        root = self._require_root()
        return Path(path).relative_to(root).as_posix()

    def __repr__(self) -> str:
        return f"LocalCacheStore(path='{self.storage_path}')"
