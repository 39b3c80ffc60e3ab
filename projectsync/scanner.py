"""Discover the files of a workspace that should be synced."""

import fnmatch
import logging
import os
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)


def _is_ignored(relative_path: str, ignore_patterns: Iterable[str]) -> bool:
    # Patterns are written against "/"-rooted paths so "**/dist/**" also
    # matches a top-level dist directory.
    candidate = "/" + relative_path
    return any(fnmatch.fnmatch(candidate, pattern) for pattern in ignore_patterns)


def find_files(
    root: Path,
    extensions: Iterable[str],
    ignore_patterns: Iterable[str] = (),
) -> list[Path]:
    """Find files under ``root`` with an allowed extension.

    Args:
        root: Workspace directory to walk
        extensions: Allowed suffixes including the dot (e.g. ".py")
        ignore_patterns: Glob patterns (e.g. "**/node_modules/**") excluding
            files and whole directories

    Returns:
        Sorted absolute paths
    """
    root = Path(root).resolve()
    allowed = {ext.lower() for ext in extensions}
    ignore_patterns = list(ignore_patterns)
    files = []

    if not root.is_dir():
        logger.warning(f"Workspace directory does not exist: {root}")
        return files

    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = Path(dirpath).relative_to(root).as_posix()
        rel_dir = "" if rel_dir == "." else rel_dir + "/"

        dirnames[:] = [
            d for d in dirnames if not _is_ignored(f"{rel_dir}{d}/", ignore_patterns)
        ]

        for filename in filenames:
            if Path(filename).suffix.lower() not in allowed:
                continue
            if _is_ignored(rel_dir + filename, ignore_patterns):
                continue
            files.append(Path(dirpath) / filename)

    files.sort()
    logger.debug(f"Found {len(files)} files under {root}")
    return files
