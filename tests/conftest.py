"""Shared fixtures for projectsync tests."""

from pathlib import Path
from tempfile import TemporaryDirectory

import pytest

from projectsync.cache import LocalCacheStore
from projectsync.sync import RemoteFiles


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def cache(temp_dir):
    """Create a LocalCacheStore rooted in a temporary directory."""
    return LocalCacheStore(temp_dir / "cache")


@pytest.fixture
def project_dir(temp_dir):
    """Create an empty project directory."""
    path = temp_dir / "project"
    path.mkdir()
    return path


class FakeRemoteFiles(RemoteFiles):
    """In-memory remote store recording every call.

    Uploads of paths whose name contains any of ``fail_uploads`` raise, as do
    deletes of IDs in ``fail_deletes`` and attaches of IDs in ``fail_attaches``.
    """

    def __init__(self):
        self.files: dict[str, str] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_uploads: set[str] = set()
        self.fail_deletes: set[str] = set()
        self.fail_attaches: set[str] = set()
        self._next_id = 0

    async def upload(self, path: Path) -> str:
        self.calls.append(("upload", path.name))
        if any(name in path.name for name in self.fail_uploads):
            raise RuntimeError(f"upload rejected: {path.name}")
        self._next_id += 1
        file_id = f"file-{self._next_id}"
        self.files[file_id] = path.read_text(encoding="utf-8")
        return file_id

    async def delete(self, file_id: str) -> None:
        self.calls.append(("delete", file_id))
        if file_id in self.fail_deletes:
            raise RuntimeError(f"delete rejected: {file_id}")
        self.files.pop(file_id, None)

    async def attach(self, file_id: str) -> None:
        self.calls.append(("attach", file_id))
        if file_id in self.fail_attaches:
            raise RuntimeError(f"indexing failed: {file_id}")

    def calls_of(self, kind: str) -> list[str]:
        return [arg for call, arg in self.calls if call == kind]


@pytest.fixture
def remote():
    return FakeRemoteFiles()
