"""Remote file operations consumed by the sync engine."""

from abc import ABC, abstractmethod
from pathlib import Path


class RemoteFiles(ABC):
    """Abstract interface for the file operations of one remote store.

    Every method is an independent asynchronous call that may fail on its own.
    """

    @abstractmethod
    async def upload(self, path: Path) -> str:
        """Upload a file and return its remote file ID."""

    @abstractmethod
    async def delete(self, file_id: str) -> None:
        """Delete a remote file by ID."""

    @abstractmethod
    async def attach(self, file_id: str) -> None:
        """Add an uploaded file to the store and wait until it is usable.

        Raises:
            Exception: If the store fails to index the file
        """
