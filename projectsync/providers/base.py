"""Provider-agnostic interfaces for vector stores and assistants.

A provider adapts one backend's SDK to these contracts. Vector stores share a
single implementation and differ only in the ``RemoteFiles`` strategy handed to
their sync engine; assistants are implemented per backend.
"""

import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Iterable, Optional, Union

from projectsync.sync import SyncEngine, SyncResult
from projectsync.sync.engine import ProgressCallback

DeltaCallback = Callable[[str], Union[None, Awaitable[None]]]


@dataclass
class Message:
    """A chat message returned by an assistant."""

    id: str
    role: str
    content: str


class VectorStore:
    """A remote store kept in sync with local files."""

    def __init__(self, id: str, engine: SyncEngine):
        self.id = id
        self.engine = engine

    async def synchronize(
        self,
        file_paths: Iterable[Union[str, Path]],
        progress: Optional[ProgressCallback] = None,
    ) -> SyncResult:
        """Reconcile the store with ``file_paths``. See ``SyncEngine.synchronize``."""
        return await self.engine.synchronize(file_paths, progress)

    def file_ids(self) -> list[str]:
        """Remote IDs of the files the identity map says the store holds."""
        return self.engine.load_identity_map().file_ids()

    def __repr__(self) -> str:
        return f"VectorStore(id='{self.id}')"


class Assistant(ABC):
    """Abstract interface for a conversational agent bound to a store."""

    id: str

    @abstractmethod
    async def send_message(
        self, content: str, on_delta: Optional[DeltaCallback] = None
    ) -> Message:
        """Send a user message and wait for the complete reply.

        Args:
            content: User message text
            on_delta: Optional callback receiving text fragments in the order
                the backend emits them

        Returns:
            The final assembled assistant message

        Raises:
            ProviderError: If the backend fails
        """

    @abstractmethod
    def new_thread(self) -> None:
        """Forget the current conversation; the next message starts a new one."""


class AIProvider(ABC):
    """Abstract interface for creating and retrieving stores and assistants."""

    @abstractmethod
    async def create_vector_store(self, name: str) -> VectorStore:
        """Create a new remote store for ``name``."""

    @abstractmethod
    async def retrieve_vector_store(self, id: str) -> VectorStore:
        """Look up an existing store.

        Raises:
            NotFoundError: If the store does not exist
        """

    @abstractmethod
    async def create_assistant(
        self, vector_store: Optional[VectorStore] = None
    ) -> Assistant:
        """Create an assistant, optionally searching ``vector_store``."""

    @abstractmethod
    async def retrieve_assistant(self, id: str) -> Assistant:
        """Look up an existing assistant.

        Raises:
            NotFoundError: If the assistant does not exist
        """


async def emit_delta(on_delta: Optional[DeltaCallback], text: str) -> None:
    if on_delta is None or not text:
        return
    outcome = on_delta(text)
    if inspect.isawaitable(outcome):
        await outcome
