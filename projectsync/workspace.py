"""Bind a local workspace to its remote store and assistant.

The IDs of the store and assistant created for a workspace are remembered in
the workspace settings so every run reuses them. A remembered ID that no longer
exists remotely (e.g. an expired store) is replaced by a fresh one.
"""

import logging
from pathlib import Path
from typing import Optional

from projectsync.config import SyncConfig, WorkspaceSettings
from projectsync.providers import AIProvider, Assistant, NotFoundError, VectorStore
from projectsync.scanner import find_files
from projectsync.sync import SyncResult
from projectsync.sync.engine import ProgressCallback

logger = logging.getLogger(__name__)


async def open_vector_store(
    provider: AIProvider, provider_name: str, settings: WorkspaceSettings
) -> VectorStore:
    """Retrieve the workspace store, creating and recording one if needed."""
    store_id = settings.vector_store_id(provider_name)
    if store_id:
        try:
            return await provider.retrieve_vector_store(store_id)
        except NotFoundError:
            logger.warning(f"Vector store {store_id} no longer exists, creating a new one")

    vector_store = await provider.create_vector_store(settings.name)
    settings.set_vector_store_id(provider_name, vector_store.id)
    settings.save()
    return vector_store


async def open_assistant(
    provider: AIProvider,
    provider_name: str,
    settings: WorkspaceSettings,
    vector_store: Optional[VectorStore] = None,
) -> Assistant:
    """Retrieve the workspace assistant, creating and recording one if needed.

    A recorded assistant is only reused while it is bound to ``vector_store``;
    after the store has been replaced a new assistant is created for it.
    """
    assistant_id = settings.assistant_id(provider_name)
    store_id = vector_store.id if vector_store else None
    bound_store_id = settings.assistant_vector_store_id(provider_name)

    if assistant_id and bound_store_id != store_id:
        logger.info(
            f"Assistant {assistant_id} is bound to vector store {bound_store_id}, "
            f"creating a new one for {store_id}"
        )
    elif assistant_id:
        try:
            return await provider.retrieve_assistant(assistant_id)
        except NotFoundError:
            logger.warning(f"Assistant {assistant_id} no longer exists, creating a new one")

    assistant = await provider.create_assistant(vector_store)
    settings.set_assistant_id(provider_name, assistant.id, store_id)
    settings.save()
    return assistant


async def sync_workspace(
    workspace_dir: Path,
    provider: AIProvider,
    config: SyncConfig,
    progress: Optional[ProgressCallback] = None,
) -> SyncResult:
    """Scan ``workspace_dir`` and synchronize it with its vector store."""
    settings = WorkspaceSettings(workspace_dir).load()
    vector_store = await open_vector_store(provider, config.provider, settings)

    file_paths = find_files(workspace_dir, config.extensions, config.ignore_patterns)
    logger.info(
        f"Syncing {len(file_paths)} files from {settings.name} "
        f"into vector store {vector_store.id}"
    )
    return await vector_store.synchronize(file_paths, progress)
