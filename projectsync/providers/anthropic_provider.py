"""Anthropic backend built on the Files API.

Anthropic has no server-side vector store or assistant resources, so both are
kept locally: a store is a named collection whose contents are its identity
map, and an assistant is a small record binding a model to a store. Messages
attach every synced file as a document block.
"""

import json
import logging
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import anthropic
from anthropic import AsyncAnthropic

from projectsync.cache import LocalCacheStore
from projectsync.providers.base import (
    AIProvider,
    Assistant,
    DeltaCallback,
    Message,
    VectorStore,
    emit_delta,
)
from projectsync.providers.exceptions import NotFoundError, ProviderError
from projectsync.providers.prompts import ASSISTANT_INSTRUCTIONS
from projectsync.sync import RemoteFiles, SyncEngine

logger = logging.getLogger(__name__)

FILES_API_BETA = "files-api-2025-04-14"
MAX_TOKENS = 4096


def file_id_map_key(vector_store_id: str) -> str:
    return f"anthropic-file-id-map-{vector_store_id}.json"


def _store_record_key(vector_store_id: str) -> str:
    return f"anthropic-vector-store-{vector_store_id}.json"


def _assistant_record_key(assistant_id: str) -> str:
    return f"anthropic-assistant-{assistant_id}.json"


def _slugify(name: str) -> str:
    slug = re.sub(r"[^a-zA-Z0-9]+", "-", name).strip("-").lower()
    return slug or "workspace"


class AnthropicFiles(RemoteFiles):
    """File operations against the Anthropic Files API."""

    def __init__(self, client: AsyncAnthropic):
        self.client = client

    async def upload(self, path: Path) -> str:
        file = await self.client.beta.files.upload(
            file=(path.name, path.read_bytes(), "text/plain"),
            betas=[FILES_API_BETA],
        )
        return file.id

    async def delete(self, file_id: str) -> None:
        await self.client.beta.files.delete(file_id, betas=[FILES_API_BETA])

    async def attach(self, file_id: str) -> None:
        # Uploaded files are usable immediately
        logger.debug(f"File {file_id} ready")


class AnthropicAssistant(Assistant):
    """Assistant answering from the files of a local store."""

    def __init__(
        self,
        id: str,
        client: AsyncAnthropic,
        model: str,
        vector_store: Optional[VectorStore] = None,
    ):
        self.id = id
        self.client = client
        self.model = model
        self.vector_store = vector_store
        self.history: list[dict] = []

    def new_thread(self) -> None:
        self.history = []

    def _build_messages(self, content: str) -> list[dict]:
        documents = []
        if self.vector_store:
            documents = [
                {"type": "document", "source": {"type": "file", "file_id": file_id}}
                for file_id in self.vector_store.file_ids()
            ]

        user_message = {
            "role": "user",
            "content": [*documents, {"type": "text", "text": content}],
        }
        return [*self.history, user_message]

    async def send_message(
        self, content: str, on_delta: Optional[DeltaCallback] = None
    ) -> Message:
        messages = self._build_messages(content)

        try:
            async with self.client.beta.messages.stream(
                model=self.model,
                max_tokens=MAX_TOKENS,
                system=ASSISTANT_INSTRUCTIONS,
                messages=messages,
                betas=[FILES_API_BETA],
            ) as stream:
                async for text in stream.text_stream:
                    await emit_delta(on_delta, text)

                final = await stream.get_final_message()

        except anthropic.APIError as e:
            logger.error(f"Assistant {self.id} failed to answer: {e}")
            raise ProviderError(f"Anthropic request failed: {e}") from e

        text = "".join(block.text for block in final.content if block.type == "text")

        self.history.append({"role": "user", "content": content})
        self.history.append({"role": "assistant", "content": text})

        return Message(id=final.id, role=final.role, content=text)


class AnthropicProvider(AIProvider):
    """Provider keeping stores and assistants as records in the cache."""

    def __init__(
        self,
        client: AsyncAnthropic,
        cache: LocalCacheStore,
        model: str = "claude-sonnet-4-5",
    ):
        """Initialize the provider.

        Args:
            client: Async Anthropic client
            cache: Local cache store holding records, identity maps and staged files
            model: Model used for new assistants
        """
        self.client = client
        self.cache = cache
        self.model = model

    def _vector_store(self, vector_store_id: str) -> VectorStore:
        engine = SyncEngine(
            cache=self.cache,
            remote=AnthropicFiles(self.client),
            id_map_key=file_id_map_key(vector_store_id),
        )
        return VectorStore(vector_store_id, engine)

    def _read_record(self, key: str, kind: str, id: str) -> dict:
        text = self.cache.get(key)
        if text is None:
            raise NotFoundError(f"{kind} not found: {id}")
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ProviderError(f"Corrupt {kind.lower()} record {id}: {e}") from e

    async def create_vector_store(self, name: str) -> VectorStore:
        vector_store_id = f"{_slugify(name)}-vector-store"
        record = {
            "name": name,
            "createdAt": datetime.now(timezone.utc).isoformat(),
        }
        self.cache.set(_store_record_key(vector_store_id), json.dumps(record))

        logger.info(f"Created vector store {vector_store_id} for {name}")
        return self._vector_store(vector_store_id)

    async def retrieve_vector_store(self, id: str) -> VectorStore:
        self._read_record(_store_record_key(id), "Vector store", id)
        return self._vector_store(id)

    async def create_assistant(
        self, vector_store: Optional[VectorStore] = None
    ) -> Assistant:
        assistant_id = f"asst_{uuid.uuid4().hex}"
        record = {
            "model": self.model,
            "vectorStoreId": vector_store.id if vector_store else None,
        }
        self.cache.set(_assistant_record_key(assistant_id), json.dumps(record))

        logger.info(f"Created assistant {assistant_id}")
        return AnthropicAssistant(assistant_id, self.client, self.model, vector_store)

    async def retrieve_assistant(self, id: str) -> Assistant:
        record = self._read_record(_assistant_record_key(id), "Assistant", id)

        vector_store = None
        if record.get("vectorStoreId"):
            vector_store = await self.retrieve_vector_store(record["vectorStoreId"])

        return AnthropicAssistant(
            id, self.client, record.get("model", self.model), vector_store
        )
