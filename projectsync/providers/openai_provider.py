"""OpenAI backend: vector stores and assistants via the OpenAI API."""

import logging
from pathlib import Path
from typing import Optional

import openai
from openai import AsyncOpenAI

from projectsync.cache import LocalCacheStore
from projectsync.providers.base import (
    AIProvider,
    Assistant,
    DeltaCallback,
    Message,
    VectorStore,
    emit_delta,
)
from projectsync.providers.exceptions import IndexingError, NotFoundError, ProviderError
from projectsync.providers.prompts import (
    ASSISTANT_DESCRIPTION,
    ASSISTANT_INSTRUCTIONS,
    ASSISTANT_NAME,
)
from projectsync.sync import RemoteFiles, SyncEngine

logger = logging.getLogger(__name__)

STORE_EXPIRY_DAYS = 7


def file_id_map_key(vector_store_id: str) -> str:
    return f"openai-file-id-map-{vector_store_id}.json"


class OpenAIFiles(RemoteFiles):
    """File operations against one OpenAI vector store."""

    def __init__(self, client: AsyncOpenAI, vector_store_id: str):
        self.client = client
        self.vector_store_id = vector_store_id

    async def upload(self, path: Path) -> str:
        file = await self.client.files.create(
            file=(path.name, path.read_bytes()),
            purpose="assistants",
        )
        return file.id

    async def delete(self, file_id: str) -> None:
        await self.client.files.delete(file_id)

    async def attach(self, file_id: str) -> None:
        """Add the file to the store and poll until indexing finishes."""
        vector_store_file = await self.client.vector_stores.files.create_and_poll(
            vector_store_id=self.vector_store_id,
            file_id=file_id,
        )

        if vector_store_file.status != "completed":
            reason = (
                vector_store_file.last_error.message
                if vector_store_file.last_error
                else "no error reported"
            )
            raise IndexingError(
                f"Indexing of {file_id} ended with status "
                f"{vector_store_file.status}: {reason}",
                file_id=file_id,
                status=vector_store_file.status,
            )


class OpenAIAssistant(Assistant):
    """Assistant backed by an OpenAI assistant and a conversation thread."""

    def __init__(self, id: str, client: AsyncOpenAI):
        self.id = id
        self.client = client
        self.thread_id: Optional[str] = None

    def new_thread(self) -> None:
        self.thread_id = None

    async def send_message(
        self, content: str, on_delta: Optional[DeltaCallback] = None
    ) -> Message:
        try:
            if self.thread_id is None:
                thread = await self.client.beta.threads.create()
                self.thread_id = thread.id
                logger.debug(f"Started thread {self.thread_id}")

            await self.client.beta.threads.messages.create(
                thread_id=self.thread_id,
                role="user",
                content=content,
            )

            fragments = []
            async with self.client.beta.threads.runs.stream(
                thread_id=self.thread_id,
                assistant_id=self.id,
            ) as stream:
                async for text in stream.text_deltas:
                    fragments.append(text)
                    await emit_delta(on_delta, text)

                final_messages = await stream.get_final_messages()

        except openai.OpenAIError as e:
            logger.error(f"Assistant {self.id} failed to answer: {e}")
            raise ProviderError(f"OpenAI request failed: {e}") from e

        if not final_messages:
            return Message(id="", role="assistant", content="".join(fragments))

        final = final_messages[-1]
        text = "".join(
            block.text.value for block in final.content if block.type == "text"
        )
        return Message(id=final.id, role=final.role, content=text)


class OpenAIProvider(AIProvider):
    """Provider adapting the OpenAI vector store and assistants APIs."""

    def __init__(
        self,
        client: AsyncOpenAI,
        cache: LocalCacheStore,
        model: str = "gpt-4o",
    ):
        """Initialize the provider.

        Args:
            client: Async OpenAI client
            cache: Local cache store holding identity maps and staged files
            model: Model used for new assistants
        """
        self.client = client
        self.cache = cache
        self.model = model

    def _vector_store(self, vector_store_id: str) -> VectorStore:
        engine = SyncEngine(
            cache=self.cache,
            remote=OpenAIFiles(self.client, vector_store_id),
            id_map_key=file_id_map_key(vector_store_id),
        )
        return VectorStore(vector_store_id, engine)

    async def create_vector_store(self, name: str) -> VectorStore:
        try:
            vector_store = await self.client.vector_stores.create(
                name=f"{name}-vector-store",
                expires_after={
                    "anchor": "last_active_at",
                    "days": STORE_EXPIRY_DAYS,
                },
            )
        except openai.OpenAIError as e:
            raise ProviderError(f"Failed to create vector store {name}: {e}") from e

        logger.info(f"Created vector store {vector_store.id} for {name}")
        return self._vector_store(vector_store.id)

    async def retrieve_vector_store(self, id: str) -> VectorStore:
        try:
            vector_store = await self.client.vector_stores.retrieve(id)
        except openai.NotFoundError as e:
            raise NotFoundError(f"Vector store not found: {id}") from e
        except openai.OpenAIError as e:
            raise ProviderError(f"Failed to retrieve vector store {id}: {e}") from e

        return self._vector_store(vector_store.id)

    async def create_assistant(
        self, vector_store: Optional[VectorStore] = None
    ) -> Assistant:
        params = {
            "name": ASSISTANT_NAME,
            "description": ASSISTANT_DESCRIPTION,
            "instructions": ASSISTANT_INSTRUCTIONS,
            "model": self.model,
            "tools": [{"type": "file_search"}],
            "temperature": 0.2,
        }

        if vector_store:
            params["tool_resources"] = {
                "file_search": {"vector_store_ids": [vector_store.id]}
            }

        try:
            assistant = await self.client.beta.assistants.create(**params)
        except openai.OpenAIError as e:
            raise ProviderError(f"Failed to create assistant: {e}") from e

        logger.info(f"Created assistant {assistant.id}")
        return OpenAIAssistant(assistant.id, self.client)

    async def retrieve_assistant(self, id: str) -> Assistant:
        try:
            assistant = await self.client.beta.assistants.retrieve(id)
        except openai.NotFoundError as e:
            raise NotFoundError(f"Assistant not found: {id}") from e
        except openai.OpenAIError as e:
            raise ProviderError(f"Failed to retrieve assistant {id}: {e}") from e

        return OpenAIAssistant(assistant.id, self.client)
