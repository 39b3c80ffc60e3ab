"""Tests for binding workspaces to stores and assistants."""

from unittest.mock import AsyncMock, Mock

import pytest

from projectsync.config import SyncConfig, WorkspaceSettings
from projectsync.providers import (
    NotFoundError,
    ProviderError,
    VectorStore,
    create_provider,
)
from projectsync.providers.anthropic_provider import AnthropicProvider
from projectsync.providers.openai_provider import OpenAIProvider
from projectsync.sync import SyncEngine
from projectsync.workspace import open_assistant, open_vector_store, sync_workspace


@pytest.fixture
def store(cache, remote):
    return VectorStore("vs_1", SyncEngine(cache, remote, "vs_1-map.json"))


@pytest.fixture
def provider(store):
    provider = Mock()
    provider.create_vector_store = AsyncMock(return_value=store)
    provider.retrieve_vector_store = AsyncMock(return_value=store)
    provider.create_assistant = AsyncMock(return_value=Mock(id="asst_new"))
    provider.retrieve_assistant = AsyncMock(return_value=Mock(id="asst_old"))
    return provider


class TestOpenVectorStore:
    """Tests for open_vector_store."""

    @pytest.mark.asyncio
    async def test_creates_and_records_store(self, provider, project_dir):
        settings = WorkspaceSettings(project_dir)

        store = await open_vector_store(provider, "openai", settings)

        assert store.id == "vs_1"
        provider.create_vector_store.assert_awaited_once_with("project")
        assert WorkspaceSettings(project_dir).load().vector_store_id("openai") == "vs_1"

    @pytest.mark.asyncio
    async def test_reuses_recorded_store(self, provider, project_dir):
        settings = WorkspaceSettings(project_dir)
        settings.set_vector_store_id("openai", "vs_1")

        await open_vector_store(provider, "openai", settings)

        provider.retrieve_vector_store.assert_awaited_once_with("vs_1")
        provider.create_vector_store.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_replaces_missing_store(self, provider, project_dir):
        provider.retrieve_vector_store.side_effect = NotFoundError("expired")
        settings = WorkspaceSettings(project_dir)
        settings.set_vector_store_id("openai", "vs_expired")

        store = await open_vector_store(provider, "openai", settings)

        assert store.id == "vs_1"
        assert settings.vector_store_id("openai") == "vs_1"


class TestOpenAssistant:
    """Tests for open_assistant."""

    @pytest.mark.asyncio
    async def test_creates_and_records_assistant(self, provider, store, project_dir):
        settings = WorkspaceSettings(project_dir)

        assistant = await open_assistant(provider, "openai", settings, store)

        assert assistant.id == "asst_new"
        provider.create_assistant.assert_awaited_once_with(store)
        assert settings.assistant_id("openai") == "asst_new"

    @pytest.mark.asyncio
    async def test_reuses_recorded_assistant(self, provider, project_dir):
        settings = WorkspaceSettings(project_dir)
        settings.set_assistant_id("openai", "asst_old")

        assistant = await open_assistant(provider, "openai", settings)

        assert assistant.id == "asst_old"
        provider.create_assistant.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_replaces_missing_assistant(self, provider, project_dir):
        provider.retrieve_assistant.side_effect = NotFoundError("gone")
        settings = WorkspaceSettings(project_dir)
        settings.set_assistant_id("openai", "asst_gone")

        assistant = await open_assistant(provider, "openai", settings)

        assert assistant.id == "asst_new"

    @pytest.mark.asyncio
    async def test_reuses_assistant_bound_to_current_store(
        self, provider, store, project_dir
    ):
        settings = WorkspaceSettings(project_dir)
        settings.set_assistant_id("openai", "asst_old", store.id)

        assistant = await open_assistant(provider, "openai", settings, store)

        assert assistant.id == "asst_old"
        provider.create_assistant.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_replaced_store_gets_new_assistant(self, provider, store, project_dir):
        """Test that an assistant bound to an expired store is not reused."""
        provider.retrieve_vector_store.side_effect = NotFoundError("expired")
        settings = WorkspaceSettings(project_dir)
        settings.set_vector_store_id("openai", "vs_expired")
        settings.set_assistant_id("openai", "asst_old", "vs_expired")
        settings.save()

        vector_store = await open_vector_store(provider, "openai", settings)
        assistant = await open_assistant(provider, "openai", settings, vector_store)

        assert assistant.id == "asst_new"
        provider.retrieve_assistant.assert_not_awaited()
        provider.create_assistant.assert_awaited_once_with(store)
        loaded = WorkspaceSettings(project_dir).load()
        assert loaded.assistant_id("openai") == "asst_new"
        assert loaded.assistant_vector_store_id("openai") == "vs_1"

    @pytest.mark.asyncio
    async def test_unbound_assistant_is_replaced_for_a_store(
        self, provider, store, project_dir
    ):
        settings = WorkspaceSettings(project_dir)
        settings.set_assistant_id("openai", "asst_old")

        assistant = await open_assistant(provider, "openai", settings, store)

        assert assistant.id == "asst_new"


class TestSyncWorkspace:
    """Tests for scanning and syncing a workspace."""

    @pytest.mark.asyncio
    async def test_syncs_scanned_files(self, provider, remote, project_dir):
        (project_dir / "main.py").write_text("print(1)")
        (project_dir / "image.png").write_bytes(b"\x89PNG")
        (project_dir / "node_modules").mkdir()
        (project_dir / "node_modules" / "dep.js").write_text("dep")
        progress = []

        result = await sync_workspace(
            project_dir, provider, SyncConfig(), progress=progress.append
        )

        assert remote.calls_of("upload") == ["main.py.txt"]
        assert len(result.uploaded) == 1
        assert progress[-1] == 100


class TestCreateProvider:
    """Tests for the provider factory."""

    def test_openai(self, cache, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "test-key")
        provider = create_provider("openai", cache, SyncConfig(openai_model="gpt-test"))

        assert isinstance(provider, OpenAIProvider)
        assert provider.model == "gpt-test"

    def test_anthropic(self, cache, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
        provider = create_provider("anthropic", cache, SyncConfig(timeout=12.5))

        assert isinstance(provider, AnthropicProvider)
        assert provider.client.timeout == 12.5

    def test_openai_timeout(self, cache, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "test-key")
        provider = create_provider("openai", cache, SyncConfig(timeout=12.5))

        assert provider.client.timeout == 12.5

    def test_unknown(self, cache):
        with pytest.raises(ValueError):
            create_provider("other", cache)

    def test_missing_api_key(self, cache, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        with pytest.raises(ProviderError):
            create_provider("openai", cache)
