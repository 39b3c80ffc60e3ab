"""Tests for the projectsync CLI commands."""

from unittest.mock import AsyncMock, Mock, patch

import pytest

from projectsync.cli import ask, status, sync
from projectsync.config import WorkspaceSettings
from projectsync.providers import Message, ProviderError, VectorStore
from projectsync.sync import SyncEngine


@pytest.fixture
def env(monkeypatch, temp_dir):
    """Point the CLI at a temporary cache directory."""
    monkeypatch.setenv("PROJECTSYNC_CACHE_DIR", str(temp_dir / "cache"))
    monkeypatch.setenv("PROJECTSYNC_PROVIDER", "openai")


@pytest.fixture
def mock_provider(cache, remote):
    """Patch the provider factory with a provider backed by the fake remote."""
    store = VectorStore("vs_1", SyncEngine(cache, remote, "vs_1-map.json"))
    provider = Mock()
    provider.create_vector_store = AsyncMock(return_value=store)
    provider.retrieve_vector_store = AsyncMock(return_value=store)

    with patch("projectsync.cli.create_provider", return_value=provider):
        yield provider


def test_sync_command(env, mock_provider, remote, project_dir, capsys):
    """Test that sync uploads files and prints a summary."""
    (project_dir / "main.py").write_text("print(1)")

    sync(project_dir)

    captured = capsys.readouterr()
    assert "Sync Summary" in captured.out
    assert "Uploaded" in captured.out
    assert remote.calls_of("upload") == ["main.py.txt"]
    assert WorkspaceSettings(project_dir).load().vector_store_id("openai") == "vs_1"


def test_sync_command_exits_nonzero_on_failures(
    env, mock_provider, remote, project_dir, capsys
):
    """Test that failed files make the command fail."""
    (project_dir / "broken.py").write_text("x")
    remote.fail_uploads.add("broken")

    with pytest.raises(SystemExit) as exc_info:
        sync(project_dir)

    assert exc_info.value.code == 1
    assert "broken.py" in capsys.readouterr().out


def test_sync_command_provider_error(env, mock_provider, project_dir, capsys):
    """Test that provider errors are reported without a traceback."""
    mock_provider.create_vector_store.side_effect = ProviderError("quota exceeded")

    with pytest.raises(SystemExit):
        sync(project_dir)

    assert "quota exceeded" in capsys.readouterr().out


def test_status_before_first_sync(env, project_dir, capsys):
    """Test status for a workspace that was never synced."""
    status(project_dir)

    assert "has not been synced" in capsys.readouterr().out


def test_status_after_sync(env, mock_provider, project_dir, capsys):
    """Test that status lists the synced files."""
    (project_dir / "main.py").write_text("print(1)")
    sync(project_dir)
    capsys.readouterr()

    status(project_dir)

    captured = capsys.readouterr()
    assert "vs_1" in captured.out
    assert "Files: 1" in captured.out


def test_ask_streams_answer(env, mock_provider, project_dir, capsys):
    """Test that ask prints streamed deltas."""

    async def send_message(content, on_delta=None):
        for text in ["The answer ", "is 42."]:
            on_delta(text)
        return Message(id="msg_1", role="assistant", content="The answer is 42.")

    assistant = Mock(id="asst_1")
    assistant.send_message = send_message
    mock_provider.create_assistant = AsyncMock(return_value=assistant)

    ask("What is the answer?", project_dir)

    assert "The answer is 42." in capsys.readouterr().out
    assert WorkspaceSettings(project_dir).load().assistant_id("openai") == "asst_1"


def test_unknown_provider_exits_with_error(env, project_dir, capsys):
    """Test that an unknown backend name is reported without a traceback."""
    with pytest.raises(SystemExit) as exc_info:
        sync(project_dir, provider="nope")

    assert exc_info.value.code == 1
    assert "Unknown provider: nope" in capsys.readouterr().out


def test_missing_api_key_exits_with_error(env, project_dir, monkeypatch, capsys):
    """Test that a client that cannot be built is reported without a traceback."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    with pytest.raises(SystemExit) as exc_info:
        ask("Anything?", project_dir)

    assert exc_info.value.code == 1
    assert "Failed to create OpenAI client" in capsys.readouterr().out


def test_invalid_timeout_exits_with_error(env, project_dir, monkeypatch, capsys):
    monkeypatch.setenv("PROJECTSYNC_TIMEOUT", "soon")

    with pytest.raises(SystemExit) as exc_info:
        status(project_dir)

    assert exc_info.value.code == 1
    assert "Error" in capsys.readouterr().out
