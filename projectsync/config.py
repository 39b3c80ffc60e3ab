"""Configuration for projectsync.

``SyncConfig`` holds process-wide settings read from the environment.
``WorkspaceSettings`` records, per workspace, which remote store and assistant
belong to it so later runs reuse them instead of creating new ones.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = Path.home() / ".projectsync" / "cache"
DEFAULT_PROVIDER = "openai"
DEFAULT_OPENAI_MODEL = "gpt-4o"
DEFAULT_ANTHROPIC_MODEL = "claude-sonnet-4-5"
DEFAULT_TIMEOUT = 60.0

SUPPORTED_FILE_EXTENSIONS = [
    ".c",
    ".cpp",
    ".cs",
    ".css",
    ".go",
    ".h",
    ".html",
    ".java",
    ".js",
    ".json",
    ".jsx",
    ".kt",
    ".md",
    ".php",
    ".py",
    ".rb",
    ".rs",
    ".scss",
    ".sh",
    ".sql",
    ".swift",
    ".toml",
    ".ts",
    ".tsx",
    ".txt",
    ".vue",
    ".yaml",
    ".yml",
]

DEFAULT_IGNORE_PATTERNS = [
    "**/node_modules/**",
    "**/build/**",
    "**/out/**",
    "**/dist/**",
    "**/.git/**",
    "**/.venv/**",
    "**/__pycache__/**",
    "**/.projectsync/**",
]

SETTINGS_DIR = ".projectsync"
SETTINGS_FILE = "settings.json"


@dataclass
class SyncConfig:
    """Process-wide settings.

    API keys are not stored here; the provider SDKs read ``OPENAI_API_KEY``
    and ``ANTHROPIC_API_KEY`` themselves.
    """

    provider: str = DEFAULT_PROVIDER
    cache_dir: Optional[Path] = DEFAULT_CACHE_DIR
    openai_model: str = DEFAULT_OPENAI_MODEL
    anthropic_model: str = DEFAULT_ANTHROPIC_MODEL
    timeout: float = DEFAULT_TIMEOUT
    extensions: list[str] = field(
        default_factory=lambda: list(SUPPORTED_FILE_EXTENSIONS)
    )
    ignore_patterns: list[str] = field(
        default_factory=lambda: list(DEFAULT_IGNORE_PATTERNS)
    )

    @classmethod
    def from_env(cls) -> "SyncConfig":
        """Build a config from ``PROJECTSYNC_*`` environment variables.

        Raises:
            ValueError: If ``PROJECTSYNC_TIMEOUT`` is not a number
        """
        cache_dir = os.environ.get("PROJECTSYNC_CACHE_DIR")
        timeout = os.environ.get("PROJECTSYNC_TIMEOUT")

        return cls(
            provider=os.environ.get("PROJECTSYNC_PROVIDER", DEFAULT_PROVIDER).lower(),
            cache_dir=Path(cache_dir).expanduser() if cache_dir else DEFAULT_CACHE_DIR,
            openai_model=os.environ.get(
                "PROJECTSYNC_OPENAI_MODEL", DEFAULT_OPENAI_MODEL
            ),
            anthropic_model=os.environ.get(
                "PROJECTSYNC_ANTHROPIC_MODEL", DEFAULT_ANTHROPIC_MODEL
            ),
            timeout=float(timeout) if timeout else DEFAULT_TIMEOUT,
        )


class WorkspaceSettings:
    """Per-workspace record of remote store and assistant IDs.

    Stored as: <workspace>/.projectsync/settings.json

    Each assistant is recorded together with the store it was created for, so
    an assistant is not reused once its store has been replaced.
    """

    def __init__(self, workspace_dir: Path):
        self.workspace_dir = Path(workspace_dir)
        self.settings_file = self.workspace_dir / SETTINGS_DIR / SETTINGS_FILE
        self.vector_store_ids: dict[str, str] = {}
        self.assistant_ids: dict[str, str] = {}
        self.assistant_vector_store_ids: dict[str, str] = {}

    @property
    def name(self) -> str:
        return self.workspace_dir.resolve().name

    def _key(self, provider: str) -> str:
        return f"{provider}:{self.name}"

    def load(self) -> "WorkspaceSettings":
        """Load settings from disk; unreadable settings are treated as empty."""
        if not self.settings_file.exists():
            return self

        try:
            with open(self.settings_file, "r") as f:
                data = json.load(f)
            self.vector_store_ids = dict(data.get("vectorStoreIds", {}))
            self.assistant_ids = dict(data.get("assistantIds", {}))
            self.assistant_vector_store_ids = dict(
                data.get("assistantVectorStoreIds", {})
            )
        except (json.JSONDecodeError, AttributeError, TypeError, ValueError) as e:
            logger.error(f"Failed to load workspace settings {self.settings_file}: {e}")
            self.vector_store_ids = {}
            self.assistant_ids = {}
            self.assistant_vector_store_ids = {}

        return self

    def save(self) -> None:
        self.settings_file.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "vectorStoreIds": self.vector_store_ids,
            "assistantIds": self.assistant_ids,
            "assistantVectorStoreIds": self.assistant_vector_store_ids,
        }
        with open(self.settings_file, "w") as f:
            json.dump(data, f, indent=2)

    def vector_store_id(self, provider: str) -> Optional[str]:
        return self.vector_store_ids.get(self._key(provider))

    def set_vector_store_id(self, provider: str, store_id: str) -> None:
        self.vector_store_ids[self._key(provider)] = store_id

    def assistant_id(self, provider: str) -> Optional[str]:
        return self.assistant_ids.get(self._key(provider))

    def assistant_vector_store_id(self, provider: str) -> Optional[str]:
        """Return the store the recorded assistant was created for."""
        return self.assistant_vector_store_ids.get(self._key(provider))

    def set_assistant_id(
        self, provider: str, assistant_id: str, vector_store_id: Optional[str] = None
    ) -> None:
        key = self._key(provider)
        self.assistant_ids[key] = assistant_id
        if vector_store_id:
            self.assistant_vector_store_ids[key] = vector_store_id
        else:
            self.assistant_vector_store_ids.pop(key, None)
