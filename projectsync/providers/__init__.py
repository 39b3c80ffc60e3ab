"""AI provider backends.

This module provides:
- AIProvider / Assistant / VectorStore: Backend-agnostic interfaces
- OpenAIProvider: Vector stores and assistants via the OpenAI API
- AnthropicProvider: Local stores over the Anthropic Files API
- create_provider: Select a backend by name
"""

from projectsync.cache import LocalCacheStore
from projectsync.config import SyncConfig
from projectsync.providers.base import AIProvider, Assistant, Message, VectorStore
from projectsync.providers.exceptions import IndexingError, NotFoundError, ProviderError

PROVIDERS = ("openai", "anthropic")


def create_provider(
    name: str, cache: LocalCacheStore, config: SyncConfig | None = None
) -> AIProvider:
    """Create the provider called ``name``.

    Args:
        name: "openai" or "anthropic"
        cache: Cache store shared by the provider's stores
        config: Settings for models and timeouts (defaults if omitted)

    Raises:
        ValueError: If the provider name is unknown
        ProviderError: If the SDK client cannot be created (e.g. no API key)
    """
    config = config or SyncConfig()

    if name == "openai":
        import openai

        from projectsync.providers.openai_provider import OpenAIProvider

        try:
            client = openai.AsyncOpenAI(timeout=config.timeout)
        except openai.OpenAIError as e:
            raise ProviderError(f"Failed to create OpenAI client: {e}") from e
        return OpenAIProvider(client, cache, model=config.openai_model)

    if name == "anthropic":
        import anthropic

        from projectsync.providers.anthropic_provider import AnthropicProvider

        try:
            client = anthropic.AsyncAnthropic(timeout=config.timeout)
        except anthropic.AnthropicError as e:
            raise ProviderError(f"Failed to create Anthropic client: {e}") from e
        return AnthropicProvider(client, cache, model=config.anthropic_model)

    raise ValueError(f"Unknown provider: {name} (expected one of {', '.join(PROVIDERS)})")


__all__ = [
    "AIProvider",
    "Assistant",
    "Message",
    "VectorStore",
    "ProviderError",
    "NotFoundError",
    "IndexingError",
    "create_provider",
]
