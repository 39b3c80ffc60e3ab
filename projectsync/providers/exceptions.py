"""Exceptions raised by AI provider backends."""


class ProviderError(Exception):
    """Base exception for provider operations."""


class NotFoundError(ProviderError):
    """Raised when a remote store or assistant does not exist."""


class IndexingError(ProviderError):
    """Raised when a store fails to index an uploaded file."""

    def __init__(self, message: str, file_id: str, status: str | None = None):
        super().__init__(message)
        self.file_id = file_id
        self.status = status
