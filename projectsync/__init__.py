"""Keep a remote vector store synchronized with a local project."""

__version__ = "0.1.0"
