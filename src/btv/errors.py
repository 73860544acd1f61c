"""Exceptions raised by the btv enrichment core.

The core never prints; callers catch these and decide what the user sees.
"""


class BTVError(Exception):
    """Base class for all btv errors."""


class BeatsDirNotFoundError(BTVError):
    """No .beats directory was found."""


class BeatNotFoundError(BTVError):
    """A beat ID did not match any beat in the log."""


class CacheDecodeError(BTVError):
    """An existing cache file could not be decoded."""


class CacheSaveError(BTVError):
    """The cache could not be written."""


class EmbeddingUnavailableError(BTVError):
    """The embedding provider is unreachable or returned an error."""

    hint = "Install Ollama and run: ollama pull nomic-embed-text"

    def __init__(self, message: str = "ollama not available", hint: str | None = None):
        super().__init__(message)
        if hint:
            self.hint = hint


class InsufficientDataError(BTVError):
    """Not enough usable beats for the requested operation."""


class OperationCancelledError(BTVError):
    """A deadline passed or the caller cancelled a long-running operation."""


class ChainError(BTVError):
    """Invalid chain operation."""
