"""Embedding provider client and in-memory vector cache."""

from .client import OllamaClient
from .store import EmbeddingCache

__all__ = ["OllamaClient", "EmbeddingCache"]
