"""Entity extraction and lookup."""

from .extractor import EntityExtractor
from .index import EntityIndex

__all__ = ["EntityExtractor", "EntityIndex"]
