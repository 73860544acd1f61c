"""Cache store and enrichment pipeline."""

from .migration import ensure_cache, load_enriched_beats, migrate, refresh_cache
from .store import compute_source_hash, is_cache_valid, load_cache, save_cache

__all__ = [
    "compute_source_hash",
    "ensure_cache",
    "is_cache_valid",
    "load_cache",
    "load_enriched_beats",
    "migrate",
    "refresh_cache",
    "save_cache",
]
