"""Persisted cache of derived beat data, validated by source hash."""

import hashlib
import json
import os
from pathlib import Path

from ..errors import CacheDecodeError, CacheSaveError
from ..ingest.loader import BEATS_FILE
from ..models import CACHE_FILE_NAME, CACHE_VERSION, Cache


def cache_path(beats_dir: str | Path) -> Path:
    return Path(beats_dir) / CACHE_FILE_NAME


def load_cache(beats_dir: str | Path) -> Cache | None:
    """Read the cache file. Returns None if there is none.

    A file that exists but cannot be decoded raises CacheDecodeError.
    """
    path = cache_path(beats_dir)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None

    try:
        return Cache.from_dict(json.loads(text))
    except (ValueError, KeyError, TypeError) as e:
        raise CacheDecodeError(f"decoding cache {path}: {e}") from e


def save_cache(beats_dir: str | Path, cache: Cache) -> None:
    """Write the cache atomically: temp file, then rename over the old one."""
    path = cache_path(beats_dir)
    tmp_path = path.with_name(path.name + ".tmp")
    data = json.dumps(cache.to_dict(), indent=2, ensure_ascii=False)

    try:
        tmp_path.write_text(data, encoding="utf-8")
        os.replace(tmp_path, path)
    except OSError as e:
        tmp_path.unlink(missing_ok=True)
        raise CacheSaveError(f"writing cache {path}: {e}") from e


def compute_source_hash(beats_dir: str | Path) -> str:
    """First 16 hex chars of the SHA256 of beats.jsonl, or "" if absent."""
    h = hashlib.sha256()
    try:
        with open(Path(beats_dir) / BEATS_FILE, "rb") as f:
            for block in iter(lambda: f.read(65536), b""):
                h.update(block)
    except FileNotFoundError:
        return ""
    return h.hexdigest()[:16]


def is_cache_valid(cache: Cache | None, beats_dir: str | Path) -> bool:
    """A cache is valid when its version and source hash are both current."""
    if cache is None or cache.version != CACHE_VERSION:
        return False
    try:
        current = compute_source_hash(beats_dir)
    except OSError:
        return False
    return cache.source_hash == current


def load_or_create_cache(beats_dir: str | Path) -> tuple[Cache | None, bool]:
    """Returns (cache, needs_rebuild). The cache is None when a rebuild is needed."""
    cache = load_cache(beats_dir)
    if is_cache_valid(cache, beats_dir):
        return cache, False
    return None, True
