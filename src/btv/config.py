"""Configuration management for btv."""

import copy
import os
from pathlib import Path
from typing import Any

import yaml


DEFAULT_CONFIG = {
    "beats_root": ".",
    "ollama": {
        "url": "http://localhost:11434",
        "model": "nomic-embed-text",
        "probe_timeout": 5,
        "request_timeout": 30,
        "workers": 4,
    },
    "clustering": {"k": 8, "max_iterations": 100, "min_cluster_size": 2, "timeout": 300},
    "similarity": {"limit": 5, "timeout": 60},
    "cache": {"preserve_view_stats": False, "persist_embeddings": False},
    "stale": {"min_age_days": 30, "recent_view_days": 14},
    "dictionaries_path": None,
}


def _find_config_file() -> Path | None:
    """Look for a config file in standard locations."""
    candidates = [
        Path.cwd() / "config" / "config.yaml",
        Path.cwd() / "btv.yaml",
        Path.home() / ".btv" / "config.yaml",
    ]
    for p in candidates:
        if p.exists():
            return p
    return None


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """Load configuration, merging defaults with file and env vars."""
    cfg = copy.deepcopy(DEFAULT_CONFIG)

    path = Path(config_path) if config_path else _find_config_file()
    if path and path.exists():
        with open(path) as f:
            file_cfg = yaml.safe_load(f) or {}
        _deep_merge(cfg, file_cfg)

    # Env overrides
    if root := os.environ.get("BEATS_ROOT"):
        cfg["beats_root"] = root
    if host := os.environ.get("OLLAMA_HOST"):
        if not host.startswith("http"):
            host = f"http://{host}"
        cfg["ollama"]["url"] = host.rstrip("/")

    if cfg.get("dictionaries_path"):
        cfg["dictionaries_path"] = str(Path(cfg["dictionaries_path"]).expanduser().resolve())

    return cfg


def load_dictionaries(config_path: str | Path | None = None) -> dict[str, Any]:
    """Load custom taxonomy patterns and entity dictionaries.

    Keys that are absent fall back to the built-in tables, so an empty
    dict means "use the defaults".
    """
    candidates = [
        Path.cwd() / "config" / "dictionaries.yaml",
        Path.home() / ".btv" / "dictionaries.yaml",
    ]
    if config_path:
        candidates.insert(0, Path(config_path))

    for p in candidates:
        if p.exists():
            with open(p) as f:
                return yaml.safe_load(f) or {}

    return {}


def _deep_merge(base: dict, override: dict) -> None:
    """Merge override into base in-place."""
    for k, v in override.items():
        if k in base and isinstance(base[k], dict) and isinstance(v, dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
