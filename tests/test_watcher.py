"""Tests for watch-mode debouncing and rebuilds."""

import json
import tempfile
import threading
from pathlib import Path
from types import SimpleNamespace

from btv.cache.store import load_cache
from btv.watcher import BeatsLogHandler, CacheWatcher


def _event(path, dest=None):
    return SimpleNamespace(is_directory=False, src_path=str(path), dest_path=str(dest or path))


def test_handler_debounces_log_events():
    fired = threading.Event()
    calls = []

    handler = BeatsLogHandler(debounce=0.2)
    handler.set_callback(lambda: (calls.append(1), fired.set()))

    handler.on_modified(_event("/x/.beats/beats.jsonl"))
    handler.on_modified(_event("/x/.beats/beats.jsonl"))
    handler.on_created(_event("/x/.beats/btv-cache.json"))
    assert fired.wait(2)
    assert calls == [1]


def test_handler_ignores_other_files():
    handler = BeatsLogHandler(debounce=0.01)
    handler.set_callback(lambda: None)
    handler.on_modified(_event("/x/.beats/btv-cache.json.tmp"))
    handler.on_moved(_event("/x/.beats/tmp", dest="/x/.beats/btv-cache.json"))
    assert handler._timer is None


def test_rebuild_writes_cache():
    with tempfile.TemporaryDirectory() as tmpdir:
        beats_dir = Path(tmpdir)
        record = {
            "id": "b1",
            "created_at": "2025-01-01T00:00:00Z",
            "updated_at": "2025-01-01T00:00:00Z",
            "impetus": {"label": "manual entry"},
            "content": "Watching the log",
        }
        (beats_dir / "beats.jsonl").write_text(json.dumps(record) + "\n")

        CacheWatcher(beats_dir, debounce=0.01).rebuild()
        assert list(load_cache(beats_dir).taxonomies) == ["b1"]
