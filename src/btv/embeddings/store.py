"""Process-scoped embedding cache keyed by beat ID."""

import json
import os
import threading
from pathlib import Path


class EmbeddingCache:
    """Holds one vector per beat ID for the lifetime of the process.

    Nothing is ever evicted. Beats are immutable, so a cached vector stays
    correct for as long as its beat exists. Persistence is opt-in through
    ``load``/``save``.
    """

    def __init__(self, vectors: dict[str, list[float]] | None = None):
        self._vectors: dict[str, list[float]] = dict(vectors or {})
        self._lock = threading.Lock()

    def get(self, beat_id: str) -> list[float] | None:
        with self._lock:
            return self._vectors.get(beat_id)

    def put(self, beat_id: str, vector: list[float]) -> None:
        with self._lock:
            self._vectors[beat_id] = vector

    def __contains__(self, beat_id: str) -> bool:
        with self._lock:
            return beat_id in self._vectors

    def __len__(self) -> int:
        with self._lock:
            return len(self._vectors)

    def as_dict(self) -> dict[str, list[float]]:
        with self._lock:
            return dict(self._vectors)

    @classmethod
    def load(cls, path: str | Path) -> "EmbeddingCache":
        """Load vectors saved by ``save``. A missing file gives an empty cache."""
        path = Path(path)
        if not path.exists():
            return cls()
        return cls(json.loads(path.read_text()))

    def save(self, path: str | Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_text(json.dumps(self.as_dict()))
        os.replace(tmp, path)
