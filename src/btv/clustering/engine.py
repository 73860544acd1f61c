"""Theme clustering and similarity search over beat embeddings."""

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any

import numpy as np

from ..embeddings.client import OllamaClient
from ..embeddings.store import EmbeddingCache
from ..errors import EmbeddingUnavailableError, InsufficientDataError, OperationCancelledError
from ..models import Cluster, EnrichedBeat, utcnow
from .keywords import cluster_name, extract_keywords
from .kmeans import cosine_similarity, kmeans

logger = logging.getLogger(__name__)

DEFAULT_K = 8
MAX_ITERATIONS = 100
MIN_CLUSTER_SIZE = 2

_POLL_INTERVAL = 0.25


@dataclass
class SimilarBeat:
    beat: EnrichedBeat
    score: float


class _Deadline:
    """Tracks a caller's timeout and cancel event."""

    def __init__(self, timeout: float | None, cancel: threading.Event | None):
        self.expires = time.monotonic() + timeout if timeout is not None else None
        self.cancel = cancel

    def remaining(self) -> float | None:
        if self.expires is None:
            return None
        return max(self.expires - time.monotonic(), 0.0)

    def check(self) -> None:
        if self.cancel is not None and self.cancel.is_set():
            raise OperationCancelledError("operation cancelled")
        if self.expires is not None and time.monotonic() >= self.expires:
            raise OperationCancelledError("operation timed out")


class ClusterEngine:
    """Groups beats into themes with k-means over Ollama embeddings.

    Embeddings are kept in an injected ``EmbeddingCache`` so repeated
    calls in one process only hit the network for beats not seen yet.
    """

    def __init__(
        self,
        client: OllamaClient | None = None,
        embedding_cache: EmbeddingCache | None = None,
        workers: int = 4,
        max_iterations: int = MAX_ITERATIONS,
        min_cluster_size: int = MIN_CLUSTER_SIZE,
        rng: np.random.Generator | None = None,
    ):
        self.client = client or OllamaClient()
        self.embedding_cache = embedding_cache if embedding_cache is not None else EmbeddingCache()
        self.workers = max(1, workers)
        self.max_iterations = max_iterations
        self.min_cluster_size = min_cluster_size
        self.rng = rng

    @classmethod
    def from_config(cls, config: dict[str, Any], embedding_cache: EmbeddingCache | None = None) -> "ClusterEngine":
        cluster_cfg = config.get("clustering", {})
        return cls(
            client=OllamaClient.from_config(config),
            embedding_cache=embedding_cache,
            workers=config.get("ollama", {}).get("workers", 4),
            max_iterations=cluster_cfg.get("max_iterations", MAX_ITERATIONS),
            min_cluster_size=cluster_cfg.get("min_cluster_size", MIN_CLUSTER_SIZE),
        )

    def is_available(self) -> bool:
        return self.client.is_available()

    def refresh(self) -> bool:
        return self.client.refresh()

    def generate_clusters(
        self,
        beats: list[EnrichedBeat],
        k: int = DEFAULT_K,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> list[Cluster]:
        """Cluster beats by embedding, ripest clusters first.

        Beats whose embedding fails are left out. Clusters with fewer than
        ``min_cluster_size`` members are dropped as noise.
        """
        if not self.is_available():
            raise EmbeddingUnavailableError()
        if k <= 0:
            k = DEFAULT_K

        deadline = _Deadline(timeout, cancel)
        vectors = self._collect(beats, deadline)

        members: list[EnrichedBeat] = []
        embeddings: list[list[float]] = []
        for beat in beats:
            vec = vectors.get(beat.id)
            if vec is None or (embeddings and len(vec) != len(embeddings[0])):
                continue
            members.append(beat)
            embeddings.append(vec)

        k = min(k, len(embeddings))
        if k < 2:
            raise InsufficientDataError("not enough beats for clustering")

        deadline.check()
        assignments, centroids = kmeans(embeddings, k, self.max_iterations, rng=self.rng)

        grouped: dict[int, list[EnrichedBeat]] = {}
        for beat, idx in zip(members, assignments):
            grouped.setdefault(idx, []).append(beat)

        now = utcnow()
        clusters = []
        for idx in sorted(grouped):
            group = grouped[idx]
            if len(group) < self.min_cluster_size:
                continue
            contents = [b.content for b in group]
            clusters.append(Cluster(
                id=f"cluster-{int(now.timestamp())}-{idx}",
                name=cluster_name(contents),
                beat_ids=[b.id for b in group],
                centroid=centroids[idx],
                keywords=extract_keywords(contents),
                created_at=now,
                ripeness_score=sum(b.ripeness_score for b in group) / len(group),
            ))

        clusters.sort(key=lambda c: c.ripeness_score, reverse=True)
        logger.debug(f"Generated {len(clusters)} cluster(s) from {len(members)} beat(s), k={k}")
        return clusters

    def find_similar_scored(
        self,
        target: EnrichedBeat,
        all_beats: list[EnrichedBeat],
        limit: int = 5,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> list[SimilarBeat]:
        """Rank other beats by cosine similarity to target.

        Failing to embed the target is fatal; other beats that fail are
        skipped.
        """
        if not self.is_available():
            raise EmbeddingUnavailableError()

        deadline = _Deadline(timeout, cancel)
        target_vec = self._embed(target, deadline)

        others = [b for b in all_beats if b.id != target.id]
        vectors = self._collect(others, deadline)

        scored = [
            SimilarBeat(beat=b, score=cosine_similarity(target_vec, vectors[b.id]))
            for b in others
            if b.id in vectors
        ]
        scored.sort(key=lambda s: s.score, reverse=True)
        return scored[:max(limit, 0)]

    def find_similar(
        self,
        target: EnrichedBeat,
        all_beats: list[EnrichedBeat],
        limit: int = 5,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> list[EnrichedBeat]:
        return [s.beat for s in self.find_similar_scored(target, all_beats, limit, timeout, cancel)]

    def _request_timeout(self, deadline: _Deadline) -> float:
        remaining = deadline.remaining()
        if remaining is None:
            return self.client.request_timeout
        return max(min(self.client.request_timeout, remaining), 0.001)

    def _embed(self, beat: EnrichedBeat, deadline: _Deadline) -> list[float]:
        cached = self.embedding_cache.get(beat.id)
        if cached is not None:
            return cached
        deadline.check()
        vec = self.client.get_embedding(beat.content, timeout=self._request_timeout(deadline))
        self.embedding_cache.put(beat.id, vec)
        return vec

    def _collect(self, beats: list[EnrichedBeat], deadline: _Deadline) -> dict[str, list[float]]:
        """Embed beats through a bounded worker pool.

        Vectors fetched before a cancellation stay in the cache.
        """
        vectors: dict[str, list[float]] = {}
        missing = []
        for beat in beats:
            cached = self.embedding_cache.get(beat.id)
            if cached is not None:
                vectors[beat.id] = cached
            else:
                missing.append(beat)
        if not missing:
            return vectors

        deadline.check()
        executor = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="btv-embed")
        pending: dict[Future, EnrichedBeat] = {
            executor.submit(self.client.get_embedding, b.content, self._request_timeout(deadline)): b
            for b in missing
        }
        try:
            while pending:
                done, _ = wait(pending, timeout=_POLL_INTERVAL, return_when=FIRST_COMPLETED)
                for future in done:
                    beat = pending.pop(future)
                    try:
                        vec = future.result()
                    except EmbeddingUnavailableError as e:
                        logger.warning(f"Skipping beat {beat.id}: {e}")
                        continue
                    self.embedding_cache.put(beat.id, vec)
                    vectors[beat.id] = vec
                if pending:
                    deadline.check()
        finally:
            executor.shutdown(wait=not pending, cancel_futures=True)

        return vectors
