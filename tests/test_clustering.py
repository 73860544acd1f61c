"""Tests for k-means, similarity, keywords and the clustering engine."""

import threading
import time

import numpy as np
import pytest

from btv.clustering import ClusterEngine, cosine_similarity, kmeans
from btv.clustering.keywords import cluster_name, extract_keywords
from btv.clustering.kmeans import _update_centroids, euclidean_distance
from btv.embeddings import EmbeddingCache
from btv.errors import EmbeddingUnavailableError, InsufficientDataError, OperationCancelledError
from btv.models import Beat, EnrichedBeat, Impetus, parse_time


class FakeClient:
    """Embeds known texts from a lookup table."""

    request_timeout = 30

    def __init__(self, vectors, available=True, broken=()):
        self.vectors = vectors
        self.available = available
        self.broken = set(broken)
        self.calls = []
        self._lock = threading.Lock()

    def is_available(self):
        return self.available

    def refresh(self):
        return self.available

    def get_embedding(self, text, timeout=None):
        with self._lock:
            self.calls.append(text)
        if text in self.broken:
            raise EmbeddingUnavailableError("ollama returned status 500")
        return self.vectors[text]


def _enriched(beat_id, content, ripeness=0.0):
    t = parse_time("2025-01-01T00:00:00Z")
    beat = Beat(id=beat_id, created_at=t, updated_at=t, impetus=Impetus(), content=content)
    return EnrichedBeat(beat=beat, ripeness_score=ripeness)


TWO_GROUPS = {
    "retry logic for uploads": [0.0, 0.0],
    "retry timeout handling": [0.0, 1.0],
    "garden tomatoes planting": [10.0, 10.0],
    "garden soil compost": [10.0, 11.0],
}


def _two_group_beats():
    return [
        _enriched("b1", "retry logic for uploads", 0.2),
        _enriched("b2", "retry timeout handling", 0.4),
        _enriched("b3", "garden tomatoes planting", 0.8),
        _enriched("b4", "garden soil compost", 0.6),
    ]


def test_kmeans_separates_groups():
    points = [[0, 0], [0, 1], [10, 10], [10, 11]]
    assignments, centroids = kmeans(points, 2, rng=np.random.default_rng(0))
    assert assignments[0] == assignments[1]
    assert assignments[2] == assignments[3]
    assert assignments[0] != assignments[2]
    assert len(centroids) == 2


def test_kmeans_edge_cases():
    assert kmeans([], 3) == ([], [])
    assignments, centroids = kmeans([[1.0, 2.0]], 5, rng=np.random.default_rng(1))
    assert assignments == [0]
    assert centroids == [[1.0, 2.0]]


def test_empty_cluster_becomes_zero_vector():
    points = np.array([[1.0, 2.0], [3.0, 4.0]])
    centroids = _update_centroids(points, np.array([0, 0]), 2)
    assert centroids[0].tolist() == [2.0, 3.0]
    assert centroids[1].tolist() == [0.0, 0.0]


def test_cosine_similarity():
    assert cosine_similarity([1, 2, 3], [1, 2, 3]) == pytest.approx(1.0)
    assert cosine_similarity([1, 0], [0, 1]) == 0
    assert cosine_similarity([1, 0], [-1, 0]) == pytest.approx(-1.0)
    assert cosine_similarity([0, 0], [1, 1]) == 0
    assert cosine_similarity([1, 2], [1, 2, 3]) == 0
    assert cosine_similarity([], []) == 0


def test_euclidean_distance():
    assert euclidean_distance([0, 0], [3, 4]) == 5.0
    assert euclidean_distance([0], [1, 2]) == float("inf")


def test_keywords():
    contents = ["Retry logic, retry!", "the timeout and retry", "timeout"]
    assert extract_keywords(contents) == ["retry", "timeout", "logic"]
    assert cluster_name(contents) == "retry & timeout & logic"
    assert cluster_name(["a an the of"]) == "Unnamed Cluster"


def test_keyword_ties_keep_first_seen_order():
    assert extract_keywords(["zebra apple mango"], limit=2) == ["zebra", "apple"]


def test_generate_clusters():
    engine = ClusterEngine(client=FakeClient(TWO_GROUPS), rng=np.random.default_rng(0))
    clusters = engine.generate_clusters(_two_group_beats(), k=2)

    assert len(clusters) == 2
    garden, retry = clusters
    assert sorted(garden.beat_ids) == ["b3", "b4"]
    assert sorted(retry.beat_ids) == ["b1", "b2"]
    assert garden.ripeness_score == pytest.approx(0.7)
    assert retry.ripeness_score == pytest.approx(0.3)
    assert garden.name.startswith("garden")
    assert "retry" in retry.keywords
    assert garden.id.startswith("cluster-")
    assert len(garden.centroid) == 2


def test_small_groups_are_dropped():
    vectors = {"a": [0.0, 0.0], "b": [0.0, 1.0], "c": [50.0, 50.0]}
    beats = [_enriched("a", "a"), _enriched("b", "b"), _enriched("c", "c")]
    engine = ClusterEngine(client=FakeClient(vectors), rng=np.random.default_rng(3))
    clusters = engine.generate_clusters(beats, k=2)
    assert [sorted(c.beat_ids) for c in clusters] == [["a", "b"]]


def test_failed_embeddings_are_skipped():
    client = FakeClient(TWO_GROUPS, broken={"garden soil compost"})
    engine = ClusterEngine(client=client, rng=np.random.default_rng(0))
    clusters = engine.generate_clusters(_two_group_beats(), k=2)
    assert all("b4" not in c.beat_ids for c in clusters)


def test_unavailable_provider():
    engine = ClusterEngine(client=FakeClient(TWO_GROUPS, available=False))
    with pytest.raises(EmbeddingUnavailableError):
        engine.generate_clusters(_two_group_beats())
    with pytest.raises(EmbeddingUnavailableError):
        engine.find_similar(_two_group_beats()[0], _two_group_beats())


def test_not_enough_beats():
    engine = ClusterEngine(client=FakeClient(TWO_GROUPS))
    with pytest.raises(InsufficientDataError):
        engine.generate_clusters(_two_group_beats()[:1], k=4)


def test_cancelled_before_start():
    cancel = threading.Event()
    cancel.set()
    engine = ClusterEngine(client=FakeClient(TWO_GROUPS))
    with pytest.raises(OperationCancelledError):
        engine.generate_clusters(_two_group_beats(), k=2, cancel=cancel)


def test_embeddings_are_reused():
    client = FakeClient(TWO_GROUPS)
    cache = EmbeddingCache()
    engine = ClusterEngine(client=client, embedding_cache=cache, rng=np.random.default_rng(0))

    engine.generate_clusters(_two_group_beats(), k=2)
    assert len(client.calls) == 4
    assert len(cache) == 4

    engine.generate_clusters(_two_group_beats(), k=2)
    assert len(client.calls) == 4


def test_find_similar():
    vectors = {"target": [1.0, 0.0], "near": [1.0, 0.1], "side": [0.0, 1.0], "away": [-1.0, 0.0]}
    beats = [_enriched(name, name) for name in vectors]
    engine = ClusterEngine(client=FakeClient(vectors))

    scored = engine.find_similar_scored(beats[0], beats, limit=2)
    assert [s.beat.id for s in scored] == ["near", "side"]
    assert scored[0].score > scored[1].score

    assert [b.id for b in engine.find_similar(beats[0], beats, limit=5)] == ["near", "side", "away"]


def test_find_similar_target_failure_is_fatal():
    vectors = {"target": [1.0, 0.0], "near": [1.0, 0.1]}
    beats = [_enriched(name, name) for name in vectors]
    engine = ClusterEngine(client=FakeClient(vectors, broken={"target"}))
    with pytest.raises(EmbeddingUnavailableError):
        engine.find_similar(beats[0], beats)


def test_cosine_similarity_is_symmetric():
    rng = np.random.default_rng(7)
    for _ in range(20):
        a, b = rng.normal(size=8), rng.normal(size=8)
        assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))
        assert -1.0 - 1e-9 <= cosine_similarity(a, b) <= 1.0 + 1e-9


def test_clusters_partition_random_beats():
    for seed in range(10):
        rng = np.random.default_rng(seed)
        count = int(rng.integers(4, 15))
        vectors = {f"text {i}": rng.normal(size=3).tolist() for i in range(count)}
        beats = [_enriched(f"b{i}", f"text {i}") for i in range(count)]
        engine = ClusterEngine(client=FakeClient(vectors), rng=rng)

        clusters = engine.generate_clusters(beats, k=int(rng.integers(2, 5)))

        ids = {b.id for b in beats}
        seen = []
        for c in clusters:
            assert len(c.beat_ids) >= 2
            assert set(c.beat_ids) <= ids
            seen.extend(c.beat_ids)
        assert len(seen) == len(set(seen))


class SlowClient(FakeClient):
    def get_embedding(self, text, timeout=None):
        with self._lock:
            self.calls.append(text)
        time.sleep(1.0)
        return self.vectors[text]


def test_deadline_expires_mid_batch():
    client = SlowClient(TWO_GROUPS)
    cache = EmbeddingCache()
    engine = ClusterEngine(client=client, embedding_cache=cache, workers=1)

    start = time.monotonic()
    with pytest.raises(OperationCancelledError):
        engine.generate_clusters(_two_group_beats(), k=2, timeout=0.3)
    assert time.monotonic() - start < 1.0
    assert len(client.calls) < 4
    assert len(cache) == 0
