"""Lloyd's k-means and vector similarity over embeddings."""

import numpy as np


def kmeans(
    embeddings: list[list[float]] | np.ndarray,
    k: int,
    max_iter: int = 100,
    rng: np.random.Generator | None = None,
) -> tuple[list[int], list[list[float]]]:
    """Cluster embeddings into k groups.

    Centroids start at k distinct random points. Each iteration assigns
    every point to its nearest centroid (Euclidean, ties to the lowest
    index) and recomputes centroids as member means; a centroid with no
    members becomes the zero vector. Stops early once no assignment
    changes.

    Returns (assignment per point, centroids).
    """
    points = np.asarray(embeddings, dtype=float)
    n = len(points)
    if n == 0 or k <= 0:
        return [], []
    k = min(k, n)
    rng = rng or np.random.default_rng()

    centroids = points[rng.choice(n, size=k, replace=False)].copy()
    assignments = np.zeros(n, dtype=int)

    for _ in range(max_iter):
        nearest = _nearest(points, centroids)
        if np.array_equal(nearest, assignments):
            break
        assignments = nearest
        centroids = _update_centroids(points, assignments, k)

    return assignments.tolist(), centroids.tolist()


def _nearest(points: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    distances = np.linalg.norm(points[:, None, :] - centroids[None, :, :], axis=2)
    return distances.argmin(axis=1)


def _update_centroids(points: np.ndarray, assignments: np.ndarray, k: int) -> np.ndarray:
    centroids = np.zeros((k, points.shape[1]))
    for i in range(k):
        members = points[assignments == i]
        if len(members):
            centroids[i] = members.mean(axis=0)
    return centroids


def euclidean_distance(a, b) -> float:
    """Distance between two vectors; infinite if dimensions differ."""
    a, b = np.asarray(a, dtype=float), np.asarray(b, dtype=float)
    if a.shape != b.shape:
        return float("inf")
    return float(np.linalg.norm(a - b))


def cosine_similarity(a, b) -> float:
    """Cosine of the angle between a and b.

    Returns 0.0 when either vector is empty or zero, or the dimensions
    differ.
    """
    a, b = np.asarray(a, dtype=float), np.asarray(b, dtype=float)
    if a.shape != b.shape or a.size == 0:
        return 0.0
    norm_a, norm_b = np.linalg.norm(a), np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))
