"""Embedding-based clustering and similarity."""

from .engine import ClusterEngine, SimilarBeat
from .kmeans import cosine_similarity, kmeans

__all__ = ["ClusterEngine", "SimilarBeat", "cosine_similarity", "kmeans"]
