"""Ripeness scoring."""

from .scorer import RipenessScorer

__all__ = ["RipenessScorer"]
