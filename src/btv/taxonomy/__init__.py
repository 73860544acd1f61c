"""Taxonomy classification of beats."""

from .classifier import TaxonomyClassifier, classify

__all__ = ["TaxonomyClassifier", "classify"]
