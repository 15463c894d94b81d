"""Embedding matching package."""
from .distance import euclidean_distance
from .resolver import MatchResolver, confidence_from_distance, validate_threshold

__all__ = ["MatchResolver", "confidence_from_distance", "euclidean_distance", "validate_threshold"]
