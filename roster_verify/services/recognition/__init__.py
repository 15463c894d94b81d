"""Embedding provider implementations."""
from .insight_face import InsightFaceEmbeddingProvider

__all__ = ["InsightFaceEmbeddingProvider"]
