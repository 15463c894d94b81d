"""Recognition interfaces package."""
from .embedding_provider import EmbeddingProvider

__all__ = ["EmbeddingProvider"]
