"""Embedding provider interface."""
from abc import ABC, abstractmethod
from typing import Iterator

import numpy as np


class EmbeddingProvider(ABC):
    """Interface for turning an image into face embeddings."""

    @property
    @abstractmethod
    def is_ready(self) -> bool:
        """Whether the underlying model is loaded and usable."""
        pass

    @abstractmethod
    async def initialize(self) -> None:
        """
        Load the underlying model once per process.

        Raises:
            ProviderUnavailableError: If loading fails now or failed before
        """
        pass

    @abstractmethod
    async def extract_embeddings(self, image_bytes: bytes) -> Iterator[np.ndarray]:
        """
        Detect faces and extract their embeddings.

        Args:
            image_bytes: Raw encoded image data

        Returns:
            Lazy, finite iterator with one embedding per detected face, best
            detection first. An empty iterator means no face was found.

        Raises:
            ProviderUnavailableError: If the model could not be initialized
            InvalidImageError: If the image cannot be decoded
            DimensionMismatchError: If the model yields embeddings of the wrong length
        """
        pass
