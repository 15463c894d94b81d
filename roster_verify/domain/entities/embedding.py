"""Face embedding helpers."""
from typing import Optional, Sequence, Union

import numpy as np

from roster_verify.core.config import settings
from roster_verify.core.exceptions import DimensionMismatchError, InvalidEmbeddingError

# A face embedding is a 1-D float64 vector of the deployment's dimensionality
Embedding = np.ndarray

EmbeddingLike = Union[np.ndarray, Sequence[float]]


def to_embedding(values: EmbeddingLike, dimension: Optional[int] = None) -> Embedding:
    """Convert a sequence of numbers to a read-only float64 embedding.

    Args:
        values: Raw embedding values (list, tuple or array)
        dimension: Required length; defaults to EMBEDDING_DIMENSION

    Returns:
        Embedding: Immutable 1-D float64 array

    Raises:
        DimensionMismatchError: If the values are not a flat vector of the required length
        InvalidEmbeddingError: If any value is NaN or infinite
    """
    expected = settings.EMBEDDING_DIMENSION if dimension is None else dimension
    array = np.array(values, dtype=np.float64)

    if array.ndim != 1 or array.shape[0] != expected:
        raise DimensionMismatchError(
            f"Expected a {expected}-dimensional embedding, got shape {array.shape}",
            details={"expected": expected, "actual": list(array.shape)},
        )
    if not np.isfinite(array).all():
        raise InvalidEmbeddingError("Embedding values must be finite numbers")

    array.setflags(write=False)
    return array
