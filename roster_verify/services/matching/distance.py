"""Distance metric between face embeddings."""
import numpy as np

from roster_verify.core.exceptions import DimensionMismatchError
from roster_verify.domain.entities.embedding import EmbeddingLike


def euclidean_distance(a: EmbeddingLike, b: EmbeddingLike) -> float:
    """Euclidean distance ``sqrt(sum((a_i - b_i) ** 2))`` in float64.

    Symmetric, non-negative and zero for elementwise-equal inputs.

    Raises:
        DimensionMismatchError: If the embeddings are not flat vectors of equal length
    """
    first = np.asarray(a, dtype=np.float64)
    second = np.asarray(b, dtype=np.float64)

    if first.ndim != 1 or second.ndim != 1 or first.shape != second.shape:
        raise DimensionMismatchError(
            f"Cannot compare embeddings of shapes {first.shape} and {second.shape}",
            details={"left": list(first.shape), "right": list(second.shape)},
        )

    return float(np.sqrt(np.sum(np.square(first - second))))
