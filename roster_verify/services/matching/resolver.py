"""Best-match resolution of a probe embedding against a reference set."""
import math
import numbers
from typing import Optional, Sequence

from roster_verify.core.config import settings
from roster_verify.core.exceptions import InvalidThresholdError
from roster_verify.core.logging import get_logger
from roster_verify.domain.entities.embedding import EmbeddingLike
from roster_verify.domain.value_objects.verification import MatchResult
from roster_verify.services.matching.distance import euclidean_distance

logger = get_logger(__name__)


def validate_threshold(threshold: float) -> float:
    """Return ``threshold`` as a float if it is positive and finite.

    Raises:
        InvalidThresholdError: For non-numeric, non-positive, infinite or NaN values
    """
    if isinstance(threshold, bool) or not isinstance(threshold, numbers.Real):
        raise InvalidThresholdError(
            f"Threshold must be a number, got {type(threshold).__name__}",
            details={"threshold": repr(threshold)},
        )
    value = float(threshold)
    if not math.isfinite(value) or value <= 0:
        raise InvalidThresholdError(
            f"Threshold must be a positive finite number, got {value}",
            details={"threshold": value},
        )
    return value


def confidence_from_distance(distance: float) -> float:
    """Heuristic display score; floored at 0 but not capped at 100."""
    return max(0.0, (1.0 - distance) * 100.0)


class MatchResolver:
    """Finds the closest reference to a probe and classifies it against a threshold.

    Example:
        ```python
        resolver = MatchResolver()
        result = resolver.resolve(probe, [ref_a, ref_b], threshold=0.5)
        if result.matched:
            ...
        ```
    """

    def __init__(self, default_threshold: Optional[float] = None) -> None:
        """Initialize the resolver.

        Args:
            default_threshold: Threshold used when ``resolve`` gets none
                (defaults to VERIFICATION_THRESHOLD)
        """
        self.default_threshold = validate_threshold(
            settings.VERIFICATION_THRESHOLD if default_threshold is None else default_threshold
        )

    def resolve(
        self,
        probe: EmbeddingLike,
        references: Sequence[EmbeddingLike],
        threshold: Optional[float] = None,
    ) -> MatchResult:
        """Resolve ``probe`` against ``references``.

        An empty reference set is a normal outcome: no match, no distance,
        zero confidence. A match requires ``best_distance < threshold``.

        Args:
            probe: Embedding being verified
            references: Candidate embeddings; any one at the minimal distance is the match
            threshold: Maximum distance for a match (defaults to ``default_threshold``)

        Returns:
            MatchResult with matched flag, best distance and confidence

        Raises:
            InvalidThresholdError: Before any comparison, for an invalid threshold
            DimensionMismatchError: If any reference disagrees with the probe's length
        """
        limit = self.default_threshold if threshold is None else validate_threshold(threshold)

        if len(references) == 0:
            return MatchResult(matched=False, best_distance=None, confidence=0.0)

        # Every reference is compared; a single malformed entry fails the whole set
        best_distance = min(euclidean_distance(probe, reference) for reference in references)

        result = MatchResult(
            matched=best_distance < limit,
            best_distance=best_distance,
            confidence=confidence_from_distance(best_distance),
        )
        logger.debug(
            "Resolved probe against references",
            references_count=len(references),
            best_distance=best_distance,
            threshold=limit,
            matched=result.matched,
        )
        return result
