"""Value objects package."""
from .verification import (
    BatchItemResult,
    BulkAction,
    BulkActionResult,
    BulkSkip,
    MatchResult,
    ReferenceSelection,
    ReferenceSource,
    ReferenceStatus,
    VerificationOutcome,
    VerificationOutcomeKind,
    VerificationResult,
)

__all__ = [
    "BatchItemResult",
    "BulkAction",
    "BulkActionResult",
    "BulkSkip",
    "MatchResult",
    "ReferenceSelection",
    "ReferenceSource",
    "ReferenceStatus",
    "VerificationOutcome",
    "VerificationOutcomeKind",
    "VerificationResult",
]
