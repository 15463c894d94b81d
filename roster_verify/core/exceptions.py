"""Custom exceptions for the roster verification service."""
from typing import Optional


class VerificationError(Exception):
    """Base exception for verification operations."""

    def __init__(self, message: str, details: Optional[dict] = None):
        """
        Initialize verification error.

        Args:
            message: Error description
            details: Additional error context
        """
        super().__init__(message)
        self.details = details or {}


class DimensionMismatchError(VerificationError):
    """Raised when two embeddings (or an embedding and the deployment) disagree on length."""
    pass


class InvalidEmbeddingError(VerificationError):
    """Raised when an embedding holds NaN or infinite values."""
    pass


class InvalidThresholdError(VerificationError):
    """Raised when a match threshold is not a positive finite number."""
    pass


class InvalidDayError(VerificationError):
    """Raised when a verification day falls outside 1..6."""
    pass


class InvalidImageError(VerificationError):
    """Raised when the provided image is invalid or cannot be processed."""
    pass


class ImageTooLargeError(VerificationError):
    """Raised when the encoded image exceeds the maximum allowed size."""
    pass


class NoFaceDetectedError(VerificationError):
    """Raised when no face is detected in the image."""
    pass


class NoReferenceAvailableError(VerificationError):
    """Raised when a group has no usable reference set."""
    pass


class ReferenceNotReadyError(NoReferenceAvailableError):
    """Raised when a group's reference set is being regenerated or failed to generate."""
    pass


class ProviderUnavailableError(VerificationError):
    """Raised when the embedding provider could not be initialized."""
    pass


class StateTransitionError(VerificationError):
    """Base exception for rejected verification state transitions."""
    pass


class AlreadyManuallyVerifiedError(StateTransitionError):
    """Raised when manually verifying a scope that is already manually verified."""
    pass


class AlreadyPendingError(StateTransitionError):
    """Raised when resetting a scope that is already pending."""
    pass


class PersistenceError(VerificationError):
    """Base exception for storage operations."""
    pass


class SubjectNotFoundError(PersistenceError):
    """Raised when attempting to access a non-existent subject."""
    pass


class GroupNotFoundError(PersistenceError):
    """Raised when attempting to access a non-existent group."""
    pass


class ServiceNotInitializedError(VerificationError):
    """Raised when a dependency is requested before the container is ready."""
    pass
