"""API models for verification endpoints."""
import math
import uuid
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from roster_verify.core.config import settings
from roster_verify.domain.value_objects.verification import (
    BatchItemResult,
    ReferenceSource,
    ReferenceStatus,
    VerificationOutcome,
    VerificationOutcomeKind,
)


def check_descriptor(value: Optional[List[float]]) -> Optional[List[float]]:
    """Reject descriptors that are not finite vectors of the deployment's dimensionality."""
    if value is None:
        return value
    if len(value) != settings.EMBEDDING_DIMENSION:
        raise ValueError(
            f"descriptor must contain exactly {settings.EMBEDDING_DIMENSION} values, got {len(value)}"
        )
    if not all(math.isfinite(v) for v in value):
        raise ValueError("descriptor values must be finite numbers")
    return value


class ProbeInput(BaseModel):
    """A probe given either as a descriptor or as a captured image."""
    descriptor: Optional[List[float]] = Field(
        None,
        description="Face embedding computed by the client"
    )
    captured_image: Optional[str] = Field(
        None,
        description="Captured photo as a base64 data URL (data:image/jpeg;base64,...)"
    )

    @field_validator("descriptor")
    @classmethod
    def validate_descriptor(cls, v: Optional[List[float]]) -> Optional[List[float]]:
        return check_descriptor(v)

    @model_validator(mode="after")
    def require_probe(self) -> "ProbeInput":
        if not self.descriptor and not self.captured_image:
            raise ValueError("Captured image or descriptor is required")
        return self


class VerificationRequest(ProbeInput):
    """Request model for verifying one subject."""
    group_id: uuid.UUID = Field(..., description="Group whose reference set is the fallback")
    day: Optional[int] = Field(None, description="Program day (1-6); omit for the global verdict")
    threshold: Optional[float] = Field(
        None,
        description=f"Maximum match distance (default {settings.VERIFICATION_THRESHOLD}, lower is stricter)"
    )


class VerificationResponse(BaseModel):
    """Response model for a verification attempt."""
    subject_id: uuid.UUID
    outcome: VerificationOutcomeKind = Field(..., description="success, failed, no_face_detected or no_reference_available")
    confidence: float = Field(..., description="Heuristic confidence score, not a probability")
    distance: Optional[float] = Field(None, description="Distance to the closest reference")
    threshold: float = Field(..., description="Threshold used for the attempt")
    day: Optional[int] = None
    reference_source: Optional[ReferenceSource] = None
    reference_count: int = 0
    reference_status: Optional[ReferenceStatus] = None
    message: str = ""

    @classmethod
    def from_outcome(cls, outcome: VerificationOutcome) -> "VerificationResponse":
        """Convert the service outcome to the API response model."""
        return cls(**outcome.model_dump())


class BatchVerificationItem(ProbeInput):
    """One subject in a batch verification request."""
    subject_id: uuid.UUID


class BatchVerificationRequest(BaseModel):
    """Request model for verifying several subjects of one group."""
    group_id: uuid.UUID
    day: Optional[int] = None
    threshold: Optional[float] = None
    verifications: List[BatchVerificationItem] = Field(
        ...,
        min_length=1,
        max_length=settings.BULK_MAX_SUBJECTS,
        description=f"Subjects to verify (1-{settings.BULK_MAX_SUBJECTS})"
    )


class BatchVerificationResult(BaseModel):
    """Result of one batch entry."""
    subject_id: uuid.UUID
    outcome: Optional[VerificationOutcomeKind] = None
    confidence: float = 0.0
    distance: Optional[float] = None
    error: Optional[str] = None

    @classmethod
    def from_item(cls, item: BatchItemResult) -> "BatchVerificationResult":
        if item.outcome is None:
            return cls(subject_id=item.subject_id, error=item.error)
        return cls(
            subject_id=item.subject_id,
            outcome=item.outcome.outcome,
            confidence=item.outcome.confidence,
            distance=item.outcome.distance,
        )


class BatchVerificationResponse(BaseModel):
    """Response model for a batch verification."""
    message: str
    results: List[BatchVerificationResult]


class VerificationHealthResponse(BaseModel):
    """Embedding provider state and effective matching configuration."""
    status: str
    provider_ready: bool
    provider_error: Optional[str] = None
    threshold: float
    embedding_dimension: int
    max_image_size_mb: float
    supported_formats: List[str]
