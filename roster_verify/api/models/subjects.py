"""API models for subject endpoints."""
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from roster_verify.api.models.verification import ProbeInput
from roster_verify.core.config import settings
from roster_verify.domain.entities.subject import Subject
from roster_verify.domain.value_objects.verification import (
    BulkAction,
    BulkActionResult,
    BulkSkip,
    VerificationResult,
)


class ManualVerifyRequest(BaseModel):
    """Request model for manually verifying a subject."""
    reason: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=2000)
    day: Optional[int] = Field(None, description="Program day (1-6); omit for the global verdict")


class ResetVerificationRequest(BaseModel):
    """Request model for resetting a subject to pending."""
    reason: Optional[str] = Field(None, max_length=500)
    day: Optional[int] = Field(None, description="Program day (1-6); omit for the global verdict")


class BulkActionRequest(BaseModel):
    """Request model for bulk manual verify / reset."""
    action: BulkAction
    subject_ids: List[uuid.UUID] = Field(
        ...,
        min_length=1,
        max_length=settings.BULK_MAX_SUBJECTS,
        description=f"Subjects to update (1-{settings.BULK_MAX_SUBJECTS})"
    )
    day: Optional[int] = None
    reason: Optional[str] = Field(None, max_length=500)


class ScopeState(BaseModel):
    """API view of one verification scope."""
    result: VerificationResult
    confidence: Optional[float] = None
    date: Optional[datetime] = None


class SubjectVerificationState(BaseModel):
    """API view of a subject's verification state."""
    subject_id: uuid.UUID
    group_id: uuid.UUID
    name: Optional[str] = None
    roll_number: Optional[str] = None
    has_personal_embedding: bool
    verification: ScopeState
    manually_verified: bool
    manual_verification_date: Optional[datetime] = None
    manual_verification_reason: Optional[str] = None
    manual_verification_notes: Optional[str] = None
    day_verification: Dict[str, ScopeState]

    @classmethod
    def from_subject(cls, subject: Subject) -> "SubjectVerificationState":
        """Create the API view from a subject entity."""
        overall = subject.global_verification
        return cls(
            subject_id=subject.id,
            group_id=subject.group_id,
            name=subject.name,
            roll_number=subject.roll_number,
            has_personal_embedding=subject.personal_embedding is not None,
            verification=ScopeState(result=overall.result, confidence=overall.confidence, date=overall.date),
            manually_verified=overall.result == VerificationResult.MANUALLY_VERIFIED,
            manual_verification_date=overall.manual_date,
            manual_verification_reason=overall.manual_reason,
            manual_verification_notes=overall.manual_notes,
            day_verification={
                f"day{day}": ScopeState(result=scope.result, confidence=scope.confidence, date=scope.date)
                for day, scope in subject.day_verification.items()
            },
        )


class SubjectStateResponse(BaseModel):
    """Response model for single-subject state changes."""
    message: str
    subject: SubjectVerificationState
    previous_status: Optional[VerificationResult] = None


class BulkActionResponse(BaseModel):
    """Response model for bulk actions."""
    action: BulkAction
    processed: int
    total_requested: int
    skipped: List[BulkSkip]
    missing: List[uuid.UUID]
    message: str

    @classmethod
    def from_service_response(cls, result: BulkActionResult) -> "BulkActionResponse":
        verb = "manually verified" if result.action == BulkAction.MANUAL_VERIFY else "verification reset"
        return cls(
            action=result.action,
            processed=result.processed_count,
            total_requested=result.requested,
            skipped=result.skipped,
            missing=result.missing,
            message=f"{result.processed_count} subjects {verb}",
        )


class PersonalEmbeddingRequest(ProbeInput):
    """Request model for storing a subject's personal embedding."""
    pass


class DeleteSubjectResponse(BaseModel):
    """Response model for subject removal."""
    message: str
    subject_id: uuid.UUID
    name: Optional[str] = None
    roll_number: Optional[str] = None
