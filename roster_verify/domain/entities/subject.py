"""Subject domain entity and its verification state machines.

A subject carries one global verdict plus six independent per-day verdicts.
Each scope follows the same transitions:

    pending -> success | failed | manually_verified   (verification attempt / manual verify)
    success | failed | manually_verified -> pending   (explicit reset only)

A write to one scope never touches another.
"""
import uuid
from datetime import datetime, timezone
from typing import Iterator, Optional, Tuple, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

from roster_verify.core.exceptions import (
    AlreadyManuallyVerifiedError,
    AlreadyPendingError,
    InvalidDayError,
)
from roster_verify.domain.entities.embedding import to_embedding
from roster_verify.domain.value_objects.verification import VerificationResult

DAYS = (1, 2, 3, 4, 5, 6)


def validate_day(day: int) -> int:
    """Check that ``day`` names one of the six program days."""
    if isinstance(day, bool) or not isinstance(day, int) or day not in DAYS:
        raise InvalidDayError(
            f"Day must be an integer between {DAYS[0]} and {DAYS[-1]}, got {day!r}",
            details={"day": day},
        )
    return day


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clean(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    text = text.strip()
    return text or None


class ScopeVerification(BaseModel):
    """Verdict record for a single scope."""
    result: VerificationResult = Field(VerificationResult.PENDING, description="Current verdict")
    confidence: Optional[float] = Field(None, description="Confidence of the last automatic verdict")
    date: Optional[datetime] = Field(None, description="When the verdict was recorded")

    @property
    def is_pending(self) -> bool:
        return self.result == VerificationResult.PENDING

    def record(self, matched: bool, confidence: float, at: datetime) -> None:
        self.result = VerificationResult.SUCCESS if matched else VerificationResult.FAILED
        self.confidence = confidence
        self.date = at

    def clear(self) -> None:
        self.result = VerificationResult.PENDING
        self.confidence = None
        self.date = None


class GlobalVerification(ScopeVerification):
    """Global verdict with manual-verification and reset metadata."""
    manual_reason: Optional[str] = None
    manual_notes: Optional[str] = None
    manual_date: Optional[datetime] = None
    last_reset_date: Optional[datetime] = None
    reset_reason: Optional[str] = None

    def clear(self) -> None:
        super().clear()
        self.manual_reason = None
        self.manual_notes = None
        self.manual_date = None


class DayVerifications(BaseModel):
    """Exactly six independent per-day verdicts, indexed 1..6."""
    day1: ScopeVerification = Field(default_factory=ScopeVerification)
    day2: ScopeVerification = Field(default_factory=ScopeVerification)
    day3: ScopeVerification = Field(default_factory=ScopeVerification)
    day4: ScopeVerification = Field(default_factory=ScopeVerification)
    day5: ScopeVerification = Field(default_factory=ScopeVerification)
    day6: ScopeVerification = Field(default_factory=ScopeVerification)

    def get(self, day: int) -> ScopeVerification:
        return getattr(self, f"day{validate_day(day)}")

    def items(self) -> Iterator[Tuple[int, ScopeVerification]]:
        for day in DAYS:
            yield day, getattr(self, f"day{day}")


class Subject(BaseModel):
    """A person on a group roster who can be verified."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4, description="Subject identifier")
    group_id: uuid.UUID = Field(..., description="Group (school) the subject belongs to")
    name: Optional[str] = None
    roll_number: Optional[str] = None
    registration_no: Optional[str] = None
    class_name: Optional[str] = None
    age_group: Optional[str] = None
    personal_embedding: Optional[np.ndarray] = Field(
        None, description="Subject-specific descriptor, authoritative over the group set"
    )
    global_verification: GlobalVerification = Field(default_factory=GlobalVerification)
    day_verification: DayVerifications = Field(default_factory=DayVerifications)

    model_config = ConfigDict(arbitrary_types_allowed=True, validate_assignment=True)

    @field_validator("personal_embedding", mode="before")
    @classmethod
    def validate_personal_embedding(cls, v: Optional[Union[np.ndarray, list]]) -> Optional[np.ndarray]:
        """Validate and convert the personal embedding to a float64 array."""
        if v is None:
            return None
        return to_embedding(v)

    def scope(self, day: Optional[int] = None) -> ScopeVerification:
        """Return the verdict record for the global scope (``day=None``) or a day."""
        if day is None:
            return self.global_verification
        return self.day_verification.get(day)

    def record_verdict(
        self,
        matched: bool,
        confidence: float,
        day: Optional[int] = None,
        at: Optional[datetime] = None,
    ) -> ScopeVerification:
        """Store the result of an automatic verification attempt in one scope."""
        scope = self.scope(day)
        scope.record(matched, confidence, at or _utcnow())
        return scope

    def manually_verify(
        self,
        day: Optional[int] = None,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> ScopeVerification:
        """Force a scope to ``manually_verified``.

        Raises:
            AlreadyManuallyVerifiedError: If the scope is already manually verified.
                ``details`` carries the existing verification date.
        """
        scope = self.scope(day)
        when = at or _utcnow()

        if scope.result == VerificationResult.MANUALLY_VERIFIED:
            existing = scope.manual_date if isinstance(scope, GlobalVerification) else scope.date
            raise AlreadyManuallyVerifiedError(
                "Subject is already manually verified",
                details={
                    "subject_id": str(self.id),
                    "day": day,
                    "current_result": scope.result.value,
                    "verification_date": existing.isoformat() if existing else None,
                },
            )

        scope.result = VerificationResult.MANUALLY_VERIFIED
        scope.date = when
        scope.confidence = None
        if isinstance(scope, GlobalVerification):
            scope.manual_date = when
            scope.manual_reason = _clean(reason)
            scope.manual_notes = _clean(notes)
        return scope

    def reset_verification(
        self,
        day: Optional[int] = None,
        reason: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> VerificationResult:
        """Force a scope back to ``pending``, clearing its manual metadata.

        Returns:
            VerificationResult: The status the scope had before the reset

        Raises:
            AlreadyPendingError: If the scope is already pending
        """
        scope = self.scope(day)

        if scope.is_pending:
            raise AlreadyPendingError(
                "Subject verification is already pending",
                details={
                    "subject_id": str(self.id),
                    "day": day,
                    "current_result": scope.result.value,
                },
            )

        previous = scope.result
        scope.clear()
        if isinstance(scope, GlobalVerification):
            scope.last_reset_date = at or _utcnow()
            scope.reset_reason = _clean(reason)
        return previous
