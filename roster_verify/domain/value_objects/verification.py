"""Verification value objects."""
import uuid
from enum import Enum
from typing import List, Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field


class VerificationResult(str, Enum):
    """Verdict stored for one verification scope."""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    MANUALLY_VERIFIED = "manually_verified"


class ReferenceStatus(str, Enum):
    """Whether a group's reference set is currently usable."""
    IDLE = "idle"
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"


class ReferenceSource(str, Enum):
    """Where the reference embeddings for an attempt came from."""
    PERSONAL = "personal"
    GROUP = "group"


class VerificationOutcomeKind(str, Enum):
    """Classified result of a single verification attempt."""
    SUCCESS = "success"
    FAILED = "failed"
    NO_FACE_DETECTED = "no_face_detected"
    NO_REFERENCE_AVAILABLE = "no_reference_available"


class BulkAction(str, Enum):
    """Operator actions that can be applied to many subjects at once."""
    MANUAL_VERIFY = "manual-verify"
    RESET_VERIFICATION = "reset-verification"


class MatchResult(BaseModel):
    """Result of resolving a probe against a reference set."""
    matched: bool = Field(..., description="Whether the best distance is below the threshold")
    best_distance: Optional[float] = Field(None, description="Smallest distance, None when nothing was compared")
    confidence: float = Field(..., description="Heuristic display score, (1 - distance) * 100 floored at 0")


class ReferenceSelection(BaseModel):
    """Reference embeddings chosen for a subject."""
    source: ReferenceSource = Field(..., description="Personal embedding or group reference set")
    embeddings: List[np.ndarray] = Field(default_factory=list, description="Embeddings to compare against")

    model_config = ConfigDict(arbitrary_types_allowed=True)


class VerificationOutcome(BaseModel):
    """Outcome of one verification attempt."""
    subject_id: uuid.UUID = Field(..., description="Subject that was verified")
    outcome: VerificationOutcomeKind = Field(..., description="Classified outcome")
    confidence: float = Field(0.0, description="Heuristic confidence score")
    distance: Optional[float] = Field(None, description="Best distance to the references")
    threshold: float = Field(..., description="Threshold used for the attempt")
    day: Optional[int] = Field(None, description="Day scope (1-6), None for the global scope")
    reference_source: Optional[ReferenceSource] = Field(None, description="Which references were used")
    reference_count: int = Field(0, description="Number of reference embeddings compared")
    reference_status: Optional[ReferenceStatus] = Field(None, description="Group reference status when relevant")
    message: str = Field("", description="Human readable summary")

    @property
    def matched(self) -> bool:
        return self.outcome == VerificationOutcomeKind.SUCCESS


class BulkSkip(BaseModel):
    """A subject left untouched by a bulk action."""
    subject_id: uuid.UUID
    reason: str
    current_result: Optional[VerificationResult] = None


class BulkActionResult(BaseModel):
    """Aggregate report of a bulk manual-verify or reset."""
    action: BulkAction
    requested: int = Field(..., description="Number of subject ids requested")
    processed: List[uuid.UUID] = Field(default_factory=list, description="Subjects whose state changed")
    skipped: List[BulkSkip] = Field(default_factory=list, description="Subjects rejected by a state guard")
    missing: List[uuid.UUID] = Field(default_factory=list, description="Subject ids that do not exist")

    @property
    def processed_count(self) -> int:
        return len(self.processed)


class BatchItemResult(BaseModel):
    """Result of one entry in a batch verification."""
    subject_id: uuid.UUID
    outcome: Optional[VerificationOutcome] = None
    error: Optional[str] = None
