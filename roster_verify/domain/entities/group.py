"""Group domain entity."""
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Sequence

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

from roster_verify.domain.entities.embedding import EmbeddingLike, to_embedding
from roster_verify.domain.value_objects.verification import ReferenceStatus


class Group(BaseModel):
    """A group (school) owning a shared reference set of face embeddings.

    Invariants:
        - ``reference_status == READY`` implies a non-empty reference set.
        - ``reference_status == ERROR`` means the set may be stale or empty and
          must not be used for verification.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, description="Group identifier")
    name: str = Field(..., description="Display name of the group")
    reference_set: List[np.ndarray] = Field(default_factory=list, description="Group photo embeddings")
    reference_status: ReferenceStatus = Field(ReferenceStatus.IDLE, description="Reference set lifecycle status")
    reference_error: Optional[str] = Field(None, description="Reason the last generation failed")
    reference_updated_at: Optional[datetime] = Field(None, description="Last reference status change")

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @field_validator("reference_set", mode="before")
    @classmethod
    def validate_reference_set(cls, v: Optional[Sequence[EmbeddingLike]]) -> List[np.ndarray]:
        """Convert every member to an embedding of the deployment dimension."""
        if v is None:
            return []
        return [to_embedding(item) for item in v]

    @property
    def is_usable(self) -> bool:
        return self.reference_status not in (ReferenceStatus.PROCESSING, ReferenceStatus.ERROR)

    def mark_processing(self, at: Optional[datetime] = None) -> None:
        """Flag the reference set as being regenerated."""
        self.reference_status = ReferenceStatus.PROCESSING
        self.reference_error = None
        self.reference_updated_at = at or datetime.now(timezone.utc)

    def mark_ready(self, embeddings: Sequence[EmbeddingLike], at: Optional[datetime] = None) -> None:
        """Replace the reference set with freshly generated embeddings."""
        converted = [to_embedding(item) for item in embeddings]
        if not converted:
            raise ValueError("A ready reference set must contain at least one embedding")
        self.reference_set = converted
        self.reference_status = ReferenceStatus.READY
        self.reference_error = None
        self.reference_updated_at = at or datetime.now(timezone.utc)

    def mark_error(self, message: str, at: Optional[datetime] = None) -> None:
        """Record a failed generation; the previous set is kept but no longer used."""
        self.reference_status = ReferenceStatus.ERROR
        self.reference_error = message
        self.reference_updated_at = at or datetime.now(timezone.utc)
