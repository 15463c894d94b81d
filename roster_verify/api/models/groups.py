"""API models for group reference set endpoints."""
import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from roster_verify.api.models.verification import check_descriptor
from roster_verify.domain.entities.group import Group
from roster_verify.domain.value_objects.verification import ReferenceStatus


class StoreReferencesRequest(BaseModel):
    """Request model for storing client-computed group descriptors."""
    descriptors: List[List[float]] = Field(
        ...,
        description="One face embedding per face found in the group photo"
    )

    @field_validator("descriptors")
    @classmethod
    def validate_descriptors(cls, v: List[List[float]]) -> List[List[float]]:
        for descriptor in v:
            check_descriptor(descriptor)
        return v


class RegenerateReferencesRequest(BaseModel):
    """Request model for regenerating references from a group photo."""
    group_photo: str = Field(
        ...,
        description="Group photo as a base64 data URL (data:image/jpeg;base64,...)"
    )


class ReferenceStatusResponse(BaseModel):
    """Response model describing a group's reference set."""
    group_id: uuid.UUID
    name: str
    reference_status: ReferenceStatus
    reference_error: Optional[str] = None
    reference_updated_at: Optional[datetime] = None
    descriptors_count: int
    has_references: bool

    @classmethod
    def from_group(cls, group: Group) -> "ReferenceStatusResponse":
        """Create the API view from a group entity."""
        return cls(
            group_id=group.id,
            name=group.name,
            reference_status=group.reference_status,
            reference_error=group.reference_error,
            reference_updated_at=group.reference_updated_at,
            descriptors_count=len(group.reference_set),
            has_references=len(group.reference_set) > 0,
        )
