"""Database repositories for the roster verification service."""
import functools
import uuid
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

import numpy as np
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from roster_verify.core.exceptions import GroupNotFoundError, PersistenceError, SubjectNotFoundError
from roster_verify.core.logging import get_logger
from roster_verify.domain.entities.group import Group
from roster_verify.domain.entities.subject import (
    DAYS,
    DayVerifications,
    GlobalVerification,
    ScopeVerification,
    Subject,
)
from roster_verify.domain.interfaces.storage.repositories import GroupRepository, SubjectRepository
from roster_verify.domain.value_objects.verification import ReferenceStatus, VerificationResult
from roster_verify.infrastructure.database import models

logger = get_logger(__name__)

T = TypeVar("T")


def wrap_db_errors(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    """Translate SQLAlchemy failures into PersistenceError."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs) -> T:
        try:
            return await func(*args, **kwargs)
        except SQLAlchemyError as e:
            logger.error("Database operation failed", operation=func.__qualname__, error=str(e), exc_info=True)
            raise PersistenceError(f"Database operation failed: {str(e)}") from e

    return wrapper


def _embedding_to_json(embedding: Optional[np.ndarray]) -> Optional[List[float]]:
    if embedding is None:
        return None
    return [float(value) for value in embedding]


def _group_to_entity(row: models.Group) -> Group:
    return Group(
        id=row.id,
        name=row.name,
        reference_set=row.reference_set or [],
        reference_status=ReferenceStatus(row.reference_status),
        reference_error=row.reference_error,
        reference_updated_at=row.reference_updated_at,
    )


def _subject_to_entity(row: models.Subject) -> Subject:
    days = DayVerifications()
    for day_row in row.day_verifications:
        scope = days.get(day_row.day)
        scope.result = VerificationResult(day_row.result)
        scope.confidence = day_row.confidence
        scope.date = day_row.date

    return Subject(
        id=row.id,
        group_id=row.group_id,
        name=row.name,
        roll_number=row.roll_number,
        registration_no=row.registration_no,
        class_name=row.class_name,
        age_group=row.age_group,
        personal_embedding=row.personal_embedding,
        global_verification=GlobalVerification(
            result=VerificationResult(row.verification_result),
            confidence=row.verification_confidence,
            date=row.verification_date,
            manual_reason=row.manual_verification_reason,
            manual_notes=row.manual_verification_notes,
            manual_date=row.manual_verification_date,
            last_reset_date=row.last_reset_date,
            reset_reason=row.reset_reason,
        ),
        day_verification=days,
    )


def _apply_day(row: models.DayVerification, scope: ScopeVerification) -> None:
    row.result = scope.result.value
    row.confidence = scope.confidence
    row.date = scope.date


class SqlGroupRepository(GroupRepository):
    """Repository for group operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository.

        Args:
            session: Database session
        """
        self._session = session

    async def _get_row(self, group_id: uuid.UUID) -> models.Group:
        row = await self._session.get(models.Group, group_id)
        if row is None:
            raise GroupNotFoundError(f"Group not found: {group_id}", details={"group_id": str(group_id)})
        return row

    @wrap_db_errors
    async def get(self, group_id: uuid.UUID) -> Group:
        """Get group by ID.

        Raises:
            GroupNotFoundError: If group not found
        """
        return _group_to_entity(await self._get_row(group_id))

    @wrap_db_errors
    async def add(self, group: Group) -> Group:
        """Create a new group record."""
        row = models.Group(
            id=group.id,
            name=group.name,
            reference_set=[_embedding_to_json(e) for e in group.reference_set],
            reference_status=group.reference_status.value,
            reference_error=group.reference_error,
            reference_updated_at=group.reference_updated_at,
        )
        self._session.add(row)
        await self._session.flush()
        return group

    @wrap_db_errors
    async def save_references(self, group: Group) -> None:
        """Write all reference fields of a group in one update."""
        row = await self._get_row(group.id)
        row.reference_set = [_embedding_to_json(e) for e in group.reference_set]
        row.reference_status = group.reference_status.value
        row.reference_error = group.reference_error
        row.reference_updated_at = group.reference_updated_at
        await self._session.flush()


class SqlSubjectRepository(SubjectRepository):
    """Repository for subject operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository.

        Args:
            session: Database session
        """
        self._session = session

    async def _get_row(self, subject_id: uuid.UUID) -> models.Subject:
        row = await self._session.get(models.Subject, subject_id)
        if row is None:
            raise SubjectNotFoundError(
                f"Subject not found: {subject_id}",
                details={"subject_id": str(subject_id)},
            )
        return row

    @wrap_db_errors
    async def get(self, subject_id: uuid.UUID) -> Subject:
        """Get subject by ID with all verification scopes.

        Raises:
            SubjectNotFoundError: If subject not found
        """
        return _subject_to_entity(await self._get_row(subject_id))

    @wrap_db_errors
    async def get_many(self, subject_ids: Sequence[uuid.UUID]) -> List[Subject]:
        """Get the existing subjects among the given IDs."""
        if not subject_ids:
            return []
        stmt = select(models.Subject).where(models.Subject.id.in_(list(subject_ids)))
        result = await self._session.execute(stmt)
        return [_subject_to_entity(row) for row in result.scalars().all()]

    @wrap_db_errors
    async def add(self, subject: Subject) -> Subject:
        """Create a new subject record with one row per program day."""
        row = models.Subject(
            id=subject.id,
            group_id=subject.group_id,
            name=subject.name,
            roll_number=subject.roll_number,
            registration_no=subject.registration_no,
            class_name=subject.class_name,
            age_group=subject.age_group,
            personal_embedding=_embedding_to_json(subject.personal_embedding),
        )
        self._apply_global(row, subject.global_verification)
        row.day_verifications = [models.DayVerification(day=day) for day in DAYS]
        for day_row in row.day_verifications:
            _apply_day(day_row, subject.day_verification.get(day_row.day))

        self._session.add(row)
        await self._session.flush()
        return subject

    @staticmethod
    def _apply_global(row: models.Subject, scope: GlobalVerification) -> None:
        row.verification_result = scope.result.value
        row.verification_confidence = scope.confidence
        row.verification_date = scope.date
        row.manual_verification_reason = scope.manual_reason
        row.manual_verification_notes = scope.manual_notes
        row.manual_verification_date = scope.manual_date
        row.last_reset_date = scope.last_reset_date
        row.reset_reason = scope.reset_reason

    @wrap_db_errors
    async def save_verification_state(self, subject: Subject) -> None:
        """Write the global scope and all six day scopes."""
        row = await self._get_row(subject.id)
        self._apply_global(row, subject.global_verification)

        existing = {day_row.day: day_row for day_row in row.day_verifications}
        for day, scope in subject.day_verification.items():
            day_row = existing.get(day)
            if day_row is None:
                day_row = models.DayVerification(day=day)
                row.day_verifications.append(day_row)
            _apply_day(day_row, scope)

        await self._session.flush()

    @wrap_db_errors
    async def save_personal_embedding(self, subject: Subject) -> None:
        """Write the subject-specific descriptor."""
        row = await self._get_row(subject.id)
        row.personal_embedding = _embedding_to_json(subject.personal_embedding)
        await self._session.flush()

    @wrap_db_errors
    async def delete(self, subject_id: uuid.UUID) -> None:
        """Delete a subject; its day rows go with it."""
        row = await self._get_row(subject_id)
        await self._session.delete(row)
        await self._session.flush()
