"""Operator-driven verification state changes: manual verify, reset and removal."""
import uuid
from typing import Optional, Sequence, Tuple

from roster_verify.core.exceptions import StateTransitionError
from roster_verify.core.logging import get_logger
from roster_verify.domain.entities.subject import Subject, validate_day
from roster_verify.domain.interfaces.storage.repositories import AbstractUnitOfWork
from roster_verify.domain.value_objects.verification import (
    BulkAction,
    BulkActionResult,
    BulkSkip,
    VerificationResult,
)

logger = get_logger(__name__)

BULK_VERIFY_REASON = "Bulk verification"
BULK_RESET_REASON = "Bulk reset"


def _scope_name(day: Optional[int]) -> str:
    return f"day{day}" if day is not None else "global"


class SubjectStateService:
    """Service applying manual overrides to subject verification scopes."""

    def __init__(self, uow: AbstractUnitOfWork) -> None:
        """Initialize the service.

        Args:
            uow: Unit of work giving access to subjects
        """
        self._uow = uow

    async def manually_verify(
        self,
        subject_id: uuid.UUID,
        day: Optional[int] = None,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Subject:
        """Mark one scope of a subject as manually verified.

        Raises:
            SubjectNotFoundError: If the subject does not exist
            InvalidDayError: If the day is outside 1..6
            AlreadyManuallyVerifiedError: If the scope is already manually verified
        """
        if day is not None:
            validate_day(day)
        subject = await self._uow.subjects.get(subject_id)
        subject.manually_verify(day=day, reason=reason, notes=notes)
        await self._uow.subjects.save_verification_state(subject)

        logger.info(
            "Subject manually verified",
            subject_id=str(subject_id),
            name=subject.name,
            roll_number=subject.roll_number,
            scope=_scope_name(day),
        )
        return subject

    async def reset_verification(
        self,
        subject_id: uuid.UUID,
        day: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> Tuple[Subject, VerificationResult]:
        """Return one scope of a subject to pending.

        Returns:
            The updated subject and the status the scope had before the reset

        Raises:
            SubjectNotFoundError: If the subject does not exist
            InvalidDayError: If the day is outside 1..6
            AlreadyPendingError: If the scope is already pending
        """
        if day is not None:
            validate_day(day)
        subject = await self._uow.subjects.get(subject_id)
        previous = subject.reset_verification(day=day, reason=reason)
        await self._uow.subjects.save_verification_state(subject)

        logger.info(
            "Subject verification reset",
            subject_id=str(subject_id),
            name=subject.name,
            roll_number=subject.roll_number,
            scope=_scope_name(day),
            previous_status=previous.value,
        )
        return subject, previous

    async def bulk_action(
        self,
        action: BulkAction,
        subject_ids: Sequence[uuid.UUID],
        day: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> BulkActionResult:
        """Apply a manual verify or reset to many subjects.

        Each subject goes through the same state machine as the single
        operations. Subjects rejected by a guard are reported as skipped and
        the others are still updated; nothing is rolled back across subjects.

        Raises:
            InvalidDayError: If the day is outside 1..6
        """
        if day is not None:
            validate_day(day)

        unique_ids = list(dict.fromkeys(subject_ids))
        subjects = {subject.id: subject for subject in await self._uow.subjects.get_many(unique_ids)}
        result = BulkActionResult(action=action, requested=len(unique_ids))

        for subject_id in unique_ids:
            subject = subjects.get(subject_id)
            if subject is None:
                result.missing.append(subject_id)
                continue

            try:
                if action == BulkAction.MANUAL_VERIFY:
                    subject.manually_verify(day=day, reason=reason or BULK_VERIFY_REASON)
                else:
                    subject.reset_verification(day=day, reason=reason or BULK_RESET_REASON)
            except StateTransitionError as e:
                result.skipped.append(
                    BulkSkip(
                        subject_id=subject_id,
                        reason=str(e),
                        current_result=subject.scope(day).result,
                    )
                )
                continue

            await self._uow.subjects.save_verification_state(subject)
            result.processed.append(subject_id)

        logger.info(
            "Bulk action completed",
            action=action.value,
            scope=_scope_name(day),
            requested=result.requested,
            processed=result.processed_count,
            skipped=len(result.skipped),
            missing=len(result.missing),
        )
        return result

    async def remove_subject(self, subject_id: uuid.UUID) -> Subject:
        """Delete a subject together with all of its verification state.

        Raises:
            SubjectNotFoundError: If the subject does not exist
        """
        subject = await self._uow.subjects.get(subject_id)
        await self._uow.subjects.delete(subject_id)

        logger.info(
            "Subject deleted",
            subject_id=str(subject_id),
            name=subject.name,
            roll_number=subject.roll_number,
        )
        return subject
