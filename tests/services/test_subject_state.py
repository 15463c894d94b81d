"""Tests for manual verification, reset and bulk actions."""
import uuid

import pytest

from roster_verify.core.exceptions import (
    AlreadyManuallyVerifiedError,
    AlreadyPendingError,
    InvalidDayError,
    SubjectNotFoundError,
)
from roster_verify.domain.entities.subject import Subject
from roster_verify.domain.value_objects.verification import BulkAction, VerificationResult
from roster_verify.services.subject_state import BULK_RESET_REASON, BULK_VERIFY_REASON, SubjectStateService


@pytest.fixture
def service(uow):
    return SubjectStateService(uow=uow)


@pytest.fixture
async def roster(uow, group):
    subjects = [Subject(group_id=group.id, name=f"Student {i}", roll_number=str(i)) for i in range(3)]
    for subject in subjects:
        await uow.subjects.add(subject)
    return subjects


class TestManualVerify:
    """Test suite for single-subject manual verification."""

    async def test_global_scope(self, service, uow, subject):
        updated = await service.manually_verify(subject.id, reason="Staff confirmed", notes="glasses")

        stored = uow.subjects.items[subject.id]
        assert updated.global_verification.result == VerificationResult.MANUALLY_VERIFIED
        assert stored.global_verification.manual_reason == "Staff confirmed"
        assert stored.global_verification.manual_notes == "glasses"

    async def test_day_scope(self, service, uow, subject):
        await service.manually_verify(subject.id, day=5)

        stored = uow.subjects.items[subject.id]
        assert stored.day_verification.get(5).result == VerificationResult.MANUALLY_VERIFIED
        assert stored.global_verification.is_pending

    async def test_second_call_rejected_without_write(self, service, uow, subject):
        await service.manually_verify(subject.id)
        saves = uow.subjects.saves

        with pytest.raises(AlreadyManuallyVerifiedError):
            await service.manually_verify(subject.id)
        assert uow.subjects.saves == saves

    async def test_unknown_subject(self, service):
        with pytest.raises(SubjectNotFoundError):
            await service.manually_verify(uuid.uuid4())

    async def test_invalid_day(self, service, subject):
        with pytest.raises(InvalidDayError):
            await service.manually_verify(subject.id, day=0)


class TestReset:
    """Test suite for single-subject reset."""

    async def test_returns_previous_status(self, service, uow, subject):
        await service.manually_verify(subject.id, day=2)

        updated, previous = await service.reset_verification(subject.id, day=2, reason="retry")

        assert previous == VerificationResult.MANUALLY_VERIFIED
        assert updated.day_verification.get(2).is_pending
        assert uow.subjects.items[subject.id].day_verification.get(2).is_pending

    async def test_pending_rejected(self, service, subject):
        with pytest.raises(AlreadyPendingError):
            await service.reset_verification(subject.id)


class TestBulkAction:
    """Test suite for bulk manual verify / reset."""

    async def test_bulk_verify_skips_already_verified(self, service, uow, roster):
        await service.manually_verify(roster[0].id)
        missing = uuid.uuid4()

        result = await service.bulk_action(
            BulkAction.MANUAL_VERIFY,
            [subject.id for subject in roster] + [missing],
        )

        assert result.requested == 4
        assert result.processed == [roster[1].id, roster[2].id]
        assert [skip.subject_id for skip in result.skipped] == [roster[0].id]
        assert result.skipped[0].current_result == VerificationResult.MANUALLY_VERIFIED
        assert result.missing == [missing]
        assert uow.subjects.items[roster[2].id].global_verification.manual_reason == BULK_VERIFY_REASON

    async def test_bulk_reset_of_day_scope(self, service, uow, roster):
        for subject in roster[:2]:
            await service.manually_verify(subject.id, day=4)

        result = await service.bulk_action(
            BulkAction.RESET_VERIFICATION,
            [subject.id for subject in roster],
            day=4,
            reason="Wrong day",
        )

        assert result.processed_count == 2
        assert result.skipped[0].subject_id == roster[2].id
        assert all(uow.subjects.items[s.id].day_verification.get(4).is_pending for s in roster)

    async def test_bulk_reset_default_reason(self, service, uow, roster):
        await service.manually_verify(roster[0].id)

        await service.bulk_action(BulkAction.RESET_VERIFICATION, [roster[0].id])

        assert uow.subjects.items[roster[0].id].global_verification.reset_reason == BULK_RESET_REASON

    async def test_duplicate_ids_processed_once(self, service, roster):
        result = await service.bulk_action(BulkAction.MANUAL_VERIFY, [roster[0].id, roster[0].id])

        assert result.requested == 1
        assert result.processed == [roster[0].id]
        assert result.skipped == []

    async def test_invalid_day(self, service, roster):
        with pytest.raises(InvalidDayError):
            await service.bulk_action(BulkAction.MANUAL_VERIFY, [roster[0].id], day=9)


class TestRemoveSubject:
    """Tests for subject removal."""

    async def test_delete(self, service, uow, subject):
        removed = await service.remove_subject(subject.id)

        assert removed.id == subject.id
        assert subject.id not in uow.subjects.items

    async def test_unknown_subject(self, service):
        with pytest.raises(SubjectNotFoundError):
            await service.remove_subject(uuid.uuid4())
