"""Tests for the subject entity and its verification scopes."""
import uuid
from datetime import datetime, timezone

import numpy as np
import pytest

from roster_verify.core.exceptions import (
    AlreadyManuallyVerifiedError,
    AlreadyPendingError,
    DimensionMismatchError,
    InvalidDayError,
)
from roster_verify.domain.entities.subject import Subject, validate_day
from roster_verify.domain.value_objects.verification import VerificationResult

from conftest import embedding_at

NOW = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def pending_subject():
    return Subject(group_id=uuid.uuid4(), name="Ravi Kumar", roll_number="7")


def _snapshot(subject: Subject) -> dict:
    return subject.model_dump(exclude={"personal_embedding"})


class TestVerificationScopes:
    """Test suite for per-scope state transitions."""

    def test_new_subject_is_pending_everywhere(self, pending_subject):
        assert pending_subject.global_verification.is_pending
        assert all(scope.is_pending for _, scope in pending_subject.day_verification.items())

    def test_day_verdict_leaves_other_scopes_untouched(self, pending_subject):
        """A day 3 success must not change day 1, day 2 or the global verdict."""
        before = _snapshot(pending_subject)

        pending_subject.record_verdict(True, 82.0, day=3, at=NOW)

        after = _snapshot(pending_subject)
        assert after["day_verification"]["day3"]["result"] == VerificationResult.SUCCESS
        assert after["day_verification"]["day3"]["confidence"] == 82.0
        assert after["day_verification"]["day3"]["date"] == NOW
        for key in ("day1", "day2", "day4", "day5", "day6"):
            assert after["day_verification"][key] == before["day_verification"][key]
        assert after["global_verification"] == before["global_verification"]

    def test_failed_verdict(self, pending_subject):
        pending_subject.record_verdict(False, 12.5, at=NOW)

        scope = pending_subject.global_verification
        assert scope.result == VerificationResult.FAILED
        assert scope.confidence == 12.5
        assert scope.date == NOW

    def test_manual_verify_records_reason_and_notes(self, pending_subject):
        pending_subject.manually_verify(reason="  ID card checked  ", notes="Arrived late", at=NOW)

        scope = pending_subject.global_verification
        assert scope.result == VerificationResult.MANUALLY_VERIFIED
        assert scope.manual_reason == "ID card checked"
        assert scope.manual_notes == "Arrived late"
        assert scope.manual_date == NOW

    def test_manual_verify_twice_is_rejected(self, pending_subject):
        pending_subject.manually_verify(at=NOW)

        with pytest.raises(AlreadyManuallyVerifiedError) as exc_info:
            pending_subject.manually_verify()

        assert exc_info.value.details["verification_date"] == NOW.isoformat()
        assert pending_subject.global_verification.manual_date == NOW

    def test_manual_verify_after_failure_is_allowed(self, pending_subject):
        pending_subject.record_verdict(False, 23.0, day=2)
        pending_subject.manually_verify(day=2, at=NOW)

        day2 = pending_subject.day_verification.get(2)
        assert day2.result == VerificationResult.MANUALLY_VERIFIED
        assert day2.date == NOW
        assert day2.confidence is None

    def test_manual_verify_drops_automatic_confidence(self, pending_subject):
        pending_subject.record_verdict(True, 64.0)
        pending_subject.record_verdict(False, 12.5)

        scope = pending_subject.manually_verify(reason="Checked ID", at=NOW)

        assert scope.result == VerificationResult.MANUALLY_VERIFIED
        assert scope.confidence is None

    def test_reset_returns_previous_status_and_clears_metadata(self, pending_subject):
        pending_subject.manually_verify(reason="Known to staff", notes="n/a")

        previous = pending_subject.reset_verification(reason="Wrong person", at=NOW)

        scope = pending_subject.global_verification
        assert previous == VerificationResult.MANUALLY_VERIFIED
        assert scope.is_pending
        assert scope.manual_reason is None
        assert scope.manual_notes is None
        assert scope.manual_date is None
        assert scope.confidence is None
        assert scope.last_reset_date == NOW
        assert scope.reset_reason == "Wrong person"

    def test_reset_pending_scope_is_rejected(self, pending_subject):
        with pytest.raises(AlreadyPendingError) as exc_info:
            pending_subject.reset_verification(day=4)
        assert exc_info.value.details["current_result"] == "pending"

    def test_reset_only_touches_its_scope(self, pending_subject):
        pending_subject.record_verdict(True, 90.0)
        pending_subject.record_verdict(True, 88.0, day=1)

        pending_subject.reset_verification(day=1)

        assert pending_subject.day_verification.get(1).is_pending
        assert pending_subject.global_verification.result == VerificationResult.SUCCESS


class TestDays:
    """Tests for day validation."""

    @pytest.mark.parametrize("day", [0, 7, -1, True, "3", 2.0])
    def test_invalid_day(self, pending_subject, day):
        with pytest.raises(InvalidDayError):
            pending_subject.scope(day)

    def test_valid_days(self):
        assert [validate_day(d) for d in range(1, 7)] == [1, 2, 3, 4, 5, 6]


class TestPersonalEmbedding:
    """Tests for the personal embedding field."""

    def test_converted_to_read_only_float64(self, pending_subject):
        pending_subject.personal_embedding = embedding_at(0.5)

        embedding = pending_subject.personal_embedding
        assert embedding.dtype == np.float64
        assert not embedding.flags.writeable

    def test_wrong_length_rejected(self, pending_subject):
        with pytest.raises(DimensionMismatchError):
            pending_subject.personal_embedding = [0.1, 0.2]
