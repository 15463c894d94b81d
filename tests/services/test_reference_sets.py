"""Tests for group reference set maintenance."""
import uuid
from typing import Iterator

import numpy as np
import pytest

from roster_verify.core.exceptions import DimensionMismatchError, GroupNotFoundError
from roster_verify.domain.entities.subject import Subject
from roster_verify.domain.value_objects.verification import ReferenceStatus, VerificationOutcomeKind
from roster_verify.services.reference_sets import NO_FACES_IN_GROUP_PHOTO, ReferenceSetService
from roster_verify.services.verification import VerificationService

from conftest import UNREADABLE_IMAGE, FakeEmbeddingProvider, embedding_at


class CrashingEmbeddingProvider(FakeEmbeddingProvider):
    """Provider whose model runtime fails mid-extraction."""

    async def extract_embeddings(self, image_bytes: bytes) -> Iterator[np.ndarray]:
        self.calls += 1
        raise RuntimeError("onnxruntime session failed")


@pytest.fixture
def service(uow, provider):
    return ReferenceSetService(uow=uow, embedding_provider=provider)


class TestReferenceSetService:
    """Test suite for ReferenceSetService."""

    async def test_begin_regeneration_marks_processing(self, service, uow, group):
        await service.begin_regeneration(group.id)

        stored = uow.groups.items[group.id]
        assert stored.reference_status == ReferenceStatus.PROCESSING
        assert len(stored.reference_set) == 2

    async def test_store_references_replaces_set(self, service, uow, group):
        await service.store_references(group.id, [embedding_at(0.5)])

        stored = uow.groups.items[group.id]
        assert stored.reference_status == ReferenceStatus.READY
        assert len(stored.reference_set) == 1

    async def test_empty_set_stored_as_error(self, service, uow, group):
        await service.store_references(group.id, [])

        stored = uow.groups.items[group.id]
        assert stored.reference_status == ReferenceStatus.ERROR
        assert stored.reference_error == NO_FACES_IN_GROUP_PHOTO

    async def test_wrong_length_rejected_before_write(self, service, uow, group):
        with pytest.raises(DimensionMismatchError):
            await service.store_references(group.id, [embedding_at(0.5), [1.0]])
        assert uow.groups.items[group.id].reference_status == ReferenceStatus.READY

    async def test_unknown_group(self, service):
        with pytest.raises(GroupNotFoundError):
            await service.store_references(uuid.uuid4(), [embedding_at(0.5)])

    async def test_regenerate_from_image(self, uow, processing_group):
        provider = FakeEmbeddingProvider(faces=[embedding_at(0.1), embedding_at(0.2), embedding_at(0.3)])
        service = ReferenceSetService(uow=uow, embedding_provider=provider)

        group = await service.regenerate_from_image(processing_group.id, b"group-photo")

        assert group.reference_status == ReferenceStatus.READY
        assert len(uow.groups.items[processing_group.id].reference_set) == 3

    async def test_regenerate_with_unreadable_photo_records_error(self, service, uow, processing_group):
        group = await service.regenerate_from_image(processing_group.id, UNREADABLE_IMAGE)

        assert group.reference_status == ReferenceStatus.ERROR
        assert uow.groups.items[processing_group.id].reference_error == "Failed to decode image bytes"

    async def test_regenerate_without_provider_records_error(self, uow, processing_group):
        service = ReferenceSetService(uow=uow, embedding_provider=FakeEmbeddingProvider(failure="no model"))

        group = await service.regenerate_from_image(processing_group.id, b"group-photo")

        assert group.reference_status == ReferenceStatus.ERROR

    async def test_latest_run_wins(self, uow, processing_group):
        """Regeneration overwrites whatever an earlier run stored."""
        first = ReferenceSetService(uow, FakeEmbeddingProvider(faces=[embedding_at(0.1)] * 4))
        second = ReferenceSetService(uow, FakeEmbeddingProvider(faces=[embedding_at(0.2)]))

        await first.regenerate_from_image(processing_group.id, b"old-photo")
        await second.regenerate_from_image(processing_group.id, b"new-photo")

        stored = uow.groups.items[processing_group.id]
        assert len(stored.reference_set) == 1
        assert stored.reference_set[0][0] == 0.2

    async def test_regenerate_with_runtime_failure_records_error(self, uow, processing_group):
        """An unexpected provider crash still moves the set out of processing."""
        service = ReferenceSetService(uow=uow, embedding_provider=CrashingEmbeddingProvider())

        group = await service.regenerate_from_image(processing_group.id, b"group-photo")

        stored = uow.groups.items[processing_group.id]
        assert group.reference_status == ReferenceStatus.ERROR
        assert stored.reference_status == ReferenceStatus.ERROR
        assert stored.reference_error == "onnxruntime session failed"

        subject = Subject(group_id=processing_group.id)
        await uow.subjects.add(subject)
        outcome = await VerificationService(uow, FakeEmbeddingProvider()).verify(
            subject.id, processing_group.id, probe=embedding_at(0.0)
        )
        assert outcome.outcome == VerificationOutcomeKind.NO_REFERENCE_AVAILABLE
        assert outcome.reference_status == ReferenceStatus.ERROR
