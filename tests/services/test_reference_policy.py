"""Tests for reference selection."""
import uuid

import pytest

from roster_verify.core.exceptions import ReferenceNotReadyError
from roster_verify.domain.entities.group import Group
from roster_verify.domain.entities.subject import Subject
from roster_verify.domain.value_objects.verification import ReferenceSource, ReferenceStatus
from roster_verify.services.reference_policy import select_references

from conftest import embedding_at


def _group(status: ReferenceStatus, references=()) -> Group:
    return Group(name="Lakeview", reference_set=list(references), reference_status=status)


class TestSelectReferences:
    """Test suite for select_references."""

    def test_personal_embedding_wins_even_when_group_failed(self):
        """A personal embedding is used whatever the group set's state."""
        group = _group(ReferenceStatus.ERROR)
        subject = Subject(group_id=group.id, personal_embedding=embedding_at(0.2))

        selection = select_references(subject, group)

        assert selection.source == ReferenceSource.PERSONAL
        assert len(selection.embeddings) == 1
        assert selection.embeddings[0][0] == 0.2

    def test_personal_embedding_wins_over_ready_group(self):
        group = _group(ReferenceStatus.READY, [embedding_at(0.1), embedding_at(0.3)])
        subject = Subject(group_id=group.id, personal_embedding=embedding_at(0.9))

        assert select_references(subject, group).source == ReferenceSource.PERSONAL

    def test_group_set_used_without_personal_embedding(self):
        group = _group(ReferenceStatus.READY, [embedding_at(0.1), embedding_at(0.3)])
        subject = Subject(group_id=group.id)

        selection = select_references(subject, group)

        assert selection.source == ReferenceSource.GROUP
        assert len(selection.embeddings) == 2

    def test_idle_group_gives_possibly_empty_set(self):
        group = _group(ReferenceStatus.IDLE)
        selection = select_references(Subject(group_id=group.id), group)
        assert selection.embeddings == []

    @pytest.mark.parametrize("status", [ReferenceStatus.PROCESSING, ReferenceStatus.ERROR])
    def test_unusable_group_set_raises(self, status):
        group = _group(status)
        with pytest.raises(ReferenceNotReadyError) as exc_info:
            select_references(Subject(group_id=uuid.uuid4()), group)
        assert exc_info.value.details["reference_status"] == status.value
