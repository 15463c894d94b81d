"""Tests for the group entity and embedding conversion."""
import pytest

from roster_verify.core.config import settings
from roster_verify.core.exceptions import DimensionMismatchError, InvalidEmbeddingError
from roster_verify.domain.entities.embedding import to_embedding
from roster_verify.domain.entities.group import Group
from roster_verify.domain.value_objects.verification import ReferenceStatus

from conftest import embedding_at


class TestGroupReferenceLifecycle:
    """Test suite for reference status transitions."""

    def test_new_group_is_idle_and_usable(self):
        group = Group(name="Riverside")
        assert group.reference_status == ReferenceStatus.IDLE
        assert group.reference_set == []
        assert group.is_usable

    def test_processing_is_not_usable(self):
        group = Group(name="Riverside")
        group.mark_processing()
        assert group.reference_status == ReferenceStatus.PROCESSING
        assert not group.is_usable
        assert group.reference_updated_at is not None

    def test_ready_replaces_set_and_clears_error(self):
        group = Group(name="Riverside")
        group.mark_error("No faces detected in group photo")

        group.mark_ready([embedding_at(0.1), embedding_at(0.2)])

        assert group.reference_status == ReferenceStatus.READY
        assert group.reference_error is None
        assert len(group.reference_set) == 2
        assert group.is_usable

    def test_ready_requires_embeddings(self):
        with pytest.raises(ValueError):
            Group(name="Riverside").mark_ready([])

    def test_error_keeps_previous_set_but_is_not_usable(self):
        group = Group(name="Riverside")
        group.mark_ready([embedding_at(0.1)])

        group.mark_error("model crashed")

        assert len(group.reference_set) == 1
        assert group.reference_error == "model crashed"
        assert not group.is_usable

    def test_reference_set_validated_on_construction(self):
        with pytest.raises(DimensionMismatchError):
            Group(name="Riverside", reference_set=[[1.0, 2.0]])


class TestToEmbedding:
    """Tests for to_embedding."""

    def test_uses_deployment_dimension(self):
        assert to_embedding([0.0] * settings.EMBEDDING_DIMENSION).shape == (settings.EMBEDDING_DIMENSION,)

    def test_explicit_dimension(self):
        assert to_embedding([1, 2, 3], dimension=3).tolist() == [1.0, 2.0, 3.0]

    def test_rejects_matrix(self):
        with pytest.raises(DimensionMismatchError) as exc_info:
            to_embedding([[1.0, 2.0]], dimension=2)
        assert exc_info.value.details["expected"] == 2

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf")])
    def test_rejects_non_finite_values(self, bad):
        with pytest.raises(InvalidEmbeddingError):
            to_embedding([0.5, bad, 0.1], dimension=3)
