"""Tests for the Euclidean distance metric."""
import math

import numpy as np
import pytest

from roster_verify.core.exceptions import DimensionMismatchError
from roster_verify.services.matching.distance import euclidean_distance


class TestEuclideanDistance:
    """Test suite for euclidean_distance."""

    def test_identical_embeddings_are_zero_apart(self):
        """Should return exactly 0 for elementwise-equal inputs."""
        vector = [0.25, -1.5, 3.0, 0.0]
        assert euclidean_distance(vector, list(vector)) == 0.0

    def test_known_distance(self):
        """Should compute the 3-4-5 triangle hypotenuse."""
        assert euclidean_distance([0.0, 0.0], [3.0, 4.0]) == pytest.approx(5.0)

    def test_symmetric_and_non_negative(self):
        """Should not depend on argument order."""
        rng = np.random.default_rng(7)
        a, b = rng.normal(size=128), rng.normal(size=128)
        assert euclidean_distance(a, b) == euclidean_distance(b, a)
        assert euclidean_distance(a, b) > 0

    def test_computed_in_double_precision(self):
        """Should not lose precision on float32 input."""
        a = np.array([1e-4, 0.0], dtype=np.float32)
        b = np.array([0.0, 0.0], dtype=np.float32)
        assert euclidean_distance(a, b) == pytest.approx(float(np.float32(1e-4)), rel=1e-12)

    def test_returns_python_float(self):
        assert isinstance(euclidean_distance([1.0], [2.0]), float)

    @pytest.mark.parametrize("a,b", [
        ([1.0, 2.0], [1.0, 2.0, 3.0]),
        ([], [1.0]),
        ([[1.0, 2.0]], [1.0, 2.0]),
    ])
    def test_mismatched_shapes_raise(self, a, b):
        """Should raise DimensionMismatchError instead of broadcasting."""
        with pytest.raises(DimensionMismatchError):
            euclidean_distance(a, b)

    def test_nan_propagates(self):
        assert math.isnan(euclidean_distance([float("nan")], [0.0]))
