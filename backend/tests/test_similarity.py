"""Tests for the cosine similarity primitive."""

import numpy as np
import pytest

from app.core.errors import DimensionMismatch
from app.services.similarity import cosine_similarity


def test_cosine_similarity_is_symmetric():
    rng = np.random.default_rng(7)
    for _ in range(20):
        left = rng.normal(size=16)
        right = rng.normal(size=16)
        assert cosine_similarity(left, right) == cosine_similarity(right, left)


def test_cosine_similarity_of_vector_with_itself_is_one():
    vector = [0.3, -1.2, 4.5, 0.0, 2.2]
    assert cosine_similarity(vector, vector) == pytest.approx(1.0)


def test_cosine_similarity_known_values():
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)
    assert cosine_similarity([1.0, 1.0], [1.0, 0.0]) == pytest.approx(1 / np.sqrt(2))


def test_zero_vector_yields_exactly_zero():
    assert cosine_similarity([0.0, 0.0, 0.0], [1.0, 2.0, 3.0]) == 0.0
    assert cosine_similarity([1.0, 2.0, 3.0], [0.0, 0.0, 0.0]) == 0.0
    assert cosine_similarity([0.0, 0.0], [0.0, 0.0]) == 0.0


def test_scale_does_not_change_similarity():
    assert cosine_similarity([1.0, 2.0, 3.0], [10.0, 20.0, 30.0]) == pytest.approx(1.0)


def test_length_mismatch_raises():
    with pytest.raises(DimensionMismatch) as excinfo:
        cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])
    assert excinfo.value.expected == 2
    assert excinfo.value.actual == 3


def test_expected_dimension_is_enforced():
    with pytest.raises(DimensionMismatch):
        cosine_similarity([1.0, 2.0], [2.0, 1.0], expected_dim=3)
    assert cosine_similarity([1.0, 2.0, 0.0], [2.0, 1.0, 0.0], expected_dim=3) == pytest.approx(0.8)


def test_non_flat_input_raises():
    with pytest.raises(DimensionMismatch):
        cosine_similarity([[1.0, 2.0]], [1.0, 2.0])
