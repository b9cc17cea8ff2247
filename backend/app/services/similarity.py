"""Vector similarity primitives shared by the embedding store and the ranker.

Functions:
    as_vector(values): Coerce a sequence of floats into a 1-D float64 array.
    cosine_similarity(a, b): Cosine similarity with a zero-magnitude policy of 0.0.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from app.core.errors import DimensionMismatch


def as_vector(values: Sequence[float] | NDArray[np.floating]) -> NDArray[np.float64]:
    vector = np.asarray(values, dtype=np.float64)
    if vector.ndim != 1:
        raise DimensionMismatch(None, int(vector.size))
    return vector


def cosine_similarity(
    a: Sequence[float] | NDArray[np.floating],
    b: Sequence[float] | NDArray[np.floating],
    *,
    expected_dim: int | None = None,
) -> float:
    """Return ``dot(a, b) / (|a| * |b|)`` clipped to [-1, 1].

    Either vector having zero magnitude yields exactly ``0.0``. Vectors of different
    lengths, or of a length other than ``expected_dim`` when given, raise
    :class:`DimensionMismatch`.
    """

    left = as_vector(a)
    right = as_vector(b)
    if left.shape[0] != right.shape[0]:
        raise DimensionMismatch(int(left.shape[0]), int(right.shape[0]))
    if expected_dim is not None and left.shape[0] != expected_dim:
        raise DimensionMismatch(expected_dim, int(left.shape[0]))

    norm_left = float(np.linalg.norm(left))
    norm_right = float(np.linalg.norm(right))
    if norm_left == 0.0 or norm_right == 0.0:
        return 0.0

    score = float(np.dot(left, right)) / (norm_left * norm_right)
    return float(min(1.0, max(-1.0, score)))
