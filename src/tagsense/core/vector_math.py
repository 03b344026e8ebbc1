"""Vector math helpers for content similarity scoring.

All functions take plain float sequences and return plain floats or lists,
so they work on pgvector values, numpy arrays and lists alike.
"""

from __future__ import annotations

from collections.abc import Sequence
from math import sqrt

from tagsense.core.exceptions import DimensionMismatch


def _check_same_length(vec_a: Sequence[float], vec_b: Sequence[float]) -> None:
    if len(vec_a) != len(vec_b):
        raise DimensionMismatch(len(vec_a), len(vec_b))


def dot_product(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """Sum of pairwise products. Lengths are not checked."""
    return float(sum(float(a) * float(b) for a, b in zip(vec_a, vec_b)))


def magnitude(vec: Sequence[float]) -> float:
    """Euclidean norm of a vector."""
    return sqrt(sum(float(v) * float(v) for v in vec))


def cosine_distance(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """Cosine distance ``1 - cos(a, b)``.

    Similarity is clamped to [-1, 1] before conversion. A zero-magnitude
    operand yields the maximum "unrelated" distance of 1.0.

    Raises:
        DimensionMismatch: If the vectors differ in length.
    """
    _check_same_length(vec_a, vec_b)

    mag_a = magnitude(vec_a)
    mag_b = magnitude(vec_b)
    if mag_a == 0.0 or mag_b == 0.0:
        return 1.0

    similarity = dot_product(vec_a, vec_b) / (mag_a * mag_b)
    return 1.0 - max(-1.0, min(1.0, similarity))


def euclidean_distance(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """Euclidean distance between two vectors.

    Raises:
        DimensionMismatch: If the vectors differ in length.
    """
    _check_same_length(vec_a, vec_b)
    return sqrt(sum((float(a) - float(b)) ** 2 for a, b in zip(vec_a, vec_b)))


def normalize_vector(vec: Sequence[float]) -> list[float]:
    """Scale a vector to unit length; zero vectors are returned unchanged."""
    mag = magnitude(vec)
    if mag == 0.0:
        return list(vec)
    return [float(v) / mag for v in vec]


def average_vectors(vectors: Sequence[Sequence[float]]) -> list[float]:
    """Elementwise mean of equal-length vectors (``[]`` for no input)."""
    if len(vectors) == 0:
        return []

    length = len(vectors[0])
    for vec in vectors:
        if len(vec) != length:
            raise DimensionMismatch(length, len(vec))

    totals = [0.0] * length
    for vec in vectors:
        for i, value in enumerate(vec):
            totals[i] += float(value)

    count = float(len(vectors))
    return [total / count for total in totals]


def weighted_average_vectors(
    vectors: Sequence[Sequence[float]],
    weights: Sequence[float],
) -> list[float]:
    """Elementwise weighted mean of equal-length vectors.

    Raises:
        DimensionMismatch: If there are no vectors, the number of weights
            differs from the number of vectors, or vector lengths differ.
        ValueError: If the weights sum to zero.
    """
    if len(vectors) == 0 or len(vectors) != len(weights):
        raise DimensionMismatch(
            len(vectors),
            len(weights),
            "Must have the same non-zero number of vectors and weights",
        )

    length = len(vectors[0])
    for vec in vectors:
        if len(vec) != length:
            raise DimensionMismatch(length, len(vec))

    weight_sum = float(sum(weights))
    if weight_sum == 0.0:
        raise ValueError("Weights sum must be non-zero")

    totals = [0.0] * length
    for vec, weight in zip(vectors, weights):
        for i, value in enumerate(vec):
            totals[i] += float(value) * float(weight)

    return [total / weight_sum for total in totals]
