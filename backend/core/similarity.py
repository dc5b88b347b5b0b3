"""
Vector similarity utilities.

Stateless helpers shared by the embedding task and the in-memory index
store.

Dependencies: backend.core.exceptions
System role: Pure vector math (no I/O)
"""

import math
from typing import Sequence

from backend.core.exceptions import DimensionMismatchError


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity between two equal-length vectors.

    Returns 0.0 when either vector has zero norm.

    Raises:
        DimensionMismatchError: If the vectors differ in length
    """
    if len(a) != len(b):
        raise DimensionMismatchError(expected=len(a), actual=len(b))

    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def clamp_similarity(value: float) -> float:
    """Clamp a similarity score into [0, 1]; NaN maps to 0."""
    if math.isnan(value):
        return 0.0
    return min(max(value, 0.0), 1.0)
