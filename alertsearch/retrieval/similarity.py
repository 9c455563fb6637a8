"""Vector similarity."""

import math
from collections.abc import Sequence


def cosine_similarity(u: Sequence[float], v: Sequence[float]) -> float:
    """Cosine similarity of two vectors.

    Empty vectors, vectors of different lengths, zero vectors and vectors
    whose sums overflow all score 0.0 instead of raising.

    Args:
        u: First vector.
        v: Second vector.

    Returns:
        Similarity in [-1, 1].
    """
    if not u or not v or len(u) != len(v):
        return 0.0

    try:
        dot = math.fsum(a * b for a, b in zip(u, v))
        norm_u = math.sqrt(math.fsum(a * a for a in u))
        norm_v = math.sqrt(math.fsum(b * b for b in v))
    except (OverflowError, ValueError):
        # fsum overflows on huge finite terms and rejects inf - inf
        return 0.0

    if norm_u == 0.0 or norm_v == 0.0:
        return 0.0

    score = dot / (norm_u * norm_v)
    if not math.isfinite(score):
        return 0.0
    return max(-1.0, min(1.0, score))
