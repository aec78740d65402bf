# core/vector_similarity.py
"""
Cosine-based similarity between embedding vectors.

Percentages use the affine remap ((cos + 1) / 2) * 100, so an orthogonal pair
scores 50%, not 0%. Unrelated documents therefore cluster near the midpoint;
these numbers only become plagiarism risk through core.plagiarism_scorer.
"""

import logging
import math
from typing import Optional, Sequence
import numpy as np

logger = logging.getLogger(__name__)

Vector = Optional[Sequence[float]]


def vectors_valid(a: Vector, b: Vector) -> bool:
    return a is not None and b is not None and len(a) > 0 and len(a) == len(b)


def cosine_similarity(a: Vector, b: Vector) -> float:
    """
    dot(a, b) / (|a| * |b|), clamped to [-1, 1].
    Returns 0.0 for null, empty, length-mismatched or zero-magnitude input.
    """
    if a is None or b is None:
        logger.warning("similarity.cosine.degraded reason=null_vector")
        return 0.0
    if len(a) != len(b):
        logger.warning(
            "similarity.cosine.degraded reason=dim_mismatch a=%d b=%d", len(a), len(b)
        )
        return 0.0
    if len(a) == 0:
        logger.warning("similarity.cosine.degraded reason=empty")
        return 0.0

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        logger.warning("similarity.cosine.degraded reason=zero_magnitude")
        return 0.0

    sim = float(np.dot(va, vb) / (norm_a * norm_b))
    return max(-1.0, min(1.0, sim))


def similarity_percentage(a: Vector, b: Vector) -> float:
    cos = cosine_similarity(a, b)
    return round(((cos + 1.0) / 2.0) * 100.0, 2)


def combined_similarity(
    title_a: Vector,
    title_b: Vector,
    content_a: Vector,
    content_b: Vector,
    w_title: float,
    w_content: float,
) -> float:
    """Weighted average of title and content percentages; 0.0 when both weights are 0."""
    total = w_title + w_content
    if total == 0:
        return 0.0
    title_pct = similarity_percentage(title_a, title_b)
    content_pct = similarity_percentage(content_a, content_b)
    combined = (title_pct * w_title + content_pct * w_content) / total
    logger.debug(
        "similarity.combined title=%.2f w=%.2f content=%.2f w=%.2f combined=%.2f",
        title_pct,
        w_title,
        content_pct,
        w_content,
        combined,
    )
    return combined


def euclidean_distance(a: Vector, b: Vector) -> float:
    """Lower is more similar; inf when the pair cannot be compared."""
    if not vectors_valid(a, b):
        return math.inf
    return float(np.linalg.norm(np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)))
