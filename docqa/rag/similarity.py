"""Cosine-similarity ranking over stored embedding vectors."""
from typing import Hashable, Iterable, List, Optional, Sequence, Tuple, TypeVar
import numpy as np

from docqa import config

P = TypeVar("P", bound=Hashable)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors.

    A zero-norm vector has no direction; its similarity to anything is 0.0.

    Raises:
        ValueError: If the vectors differ in length
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)

    if va.shape != vb.shape:
        raise ValueError(
            f"Vector dimension mismatch: {va.shape[0]} vs {vb.shape[0]}"
        )

    norm = np.linalg.norm(va) * np.linalg.norm(vb)
    if norm == 0.0:
        return 0.0

    # Clamp float error so v·v/|v|² never reads as 1.0000000002
    return float(np.clip(np.dot(va, vb) / norm, -1.0, 1.0))


def score(
    query_vector: Sequence[float], corpus: Iterable[Tuple[Sequence[float], P]]
) -> List[Tuple[P, float]]:
    """Score every candidate and sort by descending similarity.

    Python's sort is stable, so equal scores keep corpus order.

    Args:
        query_vector: Embedded question
        corpus: (vector, position) pairs

    Returns:
        (position, similarity) pairs, best first
    """
    scored = [
        (position, cosine_similarity(query_vector, vector))
        for vector, position in corpus
    ]
    scored.sort(key=lambda item: item[1], reverse=True)
    return scored


def rank(
    query_vector: Sequence[float], corpus: Iterable[Tuple[Sequence[float], P]]
) -> List[P]:
    """Order corpus positions by descending cosine similarity."""
    return [position for position, _ in score(query_vector, corpus)]


def top_k(
    query_vector: Sequence[float],
    corpus: Iterable[Tuple[Sequence[float], P]],
    k: Optional[int] = None,
) -> List[Tuple[P, float]]:
    """Return the k best (position, similarity) pairs (default from config)."""
    k = k if k is not None else config.RETRIEVAL_TOP_K
    return score(query_vector, corpus)[:k]
