from __future__ import annotations

from typing import Sequence

import numpy as np


def normalize_vector(vec: np.ndarray) -> np.ndarray:
    norm = float(np.linalg.norm(vec))
    if norm == 0 or not np.isfinite(norm):
        return vec
    return vec / norm


def hash_to_vector(text: str, dims: int) -> np.ndarray:
    """Stable pseudo-embedding: scatter character codes into a fixed-size accumulator.

    Weights are strictly positive so any non-empty text ends up with unit norm.
    """
    vec = np.zeros(dims, dtype=np.float64)
    for i, ch in enumerate(text):
        code = ord(ch)
        vec[(i * 31 + code) % dims] += ((code % 13) + 1) / 13.0
    return normalize_vector(vec).astype(np.float32)


def cosine_scores(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity of one query vector against each row of matrix."""
    if matrix.size == 0:
        return np.zeros(0, dtype=np.float32)
    norms = np.linalg.norm(matrix, axis=1) * (np.linalg.norm(query) or 1.0)
    norms[norms == 0] = 1.0
    return (matrix @ query) / norms


def embedding_to_list(vec: np.ndarray | Sequence[float] | None) -> list[float] | None:
    if vec is None:
        return None
    if isinstance(vec, np.ndarray):
        return vec.astype(np.float32).tolist()
    return list(vec)
