# domain/ranking.py
from typing import Sequence

import numpy as np

NORM_EPSILON = 1e-12


def l2_normalize(vector: np.ndarray) -> np.ndarray:
    norm = float(np.linalg.norm(vector))
    if norm < NORM_EPSILON:
        return np.zeros_like(vector)
    return vector / norm


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    v1 = np.asarray(a, dtype=np.float64)
    v2 = np.asarray(b, dtype=np.float64)
    if v1.shape != v2.shape:
        raise ValueError("Vectors must have the same dimension")
    n1, n2 = np.linalg.norm(v1), np.linalg.norm(v2)
    if n1 == 0 or n2 == 0:
        return 0.0
    return float(np.dot(v1, v2) / (n1 * n2))

