"""Vector similarity helpers."""
from __future__ import annotations

from typing import Sequence

import numpy as np


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors.

    Returns 0.0 instead of raising when the vectors differ in length, are
    empty, or either has zero magnitude.  Symmetric in its arguments.
    """
    if a is None or b is None or len(a) != len(b) or len(a) == 0:
        return 0.0

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    magnitude = float(np.linalg.norm(va)) * float(np.linalg.norm(vb))
    if magnitude == 0 or not np.isfinite(magnitude):
        return 0.0
    return float(np.dot(va, vb)) / magnitude
