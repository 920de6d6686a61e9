"""
Distance Metrics

Euclidean distance over the extracted (and optionally scaled) coordinate
matrix of one point batch, addressed by stable row index.
"""

from typing import Optional

import numpy as np
from scipy.spatial.distance import cdist

from .core.base import DistanceMetric


class EuclideanMetric(DistanceMetric):
    """
    Euclidean distance between rows of an (n, 2) matrix.

    Any NaN coordinate, ``None`` index or out-of-range index gives +inf, so
    region queries never return such points.
    """

    def __init__(self, matrix: np.ndarray, scaled: bool = False, context: str = ""):
        self.matrix = np.asarray(matrix, dtype=float).reshape(-1, 2)
        self.scaled = scaled
        self.context = context
        self._valid = ~np.isnan(self.matrix).any(axis=1)

    def __len__(self) -> int:
        return self.matrix.shape[0]

    def _in_range(self, i: Optional[int]) -> bool:
        return i is not None and 0 <= i < len(self)

    def distance(self, i: Optional[int], j: Optional[int]) -> float:
        if not (self._in_range(i) and self._in_range(j)):
            return np.inf
        if not (self._valid[i] and self._valid[j]):
            return np.inf
        return float(np.hypot(*(self.matrix[i] - self.matrix[j])))

    def distances_from(self, i: int) -> np.ndarray:
        if not self._in_range(i) or not self._valid[i]:
            return np.full(len(self), np.inf)
        row = cdist(self.matrix[i:i + 1], self.matrix)[0]
        row[np.isnan(row)] = np.inf
        return row

    def __repr__(self):
        return f"EuclideanMetric(n={len(self)}, scaled={self.scaled}, context={self.context!r})"
