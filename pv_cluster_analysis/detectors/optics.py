"""
Density Clusterer - OPTICS-style ordering with simple cluster extraction
"""

import heapq
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from ..config import CONFIG
from ..core import BaseDetector, DistanceMetric, ensure_token, get_logger
from ..models import NOISE

logger = get_logger(__name__)

UNDEFINED = np.inf


@dataclass(frozen=True)
class ClusteringResult:
    """Cluster ordering and labels, indexed like the metric's point batch."""

    ordering: List[int]
    reachability: np.ndarray
    core_distances: np.ndarray
    labels: np.ndarray

    @property
    def cluster_count(self) -> int:
        return int(np.unique(self.labels[self.labels >= 0]).size)

    @property
    def noise_count(self) -> int:
        return int((self.labels == NOISE).sum())

    @classmethod
    def empty(cls) -> 'ClusteringResult':
        return cls([], np.empty(0), np.empty(0), np.empty(0, dtype=int))


class DensityClusterer(BaseDetector):
    """
    OPTICS-style density clusterer.

    Walks the points in input order, expanding each core point through a
    min-priority queue of reachability distances. Cluster ids are assigned
    on the fly: a point reached with reachability below epsilon continues
    the current cluster, or opens a new one when the previous point in the
    ordering was not itself reached within epsilon. Everything else,
    including every expansion start, is NOISE.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """Initialize clusterer."""
        cfg = dict(CONFIG['optics'])
        cfg.update(config or {})
        super().__init__('optics', cfg)

    def run(self, metric: DistanceMetric, token=None) -> ClusteringResult:
        """
        Compute the cluster ordering over all indices of ``metric``.

        Args:
            metric: Distance metric bound to the point batch
            token: Optional CancellationToken

        Returns:
            ClusteringResult

        Raises:
            AnalysisCancelled: If the token is cancelled mid-run
        """
        token = ensure_token(token)
        n = len(metric)
        if n == 0:
            logger.info("Clustering skipped: no points")
            return ClusteringResult.empty()

        logger.debug(f"Starting clustering: eps={self.epsilon}, min_pts={self.min_pts}, points={n}")

        self._reach = np.full(n, UNDEFINED)
        self._core = np.full(n, UNDEFINED)
        self._processed = np.zeros(n, dtype=bool)
        self._labels = np.full(n, NOISE, dtype=int)
        self._ordering: List[int] = []
        self._cluster_id = -1

        for p in range(n):
            token.check("clustering")
            if not self._processed[p]:
                self._expand_cluster_order(metric, p, token)

        result = ClusteringResult(
            ordering=list(self._ordering),
            reachability=self._reach.copy(),
            core_distances=self._core.copy(),
            labels=self._labels.copy(),
        )
        logger.debug(
            f"Clustering finished: {result.cluster_count} clusters, {result.noise_count} noise points"
        )
        return result

    def _expand_cluster_order(self, metric: DistanceMetric, start: int, token) -> None:
        neighbors, row = self._process(metric, start)
        if not np.isfinite(self._core[start]):
            return

        seeds: list = []
        self._update_seeds(start, neighbors, row, seeds, token)

        while seeds:
            token.check("cluster expansion")
            reach, q = heapq.heappop(seeds)
            # Lazy deletion: skip processed points and superseded entries
            if self._processed[q] or reach > self._reach[q]:
                continue

            q_neighbors, q_row = self._process(metric, q)
            if np.isfinite(self._core[q]):
                self._update_seeds(q, q_neighbors, q_row, seeds, token)

    def _process(self, metric: DistanceMetric, p: int) -> Tuple[List[int], np.ndarray]:
        """Region query, append to the ordering, label, and set the core distance."""
        row = metric.distances_from(p)
        neighbors = np.flatnonzero(np.isfinite(row) & (row <= self.epsilon))

        self._processed[p] = True
        self._ordering.append(p)
        self._assign_cluster_id(p)
        self._core[p] = self._core_distance(p, neighbors, row)
        return neighbors.tolist(), row

    def _core_distance(self, p: int, neighbors: np.ndarray, row: np.ndarray) -> float:
        if neighbors.size < self.min_pts:
            return UNDEFINED
        if self.min_pts == 1:
            return 0.0
        others = np.sort(row[neighbors[neighbors != p]])
        if others.size < self.min_pts - 1:
            return UNDEFINED
        core = others[self.min_pts - 2]
        return float(core) if core <= self.epsilon else UNDEFINED

    def _assign_cluster_id(self, p: int) -> None:
        reach = self._reach[p]
        if not reach < self.epsilon:
            self._labels[p] = NOISE
            return

        previous_outside = True
        if len(self._ordering) >= 2:
            previous_outside = not self._reach[self._ordering[-2]] < self.epsilon
        if previous_outside:
            self._cluster_id += 1
        self._labels[p] = self._cluster_id

    def _update_seeds(self, core_point: int, neighbors: List[int], row: np.ndarray,
                      seeds: list, token) -> None:
        core_dist = self._core[core_point]
        for o in neighbors:
            token.check("seed update")
            if self._processed[o]:
                continue
            dist = row[o]
            if not np.isfinite(dist):
                continue
            new_reach = max(core_dist, dist)
            if new_reach < self._reach[o]:
                self._reach[o] = new_reach
                heapq.heappush(seeds, (new_reach, o))
