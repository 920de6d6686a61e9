"""
Density Outlier Detector - DBSCAN-style noise flagging
"""

from collections import deque
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import numpy as np

from ..config import CONFIG
from ..core import BaseDetector, DistanceMetric, ensure_token, get_logger
from ..models import NOISE

logger = get_logger(__name__)

UNCLASSIFIED = -2


@dataclass(frozen=True)
class OutlierResult:
    """Per-index DBSCAN status and the derived outlier flags."""

    status: np.ndarray
    cluster_count: int

    @property
    def outliers(self) -> np.ndarray:
        return (self.status == NOISE) | (self.status == UNCLASSIFIED)

    @property
    def outlier_count(self) -> int:
        return int(self.outliers.sum())


class DensityOutlierDetector(BaseDetector):
    """
    DBSCAN-style outlier detector.

    Points that end up in no density-connected cluster are outliers. Cluster
    ids are internal to one run; only the outlier flags are meant to be used.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """Initialize detector."""
        cfg = dict(CONFIG['dbscan'])
        cfg.update(config or {})
        super().__init__('dbscan', cfg)

    def run(self, metric: DistanceMetric, token=None) -> OutlierResult:
        """
        Classify every index of ``metric``.

        Args:
            metric: Distance metric bound to one orientation group
            token: Optional CancellationToken

        Returns:
            OutlierResult

        Raises:
            AnalysisCancelled: If the token is cancelled mid-run
        """
        token = ensure_token(token)
        n = len(metric)
        status = np.full(n, UNCLASSIFIED, dtype=int)
        if n == 0:
            logger.info("Outlier detection skipped: no points")
            return OutlierResult(status, 0)

        logger.debug(f"Starting outlier detection: eps={self.epsilon}, min_pts={self.min_pts}, points={n}")

        cluster_id = 0
        for p in range(n):
            token.check("outlier detection")
            if status[p] != UNCLASSIFIED:
                continue

            neighbors = self.region_query(metric, p)
            if len(neighbors) < self.min_pts:
                status[p] = NOISE
            else:
                self._expand_cluster(metric, p, neighbors, cluster_id, status, token)
                cluster_id += 1

        result = OutlierResult(status, cluster_id)
        logger.debug(
            f"Outlier detection finished: {cluster_id} clusters, {result.outlier_count} outliers"
        )
        return result

    def _expand_cluster(self, metric: DistanceMetric, core_point: int, neighbors: List[int],
                        cluster_id: int, status: np.ndarray, token) -> None:
        status[core_point] = cluster_id
        queue = deque(neighbors)
        seen = set(neighbors)

        while queue:
            token.check("cluster expansion")
            q = queue.popleft()
            previous = status[q]
            if previous not in (UNCLASSIFIED, NOISE):
                continue

            status[q] = cluster_id
            if previous != UNCLASSIFIED:
                continue

            q_neighbors = self.region_query(metric, q)
            if len(q_neighbors) < self.min_pts:
                continue
            for o in q_neighbors:
                token.check("neighbour expansion")
                if status[o] in (UNCLASSIFIED, NOISE) and o not in seen:
                    seen.add(o)
                    queue.append(o)
