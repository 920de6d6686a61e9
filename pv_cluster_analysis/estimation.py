"""
Parameter Estimation Module

k-distance curves and the knee-point heuristic used to suggest epsilon.
"""

import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np

from .config import CONFIG
from .core.cancellation import ensure_token
from .core.factory import DistanceFunctionFactory
from .core.logger import get_logger
from .features import extract_matrix
from .models import ScalingType

logger = get_logger(__name__)

NO_KNEE = -1.0


def find_knee_point_value(sorted_values: Sequence[Optional[float]], cfg=CONFIG) -> float:
    """
    Find the knee of an ascending k-distance curve.

    Indices and values are normalized to [0, 1] against the first and last
    entries; the knee is the entry farthest from that diagonal.

    Args:
        sorted_values: Ascending values; None / NaN entries are skipped
        cfg: Configuration dictionary

    Returns:
        Value at the knee, or NO_KNEE for fewer than 3 values, a missing
        endpoint, or a flat curve
    """
    if sorted_values is None or len(sorted_values) < 3:
        return NO_KNEE

    n = len(sorted_values)
    first, last = sorted_values[0], sorted_values[-1]
    if first is None or last is None or math.isnan(first) or math.isnan(last):
        return NO_KNEE

    value_range = last - first
    if abs(value_range) < cfg['numeric_epsilon']:
        return NO_KNEE

    best_index, best_deviation = -1, -1.0
    for i, value in enumerate(sorted_values):
        if value is None or math.isnan(value):
            continue
        x_norm = i / (n - 1)
        y_norm = (value - first) / value_range
        deviation = abs(x_norm - y_norm)
        if deviation > best_deviation:
            best_index, best_deviation = i, deviation

    if best_index < 0:
        return NO_KNEE
    return float(sorted_values[best_index])


def _k_distance(metric, i: int, k: int) -> Optional[float]:
    row = metric.distances_from(i)
    mask = np.isfinite(row)
    mask[i] = False
    others = row[mask]
    if others.size < k:
        return None
    return float(np.partition(others, k - 1)[k - 1])


def calculate_k_distances(k: int, points: Sequence, scaling_type, x=None, y=None,
                          token=None, max_workers: Optional[int] = None, cfg=CONFIG) -> List[float]:
    """
    Sorted k-th nearest-neighbour distances of a point batch.

    Args:
        k: Neighbour rank (usually minPts - 1)
        points: Point batch
        scaling_type: ScalingType (or name) used for the distance metric
        x: First variable (default from CONFIG)
        y: Second variable (default from CONFIG)
        token: Optional CancellationToken
        max_workers: Thread count for large batches
        cfg: Configuration dictionary

    Returns:
        Ascending list with one value per point that has at least k finite
        distances to other points

    Raises:
        ValueError: If k is not positive
        AnalysisCancelled: If the token is cancelled
    """
    if k <= 0:
        raise ValueError(f"k must be positive, got {k}")

    token = ensure_token(token)
    points = list(points or [])
    if len(points) <= k:
        logger.warning(f"Not enough points ({len(points)}) for k-distance with k={k}")
        return []

    x = x if x is not None else cfg['variables']['x']
    y = y if y is not None else cfg['variables']['y']
    metric = DistanceFunctionFactory.create(points, scaling_type, x, y, context=f"k-distance (k={k})")

    n = len(points)
    slots: List[Optional[float]] = [None] * n

    def compute(i: int) -> None:
        token.check("k-distance calculation")
        slots[i] = _k_distance(metric, i, k)

    k_cfg = cfg['k_distance']
    if n > k_cfg['parallel_threshold']:
        workers = max_workers or k_cfg['max_workers']
        logger.debug(f"Computing {n} k-distances on {workers} threads")
        with ThreadPoolExecutor(max_workers=workers) as executor:
            # list() re-raises the first worker exception, cancellation included
            list(executor.map(compute, range(n)))
    else:
        for i in range(n):
            compute(i)

    distances = sorted(d for d in slots if d is not None)
    token.check("k-distance sorting")
    logger.debug(f"Calculated {len(distances)} k-distances (k={k}) from {n} points")
    return distances


@dataclass(frozen=True)
class ParameterEstimate:
    """k-distance curve and the epsilon suggested by its knee."""

    k: int
    scaling_type: ScalingType
    distances: List[float] = field(default_factory=list)
    epsilon: float = NO_KNEE

    @property
    def found(self) -> bool:
        return self.epsilon != NO_KNEE


def estimate_epsilon(min_pts: int, points: Sequence, scaling_type, x=None, y=None,
                     token=None, cfg=CONFIG) -> ParameterEstimate:
    """
    Suggest epsilon for a given minPts.

    Only points valid on both variables take part; k = max(1, minPts - 1).

    Returns:
        ParameterEstimate (epsilon NO_KNEE when no knee is found)
    """
    scaling_type = ScalingType.from_name(scaling_type)
    x = x if x is not None else cfg['variables']['x']
    y = y if y is not None else cfg['variables']['y']
    k = max(1, int(min_pts) - 1)

    points = list(points or [])
    matrix = extract_matrix(points, x, y)
    valid = [p for p, row in zip(points, matrix) if np.isfinite(row).all()]

    distances = calculate_k_distances(k, valid, scaling_type, x, y, token=token, cfg=cfg)
    epsilon = find_knee_point_value(distances, cfg)
    if epsilon == NO_KNEE:
        logger.info(f"No knee found in k-distance curve (k={k}, {len(distances)} values)")
    else:
        logger.info(f"Suggested epsilon {epsilon:.4f} (k={k}, scaling={scaling_type})")
    return ParameterEstimate(k=k, scaling_type=scaling_type, distances=distances, epsilon=epsilon)
