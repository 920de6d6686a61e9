"""
Factory Pattern for Object Creation

Centralizes creation of detectors and distance metrics.
"""

from typing import Any, Dict, Optional, Sequence, Type

from .base import BaseDetector, DistanceMetric
from .logger import get_logger

logger = get_logger(__name__)


class DetectorFactory:
    """
    Factory for creating density-based detectors.

    Factory Pattern: Centralized detector instantiation.
    """

    _detectors: Dict[str, Type[BaseDetector]] = {}

    @classmethod
    def register(cls, name: str, detector_class: Type[BaseDetector]) -> None:
        """
        Register a detector class.

        Args:
            name: Detector identifier (e.g., 'optics')
            detector_class: Class implementing BaseDetector
        """
        cls._detectors[name] = detector_class

    @classmethod
    def create(cls, detector_type: str, config: Optional[Dict[str, Any]] = None) -> BaseDetector:
        """
        Create detector instance.

        Args:
            detector_type: Detector identifier
            config: 'epsilon' / 'min_pts' overrides

        Returns:
            Detector instance

        Raises:
            ValueError: If detector type not registered
        """
        if detector_type not in cls._detectors:
            raise ValueError(f"Unknown detector type: {detector_type}. Available: {list(cls._detectors.keys())}")

        detector_class = cls._detectors[detector_type]
        return detector_class(config=config)

    @classmethod
    def get_available(cls) -> list:
        """Get list of available detector types."""
        return list(cls._detectors.keys())


class DistanceFunctionFactory:
    """
    Factory for distance metrics over a point batch.
    """

    @staticmethod
    def create(points: Sequence, scaling_type, x, y, context: str = "") -> DistanceMetric:
        """
        Build a metric bound to the indices of ``points``.

        Args:
            points: Point batch; index i of the metric is points[i]
            scaling_type: ScalingType (or name) applied before measuring
            x: Variable for the first coordinate
            y: Variable for the second coordinate
            context: Label used in log messages

        Returns:
            DistanceMetric over the raw or scaled coordinates
        """
        from ..distance import EuclideanMetric
        from ..features import extract_matrix, scale_matrix
        from ..models import ScalingType

        scaling_type = ScalingType.from_name(scaling_type)
        raw = extract_matrix(points, x, y)
        if scaling_type == ScalingType.NONE or len(points) == 0:
            return EuclideanMetric(raw, scaled=False, context=context)

        scaled = scale_matrix(raw, scaling_type)
        if scaled is raw:
            logger.warning(
                f"Scaling '{scaling_type}' was a no-op for {context or 'point batch'}; "
                "falling back to unscaled distances"
            )
            return EuclideanMetric(raw, scaled=False, context=context)

        logger.debug(f"Built {scaling_type} scaled metric for {context or 'point batch'} ({len(points)} points)")
        return EuclideanMetric(scaled, scaled=True, context=context)
