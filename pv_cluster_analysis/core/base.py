"""
Base Classes and Abstract Interfaces

Provides the abstraction layer for feature extractors, distance metrics and
density-based detectors.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import numpy as np


class FeatureExtractor(ABC):
    """
    Maps an analysis point to one float coordinate.

    Strategy Pattern: Allows interchangeable analysis variables.
    """

    def __init__(self, name: str, label: Optional[str] = None):
        self.name = name
        self.label = label or name

    @abstractmethod
    def extract(self, point: Any) -> float:
        """
        Extract the coordinate value.

        Args:
            point: Analysis point

        Returns:
            Float value (NaN when not computable)
        """
        pass

    def __call__(self, point: Any) -> float:
        return self.extract(point)

    def __repr__(self):
        return f"{type(self).__name__}({self.name!r})"


class DistanceMetric(ABC):
    """
    Symmetric pairwise distance over the stable indices of one point batch.

    Strategy Pattern: Detectors only see indices and this interface.
    """

    @abstractmethod
    def distance(self, i: Optional[int], j: Optional[int]) -> float:
        """Distance between two indexed points; +inf when undefined."""
        pass

    @abstractmethod
    def distances_from(self, i: int) -> np.ndarray:
        """Distances from one point to every point of the batch (+inf when undefined)."""
        pass

    @abstractmethod
    def __len__(self) -> int:
        pass

    def is_valid(self, i: Optional[int]) -> bool:
        """Whether the point has finite coordinates."""
        return i is not None and 0 <= i < len(self) and np.isfinite(self.distance(i, i))


class BaseDetector(ABC):
    """
    Abstract base class for density-based detectors.

    Template Method Pattern: parameter validation in the constructor, the
    algorithm in ``run``.
    """

    def __init__(self, name: str, config: Dict[str, Any]):
        """
        Initialize detector.

        Args:
            name: Detector identifier
            config: Configuration parameters ('epsilon', 'min_pts')

        Raises:
            ValueError: If epsilon or min_pts is not positive
        """
        self.name = name
        self.config = config
        self.epsilon = float(config['epsilon'])
        self.min_pts = int(config['min_pts'])
        BaseValidator.validate_positive(self.epsilon, 'epsilon')
        BaseValidator.validate_positive(self.min_pts, 'min_pts')

    @abstractmethod
    def run(self, metric: DistanceMetric, token=None) -> Any:
        """
        Run the algorithm over all indices of the metric.

        Args:
            metric: Distance metric bound to the point batch
            token: Optional CancellationToken

        Returns:
            Detector-specific result object
        """
        pass

    def region_query(self, metric: DistanceMetric, i: int) -> List[int]:
        """Brute-force O(n) neighbourhood query; includes the point itself."""
        row = metric.distances_from(i)
        return np.flatnonzero(np.isfinite(row) & (row <= self.epsilon)).tolist()

    def __repr__(self):
        return f"{type(self).__name__}(epsilon={self.epsilon}, min_pts={self.min_pts})"


class BaseValidator:
    """
    Validation utilities.
    """

    @staticmethod
    def validate_positive(value: float, name: str) -> None:
        """Validate a finite, strictly positive numeric value."""
        if value is None or not np.isfinite(value) or value <= 0:
            raise ValueError(f"{name} must be a finite positive number, got {value}")


class Observable:
    """
    Observer pattern for event notifications.
    """

    def __init__(self):
        """Initialize with empty observers list."""
        self._observers: List['Observer'] = []

    def attach(self, observer: 'Observer') -> None:
        """Attach observer."""
        if observer not in self._observers:
            self._observers.append(observer)

    def detach(self, observer: 'Observer') -> None:
        """Detach observer."""
        self._observers.remove(observer)

    def notify(self, event: str, data: Any) -> None:
        """Notify all observers."""
        for observer in self._observers:
            observer.update(event, data)


class Observer(ABC):
    """
    Observer interface for event handling.
    """

    @abstractmethod
    def update(self, event: str, data: Any) -> None:
        """Handle event notification."""
        pass


class LoggingObserver(Observer):
    """
    Observer that logs events.
    """

    def __init__(self, logger):
        """Initialize with logger."""
        self.logger = logger

    def update(self, event: str, data: Any) -> None:
        """Log event."""
        self.logger.info(f"Event: {event} | Data: {data}")
