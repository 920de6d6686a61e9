"""
Builder Pattern for Analysis Configuration

Fluent interface for assembling the per-run analysis configuration.
"""

from dataclasses import dataclass
from typing import Any, Optional

from ..config import CONFIG
from ..models import AnalysisMode, ScalingType


@dataclass(frozen=True)
class AnalysisConfig:
    """
    Everything one analysis run needs.

    Variables are registry names (see ``features.available_variables``) or
    FeatureExtractor instances.
    """

    dataset: Any
    mode: AnalysisMode = AnalysisMode.SINGLE_TIMESTAMP
    timestamp: Optional[str] = None
    interval_start: Optional[str] = None
    interval_end: Optional[str] = None
    optics_epsilon: float = CONFIG['optics']['epsilon']
    optics_min_pts: int = CONFIG['optics']['min_pts']
    optics_scaling: Any = ScalingType.from_name(CONFIG['optics']['scaling'])
    dbscan_epsilon: float = CONFIG['dbscan']['epsilon']
    dbscan_min_pts: int = CONFIG['dbscan']['min_pts']
    dbscan_scaling: Any = ScalingType.from_name(CONFIG['dbscan']['scaling'])
    x_variable: Any = CONFIG['variables']['x']
    y_variable: Any = CONFIG['variables']['y']

    def optics_params(self) -> dict:
        return {'epsilon': self.optics_epsilon, 'min_pts': self.optics_min_pts}

    def dbscan_params(self) -> dict:
        return {'epsilon': self.dbscan_epsilon, 'min_pts': self.dbscan_min_pts}


class AnalysisConfigBuilder:
    """
    Builder for analysis run configurations.

    Builder Pattern: Step-by-step construction with fluent interface.
    """

    def __init__(self, cfg=CONFIG):
        """Initialize builder with defaults from the configuration dictionary."""
        self._cfg = cfg
        self.reset()

    def dataset(self, dataset) -> 'AnalysisConfigBuilder':
        """
        Set the dataset to analyse.

        Args:
            dataset: PlantDataset

        Returns:
            self (for fluent interface)
        """
        self._values['dataset'] = dataset
        return self

    def single_timestamp(self, timestamp: str) -> 'AnalysisConfigBuilder':
        """
        Analyse one timestamp.

        Args:
            timestamp: Timestamp label present in the dataset

        Returns:
            self (for fluent interface)
        """
        self._values.update(mode=AnalysisMode.SINGLE_TIMESTAMP, timestamp=timestamp,
                            interval_start=None, interval_end=None)
        return self

    def interval(self, start: str, end: str) -> 'AnalysisConfigBuilder':
        """
        Analyse the max-power vector of each tracker over an inclusive interval.

        Args:
            start: First timestamp label
            end: Last timestamp label

        Returns:
            self (for fluent interface)
        """
        self._values.update(mode=AnalysisMode.MAX_VECTOR_INTERVAL, timestamp=None,
                            interval_start=start, interval_end=end)
        return self

    def optics(self, epsilon: Optional[float] = None, min_pts: Optional[int] = None,
               scaling=None) -> 'AnalysisConfigBuilder':
        """Override clustering parameters; None keeps the current value."""
        self._set_algorithm('optics', epsilon, min_pts, scaling)
        return self

    def dbscan(self, epsilon: Optional[float] = None, min_pts: Optional[int] = None,
               scaling=None) -> 'AnalysisConfigBuilder':
        """Override outlier-detection parameters; None keeps the current value."""
        self._set_algorithm('dbscan', epsilon, min_pts, scaling)
        return self

    def variables(self, x, y) -> 'AnalysisConfigBuilder':
        """Select the two analysis variables."""
        self._values.update(x_variable=x, y_variable=y)
        return self

    def _set_algorithm(self, prefix: str, epsilon, min_pts, scaling) -> None:
        if epsilon is not None:
            self._values[f'{prefix}_epsilon'] = epsilon
        if min_pts is not None:
            self._values[f'{prefix}_min_pts'] = min_pts
        if scaling is not None:
            self._values[f'{prefix}_scaling'] = ScalingType.from_name(scaling)

    def build(self) -> AnalysisConfig:
        """
        Build and return the configuration.

        Validation against the dataset happens when the run starts.

        Returns:
            AnalysisConfig
        """
        return AnalysisConfig(**self._values)

    def reset(self) -> 'AnalysisConfigBuilder':
        """Reset builder to initial state."""
        cfg = self._cfg
        self._values = {
            'dataset': None,
            'mode': AnalysisMode.SINGLE_TIMESTAMP,
            'timestamp': None,
            'interval_start': None,
            'interval_end': None,
            'optics_epsilon': cfg['optics']['epsilon'],
            'optics_min_pts': cfg['optics']['min_pts'],
            'optics_scaling': ScalingType.from_name(cfg['optics']['scaling']),
            'dbscan_epsilon': cfg['dbscan']['epsilon'],
            'dbscan_min_pts': cfg['dbscan']['min_pts'],
            'dbscan_scaling': ScalingType.from_name(cfg['dbscan']['scaling']),
            'x_variable': cfg['variables']['x'],
            'y_variable': cfg['variables']['y'],
        }
        return self
