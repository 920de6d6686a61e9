"""
Main Analysis Pipeline

Orchestrates one analysis run end to end:
1. Validate the run configuration
2. Prepare analysis points (single timestamp or interval max vector)
3. Cluster all valid points (OPTICS-style)
4. Flag outliers per orientation group (DBSCAN-style)
5. Label performance against the orientation median
6. Publish an immutable result snapshot
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .config import CONFIG
from .core import (
    AnalysisCancelled,
    AnalysisLogger,
    DetectorFactory,
    DistanceFunctionFactory,
    Observable,
    PerformanceLogger,
    ensure_token,
    get_logger,
    validate_analysis_config,
)
from .detectors import ClusteringResult, OutlierResult
from .estimation import ParameterEstimate, calculate_k_distances, estimate_epsilon
from .features import extract_matrix, resolve_extractor
from .models import NOISE, AnalysisMode, AnalysisPoint, ScalingType
from .performance import performance_labels

logger = get_logger(__name__)


@dataclass(frozen=True)
class AnalysisResult:
    """
    Snapshot of one finished analysis run.

    ``points`` are sorted by tracker name and carry the analysis outputs;
    ``by_orientation`` maps each orientation to its points, in first-seen
    order.
    """

    points: Tuple[AnalysisPoint, ...] = ()
    by_orientation: Mapping[str, Tuple[AnalysisPoint, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    cluster_count: int = 0
    outliers_found: bool = False

    @classmethod
    def empty(cls) -> 'AnalysisResult':
        return cls()

    @property
    def is_empty(self) -> bool:
        return len(self.points) == 0

    def orientations(self) -> List[str]:
        return list(self.by_orientation.keys())

    def points_for(self, orientation: str) -> Tuple[AnalysisPoint, ...]:
        return self.by_orientation.get(orientation, ())

    def outliers(self) -> List[AnalysisPoint]:
        return [p for p in self.points if p.is_outlier]


def group_by_orientation(points: Sequence[AnalysisPoint]) -> Dict[str, List[int]]:
    """Indices of the points per orientation, in first-seen order."""
    groups: Dict[str, List[int]] = {}
    for i, point in enumerate(points):
        groups.setdefault(point.orientation, []).append(i)
    return groups


class AnalysisOrchestrator(Observable):
    """
    Runs the full analysis and owns the working point batch of a run.

    One run at a time per instance; callers must not start a second run
    while one is active. Observers receive the events 'prepared',
    'clustered', 'outliers', 'labelled', 'complete' and 'cancelled'.
    """

    def __init__(self, observers=None, cfg=CONFIG):
        super().__init__()
        for observer in observers or []:
            self.attach(observer)
        self.cfg = cfg
        self.points: List[AnalysisPoint] = []
        self.last_result: Optional[AnalysisResult] = None
        self.last_config = None
        self.perf = PerformanceLogger()
        self.run_log = AnalysisLogger()

    # ------------------------------------------------------------------
    # Full run
    # ------------------------------------------------------------------

    def run_full_analysis(self, config, token=None) -> AnalysisResult:
        """
        Run preparation, clustering, outlier detection and labelling.

        Args:
            config: AnalysisConfig
            token: Optional CancellationToken

        Returns:
            AnalysisResult

        Raises:
            ConfigurationError: If the configuration is invalid (nothing runs)
            AnalysisCancelled: If the token is cancelled; working points are
                reset and no result is published
        """
        validate_analysis_config(config)
        token = ensure_token(token)

        self.last_result = None
        self.run_log.reset_stats()
        self.perf.start_timer('analysis')
        try:
            result = self._run(config, token)
        except AnalysisCancelled as e:
            self._reset_points()
            logger.info(f"{e} Point outputs reset.")
            self.notify('cancelled', {'points': len(self.points)})
            raise
        except Exception as e:
            self._reset_points()
            logger.error(f"Analysis failed: {e}")
            raise
        finally:
            self.perf.stop_timer('analysis')

        self.last_result = result
        self.last_config = config
        self.run_log.log_run_summary()
        self.notify('complete', {
            'points': len(result.points),
            'clusters': result.cluster_count,
            'outliers_found': result.outliers_found,
        })
        return result

    def _run(self, config, token) -> AnalysisResult:
        mode_desc = (
            f"timestamp {config.timestamp}" if config.mode == AnalysisMode.SINGLE_TIMESTAMP
            else f"interval {config.interval_start} -> {config.interval_end}"
        )
        logger.info(f"Starting analysis ({mode_desc})")

        self.points = [p.reset() for p in self.prepare_points(config, token)]
        points = self.points
        self.notify('prepared', {'points': len(points)})
        if not points:
            logger.warning(f"Analysis aborted: no processable data for {mode_desc}")
            return AnalysisResult.empty()

        x = resolve_extractor(config.x_variable)
        y = resolve_extractor(config.y_variable)
        valid = np.isfinite(extract_matrix(points, x, y)).all(axis=1)
        groups = group_by_orientation(points)
        self.run_log.stats['total_points'] = len(points)
        self.run_log.stats['valid_points'] = int(valid.sum())

        cluster_ids, cluster_count = self.cluster(points, valid, config, token)
        self.run_log.stats['clusters'] = cluster_count
        self.notify('clustered', {'clusters': cluster_count})

        outliers, outliers_found = self.detect_outliers(points, groups, valid, config, token)
        self.notify('outliers', {'outliers': int(outliers.sum()), 'outliers_found': outliers_found})

        token.check("performance labelling")
        labels = performance_labels(points, self.cfg)
        self.notify('labelled', {'labelled': sum(1 for label in labels if label)})

        final = [
            p.with_outputs(cluster_ids[i], outliers[i], labels[i])
            for i, p in enumerate(points)
        ]
        self.points = final
        by_orientation = MappingProxyType({
            orientation: tuple(final[i] for i in indices)
            for orientation, indices in groups.items()
        })
        return AnalysisResult(tuple(final), by_orientation, cluster_count, outliers_found)

    def _reset_points(self) -> None:
        self.points = [p.reset() for p in self.points]

    # ------------------------------------------------------------------
    # Data preparation
    # ------------------------------------------------------------------

    def prepare_points(self, config, token=None) -> List[AnalysisPoint]:
        """Build the run's point batch, sorted by tracker name."""
        if config.mode == AnalysisMode.SINGLE_TIMESTAMP:
            points = self.prepare_single_timestamp(config.dataset, config.timestamp)
        else:
            points = self.prepare_interval_max_vector(
                config.dataset, config.interval_start, config.interval_end, token
            )
        return sorted(points, key=lambda p: p.name)

    def prepare_single_timestamp(self, dataset, timestamp: str) -> List[AnalysisPoint]:
        """One point per known tracker from the raw values at ``timestamp`` (missing -> NaN)."""
        if dataset.index_of(timestamp) < 0:
            logger.warning(f"No data found for timestamp: {timestamp}")
            return []

        metrics = self.cfg['metrics']
        points = []
        for name, info in dataset.trackers.items():
            points.append(AnalysisPoint(
                name=name,
                dc_power_kw=dataset.value(timestamp, name, metrics['power']),
                dc_voltage_v=dataset.value(timestamp, name, metrics['voltage']),
                tracker_info=info,
                source_timestamp=timestamp,
                module_info=dataset.module_info,
            ))
        logger.debug(f"Prepared {len(points)} points for timestamp {timestamp}")
        return points

    def prepare_interval_max_vector(self, dataset, start: str, end: str, token=None) -> List[AnalysisPoint]:
        """
        One representative point per tracker over an inclusive interval.

        Pass 1 finds the global power / voltage range over readings above the
        power threshold with both values present. Pass 2 picks, per tracker,
        the first timestamp whose power rescaled against that global range is
        maximal and keeps its raw values.
        """
        token = ensure_token(token)
        cfg = self.cfg
        metrics = cfg['metrics']
        threshold = cfg['min_power_threshold_kw']
        start_idx, end_idx = dataset.index_of(start), dataset.index_of(end)

        power = {}
        voltage = {}
        qualifying = {}
        for name in dataset.trackers:
            token.check("interval pass 1")
            p = dataset.series(name, metrics['power'], start_idx, end_idx)
            v = dataset.series(name, metrics['voltage'], start_idx, end_idx)
            power[name], voltage[name] = p, v
            qualifying[name] = p.notna() & v.notna() & (p > threshold)

        qualifying = pd.DataFrame(qualifying)
        power = pd.DataFrame(power)
        voltage = pd.DataFrame(voltage)
        if qualifying.empty or not qualifying.to_numpy().any():
            logger.warning(f"No readings above {threshold} kW in interval {start} -> {end}")
            return []

        valid_power = power.where(qualifying).to_numpy(dtype=float)
        valid_voltage = voltage.where(qualifying).to_numpy(dtype=float)
        p_min, p_max = float(np.nanmin(valid_power)), float(np.nanmax(valid_power))
        power_range = p_max - p_min
        logger.debug(
            f"Interval baseline: power {p_min:.3f}..{p_max:.3f} kW, "
            f"voltage {np.nanmin(valid_voltage):.1f}..{np.nanmax(valid_voltage):.1f} V"
        )

        points = []
        for name, info in dataset.trackers.items():
            token.check("interval pass 2")
            mask = qualifying[name]
            if not mask.any():
                logger.warning(f"No valid point meeting criteria found for tracker {name} in interval")
                continue

            tracker_power = power.loc[mask, name]
            if power_range < cfg['numeric_epsilon']:
                scaled = pd.Series(cfg['constant_range_value'], index=tracker_power.index)
            else:
                scaled = (tracker_power - p_min) / power_range
            best = scaled.idxmax()

            points.append(AnalysisPoint(
                name=name,
                dc_power_kw=power.at[best, name],
                dc_voltage_v=voltage.at[best, name],
                tracker_info=info,
                source_timestamp=best,
                module_info=dataset.module_info,
            ))
        logger.debug(f"Prepared {len(points)} max-vector points for interval {start} -> {end}")
        return points

    # ------------------------------------------------------------------
    # Algorithms
    # ------------------------------------------------------------------

    def cluster(self, points: Sequence[AnalysisPoint], valid: np.ndarray, config,
                token) -> Tuple[np.ndarray, int]:
        """
        Cluster all valid points in one global pass.

        Returns:
            (cluster id per point, number of distinct clusters)
        """
        cluster_ids = np.full(len(points), NOISE, dtype=int)
        valid_idx = np.flatnonzero(valid)
        logger.info(
            f"Clustering {len(valid_idx)} valid points "
            f"(X={config.x_variable}, Y={config.y_variable}, scaling={ScalingType.from_name(config.optics_scaling)})"
        )
        if len(valid_idx) < config.optics_min_pts:
            logger.warning(
                f"Clustering skipped: not enough valid points ({len(valid_idx)}) < minPts ({config.optics_min_pts})"
            )
            return cluster_ids, 0

        self.perf.start_timer('clustering')
        metric = DistanceFunctionFactory.create(
            [points[i] for i in valid_idx], config.optics_scaling,
            config.x_variable, config.y_variable, context="OPTICS"
        )
        result: ClusteringResult = DetectorFactory.create('optics', config.optics_params()).run(metric, token)
        self.perf.stop_timer('clustering')

        cluster_ids[valid_idx] = result.labels
        logger.info(f"Clustering finished, found {result.cluster_count} clusters")
        return cluster_ids, result.cluster_count

    def detect_outliers(self, points: Sequence[AnalysisPoint], groups: Dict[str, List[int]],
                        valid: np.ndarray, config, token) -> Tuple[np.ndarray, bool]:
        """
        Flag outliers independently within every orientation group.

        Groups with fewer valid points than minPts are skipped; groups where
        more than ``outlier_discard_fraction`` of the valid points come out
        as outliers keep no flags.

        Returns:
            (outlier flag per point, whether any group kept outliers)
        """
        flags = np.zeros(len(points), dtype=bool)
        any_found = False
        min_pts = config.dbscan_min_pts
        discard_fraction = self.cfg['outlier_discard_fraction']

        for orientation, indices in groups.items():
            token.check(f"outlier detection ({orientation})")
            group_valid = [i for i in indices if valid[i]]
            if len(group_valid) < min_pts:
                self.run_log.log_group_event(orientation, 'skipped', {
                    'valid_points': len(group_valid), 'min_pts': min_pts
                })
                continue

            metric = DistanceFunctionFactory.create(
                [points[i] for i in group_valid], config.dbscan_scaling,
                config.x_variable, config.y_variable, context=f"DBSCAN (orientation: {orientation})"
            )
            detector = DetectorFactory.create('dbscan', config.dbscan_params())
            try:
                result: OutlierResult = detector.run(metric, token)
            except AnalysisCancelled:
                raise
            except (ValueError, ArithmeticError, IndexError) as e:
                logger.error(f"Outlier detection failed for orientation '{orientation}', flags cleared: {e}")
                continue

            count = result.outlier_count
            if count > discard_fraction * len(group_valid):
                self.run_log.log_group_event(orientation, 'discarded', {
                    'outliers': count, 'valid_points': len(group_valid)
                })
            elif count > 0:
                flags[np.asarray(group_valid)[result.outliers]] = True
                any_found = True
                self.run_log.log_group_event(orientation, 'outliers', {
                    'count': count, 'valid_points': len(group_valid)
                })

        logger.info(f"Outlier detection finished. Valid outliers found: {any_found}")
        return flags, any_found

    # ------------------------------------------------------------------
    # Parameter tuning
    # ------------------------------------------------------------------

    def _variables(self, x_variable, y_variable):
        last = self.last_config
        x = x_variable if x_variable is not None else (last.x_variable if last else self.cfg['variables']['x'])
        y = y_variable if y_variable is not None else (last.y_variable if last else self.cfg['variables']['y'])
        return x, y

    def calculate_k_distances(self, k: int, points: Sequence[AnalysisPoint], scaling_type,
                              x_variable=None, y_variable=None, token=None) -> List[float]:
        """
        Sorted k-distance curve, by default over the last run's variables.

        Raises:
            ValueError: If k is not positive
        """
        x, y = self._variables(x_variable, y_variable)
        return calculate_k_distances(k, points, scaling_type, x, y, token=token, cfg=self.cfg)

    def estimate_parameters(self, algorithm: str = 'optics', points: Optional[Sequence[AnalysisPoint]] = None,
                            min_pts: Optional[int] = None, scaling_type=None,
                            x_variable=None, y_variable=None, token=None) -> ParameterEstimate:
        """
        Suggest epsilon for one algorithm from the knee of its k-distance curve.

        Defaults come from the last run's configuration, then from CONFIG.
        """
        if algorithm not in ('optics', 'dbscan'):
            raise ValueError(f"Unknown algorithm: {algorithm}. Available: ['optics', 'dbscan']")

        last = self.last_config
        if min_pts is None:
            min_pts = getattr(last, f'{algorithm}_min_pts') if last else self.cfg[algorithm]['min_pts']
        if scaling_type is None:
            scaling_type = getattr(last, f'{algorithm}_scaling') if last else self.cfg[algorithm]['scaling']
        x, y = self._variables(x_variable, y_variable)
        points = self.points if points is None else points
        return estimate_epsilon(min_pts, points, scaling_type, x, y, token=token, cfg=self.cfg)


def run_analysis(config, token=None, observers=None) -> AnalysisResult:
    """
    Run one analysis with a fresh orchestrator.

    Args:
        config: AnalysisConfig
        token: Optional CancellationToken
        observers: Optional list of Observer

    Returns:
        AnalysisResult
    """
    return AnalysisOrchestrator(observers=observers).run_full_analysis(config, token)
