"""
PV Tracker Cluster & Outlier Analysis

Density-based analysis of per-tracker DC measurements of a photovoltaic
plant.

Stages:
- Data preparation: single timestamp or interval max vector per tracker
- Clustering: OPTICS-style ordering over two selected variables
- Outliers: DBSCAN-style detection per orientation group
- Performance: high / low / median label against the orientation median
- Tuning: k-distance curve and knee-point epsilon estimate
"""

__version__ = "0.1.0"

from .config import CONFIG, metric_keys
from .models import (
    NOISE,
    AnalysisMode,
    AnalysisPoint,
    ModuleInfo,
    ScalingType,
    TrackerInfo
)
from .core import (
    AnalysisCancelled,
    AnalysisConfig,
    AnalysisConfigBuilder,
    CancellationToken,
    ConfigurationError,
    DistanceFunctionFactory,
    LoggingObserver,
    Observer,
    setup_logging
)
from .data_loader import PlantDataset
from .features import VARIABLES, available_variables, extract_matrix, resolve_extractor, scale_matrix
from .distance import EuclideanMetric
from .detectors import DensityClusterer, DensityOutlierDetector
from .estimation import NO_KNEE, ParameterEstimate, calculate_k_distances, estimate_epsilon, find_knee_point_value
from .performance import performance_labels
from .pipeline import AnalysisOrchestrator, AnalysisResult, run_analysis
from .reporting import cluster_summary, orientation_summary, outlier_report, points_to_frame

__all__ = [
    'CONFIG',
    'metric_keys',
    'NOISE',
    'AnalysisMode',
    'AnalysisPoint',
    'ModuleInfo',
    'ScalingType',
    'TrackerInfo',
    'AnalysisCancelled',
    'AnalysisConfig',
    'AnalysisConfigBuilder',
    'CancellationToken',
    'ConfigurationError',
    'DistanceFunctionFactory',
    'LoggingObserver',
    'Observer',
    'setup_logging',
    'PlantDataset',
    'VARIABLES',
    'available_variables',
    'extract_matrix',
    'resolve_extractor',
    'scale_matrix',
    'EuclideanMetric',
    'DensityClusterer',
    'DensityOutlierDetector',
    'NO_KNEE',
    'ParameterEstimate',
    'calculate_k_distances',
    'estimate_epsilon',
    'find_knee_point_value',
    'performance_labels',
    'AnalysisOrchestrator',
    'AnalysisResult',
    'run_analysis',
    'cluster_summary',
    'orientation_summary',
    'outlier_report',
    'points_to_frame'
]
