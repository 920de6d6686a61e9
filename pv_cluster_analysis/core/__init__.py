"""
Core module with base classes and design patterns.
"""

from .base import (
    FeatureExtractor,
    DistanceMetric,
    BaseDetector,
    BaseValidator,
    Observable,
    Observer,
    LoggingObserver
)

from .cancellation import (
    AnalysisCancelled,
    CancellationToken,
    ensure_token
)

from .logger import (
    LoggerManager,
    get_logger,
    setup_logging,
    PerformanceLogger,
    AnalysisLogger
)

from .validators import (
    ConfigurationError,
    DataValidator,
    ConfigValidator,
    validate_analysis_config
)

from .factory import (
    DetectorFactory,
    DistanceFunctionFactory
)

from .builder import (
    AnalysisConfig,
    AnalysisConfigBuilder
)

__all__ = [
    # Base classes
    'FeatureExtractor',
    'DistanceMetric',
    'BaseDetector',
    'BaseValidator',
    'Observable',
    'Observer',
    'LoggingObserver',
    # Cancellation
    'AnalysisCancelled',
    'CancellationToken',
    'ensure_token',
    # Logging
    'LoggerManager',
    'get_logger',
    'setup_logging',
    'PerformanceLogger',
    'AnalysisLogger',
    # Validators
    'ConfigurationError',
    'DataValidator',
    'ConfigValidator',
    'validate_analysis_config',
    # Factories
    'DetectorFactory',
    'DistanceFunctionFactory',
    # Builders
    'AnalysisConfig',
    'AnalysisConfigBuilder'
]
