"""
Detector implementations using Strategy Pattern.
"""

from ..core import DetectorFactory
from .optics import DensityClusterer, ClusteringResult
from .dbscan import DensityOutlierDetector, OutlierResult, UNCLASSIFIED

DetectorFactory.register('optics', DensityClusterer)
DetectorFactory.register('dbscan', DensityOutlierDetector)

__all__ = [
    'DensityClusterer',
    'ClusteringResult',
    'DensityOutlierDetector',
    'OutlierResult',
    'UNCLASSIFIED'
]
