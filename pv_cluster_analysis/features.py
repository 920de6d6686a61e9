"""
Feature Extraction Module

Analysis variables (point -> float) and the NaN-aware per-column scaler used
before distance computation.
"""

from typing import Dict, List, Optional, Sequence, Union

import numpy as np
from sklearn.preprocessing import MinMaxScaler, StandardScaler

from .config import CONFIG
from .core.base import FeatureExtractor
from .core.logger import get_logger
from .core.validators import ConfigurationError
from .models import ScalingType

logger = get_logger(__name__)


class AttributeExtractor(FeatureExtractor):
    """Reads one numeric attribute of an analysis point."""

    def __init__(self, name: str, attribute: str, label: Optional[str] = None):
        super().__init__(name, label)
        self.attribute = attribute

    def extract(self, point) -> float:
        value = getattr(point, self.attribute)
        return float('nan') if value is None else float(value)


VARIABLES: Dict[str, FeatureExtractor] = {
    'specific_power': AttributeExtractor('specific_power', 'specific_power', 'Spez. Leistung (kW/kWp)'),
    'dc_voltage': AttributeExtractor('dc_voltage', 'dc_voltage_v', 'DC-Spannung (V)'),
    'dc_power': AttributeExtractor('dc_power', 'dc_power_kw', 'DC-Leistung (kW)'),
    'current_per_string': AttributeExtractor('current_per_string', 'current_per_string', 'Strom/String (A)'),
    'resistance': AttributeExtractor('resistance', 'resistance', 'Ohm (Ω)'),
}


def available_variables() -> List[str]:
    """Get list of registered analysis variables."""
    return list(VARIABLES.keys())


def resolve_extractor(variable: Union[str, FeatureExtractor, None]) -> FeatureExtractor:
    """
    Resolve an analysis variable to its extractor.

    Args:
        variable: Registry key, display label, or FeatureExtractor instance

    Returns:
        FeatureExtractor

    Raises:
        ConfigurationError: If the variable is unknown
    """
    if isinstance(variable, FeatureExtractor):
        return variable
    if variable is None:
        raise ConfigurationError("Analysis variable must not be None")

    key = str(variable).strip()
    if key in VARIABLES:
        return VARIABLES[key]
    for extractor in VARIABLES.values():
        if extractor.label == key:
            return extractor
    raise ConfigurationError(f"Unknown analysis variable: {variable}. Available: {available_variables()}")


def extract_matrix(points: Sequence, x, y) -> np.ndarray:
    """
    Build the dense (n, 2) coordinate matrix of a point batch.

    Rows whose extraction raises are logged and left as NaN.
    """
    x_extractor = resolve_extractor(x)
    y_extractor = resolve_extractor(y)

    matrix = np.full((len(points), 2), np.nan)
    for i, point in enumerate(points):
        try:
            matrix[i, 0] = x_extractor(point)
            matrix[i, 1] = y_extractor(point)
        except Exception as e:  # any extractor failure leaves the row NaN
            logger.warning(f"Could not extract [{x_extractor.name}, {y_extractor.name}] for point {i}: {e}")
            matrix[i, :] = np.nan
    return matrix


def _is_rectangular(matrix) -> bool:
    if isinstance(matrix, np.ndarray):
        return matrix.ndim == 2
    widths = set()
    for row in matrix:
        if row is None:
            return False
        widths.add(len(row))
    return len(widths) == 1


def _scale_column(column: np.ndarray, scaling_type: ScalingType, cfg) -> None:
    """Scale one column in place; NaN entries are ignored and kept."""
    valid = ~np.isnan(column)
    count = int(valid.sum())
    if count == 0:
        return

    values = column[valid]
    eps = cfg['numeric_epsilon']

    if scaling_type == ScalingType.MIN_MAX:
        if values.max() - values.min() < eps:
            column[valid] = cfg['constant_range_value']
            return
        scaler = MinMaxScaler()
    else:
        if count < 2:
            column[valid] = 0.0
            return
        variance = max(float(np.mean((values - values.mean()) ** 2)), 0.0)
        if np.sqrt(variance) < eps:
            column[valid] = 0.0
            return
        scaler = StandardScaler()

    column[valid] = scaler.fit_transform(values.reshape(-1, 1)).ravel()


def scale_matrix(matrix, scaling_type, cfg=CONFIG):
    """
    Normalize every column of a numeric matrix independently.

    MIN_MAX maps valid entries of each column to [0, 1] (constant columns to
    0.5); Z_SCORE standardizes with the population mean and std (fewer than
    two values or zero spread gives 0.0). NaN entries are excluded from the
    statistics and stay NaN.

    Args:
        matrix: 2-D array or list of equal-length rows
        scaling_type: ScalingType or its name
        cfg: Configuration dictionary

    Returns:
        New float ndarray, or the original reference for NONE and for empty,
        zero-width or ragged input
    """
    scaling_type = ScalingType.from_name(scaling_type)
    if scaling_type == ScalingType.NONE or matrix is None or len(matrix) == 0:
        return matrix

    if not _is_rectangular(matrix):
        logger.warning("Cannot scale ragged matrix; returning unscaled data")
        return matrix

    try:
        scaled = np.array(matrix, dtype=float, copy=True)
    except (TypeError, ValueError) as e:
        logger.warning(f"Cannot scale non-numeric matrix ({e}); returning unscaled data")
        return matrix

    if scaled.shape[1] == 0:
        return matrix

    for col in range(scaled.shape[1]):
        _scale_column(scaled[:, col], scaling_type, cfg)
    return scaled
