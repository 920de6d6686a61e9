"""
Performance Labelling Module

Compares each tracker's specific power with the median of its orientation
group.
"""

from typing import List, Sequence

import numpy as np
import pandas as pd

from .config import CONFIG
from .models import LABEL_HIGH, LABEL_LOW, LABEL_MEDIAN, LABEL_NONE


def orientation_medians(points: Sequence, cfg=CONFIG) -> pd.Series:
    """
    Median specific power per orientation over points with a valid value.

    Returns:
        Series indexed by orientation (groups without valid values are absent)
    """
    df = pd.DataFrame({
        'orientation': [p.orientation for p in points],
        'specific_power': [p.specific_power for p in points],
    })
    if df.empty:
        return pd.Series(dtype=float)
    return df.dropna(subset=['specific_power']).groupby('orientation', sort=False)['specific_power'].median()


def performance_labels(points: Sequence, cfg=CONFIG) -> List[str]:
    """
    Label every point against its orientation median.

    Logic:
    - above median + numeric_epsilon: 'hoch'
    - below median - numeric_epsilon: 'niedrig'
    - otherwise: 'median'
    - NaN specific power: ''

    Args:
        points: Point batch
        cfg: Configuration dictionary

    Returns:
        Labels in point order
    """
    eps = cfg['numeric_epsilon']
    medians = orientation_medians(points, cfg)

    labels = []
    for p in points:
        value = p.specific_power
        median = medians.get(p.orientation, np.nan)
        if value is None or np.isnan(value) or np.isnan(median):
            labels.append(LABEL_NONE)
        elif value > median + eps:
            labels.append(LABEL_HIGH)
        elif value < median - eps:
            labels.append(LABEL_LOW)
        else:
            labels.append(LABEL_MEDIAN)
    return labels
