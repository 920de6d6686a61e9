"""
Result Reporting Module

Turns an AnalysisResult into pandas tables for the presentation layer
(tables, plots, exports happen outside this package).
"""

import pandas as pd

from .config import CONFIG
from .features import resolve_extractor
from .models import LABEL_HIGH, LABEL_LOW, LABEL_MEDIAN, NOISE

POINT_COLUMNS = [
    'name', 'orientation', 'source_timestamp',
    'dc_power_kw', 'dc_voltage_v', 'nominal_power_kwp', 'string_count',
    'specific_power', 'current_per_string', 'resistance',
    'modules_per_string', 'voltage_deviation', 'current_deviation', 'power_deviation',
    'module_data_available', 'cluster_id', 'is_outlier', 'performance_label',
]


def points_to_frame(points):
    """
    One row per point with every raw, derived and analysis field.

    Args:
        points: Iterable of AnalysisPoint

    Returns:
        DataFrame with POINT_COLUMNS
    """
    rows = [{col: getattr(p, col) for col in POINT_COLUMNS} for p in points]
    return pd.DataFrame(rows, columns=POINT_COLUMNS)


def orientation_summary(result):
    """
    Per-orientation overview.

    Args:
        result: AnalysisResult

    Returns:
        DataFrame: orientation, points, valid_specific_power,
        median_specific_power, outliers, clusters, and one count column per
        performance label
    """
    summary = []
    for orientation, points in result.by_orientation.items():
        df = points_to_frame(points)
        clusters = sorted(c for c in df['cluster_id'].unique() if c != NOISE)
        labels = df['performance_label'].value_counts()
        summary.append({
            'orientation': orientation,
            'points': len(df),
            'valid_specific_power': int(df['specific_power'].notna().sum()),
            'median_specific_power': df['specific_power'].median(),
            'outliers': int(df['is_outlier'].sum()),
            'clusters': clusters,
            LABEL_HIGH: int(labels.get(LABEL_HIGH, 0)),
            LABEL_LOW: int(labels.get(LABEL_LOW, 0)),
            LABEL_MEDIAN: int(labels.get(LABEL_MEDIAN, 0)),
        })
    return pd.DataFrame(summary, columns=[
        'orientation', 'points', 'valid_specific_power', 'median_specific_power',
        'outliers', 'clusters', LABEL_HIGH, LABEL_LOW, LABEL_MEDIAN,
    ])


def outlier_report(result):
    """
    Outlier rows sorted by orientation and tracker name.

    Args:
        result: AnalysisResult

    Returns:
        DataFrame: points_to_frame() rows of the flagged points, with a note
    """
    report = points_to_frame(result.outliers())
    report = report.sort_values(['orientation', 'name']).reset_index(drop=True)

    def make_note(row):
        return (
            f"Outlier in '{row['orientation']}' "
            f"(specific power={row['specific_power']:.3f}, label={row['performance_label'] or '-'})"
        )

    report['notes'] = report.apply(make_note, axis=1) if len(report) > 0 else pd.Series(dtype=str)
    return report


def cluster_summary(result, x_variable=None, y_variable=None, cfg=CONFIG):
    """
    Size and mean coordinates per cluster id (NOISE included as -1).

    Args:
        result: AnalysisResult
        x_variable: First analysis variable (default from CONFIG)
        y_variable: Second analysis variable (default from CONFIG)
        cfg: Configuration dictionary

    Returns:
        DataFrame: cluster_id, size, mean_x, mean_y
    """
    x = resolve_extractor(x_variable if x_variable is not None else cfg['variables']['x'])
    y = resolve_extractor(y_variable if y_variable is not None else cfg['variables']['y'])

    df = pd.DataFrame({
        'cluster_id': [p.cluster_id for p in result.points],
        'x': [x(p) for p in result.points],
        'y': [y(p) for p in result.points],
    })
    if df.empty:
        return pd.DataFrame(columns=['cluster_id', 'size', 'mean_x', 'mean_y'])

    return (
        df.groupby('cluster_id')
        .agg(size=('x', 'size'), mean_x=('x', 'mean'), mean_y=('y', 'mean'))
        .reset_index()
    )
