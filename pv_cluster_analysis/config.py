"""
PV Tracker Analysis - Configuration Module

Central configuration dictionary consolidating all thresholds, defaults, and
naming conventions for the tracker clustering / outlier pipeline.

Defaults follow the values the plant operators tuned the desktop tool with.
"""

import os

CONFIG = {
    # Context
    'notes': {
        'input_layout': 'One row per timestamp, one column per "<tracker>/<metric>"',
        'orientation_groups': 'Outliers and performance medians are scoped per orientation',
        'interval_mode': 'One representative (max scaled power) point per tracker',
    },

    # Numerics
    'numeric_epsilon': 1e-9,             # near-zero guard for denominators, ranges, stddev
    'min_power_threshold_kw': 0.05,      # interval mode: ignore readings at or below 0.05 kW
    'constant_range_value': 0.5,         # min-max value for constant columns
    'outlier_discard_fraction': 0.5,     # >50% outliers in a group => labels discarded

    # Input naming
    'metrics': {
        'power': 'DC-Leistung(kW)',
        'voltage': 'DC-Spannung(V)',
        'key_template': '{tracker}/{metric}',
        'fallback_key_template': '{tracker} /{metric}',   # seen in some exports
    },
    'timestamp_format': '%d.%m.%Y %H:%M',

    # Clustering (OPTICS-style, global)
    'optics': {
        'epsilon': 10.0,
        'min_pts': 5,
        'scaling': 'none',
    },

    # Outlier detection (DBSCAN-style, per orientation)
    'dbscan': {
        'epsilon': 0.05,
        'min_pts': 3,
        'scaling': 'min_max',
    },

    # Variables driving both algorithms
    'variables': {
        'x': 'specific_power',
        'y': 'specific_power',
    },

    # Parameter estimation
    'k_distance': {
        'parallel_threshold': 500,       # fan out across threads above this many points
        'max_workers': min(8, os.cpu_count() or 1),
    },

    # Logging
    'logging': {
        'level': 'INFO',
        'log_to_file': False,
        'log_to_console': True,
        'log_dir': 'logs',
    },
}


def metric_keys(tracker, metric, cfg=None):
    """Return the primary and fallback column keys for a tracker metric."""
    cfg = cfg or CONFIG
    templates = cfg['metrics']
    return (
        templates['key_template'].format(tracker=tracker, metric=metric),
        templates['fallback_key_template'].format(tracker=tracker, metric=metric),
    )
