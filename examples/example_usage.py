"""
Example Usage Script

Demonstrates how to use the PV tracker cluster / outlier analysis on a
synthetic plant with two orientations.
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
import pandas as pd

from pv_cluster_analysis import (
    AnalysisConfigBuilder,
    AnalysisOrchestrator,
    ConfigurationError,
    PlantDataset,
)
from pv_cluster_analysis.reporting import cluster_summary, orientation_summary, outlier_report


def make_demo_dataset(seed=42):
    """Two orientations, 20 trackers each, hourly readings for one day."""
    rng = np.random.default_rng(seed)
    timestamps = [f"01.06.2024 {hour:02d}:00" for hour in range(6, 21)]
    daylight = np.sin(np.linspace(0.0, np.pi, len(timestamps)))

    trackers = []
    columns = {}
    for orientation, peak in (('Süd', 0.55), ('Ost', 0.42)):
        for i in range(20):
            name = f"{orientation[0]}{i + 1:02d}"
            kwp = 10.0
            trackers.append({'name': name, 'nominal_power_kwp': kwp,
                             'orientation': orientation, 'string_count': 2})
            power = kwp * peak * daylight * rng.normal(1.0, 0.02, len(timestamps))
            # One soiled tracker per orientation
            if i == 7:
                power *= 0.6
            columns[f"{name}/DC-Leistung(kW)"] = power
            columns[f"{name}/DC-Spannung(V)"] = 600.0 + rng.normal(0.0, 5.0, len(timestamps))

    measurements = pd.DataFrame(columns, index=timestamps)
    return PlantDataset.from_frames(measurements, pd.DataFrame(trackers))


if __name__ == '__main__':
    dataset = make_demo_dataset()
    orchestrator = AnalysisOrchestrator()

    try:
        # ===================================================================
        # Example 1: Single timestamp analysis
        # ===================================================================

        config = (
            AnalysisConfigBuilder()
            .dataset(dataset)
            .single_timestamp("01.06.2024 13:00")
            .optics(epsilon=0.05, min_pts=4)
            .dbscan(epsilon=0.1, min_pts=3, scaling='min_max')
            .build()
        )
        result = orchestrator.run_full_analysis(config)

        print("\n" + "=" * 80)
        print("ORIENTATION SUMMARY")
        print("=" * 80)
        print(orientation_summary(result))

        print("\n" + "=" * 80)
        print("OUTLIERS")
        print("=" * 80)
        print(outlier_report(result)[['name', 'orientation', 'specific_power', 'notes']])

        print("\n" + "=" * 80)
        print("CLUSTERS")
        print("=" * 80)
        print(cluster_summary(result))

        # ===================================================================
        # Example 2: Parameter estimation from the k-distance curve
        # ===================================================================

        estimate = orchestrator.estimate_parameters('dbscan')
        print("\n" + "=" * 80)
        print("EPSILON ESTIMATE")
        print("=" * 80)
        print(f"k={estimate.k}, scaling={estimate.scaling_type}, "
              f"suggested epsilon={estimate.epsilon if estimate.found else 'none'}")

        # ===================================================================
        # Example 3: Max-vector interval analysis
        # ===================================================================

        interval_config = (
            AnalysisConfigBuilder()
            .dataset(dataset)
            .interval("01.06.2024 10:00", "01.06.2024 16:00")
            .optics(epsilon=0.05, min_pts=4)
            .dbscan(epsilon=0.1, min_pts=3)
            .build()
        )
        interval_result = orchestrator.run_full_analysis(interval_config)

        print("\n" + "=" * 80)
        print("INTERVAL ANALYSIS")
        print("=" * 80)
        print(f"Clusters: {interval_result.cluster_count}")
        print(f"Outliers: {[p.name for p in interval_result.outliers()]}")

    except ConfigurationError as e:
        print("\n" + "=" * 80)
        print("ERROR: Invalid analysis configuration")
        print("=" * 80)
        print(str(e))
        print("=" * 80)
