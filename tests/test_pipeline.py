from __future__ import annotations

import logging
import math
from typing import Any, List, Tuple

import numpy as np
import pytest

from pv_cluster_analysis import (
    NOISE,
    AnalysisCancelled,
    AnalysisConfigBuilder,
    AnalysisOrchestrator,
    ConfigurationError,
    Observer,
    PlantDataset,
    TrackerInfo,
    run_analysis,
)

TS = "01.06.2024 12:00"


class RecordingObserver(Observer):
    def __init__(self) -> None:
        self.events: List[Tuple[str, Any]] = []

    def update(self, event: str, data: Any) -> None:
        self.events.append((event, data))


def _by_name(result):
    return {p.name: p for p in result.points}


def test_single_timestamp_run(base_builder) -> None:
    result = run_analysis(base_builder.build())
    points = _by_name(result)

    assert [p.name for p in result.points] == sorted(points)
    assert result.cluster_count == 2
    assert result.outliers_found
    assert [p.name for p in result.outliers()] == ["S6"]
    assert points["S6"].cluster_id == NOISE
    assert {points[n].cluster_id for n in ("E2", "E3", "E4")} == {0}
    assert {points[n].cluster_id for n in ("S2", "S3", "S4", "S5")} == {1}
    assert points["E1"].cluster_id == NOISE and points["S1"].cluster_id == NOISE


def test_result_groups_by_orientation(base_builder) -> None:
    result = run_analysis(base_builder.build())

    assert result.orientations() == ["Ost", "Süd"]
    assert [p.name for p in result.points_for("Ost")] == ["E1", "E2", "E3", "E4"]
    assert len(result.points_for("Süd")) == 6
    assert result.points_for("Nord") == ()
    with pytest.raises(TypeError):
        result.by_orientation["Nord"] = ()


def test_performance_labels_use_orientation_median(base_builder) -> None:
    points = _by_name(run_analysis(base_builder.build()))

    # Süd median is (0.51 + 0.515) / 2
    assert points["S1"].performance_label == "niedrig"
    assert points["S3"].performance_label == "hoch"
    assert points["S6"].performance_label == "niedrig"
    # Ost median is (0.302 + 0.305) / 2
    assert points["E1"].performance_label == "niedrig"
    assert points["E3"].performance_label == "hoch"


def test_points_with_invalid_variables_keep_defaults(plant_trackers, base_builder) -> None:
    trackers = dict(plant_trackers)
    trackers["Z1"] = TrackerInfo("Z1", 10.0, "Süd", 2)
    dataset = base_builder.build().dataset
    rows = [dataset.row_for(ts) for ts in dataset.timestamps]
    extended = PlantDataset.from_rows(dataset.timestamps, rows, trackers)

    result = run_analysis(base_builder.dataset(extended).build())
    z1 = _by_name(result)["Z1"]

    assert len(result.points) == 11
    assert z1.cluster_id == NOISE
    assert not z1.is_outlier
    assert z1.performance_label == ""


def test_group_with_more_than_half_outliers_is_discarded(caplog) -> None:
    trackers = {name: TrackerInfo(name, 10.0, "West", 2) for name in ("W1", "W2", "W3")}
    row = {"W1/DC-Leistung(kW)": 1.0, "W2/DC-Leistung(kW)": 3.0, "W3/DC-Leistung(kW)": 5.0}
    dataset = PlantDataset.from_rows([TS], [row], trackers)
    config = (
        AnalysisConfigBuilder()
        .dataset(dataset)
        .single_timestamp(TS)
        .optics(epsilon=0.05, min_pts=3, scaling="none")
        .dbscan(epsilon=0.05, min_pts=3, scaling="none")
        .build()
    )

    with caplog.at_level(logging.WARNING):
        result = run_analysis(config)

    assert not result.outliers_found
    assert result.outliers() == []
    assert any("discarding labels" in record.message for record in caplog.records)


def test_small_group_is_skipped(plant_trackers, base_builder, caplog) -> None:
    trackers = dict(plant_trackers)
    trackers["N1"] = TrackerInfo("N1", 10.0, "Nord", 2)
    trackers["N2"] = TrackerInfo("N2", 10.0, "Nord", 2)
    dataset = base_builder.build().dataset
    row = dataset.row_for(TS)
    row.update({"N1/DC-Leistung(kW)": 1.0, "N2/DC-Leistung(kW)": 9.0})
    extended = PlantDataset.from_rows([TS], [row], trackers)

    with caplog.at_level(logging.INFO):
        result = run_analysis(base_builder.dataset(extended).build())

    points = _by_name(result)
    assert not points["N1"].is_outlier and not points["N2"].is_outlier
    assert any("'Nord': skipped" in record.message for record in caplog.records)


def test_clustering_skipped_below_min_pts(base_builder) -> None:
    result = run_analysis(base_builder.optics(min_pts=50).build())

    assert result.cluster_count == 0
    assert all(p.cluster_id == NOISE for p in result.points)
    assert result.outliers_found


def test_interval_mode_picks_max_power_per_tracker(interval_dataset) -> None:
    config = (
        AnalysisConfigBuilder()
        .dataset(interval_dataset)
        .interval("01.06.2024 10:00", "01.06.2024 12:00")
        .optics(epsilon=0.05, min_pts=3)
        .dbscan(epsilon=0.05, min_pts=3)
        .build()
    )

    points = _by_name(run_analysis(config))

    assert sorted(points) == ["B", "C", "D"]
    assert points["B"].source_timestamp == "01.06.2024 11:00"
    assert points["B"].dc_power_kw == 4.0
    assert points["B"].dc_voltage_v == 610.0
    assert points["C"].source_timestamp == "01.06.2024 11:00"
    assert points["D"].source_timestamp == "01.06.2024 12:00"
    assert points["D"].dc_voltage_v == 615.0


def test_interval_subrange_and_empty_interval(interval_dataset) -> None:
    orchestrator = AnalysisOrchestrator()

    points = orchestrator.prepare_interval_max_vector(
        interval_dataset, "01.06.2024 10:00", "01.06.2024 10:00"
    )
    assert {p.name: p.dc_power_kw for p in points} == {"C": 3.0, "D": 1.0}

    quiet = PlantDataset.from_rows(
        ["01.06.2024 05:00"], [{"A/DC-Leistung(kW)": 0.01, "A/DC-Spannung(V)": 400.0}],
        {"A": TrackerInfo("A", 10.0, "Süd", 2)},
    )
    config = AnalysisConfigBuilder().dataset(quiet).interval("01.06.2024 05:00", "01.06.2024 05:00").build()
    result = orchestrator.run_full_analysis(config)

    assert result.is_empty
    assert not result.outliers_found


@pytest.mark.parametrize(
    "stage",
    ["clustering", "seed update", "outlier detection", "neighbour expansion", "performance labelling"],
)
def test_cancellation_resets_points(base_builder, cancel_on, stage) -> None:
    observer = RecordingObserver()
    orchestrator = AnalysisOrchestrator(observers=[observer])
    orchestrator.run_full_analysis(base_builder.build())
    token = cancel_on(stage)

    with pytest.raises(AnalysisCancelled):
        orchestrator.run_full_analysis(base_builder.build(), token)

    assert len(orchestrator.points) == 10
    assert all(p.has_default_outputs for p in orchestrator.points)
    assert orchestrator.last_result is None
    assert observer.events[-1][0] == "cancelled"
    assert any(where.startswith(stage) for where in token.checks)


def test_rerun_after_cancellation(base_builder, cancel_on) -> None:
    orchestrator = AnalysisOrchestrator()
    with pytest.raises(AnalysisCancelled):
        orchestrator.run_full_analysis(base_builder.build(), cancel_on("clustering"))

    result = orchestrator.run_full_analysis(base_builder.build())

    assert result.cluster_count == 2
    assert orchestrator.last_result is result


def test_observers_receive_stage_events(base_builder) -> None:
    observer = RecordingObserver()

    AnalysisOrchestrator(observers=[observer]).run_full_analysis(base_builder.build())

    assert [event for event, _ in observer.events] == [
        "prepared", "clustered", "outliers", "labelled", "complete"
    ]
    assert observer.events[-1][1]["clusters"] == 2


@pytest.mark.parametrize(
    "configure",
    [
        lambda b: b.single_timestamp("02.06.2024 12:00"),
        lambda b: b.single_timestamp(None),
        lambda b: b.interval("01.06.2024 13:00", "01.06.2024 12:00"),
        lambda b: b.optics(epsilon=-1.0),
        lambda b: b.optics(epsilon=math.inf),
        lambda b: b.dbscan(epsilon=math.nan),
        lambda b: b.optics(epsilon="0.5"),
        lambda b: b.dbscan(min_pts="3"),
        lambda b: b.optics(min_pts=2.5),
        lambda b: b.dbscan(min_pts=0),
        lambda b: b.variables("irradiance", "specific_power"),
        lambda b: b.dataset(None),
    ],
)
def test_invalid_configuration_fails_before_running(base_builder, configure) -> None:
    observer = RecordingObserver()
    config = configure(base_builder).build()

    with pytest.raises(ConfigurationError):
        AnalysisOrchestrator(observers=[observer]).run_full_analysis(config)

    assert observer.events == []


def test_missing_tracker_metadata_is_a_configuration_error() -> None:
    dataset = PlantDataset.from_rows([TS], [{"X/DC-Leistung(kW)": 1.0}], {})
    config = AnalysisConfigBuilder().dataset(dataset).single_timestamp(TS).build()

    with pytest.raises(ConfigurationError, match="Tracker metadata missing"):
        run_analysis(config)


def test_estimate_parameters_defaults_to_last_run(base_builder) -> None:
    orchestrator = AnalysisOrchestrator()
    orchestrator.run_full_analysis(base_builder.build())

    estimate = orchestrator.estimate_parameters("dbscan")
    distances = orchestrator.calculate_k_distances(2, orchestrator.points, "none")

    assert estimate.k == 2
    assert len(estimate.distances) == 10
    assert distances == pytest.approx(estimate.distances)
    assert np.all(np.diff(distances) >= 0)
    with pytest.raises(ValueError):
        orchestrator.estimate_parameters("kmeans")
