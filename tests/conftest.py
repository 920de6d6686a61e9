from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, Dict, List

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pv_cluster_analysis import (  # noqa: E402
    AnalysisConfigBuilder,
    AnalysisPoint,
    CancellationToken,
    ModuleInfo,
    PlantDataset,
    TrackerInfo,
)

TS = "01.06.2024 12:00"
TS_LATER = "01.06.2024 13:00"

SOUTH_POWER = {"S1": 5.0, "S2": 5.1, "S3": 5.2, "S4": 5.3, "S5": 5.15, "S6": 2.0}
EAST_POWER = {"E1": 3.0, "E2": 3.05, "E3": 3.1, "E4": 3.02}

INTERVAL = ["01.06.2024 10:00", "01.06.2024 11:00", "01.06.2024 12:00"]


def power_key(name: str) -> str:
    return f"{name}/DC-Leistung(kW)"


def voltage_key(name: str) -> str:
    return f"{name}/DC-Spannung(V)"


class CancelOn(CancellationToken):
    """Cancels itself the first time a check happens in the given stage."""

    def __init__(self, stage: str):
        super().__init__()
        self.stage = stage
        self.checks: List[str] = []

    def check(self, where: str = "") -> None:
        self.checks.append(where)
        if where.startswith(self.stage):
            self.cancel()
        super().check(where)


@pytest.fixture()
def cancel_on() -> type:
    return CancelOn


@pytest.fixture()
def make_point() -> Callable[..., AnalysisPoint]:
    def _make(
        name: str = "T1",
        power: float = 5.0,
        voltage: float = 600.0,
        orientation: str = "Süd",
        kwp: float = 10.0,
        strings: int = 2,
        timestamp: str = TS,
        module_info: ModuleInfo | None = None,
    ) -> AnalysisPoint:
        return AnalysisPoint(
            name=name,
            dc_power_kw=power,
            dc_voltage_v=voltage,
            tracker_info=TrackerInfo(name, kwp, orientation, strings),
            source_timestamp=timestamp,
            module_info=module_info,
        )

    return _make


@pytest.fixture()
def plant_trackers() -> Dict[str, TrackerInfo]:
    trackers = {name: TrackerInfo(name, 10.0, "Süd", 2) for name in SOUTH_POWER}
    trackers.update({name: TrackerInfo(name, 10.0, "Ost", 2) for name in EAST_POWER})
    return trackers


@pytest.fixture()
def plant_dataset(plant_trackers) -> PlantDataset:
    """Two timestamps; at TS the south group has one low tracker (S6)."""
    noon = {}
    later = {}
    for name, power in {**SOUTH_POWER, **EAST_POWER}.items():
        noon[power_key(name)] = power
        noon[voltage_key(name)] = 600.0
        later[power_key(name)] = power * 0.9
        later[voltage_key(name)] = 590.0
    return PlantDataset.from_rows([TS, TS_LATER], [noon, later], plant_trackers)


@pytest.fixture()
def base_builder(plant_dataset) -> AnalysisConfigBuilder:
    return (
        AnalysisConfigBuilder()
        .dataset(plant_dataset)
        .single_timestamp(TS)
        .optics(epsilon=0.05, min_pts=3, scaling="none")
        .dbscan(epsilon=0.05, min_pts=3, scaling="none")
        .variables("specific_power", "specific_power")
    )


@pytest.fixture()
def interval_dataset() -> PlantDataset:
    """
    A never exceeds 0.05 kW, B qualifies only once, C peaks at 11:00,
    D uses the "<tracker> /<metric>" spelling and peaks at 12:00.
    """
    trackers = {name: TrackerInfo(name, 10.0, "Süd", 2) for name in "ABCD"}
    values = {
        power_key("A"): [0.01, 0.02, 0.03],
        voltage_key("A"): [500.0, 505.0, 510.0],
        power_key("B"): [np.nan, 4.0, np.nan],
        voltage_key("B"): [600.0, 610.0, 620.0],
        power_key("C"): [3.0, 6.0, 5.0],
        voltage_key("C"): [580.0, 600.0, 590.0],
        "D /DC-Leistung(kW)": [1.0, 2.0, 7.0],
        "D /DC-Spannung(V)": [570.0, 575.0, 615.0],
    }
    rows = [{key: series[i] for key, series in values.items()} for i in range(len(INTERVAL))]
    return PlantDataset.from_rows(INTERVAL, rows, trackers)
