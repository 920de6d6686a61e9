from __future__ import annotations

import pytest

from pv_cluster_analysis import performance_labels
from pv_cluster_analysis.performance import orientation_medians


def test_labels_against_group_median(make_point) -> None:
    points = [make_point(name=f"T{p}", power=float(p), kwp=1.0) for p in (1, 2, 3, 4, 5)]
    points.append(make_point(name="Tnan", power=float("nan"), kwp=1.0))

    labels = performance_labels(points)

    assert labels == ["niedrig", "niedrig", "median", "hoch", "hoch", ""]


def test_each_orientation_uses_its_own_median(make_point) -> None:
    points = [
        make_point(name="S1", power=1.0, kwp=1.0, orientation="Süd"),
        make_point(name="S2", power=3.0, kwp=1.0, orientation="Süd"),
        make_point(name="O1", power=10.0, kwp=1.0, orientation="Ost"),
        make_point(name="O2", power=20.0, kwp=1.0, orientation="Ost"),
        make_point(name="O3", power=30.0, kwp=1.0, orientation="Ost"),
    ]

    medians = orientation_medians(points)
    labels = performance_labels(points)

    assert medians["Süd"] == pytest.approx(2.0)
    assert medians["Ost"] == pytest.approx(20.0)
    assert labels == ["niedrig", "hoch", "niedrig", "median", "hoch"]


def test_values_within_tolerance_count_as_median(make_point) -> None:
    points = [
        make_point(name="a", power=2.0, kwp=1.0),
        make_point(name="b", power=2.0 + 1e-12, kwp=1.0),
        make_point(name="c", power=2.0 - 1e-12, kwp=1.0),
    ]

    assert performance_labels(points) == ["median", "median", "median"]


def test_group_without_valid_values_gets_empty_labels(make_point) -> None:
    points = [make_point(name="a", kwp=0.0), make_point(name="b", kwp=0.0)]

    assert performance_labels(points) == ["", ""]
    assert performance_labels([]) == []
