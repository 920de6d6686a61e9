from __future__ import annotations

import math

import pandas as pd
import pytest

from pv_cluster_analysis import CONFIG, AnalysisConfig, AnalysisConfigBuilder, AnalysisMode, ConfigurationError, ScalingType
from pv_cluster_analysis.core import ConfigValidator, DataValidator, validate_analysis_config


def test_builder_defaults_come_from_config() -> None:
    config = AnalysisConfigBuilder().build()

    assert config.dataset is None
    assert config.mode is AnalysisMode.SINGLE_TIMESTAMP
    assert config.optics_epsilon == CONFIG["optics"]["epsilon"]
    assert config.optics_min_pts == CONFIG["optics"]["min_pts"]
    assert config.optics_scaling is ScalingType.NONE
    assert config.dbscan_epsilon == CONFIG["dbscan"]["epsilon"]
    assert config.dbscan_min_pts == CONFIG["dbscan"]["min_pts"]
    assert config.dbscan_scaling is ScalingType.MIN_MAX
    assert config.x_variable == config.y_variable == "specific_power"
    assert config == AnalysisConfig(dataset=None)


def test_builder_is_fluent_and_resettable(plant_dataset) -> None:
    builder = AnalysisConfigBuilder()
    config = (
        builder.dataset(plant_dataset)
        .interval("01.06.2024 12:00", "01.06.2024 13:00")
        .optics(epsilon=0.2)
        .dbscan(scaling="Z-Score")
        .variables("dc_voltage", "current_per_string")
        .build()
    )

    assert config.mode is AnalysisMode.MAX_VECTOR_INTERVAL
    assert config.timestamp is None
    assert config.optics_epsilon == 0.2
    assert config.optics_min_pts == CONFIG["optics"]["min_pts"]
    assert config.dbscan_scaling is ScalingType.Z_SCORE
    assert config.optics_params() == {"epsilon": 0.2, "min_pts": CONFIG["optics"]["min_pts"]}
    assert builder.reset().build().dataset is None


def test_builder_rejects_unknown_scaling() -> None:
    with pytest.raises(ValueError):
        AnalysisConfigBuilder().optics(scaling="log")


def test_valid_configuration_passes(base_builder) -> None:
    config = base_builder.build()

    is_valid, errors = ConfigValidator().validate_config(config)

    assert is_valid
    assert errors == []
    validate_analysis_config(config)


def test_all_problems_reported_together(base_builder) -> None:
    config = (
        base_builder.single_timestamp("never")
        .optics(epsilon=0.0)
        .dbscan(min_pts=-2)
        .variables("specific_power", "irradiance")
        .build()
    )

    with pytest.raises(ConfigurationError) as excinfo:
        validate_analysis_config(config)

    message = str(excinfo.value)
    assert message.startswith("Validation errors:")
    assert "timestamp" in message
    assert "OPTICS epsilon" in message
    assert "DBSCAN minPts" in message
    assert "y_variable" in message
    assert isinstance(excinfo.value, ValueError)


def test_interval_must_be_known(base_builder) -> None:
    config = base_builder.interval("01.06.2024 12:00", None).build()

    is_valid, errors = ConfigValidator().validate_config(config)

    assert not is_valid
    assert any("interval" in error for error in errors)


def test_measurement_validation() -> None:
    frame = pd.DataFrame({"A/DC-Leistung(kW)": [1.0, 2.0]}, index=["t", "t"])

    is_valid, errors = DataValidator.validate_measurements(frame)

    assert not is_valid
    assert errors == ["Found 1 duplicate timestamps"]
    assert DataValidator.validate_measurements([1, 2]) == (False, ["Expected DataFrame, got <class 'list'>"])


def test_non_finite_and_non_numeric_parameters_reported(base_builder) -> None:
    config = base_builder.optics(epsilon=math.inf, min_pts="5").build()

    is_valid, errors = ConfigValidator().validate_config(config)

    assert not is_valid
    assert errors == [
        "OPTICS epsilon must be a finite positive number, got inf",
        "OPTICS minPts must be a positive integer, got '5'",
    ]
