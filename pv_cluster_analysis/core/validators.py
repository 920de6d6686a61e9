"""
Validation and Error Handling

Input and configuration validation for the analysis pipeline. Validators
collect every problem and return (is_valid, errors); the convenience function
raises a single ConfigurationError.
"""

import math
import numbers
from datetime import datetime
from typing import Any, List, Optional, Tuple

import pandas as pd

from .base import BaseValidator
from ..config import CONFIG


class ConfigurationError(ValueError):
    """Invalid or incomplete analysis configuration."""


class DataValidator(BaseValidator):
    """
    Data validation utilities.
    """

    @staticmethod
    def validate_measurements(df: pd.DataFrame, check_duplicates: bool = True) -> Tuple[bool, List[str]]:
        """
        Validate the timestamp-indexed measurement table.

        Args:
            df: DataFrame to validate
            check_duplicates: Check for duplicate timestamp labels

        Returns:
            Tuple of (is_valid, list_of_errors)
        """
        if not isinstance(df, pd.DataFrame):
            return False, [f"Expected DataFrame, got {type(df)}"]

        errors = []

        if check_duplicates:
            duplicates = int(df.index.duplicated().sum())
            if duplicates > 0:
                errors.append(f"Found {duplicates} duplicate timestamps")

        bad_columns = [col for col in df.columns if not isinstance(col, str)]
        if bad_columns:
            errors.append(f"Column keys must be '<tracker>/<metric>' strings, got: {bad_columns[:5]}")

        return len(errors) == 0, errors


def parse_timestamp(label: str, fmt: Optional[str] = None) -> Optional[datetime]:
    """Parse a timestamp label; None if it does not match the configured format."""
    try:
        return datetime.strptime(str(label), fmt or CONFIG['timestamp_format'])
    except ValueError:
        return None


def _is_real(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


class ConfigValidator(BaseValidator):
    """
    Validation of one analysis run configuration against its dataset.
    """

    @staticmethod
    def validate_parameters(config: Any) -> List[str]:
        """Check epsilon / minPts / scaling of both algorithms."""
        from ..models import ScalingType

        errors = []
        for algo in ('optics', 'dbscan'):
            epsilon = getattr(config, f'{algo}_epsilon', None)
            min_pts = getattr(config, f'{algo}_min_pts', None)
            scaling = getattr(config, f'{algo}_scaling', None)
            if not _is_real(epsilon) or not math.isfinite(epsilon) or epsilon <= 0:
                errors.append(f"{algo.upper()} epsilon must be a finite positive number, got {epsilon!r}")
            if (not _is_real(min_pts) or not math.isfinite(min_pts)
                    or int(min_pts) != min_pts or min_pts <= 0):
                errors.append(f"{algo.upper()} minPts must be a positive integer, got {min_pts!r}")
            try:
                ScalingType.from_name(scaling)
            except ValueError as e:
                errors.append(f"{algo.upper()} {e}")
        return errors

    @staticmethod
    def validate_variables(config: Any) -> List[str]:
        """Check that both analysis variables resolve to extractors."""
        from ..features import resolve_extractor

        errors = []
        for axis in ('x_variable', 'y_variable'):
            try:
                resolve_extractor(getattr(config, axis, None))
            except ConfigurationError as e:
                errors.append(f"{axis}: {e}")
        return errors

    @staticmethod
    def validate_time_selection(config: Any) -> List[str]:
        """Check timestamp / interval against the dataset."""
        from ..models import AnalysisMode

        dataset = getattr(config, 'dataset', None)
        if dataset is None:
            return ["No dataset loaded"]

        errors = []
        if not dataset.timestamps:
            errors.append("Dataset contains no timestamps")
        if not dataset.trackers:
            errors.append("Tracker metadata missing")

        mode = getattr(config, 'mode', None)
        if mode == AnalysisMode.SINGLE_TIMESTAMP:
            if config.timestamp is None or dataset.index_of(config.timestamp) < 0:
                errors.append(f"Invalid or missing timestamp for single timestamp mode: {config.timestamp!r}")
        elif mode == AnalysisMode.MAX_VECTOR_INTERVAL:
            start, end = config.interval_start, config.interval_end
            start_idx = dataset.index_of(start) if start is not None else -1
            end_idx = dataset.index_of(end) if end is not None else -1
            if start_idx < 0 or end_idx < 0:
                errors.append(f"Invalid or missing interval timestamps: {start!r} -> {end!r}")
            else:
                start_dt, end_dt = parse_timestamp(start), parse_timestamp(end)
                if start_dt is not None and end_dt is not None and start_dt > end_dt:
                    errors.append(f"Interval start {start!r} must be before or equal to end {end!r}")
                elif start_idx > end_idx:
                    errors.append(f"Interval start {start!r} comes after end {end!r} in the timestamp list")
        else:
            errors.append(f"Unknown analysis mode: {mode!r}")
        return errors

    def validate_config(self, config: Any) -> Tuple[bool, List[str]]:
        """
        Validate a full analysis configuration.

        Args:
            config: AnalysisConfig

        Returns:
            Tuple of (is_valid, list_of_errors)
        """
        errors = []
        errors.extend(self.validate_time_selection(config))
        errors.extend(self.validate_parameters(config))
        errors.extend(self.validate_variables(config))
        return len(errors) == 0, errors


def validate_analysis_config(config: Any) -> None:
    """
    Validate an analysis configuration and raise on errors.

    Args:
        config: AnalysisConfig

    Raises:
        ConfigurationError: If validation fails
    """
    is_valid, errors = ConfigValidator().validate_config(config)

    if not is_valid:
        error_msg = "Validation errors:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigurationError(error_msg)
