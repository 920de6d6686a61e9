"""
Data Model

Static tracker / module metadata and the per-tracker analysis point with its
derived electrical metrics.
"""

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from .config import CONFIG

NOISE = -1

LABEL_HIGH = 'hoch'
LABEL_LOW = 'niedrig'
LABEL_MEDIAN = 'median'
LABEL_NONE = ''
PERFORMANCE_LABELS = (LABEL_HIGH, LABEL_LOW, LABEL_MEDIAN, LABEL_NONE)

_EPS = CONFIG['numeric_epsilon']
_NAN = float('nan')


class ScalingType(Enum):
    """Feature scaling applied before distance computation."""

    NONE = 'Keine'
    MIN_MAX = 'Min-Max'
    Z_SCORE = 'Z-Score'

    @property
    def display_name(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_name(cls, name):
        """
        Look up a scaling type by member name or display name (case-insensitive).

        Accepts 'none', 'min_max', 'MIN-MAX', 'Z-Score', an existing member, ...

        Raises:
            ValueError: If the name matches no scaling type
        """
        if isinstance(name, cls):
            return name
        if name is None:
            raise ValueError("Scaling type must not be None")
        key = str(name).strip().lower().replace('-', '_').replace(' ', '_')
        for member in cls:
            if key in (member.name.lower(), member.value.lower().replace('-', '_')):
                return member
        raise ValueError(f"Unknown scaling type: {name}. Available: {[m.name for m in cls]}")


class AnalysisMode(Enum):
    """How analysis points are prepared from the time series."""

    SINGLE_TIMESTAMP = 'single_timestamp'
    MAX_VECTOR_INTERVAL = 'max_vector_interval'


def _as_float(value) -> float:
    if value is None:
        return _NAN
    try:
        return float(value)
    except (TypeError, ValueError):
        return _NAN


@dataclass(frozen=True)
class TrackerInfo:
    """Static information about one tracker (name, kWp, orientation, strings)."""

    name: str
    nominal_power_kwp: float
    orientation: str
    string_count: int

    def __post_init__(self):
        if self.name is None or not str(self.name).strip():
            raise ValueError("Tracker name cannot be empty.")
        if self.nominal_power_kwp is None or self.nominal_power_kwp < 0:
            raise ValueError(
                f"Nominal power (kWp) cannot be negative for tracker '{self.name}'. Got: {self.nominal_power_kwp}"
            )
        if self.orientation is None or not str(self.orientation).strip():
            raise ValueError(f"Orientation cannot be empty for tracker '{self.name}'.")
        if self.string_count is None or self.string_count <= 0:
            raise ValueError(
                f"String count must be positive for tracker '{self.name}'. Got: {self.string_count}"
            )


@dataclass(frozen=True)
class ModuleInfo:
    """Datasheet values of the installed module type."""

    nominal_power_kwp: float
    mpp_power_kw: float
    mpp_voltage_v: float
    mpp_current_a: float

    def __post_init__(self):
        values = (self.nominal_power_kwp, self.mpp_power_kw, self.mpp_voltage_v, self.mpp_current_a)
        if any(v is None or v < 0 for v in values):
            raise ValueError(
                "Module parameters cannot be negative: "
                f"Pnenn={self.nominal_power_kwp}, Pmpp={self.mpp_power_kw}, "
                f"Vmpp={self.mpp_voltage_v}, Impp={self.mpp_current_a}"
            )


@dataclass(frozen=True, eq=False)
class AnalysisPoint:
    """
    One tracker's measurement at one effective timestamp.

    Identity is (name, source_timestamp). Derived metrics are computed once at
    construction; any near-zero denominator yields NaN. Analysis outputs are
    carried as fields and only ever changed by creating a new instance through
    ``with_outputs`` / ``reset``.
    """

    name: str
    dc_power_kw: float
    dc_voltage_v: float
    tracker_info: TrackerInfo
    source_timestamp: str
    module_info: Optional[ModuleInfo] = None

    # Analysis outputs
    cluster_id: int = NOISE
    is_outlier: bool = False
    performance_label: str = LABEL_NONE

    # Derived metrics
    specific_power: float = field(init=False, repr=False)
    current_per_string: float = field(init=False, repr=False)
    resistance: float = field(init=False, repr=False)
    modules_per_string: float = field(init=False, repr=False)
    voltage_deviation: float = field(init=False, repr=False)
    current_deviation: float = field(init=False, repr=False)
    power_deviation: float = field(init=False, repr=False)
    module_data_available: bool = field(init=False, repr=False)

    def __post_init__(self):
        if self.name is None:
            raise ValueError("Data point name cannot be None")
        if self.tracker_info is None:
            raise ValueError(f"TrackerInfo cannot be None for {self.name}")
        if self.source_timestamp is None:
            raise ValueError(f"Source timestamp cannot be None for {self.name}")

        power = _as_float(self.dc_power_kw)
        voltage = _as_float(self.dc_voltage_v)
        object.__setattr__(self, 'dc_power_kw', power)
        object.__setattr__(self, 'dc_voltage_v', voltage)

        kwp = self.nominal_power_kwp
        strings = self.string_count

        specific_power = power / kwp if not math.isnan(power) and abs(kwp) > _EPS else _NAN
        current = (
            (power * 1000.0) / voltage / strings
            if not math.isnan(power) and not math.isnan(voltage) and abs(voltage) > _EPS and strings > 0
            else _NAN
        )
        resistance = (
            voltage / current
            if not math.isnan(voltage) and not math.isnan(current) and abs(current) > _EPS
            else _NAN
        )
        object.__setattr__(self, 'specific_power', specific_power)
        object.__setattr__(self, 'current_per_string', current)
        object.__setattr__(self, 'resistance', resistance)
        self._derive_module_metrics(voltage, current)

    def _derive_module_metrics(self, voltage: float, current: float) -> None:
        modules_per_string = voltage_dev = current_dev = power_dev = _NAN
        module = self.module_info

        if module is not None:
            kwp = self.nominal_power_kwp
            if not math.isnan(kwp) and module.nominal_power_kwp > _EPS and self.string_count > 0:
                modules_per_string = kwp / module.nominal_power_kwp / self.string_count

            module_voltage = (
                voltage / modules_per_string
                if not math.isnan(voltage) and not math.isnan(modules_per_string) and abs(modules_per_string) > _EPS
                else _NAN
            )
            if not math.isnan(module_voltage):
                voltage_dev = module_voltage - module.mpp_voltage_v
            if not math.isnan(current):
                current_dev = current - module.mpp_current_a
            if not math.isnan(current) and not math.isnan(module_voltage):
                power_dev = (current * module_voltage) / 1000.0 - module.mpp_power_kw

        object.__setattr__(self, 'modules_per_string', modules_per_string)
        object.__setattr__(self, 'voltage_deviation', voltage_dev)
        object.__setattr__(self, 'current_deviation', current_dev)
        object.__setattr__(self, 'power_deviation', power_dev)
        object.__setattr__(self, 'module_data_available', module is not None)

    @property
    def nominal_power_kwp(self) -> float:
        return _as_float(self.tracker_info.nominal_power_kwp)

    @property
    def string_count(self) -> int:
        return self.tracker_info.string_count

    @property
    def orientation(self) -> str:
        return self.tracker_info.orientation

    @property
    def key(self):
        return (self.name, self.source_timestamp)

    @property
    def has_default_outputs(self) -> bool:
        return (
            self.cluster_id == NOISE
            and not self.is_outlier
            and self.performance_label == LABEL_NONE
        )

    def with_outputs(self, cluster_id: int = NOISE, is_outlier: bool = False,
                     performance_label: str = LABEL_NONE) -> 'AnalysisPoint':
        """Return a copy carrying the given analysis outputs."""
        if performance_label not in PERFORMANCE_LABELS:
            raise ValueError(f"Unknown performance label: {performance_label!r}")
        return replace(
            self,
            cluster_id=int(cluster_id),
            is_outlier=bool(is_outlier),
            performance_label=performance_label or LABEL_NONE,
        )

    def reset(self) -> 'AnalysisPoint':
        """Return a copy with default analysis outputs."""
        if self.has_default_outputs:
            return self
        return self.with_outputs()

    def __eq__(self, other):
        if self is other:
            return True
        if not isinstance(other, AnalysisPoint):
            return NotImplemented
        return self.key == other.key

    def __hash__(self):
        return hash(self.key)
