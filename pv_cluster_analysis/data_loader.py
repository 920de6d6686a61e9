"""
Plant Dataset Module

Holds the data handed over by the ingestion layer:
- Ordered timestamp labels
- Raw time-series values keyed by "<tracker>/<metric>"
- Static tracker metadata
- Optional module datasheet values
"""

from typing import Dict, Iterable, List, Mapping, Optional

import numpy as np
import pandas as pd

from .config import CONFIG, metric_keys
from .core.logger import get_logger
from .core.validators import DataValidator
from .models import ModuleInfo, TrackerInfo

logger = get_logger(__name__)

TRACKER_COLUMNS = ['name', 'nominal_power_kwp', 'orientation', 'string_count']


class PlantDataset:
    """
    Measurements of one plant plus its static metadata.

    The measurement table is a DataFrame indexed by timestamp label, one
    column per "<tracker>/<metric>" key.
    """

    def __init__(
        self,
        measurements: pd.DataFrame,
        trackers: Mapping[str, TrackerInfo],
        module_info: Optional[ModuleInfo] = None,
        cfg=CONFIG
    ):
        is_valid, errors = DataValidator.validate_measurements(measurements)
        if not is_valid:
            raise ValueError("Invalid measurement table:\n" + "\n".join(f"  - {e}" for e in errors))

        self.measurements = measurements.apply(pd.to_numeric, errors='coerce').astype(float)
        self.trackers: Dict[str, TrackerInfo] = dict(trackers or {})
        self.module_info = module_info
        self.cfg = cfg
        self._positions = {ts: i for i, ts in enumerate(self.measurements.index)}

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    @classmethod
    def from_frames(cls, measurements: pd.DataFrame, trackers: pd.DataFrame,
                    module_info=None, timestamp_col: Optional[str] = None) -> 'PlantDataset':
        """
        Build a dataset from a measurement frame and a tracker-metadata frame.

        Args:
            measurements: One row per timestamp; either indexed by timestamp
                label or carrying it in ``timestamp_col``
            trackers: Columns name, nominal_power_kwp, orientation, string_count
            module_info: ModuleInfo, mapping with the ModuleInfo field names, or None
            timestamp_col: Column holding the timestamp labels (optional)

        Returns:
            PlantDataset
        """
        frame = measurements.copy()
        if timestamp_col is not None:
            frame = frame.set_index(timestamp_col)
        frame.index = frame.index.map(str)

        missing = [col for col in TRACKER_COLUMNS if col not in trackers.columns]
        if missing:
            raise ValueError(f"Missing required tracker columns: {missing}")

        tracker_map = {}
        for row in trackers[TRACKER_COLUMNS].itertuples(index=False):
            info = TrackerInfo(
                name=str(row.name).strip(),
                nominal_power_kwp=float(row.nominal_power_kwp),
                orientation=str(row.orientation).strip(),
                string_count=int(row.string_count),
            )
            tracker_map[info.name] = info

        if isinstance(module_info, Mapping):
            module_info = ModuleInfo(**module_info)

        return cls(frame, tracker_map, module_info)

    @classmethod
    def from_rows(cls, timestamps: List[str], rows: Iterable[Mapping[str, float]],
                  trackers: Mapping[str, TrackerInfo],
                  module_info: Optional[ModuleInfo] = None) -> 'PlantDataset':
        """
        Build a dataset from a list of per-timestamp mappings.

        Args:
            timestamps: Ordered timestamp labels
            rows: One mapping "<tracker>/<metric>" -> value per timestamp
            trackers: Tracker name -> TrackerInfo
            module_info: Optional module datasheet values

        Returns:
            PlantDataset
        """
        rows = list(rows)
        if len(rows) != len(timestamps):
            raise ValueError(f"Got {len(rows)} data rows for {len(timestamps)} timestamps")
        frame = pd.DataFrame.from_records(rows, index=pd.Index(timestamps, name='timestamp'))
        return cls(frame, trackers, module_info)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def timestamps(self) -> List[str]:
        return list(self.measurements.index)

    @property
    def has_module_info(self) -> bool:
        return self.module_info is not None

    def index_of(self, timestamp: str) -> int:
        """Position of a timestamp label, or -1 if unknown."""
        return self._positions.get(timestamp, -1)

    def row_for(self, timestamp: str) -> Dict[str, float]:
        """Return the raw values for one timestamp (empty dict if unknown)."""
        if timestamp not in self._positions:
            return {}
        return self.measurements.loc[timestamp].to_dict()

    def column_for(self, tracker: str, metric: str) -> Optional[str]:
        """Resolve the column key of a tracker metric, trying the fallback spelling."""
        for key in metric_keys(tracker, metric, self.cfg):
            if key in self.measurements.columns:
                return key
        return None

    def value(self, timestamp: str, tracker: str, metric: str) -> float:
        """Raw value of one tracker metric at one timestamp (NaN if missing)."""
        column = self.column_for(tracker, metric)
        if column is None or timestamp not in self._positions:
            return np.nan
        return float(self.measurements.at[timestamp, column])

    def series(self, tracker: str, metric: str, start: int = 0, end: Optional[int] = None) -> pd.Series:
        """
        Values of one tracker metric over an inclusive position range.

        Returns an all-NaN series when the column is missing.
        """
        stop = len(self.measurements) if end is None else end + 1
        index = self.measurements.index[start:stop]
        column = self.column_for(tracker, metric)
        if column is None:
            return pd.Series(np.nan, index=index, dtype=float)
        return self.measurements[column].iloc[start:stop]

    def __repr__(self):
        ts = self.timestamps
        preview = ts[:5] + ['...'] if len(ts) > 5 else ts
        return (
            f"PlantDataset(timestamps={preview}, columns={len(self.measurements.columns)}, "
            f"trackers={len(self.trackers)}, has_module_info={self.has_module_info})"
        )
