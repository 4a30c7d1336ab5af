"""
Core entity classes (ADTs) for the dashboard.

These classes represent the fundamental data structures used throughout
the normalization pipeline, with strong encapsulation and representation invariants.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional
import pandas as pd
import numpy as np


_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def is_iso_date(value: str) -> bool:
    """Return True if value is a real calendar date written as YYYY-MM-DD."""
    if not isinstance(value, str) or not _ISO_DATE.match(value):
        return False
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


@dataclass(frozen=True)
class Point:
    """
    A single dated observation.

    Attributes:
        date: Calendar date string ("YYYY-MM-DD")
        value: Observed value

    Representation Invariants:
        - date is a valid ISO calendar date
    """
    date: str
    value: float

    def __post_init__(self):
        """Validate representation invariants."""
        if not is_iso_date(self.date):
            raise ValueError(f"invalid ISO date: {self.date!r}")
        object.__setattr__(self, "value", float(self.value))


@dataclass(frozen=True)
class SeriesMeta:
    """
    Provenance of a series, used for presentation and export only.

    Attributes:
        label: Human-readable label (e.g., "GDP (current US$) - United States")
        unit: Unit of measure (e.g., "US$")
        source_url: Canonical page for the underlying data
        source: Publisher name (e.g., "World Bank", "FRED", "CoinGecko")
    """
    label: str
    unit: str
    source_url: str
    source: str = ""


class Series:
    """
    A named, ordered sequence of dated values.

    Values are stored as a float64 pd.Series indexed by ISO date strings.
    Lexicographic order of ISO dates equals chronological order, so the
    index can be compared and sorted as plain strings.

    Attributes:
        key: Composite identifier (e.g., "WB:GDP:US", "FX:EURUSD", "CG:bitcoin")
        values: Values indexed by date string (pd.Series, read-only copy)
        meta: Optional SeriesMeta provenance

    Representation Invariants:
        - key is non-empty
        - every index entry is a valid ISO date
        - dates are unique and strictly increasing
        - empty series are allowed
    """

    def __init__(self, key: str, values: pd.Series, meta: Optional[SeriesMeta] = None):
        """
        Initialize a Series.

        Preconditions:
            - key is a non-empty string
            - values is indexed by ISO date strings

        Postconditions:
            - self.values is sorted by date (stable) and deduplicated (first wins)
        """
        if not key:
            raise ValueError("key cannot be empty")

        if not isinstance(values, pd.Series):
            raise TypeError("values must be a pd.Series")

        index = pd.Index([str(d) for d in values.index], dtype=object, name="date")
        data = pd.Series(values.to_numpy(dtype=float), index=index, name=key)

        # Stable sort keeps input order within a date, then keep the first
        data = data.sort_index(kind="mergesort")
        data = data[~data.index.duplicated(keep="first")]

        self._key = key
        self._values = data
        self._meta = meta

        self._check_invariants()

    def _check_invariants(self):
        """Check representation invariants."""
        bad = [d for d in self._values.index if not is_iso_date(d)]
        if bad:
            raise ValueError(f"invalid ISO dates in {self._key}: {bad[:3]}")
        if self._values.index.has_duplicates:
            raise ValueError("dates must not contain duplicates")
        if not self._values.index.is_monotonic_increasing:
            raise ValueError("dates must be sorted in ascending order")

    @classmethod
    def from_points(
        cls,
        key: str,
        points: Iterable[Point],
        meta: Optional[SeriesMeta] = None
    ) -> "Series":
        """Build a Series from Point objects (order is normalized)."""
        points = list(points)
        values = pd.Series(
            [p.value for p in points],
            index=[p.date for p in points],
            dtype=float
        )
        return cls(key, values, meta=meta)

    @classmethod
    def empty(cls, key: str, meta: Optional[SeriesMeta] = None) -> "Series":
        """Build an empty Series (the result of a failed fetch)."""
        return cls(key, pd.Series([], dtype=float), meta=meta)

    def with_values(self, values: pd.Series) -> "Series":
        """Return a new Series with the same key and meta but new values."""
        return Series(self._key, values, meta=self._meta)

    @property
    def key(self) -> str:
        """Return the series key."""
        return self._key

    @property
    def meta(self) -> Optional[SeriesMeta]:
        """Return the provenance metadata (read-only)."""
        return self._meta

    @property
    def values(self) -> pd.Series:
        """Return a copy of the values indexed by date."""
        return self._values.copy()

    @property
    def dates(self) -> List[str]:
        """Return the ISO dates in ascending order."""
        return list(self._values.index)

    @property
    def points(self) -> List[Point]:
        """Return the observations as Point objects."""
        return [Point(d, v) for d, v in self._values.items()]

    def is_finite(self) -> bool:
        """Return True if every value is a finite number."""
        return bool(np.isfinite(self._values.to_numpy()).all())

    def __iter__(self) -> Iterator[Point]:
        return iter(self.points)

    def __len__(self) -> int:
        """Return the number of observations."""
        return len(self._values)

    def __repr__(self) -> str:
        """String representation."""
        if len(self) == 0:
            return f"Series({self._key}, empty)"
        return f"Series({self._key}, {len(self)} obs, {self.dates[0]}..{self.dates[-1]})"


class AlignedTable:
    """
    A row-per-date, column-per-series rectangular table.

    Each column is a nullable Float64 array: a cell is either a float or
    absent (pd.NA). Absence means the series has no point on that date.
    Degenerate values such as the inf produced by a zero-base index are
    kept as floats, so "missing" and "undefined" remain distinguishable.

    Attributes:
        frame: Underlying DataFrame (index "date", one Float64 column per key)

    Representation Invariants:
        - index entries are unique ISO dates sorted ascending
        - every column has dtype Float64
    """

    def __init__(self, frame: pd.DataFrame):
        """
        Initialize an AlignedTable.

        Preconditions:
            - frame is indexed by ISO date strings
            - all columns have dtype Float64
        """
        frame = frame.copy()
        frame.index = pd.Index(list(frame.index), dtype=object, name="date")
        self._frame = frame
        self._check_invariants()

    def _check_invariants(self):
        """Check representation invariants."""
        index = self._frame.index
        if index.has_duplicates:
            raise ValueError("dates must not contain duplicates")
        if not index.is_monotonic_increasing:
            raise ValueError("dates must be sorted in ascending order")
        bad = [d for d in index if not is_iso_date(d)]
        if bad:
            raise ValueError(f"invalid ISO dates: {bad[:3]}")
        for key, dtype in self._frame.dtypes.items():
            if str(dtype) != "Float64":
                raise ValueError(f"column {key} must have dtype Float64, got {dtype}")

    @classmethod
    def from_frame(cls, frame: pd.DataFrame) -> "AlignedTable":
        """
        Build a table from a plain float DataFrame, treating NaN as absent.

        Used when reading a table back from text, where an empty cell is the
        only way a value can be missing.
        """
        columns = {}
        for key in frame.columns:
            data = pd.to_numeric(frame[key], errors="raise").to_numpy(dtype=float)
            columns[key] = pd.arrays.FloatingArray(data, np.isnan(data))
        index = pd.Index([str(d) for d in frame.index], dtype=object, name="date")
        return cls(pd.DataFrame(columns, index=index))

    @property
    def frame(self) -> pd.DataFrame:
        """Return a copy of the underlying DataFrame."""
        return self._frame.copy()

    @property
    def keys(self) -> List[str]:
        """Return the series keys in column order."""
        return [str(k) for k in self._frame.columns]

    @property
    def dates(self) -> List[str]:
        """Return the row dates in ascending order."""
        return list(self._frame.index)

    def cell(self, date: str, key: str) -> Optional[float]:
        """Return the value at (date, key), or None if the series has no point there."""
        value = self._frame.at[date, key]
        if value is pd.NA:
            return None
        return float(value)

    def rows(self) -> List[Dict[str, object]]:
        """
        Return the table as a list of row dicts.

        Each row has a "date" entry plus one entry per key; absent cells are None.
        """
        keys = self.keys
        out = []
        for date in self._frame.index:
            row: Dict[str, object] = {"date": date}
            for key in keys:
                row[key] = self.cell(date, key)
            out.append(row)
        return out

    def to_numpy(self, keys: Optional[List[str]] = None) -> np.ndarray:
        """Return the selected columns as a float array (absent cells become NaN)."""
        if keys is None:
            keys = self.keys
        if not keys:
            return np.empty((len(self), 0), dtype=float)
        return self._frame[list(keys)].to_numpy(dtype=float, na_value=np.nan)

    def __len__(self) -> int:
        """Return the number of rows."""
        return len(self._frame)

    def __repr__(self) -> str:
        """String representation."""
        return f"AlignedTable({len(self)} rows x {len(self.keys)} series)"
