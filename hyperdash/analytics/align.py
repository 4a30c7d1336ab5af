"""
Date alignment of multiple series.

This module joins named series into one AlignedTable by exact date string.
It is an outer join: the row set is the union of all dates, and a series
with no point on a row's date gets an absent cell. No nearest-date matching
or interpolation is performed.
"""

from typing import Mapping
import pandas as pd
from hyperdash.entities import AlignedTable, Series


def align(series_map: Mapping[str, Series]) -> AlignedTable:
    """
    Outer-join series on their exact date strings.

    Preconditions:
        - series_map maps column keys to Series (may be empty)

    Postconditions:
        - Rows are the union of all input dates, sorted ascending
        - Columns follow series_map iteration order
        - A cell is absent iff that series has no point with that exact date
        - Present values (including inf/NaN) are copied unchanged
        - Same inputs always give the same rows and ordering

    Args:
        series_map: Mapping from column key to Series

    Returns:
        AlignedTable with one row per distinct date
    """
    all_dates = set()
    for series in series_map.values():
        all_dates.update(series.dates)

    # Lexicographic order on ISO dates is chronological order
    index = pd.Index(sorted(all_dates), dtype=object, name="date")

    columns = {}
    for key, series in series_map.items():
        values = series.values
        present = index.isin(values.index)
        data = values.reindex(index).to_numpy(dtype=float)
        columns[key] = pd.arrays.FloatingArray(data, ~present)

    return AlignedTable(pd.DataFrame(columns, index=index))
