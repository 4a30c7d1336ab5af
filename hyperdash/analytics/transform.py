"""
Derived representations of a resampled series.

Index-base-100 rebasing and year-over-year percent change. Both are pure
functions: inputs are never modified, and empty input yields empty output.
"""

import numpy as np
import pandas as pd
from hyperdash.entities import Series


def to_indexed(series: Series) -> Series:
    """
    Rebase a series so that its first value equals 100.

    Preconditions:
        - series is chronological (guaranteed by Series)

    Postconditions:
        - Empty series pass through unchanged
        - value[i] = value[i] / value[0] * 100
        - A zero base produces non-finite values (inf/NaN), which downstream
          consumers treat as missing; they are never coerced to 0

    Args:
        series: Input series

    Returns:
        Indexed Series with the same key and meta
    """
    if len(series) == 0:
        return series

    values = series.values
    base = values.iloc[0]

    with np.errstate(divide="ignore", invalid="ignore"):
        indexed = (values / base) * 100.0

    return series.with_values(indexed)


def to_yoy(series: Series) -> Series:
    """
    Compute year-over-year percent change on an annual series.

    For each consecutive pair of points whose years are exactly one apart,
    emits (current / previous - 1) * 100 at the current point's date. Pairs
    spanning a gap emit nothing; the first point never emits a value.

    Preconditions:
        - series is annual-resampled (at most one point per calendar year)

    Postconditions:
        - Output dates are a subset of the input dates (excluding the first)
        - No forward-fill or interpolation across gaps

    Args:
        series: Annual series

    Returns:
        Series of YoY percent changes with the same key and meta

    Raises:
        ValueError: If the series has more than one point in a calendar year
    """
    if len(series) < 2:
        return series.with_values(pd.Series([], dtype=float))

    values = series.values
    years = pd.Series(values.index.str[:4].astype(int), index=values.index)

    if years.duplicated().any():
        raise ValueError("to_yoy requires an annual series (one point per year)")

    consecutive = years.diff() == 1

    with np.errstate(divide="ignore", invalid="ignore"):
        change = (values / values.shift(1) - 1) * 100.0

    return series.with_values(change[consecutive])
