"""
Frequency resampling of point series.

Collapses a series to one value per calendar bucket (year or month). Bucket
keys are prefixes of the ISO date string, and output dates are pinned to a
fixed day per bucket so that series sampled on different days still share
date strings after resampling.
"""

from typing import Dict, Tuple
import pandas as pd
from hyperdash.entities import Series


ANNUAL = "annual"
MONTHLY = "monthly"

LAST = "last"
AVERAGE = "average"

GRANULARITIES = (ANNUAL, MONTHLY)
METHODS = (LAST, AVERAGE)

# granularity -> (date prefix width, output date template)
_BUCKETS: Dict[str, Tuple[int, str]] = {
    ANNUAL: (4, "{}-12-31"),
    MONTHLY: (7, "{}-28"),
}


def bucket_date(date: str, granularity: str) -> str:
    """
    Return the normalized bucket date for an ISO date.

    >>> bucket_date("2021-03-15", "annual")
    '2021-12-31'
    >>> bucket_date("2021-03-15", "monthly")
    '2021-03-28'
    """
    if granularity not in _BUCKETS:
        raise ValueError(f"granularity must be one of {GRANULARITIES}, got {granularity}")
    width, template = _BUCKETS[granularity]
    return template.format(date[:width])


def resample(series: Series, granularity: str = ANNUAL, method: str = LAST) -> Series:
    """
    Collapse a series to annual or monthly granularity.

    Preconditions:
        - series dates are chronological (guaranteed by Series)
        - granularity is "annual" or "monthly"
        - method is "last" or "average"

    Postconditions:
        - One point per bucket, dated at the bucket's fixed day
          (Dec 31 for annual, day 28 for monthly)
        - Output dates are strictly ascending and unique
        - Empty input yields empty output

    Args:
        series: Input series
        granularity: "annual" (bucket by year) or "monthly" (bucket by year-month)
        method: "last" for the chronologically final value in each bucket,
            "average" for the arithmetic mean of the bucket

    Returns:
        Resampled Series with the same key and meta

    Raises:
        ValueError: If granularity or method is invalid
    """
    if granularity not in GRANULARITIES:
        raise ValueError(f"granularity must be one of {GRANULARITIES}, got {granularity}")

    if method not in METHODS:
        raise ValueError(f"method must be one of {METHODS}, got {method}")

    if len(series) == 0:
        return series

    values = series.values
    width, template = _BUCKETS[granularity]
    buckets = values.index.str[:width]

    grouped = values.groupby(buckets, sort=True)
    if method == LAST:
        # iloc keeps NaN/inf as the last value instead of skipping them
        collapsed = grouped.agg(lambda chunk: chunk.iloc[-1])
    else:
        collapsed = grouped.mean()

    collapsed.index = pd.Index([template.format(b) for b in collapsed.index], dtype=object)

    return series.with_values(collapsed)
