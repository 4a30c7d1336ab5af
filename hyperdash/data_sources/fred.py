"""
FRED series (FX rates and commodity prices).

This module downloads daily or monthly series from FRED through
pandas-datareader and converts them into Series. FRED marks missing
observations with "."; those arrive as NaN and are dropped here.
"""

from datetime import date, datetime
from typing import Optional, Union
import pandas as pd
from hyperdash.entities import Series, SeriesMeta
from hyperdash.errors import DataError, SourceFormatError


# FRED histories start well after this; asking from here returns everything
DEFAULT_START = "1900-01-01"

DateLike = Union[str, date, datetime]


def _read_fred(series_id: str, start: str, end: Optional[str]) -> pd.DataFrame:
    """Thin wrapper around pandas-datareader's FRED reader."""
    import pandas_datareader.data as web

    return web.DataReader(series_id, "fred", start, end)


def _to_date_str(value: Optional[DateLike]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value.strftime("%Y-%m-%d")
    return str(value)


def frame_to_series(
    frame: pd.DataFrame,
    series_id: str,
    key: str,
    meta: Optional[SeriesMeta] = None
) -> Series:
    """
    Convert a FRED DataFrame (DatetimeIndex, one column) into a Series.

    Postconditions:
        - Missing observations are dropped
        - Dates are ISO strings, ascending and unique

    Raises:
        SourceFormatError: If the frame does not have the expected shape
    """
    if not isinstance(frame, pd.DataFrame):
        raise SourceFormatError(f"Unexpected FRED result for {series_id}")

    if series_id in frame.columns:
        column = frame[series_id]
    elif len(frame.columns) == 1:
        column = frame.iloc[:, 0]
    else:
        raise SourceFormatError(f"Unexpected FRED columns for {series_id}: {list(frame.columns)}")

    try:
        index = pd.DatetimeIndex(pd.to_datetime(frame.index))
        values = pd.to_numeric(column, errors="coerce")
    except (TypeError, ValueError) as e:
        raise SourceFormatError(f"Unexpected FRED values for {series_id}: {e}") from e

    values = pd.Series(values.to_numpy(dtype=float), index=index.strftime("%Y-%m-%d"))
    values = values.dropna()

    return Series(key, values, meta=meta)


def fetch_fred_series(
    series_id: str,
    start: Optional[DateLike] = None,
    end: Optional[DateLike] = None,
    key: Optional[str] = None,
    meta: Optional[SeriesMeta] = None
) -> Series:
    """
    Download a FRED series.

    Args:
        series_id: FRED series id (e.g., "DEXUSEU")
        start: Start date (defaults to the beginning of the history)
        end: End date (defaults to today)
        key: Series key (defaults to "FRED:<series_id>")
        meta: Optional provenance metadata

    Returns:
        Series at the source's native frequency

    Raises:
        DataError: If the download fails
        SourceFormatError: If the result has an unexpected shape
    """
    key = key or f"FRED:{series_id}"
    start_str = _to_date_str(start) or DEFAULT_START
    end_str = _to_date_str(end)

    try:
        frame = _read_fred(series_id, start_str, end_str)
    except Exception as e:
        raise DataError(f"Failed to download FRED series {series_id}: {e}") from e

    return frame_to_series(frame, series_id, key, meta=meta)
