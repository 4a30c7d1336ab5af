"""
World Bank (WDI) annual indicators.

This module downloads annual macro indicators from the World Bank v2 JSON
API and converts them into year-end dated Series.
"""

from typing import Optional
import pandas as pd
import requests
from hyperdash.data_sources import http
from hyperdash.entities import Series, SeriesMeta
from hyperdash.errors import DataError, SourceFormatError


WB_API_URL = "https://api.worldbank.org/v2/country/{country}/indicator/{indicator}"


def parse_world_bank_payload(
    payload: object,
    key: str,
    meta: Optional[SeriesMeta] = None
) -> Series:
    """
    Convert a World Bank JSON payload into a Series.

    The API answers with a two-element list: paging metadata, then the
    observations. Observations with a null value are dropped, and each year
    is dated at December 31.

    Preconditions:
        - payload is the decoded JSON body

    Postconditions:
        - Returns a Series dated "YYYY-12-31", ascending, without nulls

    Raises:
        SourceFormatError: If the payload shape is unexpected
    """
    if not isinstance(payload, list) or not payload:
        raise SourceFormatError(f"Unexpected World Bank payload for {key}")

    # An error response is a one-element list holding a "message" entry
    if len(payload) < 2:
        head = payload[0]
        if isinstance(head, dict) and "message" in head:
            raise SourceFormatError(f"World Bank error for {key}: {head['message']}")
        return Series.empty(key, meta=meta)

    rows = payload[1] or []
    if not isinstance(rows, list):
        raise SourceFormatError(f"Unexpected World Bank rows for {key}")

    dates = []
    values = []
    for row in rows:
        if not isinstance(row, dict) or "date" not in row or "value" not in row:
            raise SourceFormatError(f"Unexpected World Bank row for {key}: {row!r}")
        if row["value"] is None:
            continue
        year = str(row["date"])
        if not year.isdigit() or len(year) != 4:
            raise SourceFormatError(f"Unexpected World Bank year for {key}: {year!r}")
        try:
            value = float(row["value"])
        except (TypeError, ValueError) as e:
            raise SourceFormatError(f"Non-numeric World Bank value for {key}: {row['value']!r}") from e
        dates.append(f"{year}-12-31")
        values.append(value)

    return Series(key, pd.Series(values, index=dates, dtype=float), meta=meta)


def fetch_world_bank_annual(
    indicator: str,
    country: str,
    key: Optional[str] = None,
    meta: Optional[SeriesMeta] = None,
    timeout: float = http.DEFAULT_TIMEOUT
) -> Series:
    """
    Download an annual indicator for one country.

    Args:
        indicator: WDI indicator code (e.g., "NY.GDP.MKTP.CD")
        country: ISO-2 country or aggregate code (e.g., "US")
        key: Series key (defaults to "WB:<indicator>:<country>")
        meta: Optional provenance metadata
        timeout: Request timeout in seconds

    Returns:
        Annual Series dated at year-end

    Raises:
        DataError: If the request fails
        SourceFormatError: If the response is not the expected JSON shape
    """
    key = key or f"WB:{indicator}:{country}"
    url = WB_API_URL.format(country=country, indicator=indicator)

    try:
        response = http.session.get(
            url,
            params={"format": "json", "per_page": 20000},
            timeout=timeout
        )
        response.raise_for_status()
    except requests.RequestException as e:
        raise DataError(f"World Bank request failed for {indicator}/{country}: {e}") from e

    try:
        payload = response.json()
    except ValueError as e:
        raise SourceFormatError(f"World Bank response is not JSON for {indicator}/{country}") from e

    return parse_world_bank_payload(payload, key, meta=meta)
