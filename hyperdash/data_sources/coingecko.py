"""
CoinGecko daily crypto market data.

This module downloads the full daily history of a coin (price, market cap,
volume) from the public CoinGecko market_chart endpoint.
"""

from dataclasses import dataclass
from typing import Optional
import numpy as np
import pandas as pd
import requests
from hyperdash.data_sources import http
from hyperdash.entities import Series, SeriesMeta
from hyperdash.errors import DataError, SourceFormatError


CG_MARKET_CHART_URL = "https://api.coingecko.com/api/v3/coins/{coin_id}/market_chart"


@dataclass
class CoinHistory:
    """
    Daily market history of a coin.

    Attributes:
        prices: USD price series
        market_caps: USD market cap series
        volumes: USD total volume series
    """
    prices: Series
    market_caps: Series
    volumes: Series


def _pairs_to_series(pairs: object, key: str, meta: Optional[SeriesMeta]) -> Series:
    """
    Convert [[timestamp_ms, value], ...] pairs into a Series.

    Timestamps are converted to UTC calendar dates. CoinGecko appends an
    intraday point for the current day; same-date duplicates keep the latest
    timestamp, so today carries the live price rather than the 00:00 one.
    """
    if pairs is None:
        return Series.empty(key, meta=meta)
    if not isinstance(pairs, list):
        raise SourceFormatError(f"Unexpected CoinGecko array for {key}")

    timestamps = []
    values = []
    for pair in pairs:
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            raise SourceFormatError(f"Unexpected CoinGecko pair for {key}: {pair!r}")
        ts, value = pair
        if value is None:
            continue
        timestamps.append(ts)
        values.append(value)

    try:
        dates = pd.to_datetime(timestamps, unit="ms", utc=True).strftime("%Y-%m-%d")
        order = np.argsort(np.asarray(timestamps, dtype="int64"), kind="stable")
        data = pd.Series(values, index=dates, dtype=float)
    except (TypeError, ValueError) as e:
        raise SourceFormatError(f"Non-numeric CoinGecko data for {key}: {e}") from e

    data = data.iloc[order]
    data = data[~data.index.duplicated(keep="last")]
    return Series(key, data, meta=meta)


def parse_market_chart(payload: object, coin_id: str, meta: Optional[SeriesMeta] = None) -> CoinHistory:
    """
    Convert a market_chart JSON payload into a CoinHistory.

    Raises:
        SourceFormatError: If the payload shape is unexpected
    """
    if not isinstance(payload, dict):
        raise SourceFormatError(f"Unexpected CoinGecko payload for {coin_id}")

    key = f"CG:{coin_id}"
    return CoinHistory(
        prices=_pairs_to_series(payload.get("prices"), key, meta),
        market_caps=_pairs_to_series(payload.get("market_caps"), f"{key}:market_cap", meta),
        volumes=_pairs_to_series(payload.get("total_volumes"), f"{key}:volume", meta),
    )


def fetch_coingecko_daily(
    coin_id: str,
    meta: Optional[SeriesMeta] = None,
    timeout: float = http.DEFAULT_TIMEOUT
) -> CoinHistory:
    """
    Download the full daily USD history of a coin.

    Args:
        coin_id: CoinGecko coin id (e.g., "bitcoin")
        meta: Optional provenance metadata for the price series
        timeout: Request timeout in seconds

    Returns:
        CoinHistory with prices, market caps and volumes

    Raises:
        DataError: If the request fails
        SourceFormatError: If the response is not the expected JSON shape
    """
    url = CG_MARKET_CHART_URL.format(coin_id=coin_id)

    try:
        response = http.session.get(
            url,
            params={"vs_currency": "usd", "days": "max"},
            timeout=timeout
        )
        response.raise_for_status()
    except requests.RequestException as e:
        raise DataError(f"CoinGecko request failed for {coin_id}: {e}") from e

    try:
        payload = response.json()
    except ValueError as e:
        raise SourceFormatError(f"CoinGecko response is not JSON for {coin_id}") from e

    return parse_market_chart(payload, coin_id, meta=meta)
