"""
Tests for source adapters.

Tests cover:
- World Bank payload parsing and mocked requests
- FRED frame conversion and mocked pandas-datareader calls
- CoinGecko market_chart parsing and mocked requests
- Error mapping (transport failures vs unexpected formats)
"""

import pytest
import pandas as pd
import numpy as np
import requests
from unittest.mock import Mock, patch
from hyperdash.data_sources import http
from hyperdash.data_sources.coingecko import fetch_coingecko_daily, parse_market_chart
from hyperdash.data_sources.fred import fetch_fred_series, frame_to_series
from hyperdash.data_sources.world_bank import fetch_world_bank_annual, parse_world_bank_payload
from hyperdash.errors import DataError, SourceFormatError


WB_PAYLOAD = [
    {"page": 1, "pages": 1, "per_page": 20000, "total": 3},
    [
        {"date": "2022", "value": 25.4e12},
        {"date": "2021", "value": None},
        {"date": "2020", "value": 21.0e12},
    ],
]

DAY_MS = 86_400_000
CG_PAYLOAD = {
    "prices": [[1609459200000, 29000.0], [1609459200000 + DAY_MS, 32000.0], [1609459200000 + DAY_MS + 3600000, 32500.0]],
    "market_caps": [[1609459200000, 5.4e11]],
    "total_volumes": [[1609459200000, 4.0e10]],
}


def mock_response(payload=None, status_error=None, json_error=None):
    response = Mock()
    if status_error:
        response.raise_for_status.side_effect = status_error
    else:
        response.raise_for_status.return_value = None
    if json_error:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response


class TestHttpSession:
    """Tests for the shared HTTP session."""

    def test_session_has_retry_adapter(self):
        """Test that retries are mounted for https."""
        session = http.create_session()
        adapter = session.get_adapter("https://api.worldbank.org")
        assert adapter.max_retries.total == 3
        assert 429 in adapter.max_retries.status_forcelist
        assert session.headers["User-Agent"] == http.USER_AGENT


class TestWorldBank:
    """Tests for World Bank adapter."""

    def test_parse_drops_nulls_and_sorts(self):
        """Test nulls are dropped and years dated at December 31."""
        s = parse_world_bank_payload(WB_PAYLOAD, "WB:GDP:US")
        assert s.dates == ["2020-12-31", "2022-12-31"]
        assert s.values.iloc[0] == 21.0e12

    def test_parse_error_message(self):
        """Test that an API error message raises SourceFormatError."""
        payload = [{"message": [{"id": "120", "value": "Invalid value"}]}]
        with pytest.raises(SourceFormatError):
            parse_world_bank_payload(payload, "WB:GDP:XX")

    def test_parse_no_rows(self):
        """Test that a payload with null rows gives an empty series."""
        s = parse_world_bank_payload([{"page": 1}, None], "WB:GDP:US")
        assert len(s) == 0

    def test_parse_bad_shape(self):
        """Test that a non-list payload raises SourceFormatError."""
        with pytest.raises(SourceFormatError):
            parse_world_bank_payload({"data": []}, "WB:GDP:US")

    @patch("hyperdash.data_sources.http.session")
    def test_fetch(self, mock_session):
        """Test a mocked download."""
        mock_session.get.return_value = mock_response(WB_PAYLOAD)
        s = fetch_world_bank_annual("NY.GDP.MKTP.CD", "US", key="WB:GDP:US", timeout=5)
        assert s.key == "WB:GDP:US"
        assert len(s) == 2

        args, kwargs = mock_session.get.call_args
        assert args[0] == "https://api.worldbank.org/v2/country/US/indicator/NY.GDP.MKTP.CD"
        assert kwargs["params"]["format"] == "json"
        assert kwargs["timeout"] == 5

    @patch("hyperdash.data_sources.http.session")
    def test_fetch_transport_error(self, mock_session):
        """Test that a request failure raises DataError."""
        mock_session.get.side_effect = requests.ConnectionError("offline")
        with pytest.raises(DataError):
            fetch_world_bank_annual("NY.GDP.MKTP.CD", "US")

    @patch("hyperdash.data_sources.http.session")
    def test_fetch_http_error(self, mock_session):
        """Test that an HTTP error status raises DataError."""
        mock_session.get.return_value = mock_response(status_error=requests.HTTPError("500"))
        with pytest.raises(DataError):
            fetch_world_bank_annual("NY.GDP.MKTP.CD", "US")

    @patch("hyperdash.data_sources.http.session")
    def test_fetch_not_json(self, mock_session):
        """Test that a non-JSON body raises SourceFormatError."""
        mock_session.get.return_value = mock_response(json_error=ValueError("no json"))
        with pytest.raises(SourceFormatError):
            fetch_world_bank_annual("NY.GDP.MKTP.CD", "US")


class TestFred:
    """Tests for FRED adapter."""

    def _frame(self):
        index = pd.DatetimeIndex(["2021-01-04", "2021-01-05", "2021-01-06"], name="DATE")
        return pd.DataFrame({"DEXUSEU": [1.22, np.nan, 1.23]}, index=index)

    def test_frame_to_series_drops_missing(self):
        """Test that missing observations are dropped."""
        s = frame_to_series(self._frame(), "DEXUSEU", "FX:EURUSD")
        assert s.dates == ["2021-01-04", "2021-01-06"]
        assert list(s.values) == [1.22, 1.23]

    def test_frame_to_series_bad_columns(self):
        """Test that unexpected columns raise SourceFormatError."""
        frame = pd.DataFrame({"A": [1.0], "B": [2.0]}, index=pd.DatetimeIndex(["2021-01-04"]))
        with pytest.raises(SourceFormatError):
            frame_to_series(frame, "DEXUSEU", "FX:EURUSD")

    @patch("hyperdash.data_sources.fred._read_fred")
    def test_fetch(self, mock_read):
        """Test a mocked download with the default start date."""
        mock_read.return_value = self._frame()
        s = fetch_fred_series("DEXUSEU", key="FX:EURUSD")
        assert len(s) == 2
        mock_read.assert_called_once_with("DEXUSEU", "1900-01-01", None)

    @patch("hyperdash.data_sources.fred._read_fred")
    def test_fetch_default_key(self, mock_read):
        """Test that the key defaults to FRED:<id>."""
        mock_read.return_value = self._frame()
        assert fetch_fred_series("DEXUSEU").key == "FRED:DEXUSEU"

    @patch("hyperdash.data_sources.fred._read_fred")
    def test_fetch_failure(self, mock_read):
        """Test that a download failure raises DataError."""
        mock_read.side_effect = IOError("timeout")
        with pytest.raises(DataError):
            fetch_fred_series("DEXUSEU")


class TestCoinGecko:
    """Tests for CoinGecko adapter."""

    def test_parse_market_chart(self):
        """Test conversion to daily UTC dates, the latest value per day wins."""
        history = parse_market_chart(CG_PAYLOAD, "bitcoin")
        assert history.prices.key == "CG:bitcoin"
        assert history.prices.dates == ["2021-01-01", "2021-01-02"]
        assert list(history.prices.values) == [29000.0, 32500.0]
        assert history.market_caps.key == "CG:bitcoin:market_cap"
        assert history.volumes.key == "CG:bitcoin:volume"

    def test_parse_unordered_intraday_point(self):
        """Test that the intraday point wins even when listed before the daily close."""
        payload = {"prices": [[1609459200000 + 3600000, 29500.0], [1609459200000, 29000.0]]}
        history = parse_market_chart(payload, "bitcoin")
        assert history.prices.dates == ["2021-01-01"]
        assert list(history.prices.values) == [29500.0]

    def test_parse_missing_arrays(self):
        """Test that missing arrays give empty series."""
        history = parse_market_chart({"prices": []}, "bitcoin")
        assert len(history.prices) == 0
        assert len(history.volumes) == 0

    def test_parse_bad_pair(self):
        """Test that malformed pairs raise SourceFormatError."""
        with pytest.raises(SourceFormatError):
            parse_market_chart({"prices": [[1, 2, 3]]}, "bitcoin")

    @patch("hyperdash.data_sources.http.session")
    def test_fetch(self, mock_session):
        """Test a mocked download."""
        mock_session.get.return_value = mock_response(CG_PAYLOAD)
        history = fetch_coingecko_daily("bitcoin")
        assert len(history.prices) == 2

        args, kwargs = mock_session.get.call_args
        assert args[0] == "https://api.coingecko.com/api/v3/coins/bitcoin/market_chart"
        assert kwargs["params"] == {"vs_currency": "usd", "days": "max"}

    @patch("hyperdash.data_sources.http.session")
    def test_fetch_rate_limited(self, mock_session):
        """Test that an HTTP error raises DataError."""
        mock_session.get.return_value = mock_response(status_error=requests.HTTPError("429"))
        with pytest.raises(DataError):
            fetch_coingecko_daily("bitcoin")
