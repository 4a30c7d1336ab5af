"""
Tests for concurrent fetching and the series store.

Tests cover:
- Request planning per selection
- Failure isolation in the fan-out
- Generation guard against stale batches
"""

import threading
import pytest
import pandas as pd
from unittest.mock import patch
from hyperdash.data_sources.fetch import (
    FetchBatch, SeriesRequest, SeriesStore, fetch_all, plan_requests
)
from hyperdash.entities import Series, SeriesMeta
from hyperdash.selection import Selection


META = SeriesMeta("Label", "unit", "https://example.org")


def ok_request(key, values=(1.0, 2.0)):
    dates = [f"{2020 + i}-12-31" for i in range(len(values))]
    series = Series(key, pd.Series(list(values), index=dates))
    return SeriesRequest(key, META, lambda: series)


def failing_request(key, error=None):
    def fetch():
        raise error or RuntimeError(f"{key} unavailable")
    return SeriesRequest(key, META, fetch)


class TestPlanRequests:
    """Tests for plan_requests."""

    def test_one_request_per_key(self):
        """Test that requests follow the selection's key order."""
        selection = Selection()
        keys = [r.key for r in plan_requests(selection)]
        assert keys == selection.series_keys()

    def test_meta_attached(self):
        """Test that every request carries registry metadata."""
        selection = Selection(wb_indicators=("GDP",), countries=("BR",), fx_pairs=(), commodities=(), coins=())
        (request,) = plan_requests(selection)
        assert request.meta.label == "GDP (current US$) - Brazil"

    @patch("hyperdash.data_sources.fetch.fetch_fred_series")
    def test_fred_collapsed_to_monthly(self, mock_fred):
        """Test that daily FRED data is resampled to month buckets."""
        mock_fred.return_value = Series("FX:EURUSD", pd.Series(
            [1.1, 1.2, 1.3], index=["2021-01-04", "2021-01-29", "2021-02-01"]
        ))
        selection = Selection(wb_indicators=(), fx_pairs=("EURUSD",), commodities=(), coins=())
        (request,) = plan_requests(selection)
        series = request.fetch()
        assert series.dates == ["2021-01-28", "2021-02-28"]
        assert list(series.values) == [1.2, 1.3]
        assert mock_fred.call_args[0][0] == "DEXUSEU"


class TestFetchAll:
    """Tests for fetch_all."""

    def test_all_succeed(self):
        """Test that every result is returned in request order."""
        requests = [ok_request("B"), ok_request("A")]
        series, errors = fetch_all(requests, max_workers=2)
        assert list(series) == ["B", "A"]
        assert errors == {}

    def test_failure_isolated(self):
        """Test that one failure yields an empty series and an error entry only."""
        requests = [ok_request("A"), failing_request("B"), ok_request("C")]
        series, errors = fetch_all(requests)
        assert len(series["A"]) == 2
        assert len(series["C"]) == 2
        assert len(series["B"]) == 0
        assert series["B"].meta == META
        assert errors == {"B": "B unavailable"}

    def test_error_without_message(self):
        """Test that an exception without a message reports its type."""
        series, errors = fetch_all([failing_request("X", KeyError())])
        assert errors["X"] == "KeyError"

    def test_empty_requests(self):
        """Test that no requests give empty results."""
        assert fetch_all([]) == ({}, {})

    def test_invalid_workers(self):
        """Test that a non-positive pool size is rejected."""
        with pytest.raises(ValueError):
            fetch_all([ok_request("A")], max_workers=0)


class TestSeriesStore:
    """Tests for SeriesStore."""

    def test_apply_current_generation(self):
        """Test that the latest generation is applied."""
        store = SeriesStore()
        generation = store.begin()
        assert store.apply(generation, {"A": Series.empty("A")})
        assert store.applied_generation == generation
        assert list(store.series) == ["A"]

    def test_stale_batch_discarded(self):
        """Test that an older batch cannot overwrite a newer one."""
        store = SeriesStore()
        old = store.begin()
        new = store.begin()
        assert store.apply(new, {"NEW": Series.empty("NEW")})
        assert not store.apply(old, {"OLD": Series.empty("OLD")})
        assert list(store.series) == ["NEW"]

    def test_apply_replaces_not_merges(self):
        """Test that a batch replaces the previous series map."""
        store = SeriesStore()
        store.apply(store.begin(), {"A": Series.empty("A")}, {"A": "failed"})
        store.apply(store.begin(), {"B": Series.empty("B")})
        assert list(store.series) == ["B"]
        assert store.errors == {}

    @patch("hyperdash.data_sources.fetch.plan_requests")
    def test_refresh(self, mock_plan):
        """Test a full refresh with a failing key."""
        mock_plan.return_value = [ok_request("A"), failing_request("B")]
        store = SeriesStore(max_workers=2)
        batch = store.refresh(Selection())
        assert isinstance(batch, FetchBatch)
        assert batch.applied
        assert batch.generation == 1
        assert set(store.series) == {"A", "B"}
        assert "B" in store.errors

    @patch("hyperdash.data_sources.fetch.plan_requests")
    def test_refresh_overtaken(self, mock_plan):
        """Test that a slow refresh finishing after a newer one is discarded."""
        release = threading.Event()
        started = threading.Event()

        def slow_fetch():
            started.set()
            release.wait(timeout=5)
            return Series("SLOW", pd.Series([1.0], index=["2020-12-31"]))

        slow = [SeriesRequest("SLOW", META, slow_fetch)]
        fast = [ok_request("FAST")]
        mock_plan.side_effect = [slow, fast]

        store = SeriesStore()
        results = {}
        worker = threading.Thread(target=lambda: results.setdefault("slow", store.refresh(Selection())))
        worker.start()
        started.wait(timeout=5)

        fast_batch = store.refresh(Selection())
        release.set()
        worker.join(timeout=5)

        assert fast_batch.applied
        assert not results["slow"].applied
        assert list(store.series) == ["FAST"]
        assert store.applied_generation == fast_batch.generation

    def test_invalid_workers(self):
        """Test that a non-positive pool size is rejected."""
        with pytest.raises(ValueError):
            SeriesStore(max_workers=0)
