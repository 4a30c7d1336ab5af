"""
Dashboard pipeline: raw series to aligned table and correlation matrix.

Every artifact here is derived from the current series map and the display
options, and is rebuilt in full whenever either changes.
"""

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional
import pandas as pd
from hyperdash.analytics.align import align
from hyperdash.analytics.correlation import correlate, has_sufficient_overlap
from hyperdash.analytics.resample import ANNUAL, LAST, resample
from hyperdash.analytics.transform import to_indexed, to_yoy
from hyperdash.cache import MemoCache
from hyperdash.data_sources.fetch import FetchBatch, SeriesStore
from hyperdash.entities import AlignedTable, Series
from hyperdash.selection import INDEX, LEVEL, YOY, FREQUENCIES, MODES, Selection


def transform_series(series: Series, frequency: str = ANNUAL, mode: str = LEVEL) -> Series:
    """
    Apply the display frequency and mode to one series.

    Annual frequency collapses to the last value of each year; monthly keeps
    the series as fetched (sources are already monthly or annual). Index mode
    rebases to 100; YoY mode always works on annual values.

    Raises:
        ValueError: If frequency or mode is invalid
    """
    if frequency not in FREQUENCIES:
        raise ValueError(f"frequency must be one of {FREQUENCIES}, got {frequency}")
    if mode not in MODES:
        raise ValueError(f"mode must be one of {MODES}, got {mode}")

    out = series
    if frequency == ANNUAL:
        out = resample(out, ANNUAL, LAST)
    if mode == INDEX:
        out = to_indexed(out)
    elif mode == YOY:
        out = to_yoy(resample(out, ANNUAL, LAST))
    return out


def transform_all(
    series_map: Mapping[str, Series],
    frequency: str = ANNUAL,
    mode: str = LEVEL
) -> Dict[str, Series]:
    """Transform every non-empty series; empty inputs are skipped."""
    return {
        key: transform_series(series, frequency, mode)
        for key, series in series_map.items()
        if len(series) > 0
    }


@dataclass
class DashboardView:
    """
    Everything a renderer or exporter needs for one state of the dashboard.

    Attributes:
        series: Transformed series by key
        keys: Active keys (non-empty after transformation), in input order
        table: Aligned table over the active keys
        matrix: Correlation matrix over the active keys
        frequency: Frequency used
        mode: Mode used
        errors: Fetch errors by key, if any
    """
    series: Dict[str, Series]
    keys: List[str]
    table: AlignedTable
    matrix: pd.DataFrame
    frequency: str
    mode: str
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def correlation_ready(self) -> bool:
        """True when there are enough series and rows to show correlations."""
        return has_sufficient_overlap(self.table, self.keys)


def build_view(
    series_map: Mapping[str, Series],
    frequency: str = ANNUAL,
    mode: str = LEVEL,
    errors: Optional[Mapping[str, str]] = None
) -> DashboardView:
    """
    Transform, align and correlate a set of series.

    Args:
        series_map: Raw series by key (as fetched)
        frequency: "annual" or "monthly"
        mode: "level", "index" or "yoy"
        errors: Fetch errors to carry along for display

    Returns:
        DashboardView
    """
    transformed = transform_all(series_map, frequency, mode)
    keys = [k for k, s in transformed.items() if len(s) > 0]
    table = align({k: transformed[k] for k in keys})
    matrix = correlate(table, keys)
    return DashboardView(
        series=transformed,
        keys=keys,
        table=table,
        matrix=matrix,
        frequency=frequency,
        mode=mode,
        errors=dict(errors or {}),
    )


class DashboardSession:
    """
    A store of fetched series plus memoized views over it.

    Views are memoized per (data generation, frequency, mode), so switching
    display options back and forth does not recompute, while any new batch
    of data invalidates everything.

    One session may serve concurrent callers. The selection is recorded
    together with the generation of the batch it produced, so a caller can
    tell whether the store still holds its own series.
    """

    def __init__(self, store: Optional[SeriesStore] = None, memo: Optional[MemoCache] = None):
        self.store = store or SeriesStore()
        self.memo = memo or MemoCache()
        self.selection: Optional[Selection] = None
        self._selection_generation = 0
        self._lock = threading.Lock()

    def refresh(self, selection: Selection) -> FetchBatch:
        """Fetch the selection's series; stale batches are discarded by the store."""
        batch = self.store.refresh(selection)
        if batch.applied:
            with self._lock:
                # a newer applied batch may have recorded its selection first
                if batch.generation > self._selection_generation:
                    self.selection = selection
                    self._selection_generation = batch.generation
            self.memo.clear()
        return batch

    def load(self, selection: Selection) -> Optional[FetchBatch]:
        """
        Refresh only if the selection asks for a different set of series.

        Display options (frequency, mode, log scale) never trigger a fetch.

        Returns:
            The FetchBatch, or None when the current data already matches
        """
        with self._lock:
            current = self.selection
        if current is not None and current.series_keys() == selection.series_keys():
            return None
        return self.refresh(selection)

    def view(self, frequency: str = ANNUAL, mode: str = LEVEL) -> DashboardView:
        """Return the view for the current data, computing it at most once."""
        generation, series, errors = self.store.snapshot()
        return self._memoized_view(generation, series, errors, frequency, mode)

    def view_for(self, selection: Selection) -> DashboardView:
        """
        Return the view of exactly this selection's series.

        Postconditions:
            - The view is built from a batch fetched for selection's keys,
              never from another caller's batch
            - A batch that lost the race to a newer refresh is still used to
              answer its own caller, but does not replace the store

        Args:
            selection: Selection to fetch (if needed) and display

        Returns:
            DashboardView in the selection's frequency and mode
        """
        batch = self.load(selection)
        if batch is None or batch.applied:
            generation, series, errors = self.store.snapshot()
            if self._holds(selection, generation):
                return self._memoized_view(
                    generation, series, errors, selection.frequency, selection.mode
                )
            # replaced by another selection after our load
            batch = self.refresh(selection)
        return build_view(batch.series, selection.frequency, selection.mode, errors=batch.errors)

    def _holds(self, selection: Selection, generation: int) -> bool:
        """True if the data at this generation was fetched for selection's keys."""
        with self._lock:
            return (
                self.selection is not None
                and self._selection_generation == generation
                and self.selection.series_keys() == selection.series_keys()
            )

    def _memoized_view(
        self,
        generation: int,
        series: Mapping[str, Series],
        errors: Mapping[str, str],
        frequency: str,
        mode: str
    ) -> DashboardView:
        query_params = {
            "generation": generation,
            "frequency": frequency,
            "mode": mode,
        }
        cached = self.memo.get(query_params)
        if cached is not None:
            return cached
        view = build_view(series, frequency, mode, errors=errors)
        self.memo.set(query_params, view)
        return view
