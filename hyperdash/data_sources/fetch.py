"""
Concurrent fetching of a selection's series.

One independent request per series key runs on a thread pool. A failure
is isolated to its own key (it yields an empty Series plus an error entry)
and never aborts the siblings. Results are handed over only after the whole
batch has settled.

SeriesStore attaches a monotonically increasing generation to each batch so
that a slow batch started for an older selection cannot overwrite the
results of a newer one.
"""

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple
from hyperdash import catalog
from hyperdash.analytics.resample import MONTHLY, LAST, resample
from hyperdash.data_sources import http
from hyperdash.data_sources.coingecko import fetch_coingecko_daily
from hyperdash.data_sources.fred import fetch_fred_series
from hyperdash.data_sources.world_bank import fetch_world_bank_annual
from hyperdash.entities import Series, SeriesMeta
from hyperdash.selection import Selection


DEFAULT_MAX_WORKERS = 6


@dataclass(frozen=True)
class SeriesRequest:
    """
    A deferred fetch of one series.

    Attributes:
        key: Series key
        meta: Provenance metadata
        fetch: Zero-argument callable returning the Series
    """
    key: str
    meta: SeriesMeta
    fetch: Callable[[], Series]


@dataclass
class FetchBatch:
    """
    Outcome of one refresh.

    Attributes:
        generation: Generation number the batch was started under
        series: Fetched series by key (empty Series for failures)
        errors: Error message by key for failed fetches
        applied: Whether the batch became the store's current data
    """
    generation: int
    series: Dict[str, Series] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)
    applied: bool = False


def _world_bank_request(indicator: str, country: str, timeout: float) -> SeriesRequest:
    key = catalog.wb_key(indicator, country)
    meta = catalog.series_meta(key)
    code = catalog.WB_INDICATORS[indicator].source_code

    def fetch() -> Series:
        return fetch_world_bank_annual(code, country, key=key, meta=meta, timeout=timeout)

    return SeriesRequest(key, meta, fetch)


def _fred_monthly_request(key: str, series_id: str) -> SeriesRequest:
    meta = catalog.series_meta(key)

    def fetch() -> Series:
        return resample(fetch_fred_series(series_id, key=key, meta=meta), MONTHLY, LAST)

    return SeriesRequest(key, meta, fetch)


def _coin_request(coin_id: str, timeout: float) -> SeriesRequest:
    key = catalog.coin_key(coin_id)
    meta = catalog.series_meta(key)

    def fetch() -> Series:
        history = fetch_coingecko_daily(coin_id, meta=meta, timeout=timeout)
        return resample(history.prices, MONTHLY, LAST)

    return SeriesRequest(key, meta, fetch)


def plan_requests(
    selection: Selection,
    timeout: float = http.DEFAULT_TIMEOUT
) -> List[SeriesRequest]:
    """
    Build one request per series key of the selection.

    World Bank indicators are already annual. FX, commodity and crypto
    series are collapsed to monthly (last value) right after download. The
    timeout applies to the HTTP adapters (World Bank, CoinGecko).

    Returns:
        Requests in selection.series_keys() order
    """
    requests: List[SeriesRequest] = []
    for indicator in selection.wb_indicators:
        for country in selection.countries:
            requests.append(_world_bank_request(indicator, country, timeout))
    for pair in selection.fx_pairs:
        requests.append(_fred_monthly_request(
            catalog.fx_key(pair), catalog.FRED_FX[pair].source_code
        ))
    for code in selection.commodities:
        requests.append(_fred_monthly_request(
            catalog.commodity_key(code), catalog.FRED_COMMODITIES[code].source_code
        ))
    for coin_id in selection.coins:
        requests.append(_coin_request(coin_id, timeout))
    return requests


def fetch_all(
    requests: List[SeriesRequest],
    max_workers: int = DEFAULT_MAX_WORKERS
) -> Tuple[Dict[str, Series], Dict[str, str]]:
    """
    Run all requests concurrently and wait for every one to settle.

    Preconditions:
        - request keys are unique
        - max_workers > 0

    Postconditions:
        - Every request key appears in the returned series (failures as empty)
        - Returned series follow the request order, not completion order
        - Failed keys appear in the errors mapping

    Args:
        requests: Requests to run
        max_workers: Thread pool size

    Returns:
        Tuple of (series by key, error message by key)
    """
    if max_workers <= 0:
        raise ValueError("max_workers must be positive")

    results: Dict[str, Series] = {}
    errors: Dict[str, str] = {}

    if not requests:
        return results, errors

    workers = min(len(requests), max_workers)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        future_map = {executor.submit(r.fetch): r for r in requests}
        for future in as_completed(future_map):
            request = future_map[future]
            try:
                results[request.key] = future.result()
            except Exception as e:
                results[request.key] = Series.empty(request.key, meta=request.meta)
                errors[request.key] = str(e) or type(e).__name__

    ordered = {r.key: results[r.key] for r in requests}
    return ordered, errors


class SeriesStore:
    """
    Current series data guarded by a generation counter.

    Each refresh takes a new generation number before fetching. When the
    batch completes it is applied only if no newer refresh has started in
    the meantime; otherwise it is discarded as stale.

    Representation Invariants:
        - generation never decreases
        - series holds the results of at most one batch (never a merge)
    """

    def __init__(
        self,
        max_workers: int = DEFAULT_MAX_WORKERS,
        timeout: float = http.DEFAULT_TIMEOUT
    ):
        """
        Initialize an empty store.

        Args:
            max_workers: Thread pool size used by refresh()
            timeout: HTTP timeout passed to the adapters
        """
        if max_workers <= 0:
            raise ValueError("max_workers must be positive")
        self.max_workers = max_workers
        self.timeout = timeout
        self._lock = threading.Lock()
        self._generation = 0
        self._applied_generation = 0
        self._series: Dict[str, Series] = {}
        self._errors: Dict[str, str] = {}

    @property
    def generation(self) -> int:
        """Return the latest generation handed out."""
        with self._lock:
            return self._generation

    @property
    def applied_generation(self) -> int:
        """Return the generation of the data currently held."""
        with self._lock:
            return self._applied_generation

    @property
    def series(self) -> Dict[str, Series]:
        """Return a copy of the current series map."""
        with self._lock:
            return dict(self._series)

    @property
    def errors(self) -> Dict[str, str]:
        """Return a copy of the current batch's fetch errors."""
        with self._lock:
            return dict(self._errors)

    def snapshot(self) -> Tuple[int, Dict[str, Series], Dict[str, str]]:
        """Return (applied generation, series, errors) read atomically."""
        with self._lock:
            return self._applied_generation, dict(self._series), dict(self._errors)

    def begin(self) -> int:
        """Start a new generation and return its number."""
        with self._lock:
            self._generation += 1
            return self._generation

    def apply(
        self,
        generation: int,
        series: Dict[str, Series],
        errors: Optional[Dict[str, str]] = None
    ) -> bool:
        """
        Replace the current data if generation is still the latest.

        Returns:
            True if applied, False if the batch was stale and discarded
        """
        with self._lock:
            if generation != self._generation:
                return False
            self._series = dict(series)
            self._errors = dict(errors or {})
            self._applied_generation = generation
            return True

    def refresh(self, selection: Selection) -> FetchBatch:
        """
        Fetch every series of the selection and apply the batch if still current.

        Returns:
            FetchBatch describing the results and whether they were applied
        """
        generation = self.begin()
        series, errors = fetch_all(
            plan_requests(selection, timeout=self.timeout),
            max_workers=self.max_workers
        )
        applied = self.apply(generation, series, errors)
        return FetchBatch(generation=generation, series=series, errors=errors, applied=applied)
