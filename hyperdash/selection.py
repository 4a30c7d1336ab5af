"""
User selection of series and display options.

A Selection is an immutable value: every change produces a new Selection,
and everything derived from it is recomputed from scratch.
"""

from dataclasses import dataclass, asdict, replace as dc_replace
from typing import List, Tuple
from hyperdash import catalog
from hyperdash.analytics.resample import ANNUAL, MONTHLY


LEVEL = "level"
INDEX = "index"
YOY = "yoy"

MODES = (LEVEL, INDEX, YOY)
FREQUENCIES = (ANNUAL, MONTHLY)


@dataclass(frozen=True)
class Selection:
    """
    Which series to fetch and how to present them.

    Attributes:
        wb_indicators: World Bank indicator codes (e.g., "GDP")
        countries: ISO-2 country codes for the World Bank indicators
        fx_pairs: FRED FX pair codes (e.g., "EURUSD")
        commodities: FRED commodity codes (e.g., "WTI")
        coins: CoinGecko coin ids (e.g., "bitcoin")
        frequency: "annual" or "monthly"
        mode: "level", "index" or "yoy"
        log_scale: Use a log y-axis on line charts
        fx_base_brl: Pass-through flag recorded in exports; no rebasing is applied

    Representation Invariants:
        - every code is a registry entry
        - frequency and mode are valid choices
    """
    wb_indicators: Tuple[str, ...] = ("GDP", "UNE", "CPI_YOY")
    countries: Tuple[str, ...] = ("US", "BR")
    fx_pairs: Tuple[str, ...] = ("EURUSD", "GBPUSD", "BRLUSD")
    commodities: Tuple[str, ...] = ("WTI", "COPPER", "GOLD")
    coins: Tuple[str, ...] = ("bitcoin", "ethereum")
    frequency: str = ANNUAL
    mode: str = LEVEL
    log_scale: bool = False
    fx_base_brl: bool = False

    def __post_init__(self):
        """Normalize sequences to tuples and validate against the registry."""
        for name in ("wb_indicators", "countries", "fx_pairs", "commodities", "coins"):
            value = getattr(self, name)
            if isinstance(value, str):
                value = (value,)
            # Drop duplicates, keep first-seen order
            object.__setattr__(self, name, tuple(dict.fromkeys(value)))

        self._check_codes("wb_indicators", catalog.WB_INDICATORS)
        self._check_codes("countries", catalog.COUNTRIES)
        self._check_codes("fx_pairs", catalog.FRED_FX)
        self._check_codes("commodities", catalog.FRED_COMMODITIES)
        self._check_codes("coins", catalog.COINS)

        if self.frequency not in FREQUENCIES:
            raise ValueError(f"frequency must be one of {FREQUENCIES}, got {self.frequency}")
        if self.mode not in MODES:
            raise ValueError(f"mode must be one of {MODES}, got {self.mode}")

    def _check_codes(self, name: str, registry) -> None:
        unknown = [c for c in getattr(self, name) if c not in registry]
        if unknown:
            raise ValueError(f"unknown {name}: {unknown}")

    @classmethod
    def from_dict(cls, data: dict) -> "Selection":
        """
        Build a Selection from a plain dict (e.g., parsed YAML or JSON).

        Missing entries take their defaults; unknown entries are rejected.
        """
        allowed = set(cls.__dataclass_fields__)
        extra = set(data) - allowed
        if extra:
            raise ValueError(f"unknown selection fields: {sorted(extra)}")
        kwargs = {}
        for name, value in data.items():
            if isinstance(value, list):
                value = tuple(value)
            kwargs[name] = value
        return cls(**kwargs)

    def to_dict(self) -> dict:
        """Return a JSON-serializable dict (sequences as lists)."""
        return {
            k: list(v) if isinstance(v, tuple) else v
            for k, v in asdict(self).items()
        }

    def replace(self, **changes) -> "Selection":
        """Return a new Selection with the given fields changed."""
        return dc_replace(self, **changes)

    def series_keys(self) -> List[str]:
        """
        Return the series keys implied by this selection.

        World Bank keys come first (indicator-major, then country), followed
        by FX pairs, commodities and coins.
        """
        keys = [
            catalog.wb_key(indicator, country)
            for indicator in self.wb_indicators
            for country in self.countries
        ]
        keys.extend(catalog.fx_key(p) for p in self.fx_pairs)
        keys.extend(catalog.commodity_key(c) for c in self.commodities)
        keys.extend(catalog.coin_key(c) for c in self.coins)
        return keys

    def source_urls(self) -> List[str]:
        """Return the distinct source URLs of the selected series, in order."""
        urls = [catalog.WB_INDICATORS[v].source_url for v in self.wb_indicators]
        urls.extend(catalog.FRED_FX[f].source_url for f in self.fx_pairs)
        urls.extend(catalog.FRED_COMMODITIES[c].source_url for c in self.commodities)
        if self.coins:
            urls.append(catalog.COINGECKO_URL)
        return list(dict.fromkeys(u for u in urls if u))
