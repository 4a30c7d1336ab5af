"""
Indicator registry.

A fixed, immutable mapping from the closed set of supported indicator,
instrument and country codes to their metadata. The registry is validated
once at import time so that a malformed entry fails loudly at startup
rather than at lookup time.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Tuple
from hyperdash.entities import SeriesMeta


@dataclass(frozen=True)
class IndicatorMeta:
    """
    Metadata for a catalog entry.

    Attributes:
        label: Human-readable label
        unit: Unit of measure
        source_code: Code understood by the upstream source (e.g., "NY.GDP.MKTP.CD")
        source_url: Canonical page documenting the series
    """
    label: str
    unit: str
    source_code: str
    source_url: str


WORLD_BANK = "World Bank"
FRED = "FRED"
COINGECKO = "CoinGecko"

COINGECKO_URL = "https://www.coingecko.com/en/api"


COUNTRIES: Mapping[str, str] = MappingProxyType({
    "BR": "Brazil",
    "US": "United States",
    # World Bank has no Euro Area ISO-2 code; EA resolves to the aggregate if available
    "EA": "Euro Area",
    "GB": "United Kingdom",
    "CH": "Switzerland",
    "JP": "Japan",
    "CN": "China",
})


def _wb(label: str, unit: str, code: str) -> IndicatorMeta:
    return IndicatorMeta(label, unit, code, f"https://data.worldbank.org/indicator/{code}")


def _fred(label: str, unit: str, code: str, url: str = "") -> IndicatorMeta:
    return IndicatorMeta(label, unit, code, url or f"https://fred.stlouisfed.org/series/{code}")


WB_INDICATORS: Mapping[str, IndicatorMeta] = MappingProxyType({
    "POP": _wb("Population, total", "people", "SP.POP.TOTL"),
    "UNE": _wb("Unemployment (% of labor force)", "%", "SL.UEM.TOTL.ZS"),
    "GDP": _wb("GDP (current US$)", "US$", "NY.GDP.MKTP.CD"),
    "CPI_YOY": _wb("Inflation, consumer prices (annual %)", "% p.a.", "FP.CPI.TOTL.ZG"),
    "RES": _wb("Total reserves incl. gold (US$)", "US$", "FI.RES.TOTL.CD"),
    "DEBT_CENT_GDP": _wb("Central government debt (% of GDP)", "% of GDP", "GC.DOD.TOTL.GD.ZS"),
    "EXT_DEBT_USD": _wb("External debt stocks, total (US$)", "US$", "DT.DOD.DECT.CD"),
})

FRED_FX: Mapping[str, IndicatorMeta] = MappingProxyType({
    "EURUSD": _fred("USD per 1 EUR (DEXUSEU)", "USD/EUR", "DEXUSEU"),
    "GBPUSD": _fred("USD per 1 GBP (DEXUSUK)", "USD/GBP", "DEXUSUK"),
    "JPYUSD": _fred("JPY per 1 USD (DEXJPUS)", "JPY/USD", "DEXJPUS"),
    "CNYUSD": _fred("CNY per 1 USD (DEXCHUS)", "CNY/USD", "DEXCHUS"),
    "BRLUSD": _fred("BRL per 1 USD (DEXBZUS)", "BRL/USD", "DEXBZUS"),
    "CHFUSD": _fred("CHF per 1 USD (DEXSZUS)", "CHF/USD", "DEXSZUS"),
})

FRED_COMMODITIES: Mapping[str, IndicatorMeta] = MappingProxyType({
    "WTI": _fred("WTI crude (US$/bbl) DCOILWTICO", "US$/bbl", "DCOILWTICO"),
    "HEATOIL": _fred(
        "Heating Oil NYH (US$/gal) DHOILNYH", "US$/gal", "DHOILNYH",
        "https://www.eia.gov/dnav/pet/PET_PRI_SPT_S1_D.htm"
    ),
    "NATGAS": _fred(
        "Henry Hub Natural Gas (US$/MMBtu) DHHNGSP", "US$/MMBtu", "DHHNGSP",
        "https://www.eia.gov/dnav/ng/hist/rngwhhdD.htm"
    ),
    "COPPER": _fred("Global price of Copper (US$/t) PCOPPUSDM", "US$/t", "PCOPPUSDM"),
    "ALUMINUM": _fred("Global price of Aluminum (US$/t) PALUMUSDM", "US$/t", "PALUMUSDM"),
    "GOLD": _fred("Gold LBMA (US$/oz) GOLDAMGBD228NLBM", "US$/oz", "GOLDAMGBD228NLBM"),
    # Not published for every window; a failed fetch yields an empty series
    "SILVER": _fred(
        "Silver LBMA (US$/oz)", "US$/oz", "SLVPRUSD",
        "https://www.lbma.org.uk/prices-and-data/precious-metal-prices"
    ),
})

COINS: Mapping[str, str] = MappingProxyType({
    "bitcoin": "BTC",
    "ethereum": "ETH",
    "ripple": "XRP",
    "tether": "USDT",
    "binancecoin": "BNB",
    "solana": "SOL",
    "usd-coin": "USDC",
    "tron": "TRX",
    "dogecoin": "DOGE",
    "cardano": "ADA",
    "algorand": "ALGO",
    "flow": "FLOW",
    "mina-protocol": "MINA",
})


def _validate_registry() -> None:
    """
    Check the registry invariants.

    Raises:
        ValueError: If any entry is incomplete or duplicated
    """
    for group_name, group in (
        ("WB_INDICATORS", WB_INDICATORS),
        ("FRED_FX", FRED_FX),
        ("FRED_COMMODITIES", FRED_COMMODITIES),
    ):
        seen_codes = set()
        for code, meta in group.items():
            if not code or not meta.label or not meta.unit or not meta.source_code:
                raise ValueError(f"{group_name}[{code!r}] has empty fields")
            if not meta.source_url.startswith(("http://", "https://")):
                raise ValueError(f"{group_name}[{code!r}] has invalid source_url")
            if meta.source_code in seen_codes:
                raise ValueError(f"{group_name} has duplicate source code {meta.source_code}")
            seen_codes.add(meta.source_code)
            if ":" in code:
                raise ValueError(f"{group_name} code {code!r} must not contain ':'")

    for mapping_name, mapping in (("COUNTRIES", COUNTRIES), ("COINS", COINS)):
        for code, name in mapping.items():
            if not code or not name or ":" in code:
                raise ValueError(f"{mapping_name}[{code!r}] is invalid")


_validate_registry()


def wb_key(indicator: str, country: str) -> str:
    """Series key for a World Bank indicator in a country."""
    return f"WB:{indicator}:{country}"


def fx_key(pair: str) -> str:
    """Series key for an FX pair."""
    return f"FX:{pair}"


def commodity_key(code: str) -> str:
    """Series key for a commodity."""
    return f"COM:{code}"


def coin_key(coin_id: str) -> str:
    """Series key for a CoinGecko coin."""
    return f"CG:{coin_id}"


def parse_key(key: str) -> Tuple[str, ...]:
    """
    Split a series key into its parts and check them against the registry.

    Returns:
        Tuple of key parts, e.g. ("WB", "GDP", "US")

    Raises:
        KeyError: If the key does not name a registry entry
    """
    parts = tuple(key.split(":"))
    prefix = parts[0]
    if prefix == "WB" and len(parts) == 3:
        if parts[1] in WB_INDICATORS and parts[2] in COUNTRIES:
            return parts
    elif prefix == "FX" and len(parts) == 2:
        if parts[1] in FRED_FX:
            return parts
    elif prefix == "COM" and len(parts) == 2:
        if parts[1] in FRED_COMMODITIES:
            return parts
    elif prefix == "CG" and len(parts) == 2:
        if parts[1] in COINS:
            return parts
    raise KeyError(f"unknown series key: {key}")


def series_meta(key: str) -> SeriesMeta:
    """
    Build provenance metadata for a series key.

    Raises:
        KeyError: If the key does not name a registry entry
    """
    parts = parse_key(key)
    prefix = parts[0]
    if prefix == "WB":
        meta = WB_INDICATORS[parts[1]]
        label = f"{meta.label} - {COUNTRIES[parts[2]]}"
        return SeriesMeta(label, meta.unit, meta.source_url, WORLD_BANK)
    if prefix == "FX":
        meta = FRED_FX[parts[1]]
        return SeriesMeta(meta.label, meta.unit, meta.source_url, FRED)
    if prefix == "COM":
        meta = FRED_COMMODITIES[parts[1]]
        return SeriesMeta(meta.label, meta.unit, meta.source_url, FRED)
    symbol = COINS[parts[1]]
    return SeriesMeta(f"{symbol} price (USD)", "US$", COINGECKO_URL, COINGECKO)


def describe() -> Dict[str, Dict[str, str]]:
    """Return a flat {code: label} listing per registry group."""
    return {
        "countries": dict(COUNTRIES),
        "world_bank": {k: v.label for k, v in WB_INDICATORS.items()},
        "fx": {k: v.label for k, v in FRED_FX.items()},
        "commodities": {k: v.label for k, v in FRED_COMMODITIES.items()},
        "coins": dict(COINS),
    }
