"""
Tests for the indicator registry.

Tests cover:
- Key construction and parsing
- Provenance metadata per source
"""

import pytest
from hyperdash import catalog


class TestKeys:
    """Tests for series key helpers."""

    def test_key_builders(self):
        """Test key formats per source."""
        assert catalog.wb_key("GDP", "US") == "WB:GDP:US"
        assert catalog.fx_key("EURUSD") == "FX:EURUSD"
        assert catalog.commodity_key("WTI") == "COM:WTI"
        assert catalog.coin_key("bitcoin") == "CG:bitcoin"

    def test_parse_key(self):
        """Test parsing valid keys."""
        assert catalog.parse_key("WB:GDP:US") == ("WB", "GDP", "US")
        assert catalog.parse_key("CG:ethereum") == ("CG", "ethereum")

    @pytest.mark.parametrize("key", ["WB:GDP", "WB:XXX:US", "FX:USDXYZ", "COM:", "CG:notacoin", "ZZ:1"])
    def test_parse_unknown_key(self, key):
        """Test that unknown keys raise KeyError."""
        with pytest.raises(KeyError):
            catalog.parse_key(key)


class TestSeriesMeta:
    """Tests for series_meta."""

    def test_world_bank_label_has_country(self):
        """Test World Bank labels name the country."""
        meta = catalog.series_meta("WB:GDP:BR")
        assert meta.label == "GDP (current US$) - Brazil"
        assert meta.source == catalog.WORLD_BANK
        assert meta.source_url.endswith("NY.GDP.MKTP.CD")

    def test_fred_meta(self):
        """Test FRED metadata."""
        meta = catalog.series_meta("FX:EURUSD")
        assert meta.source == catalog.FRED
        assert meta.source_url == "https://fred.stlouisfed.org/series/DEXUSEU"

    def test_coin_meta(self):
        """Test CoinGecko metadata."""
        meta = catalog.series_meta("CG:bitcoin")
        assert meta.label == "BTC price (USD)"
        assert meta.source_url == catalog.COINGECKO_URL

    def test_describe(self):
        """Test the registry listing has every group."""
        listing = catalog.describe()
        assert set(listing) == {"countries", "world_bank", "fx", "commodities", "coins"}
        assert listing["countries"]["US"] == "United States"

    def test_registry_is_read_only(self):
        """Test that registries cannot be modified."""
        with pytest.raises(TypeError):
            catalog.COUNTRIES["XX"] = "Nowhere"
