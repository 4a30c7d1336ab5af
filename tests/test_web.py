"""
Tests for the web dashboard.

Tests cover:
- Basic-auth gateway (401 vs 403 vs pass)
- View and export endpoints with mocked fetches
- Page controls and PNG charts
- Input validation
"""

import base64
import os
import pytest
import pandas as pd
from unittest.mock import patch
from fastapi.testclient import TestClient
from hyperdash import web
from hyperdash.analytics.pipeline import DashboardSession
from hyperdash.config import Settings
from hyperdash.data_sources.fetch import SeriesRequest
from hyperdash.entities import Series, SeriesMeta


AUTH_ENV = {"BASIC_AUTH_USER": "admin", "BASIC_AUTH_PASS": "s3cret"}
YEARS = [f"{y}-12-31" for y in range(2015, 2021)]


def basic(user, password):
    token = base64.b64encode(f"{user}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


def rate_limited():
    raise RuntimeError("rate limited")


def fake_requests(selection, timeout=None):
    meta = SeriesMeta("GDP", "US$", "https://example.org")
    a = Series("WB:GDP:US", pd.Series([1.0, 2.0, 3.0, 4.0, 5.0, 6.0], index=YEARS))
    b = Series("WB:GDP:BR", pd.Series([2.0, 1.0, 4.0, 3.0, 6.0, 5.0], index=YEARS))
    return [
        SeriesRequest("WB:GDP:US", meta, lambda: a),
        SeriesRequest("WB:GDP:BR", meta, lambda: b),
        SeriesRequest("CG:bitcoin", meta, rate_limited),
    ]


@pytest.fixture
def client():
    with patch.dict(os.environ, AUTH_ENV), \
            patch.object(web, "session", DashboardSession()), \
            patch("hyperdash.data_sources.fetch.plan_requests", side_effect=fake_requests):
        yield TestClient(web.app)


class TestCheckBasicAuth:
    """Tests for check_basic_auth."""

    settings = Settings(basic_auth_user="admin", basic_auth_pass="s3cret")

    def test_missing_header(self):
        """Test that no credentials give 401."""
        assert web.check_basic_auth(None, self.settings) == 401

    def test_other_scheme(self):
        """Test that a non-Basic scheme gives 401."""
        assert web.check_basic_auth("Bearer abc", self.settings) == 401

    def test_wrong_password(self):
        """Test that wrong credentials give 403."""
        header = basic("admin", "nope")["Authorization"]
        assert web.check_basic_auth(header, self.settings) == 403

    def test_malformed_token(self):
        """Test that undecodable credentials give 403."""
        assert web.check_basic_auth("Basic !!!", self.settings) == 403

    def test_correct(self):
        """Test that correct credentials pass."""
        header = basic("admin", "s3cret")["Authorization"]
        assert web.check_basic_auth(header, self.settings) is None

    def test_password_with_colon(self):
        """Test that only the first colon separates user and password."""
        settings = Settings(basic_auth_user="admin", basic_auth_pass="a:b")
        assert web.check_basic_auth(basic("admin", "a:b")["Authorization"], settings) is None

    def test_unconfigured_rejects(self):
        """Test that supplied credentials are refused when none are configured."""
        header = basic("admin", "s3cret")["Authorization"]
        assert web.check_basic_auth(header, Settings()) == 403


class TestGateway:
    """Tests for the auth middleware on real routes."""

    def test_health_is_public(self, client):
        """Test that /health needs no credentials."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_dashboard_requires_auth(self, client):
        """Test that /dashboard without credentials is 401 with a challenge."""
        response = client.get("/dashboard")
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"].startswith("Basic")

    def test_dashboard_wrong_credentials(self, client):
        """Test that wrong credentials are 403."""
        response = client.post("/dashboard/api/view", json={}, headers=basic("admin", "bad"))
        assert response.status_code == 403

    def test_dashboard_page(self, client):
        """Test that the HTML page renders with correct credentials."""
        response = client.get("/dashboard", headers=basic("admin", "s3cret"))
        assert response.status_code == 200
        assert "HyperDash" in response.text
        assert "rgb(" in response.text


class TestApi:
    """Tests for the JSON and CSV endpoints."""

    def test_view(self, client):
        """Test the view payload."""
        response = client.post("/dashboard/api/view", json={"mode": "level"}, headers=basic("admin", "s3cret"))
        assert response.status_code == 200
        data = response.json()
        assert data["keys"] == ["WB:GDP:US", "WB:GDP:BR"]
        assert data["correlation_ready"] is True
        assert data["matrix"][0][0] == pytest.approx(1.0)
        assert data["colors"][0][0] == "rgb(239, 68, 68)"
        assert data["errors"] == {"CG:bitcoin": "rate limited"}
        assert data["rows"][0]["date"] == "2015-12-31"

    def test_view_unknown_code(self, client):
        """Test that an unknown code is a 400."""
        response = client.post("/dashboard/api/view", json={"countries": ["XX"]}, headers=basic("admin", "s3cret"))
        assert response.status_code == 400

    def test_view_invalid_mode(self, client):
        """Test that an invalid mode fails validation."""
        response = client.post("/dashboard/api/view", json={"mode": "log"}, headers=basic("admin", "s3cret"))
        assert response.status_code == 422

    def test_export(self, client):
        """Test the CSV attachment."""
        response = client.post("/dashboard/api/export", json={"fx_base_brl": True}, headers=basic("admin", "s3cret"))
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment" in response.headers["content-disposition"]
        lines = response.text.split("\n")
        assert "# Currency: BRL" in lines
        assert "date,WB:GDP:US,WB:GDP:BR" in lines


class TestCharts:
    """Tests for the page controls and PNG charts."""

    def test_page_controls_and_images(self, client):
        """Test that display options round-trip into the form and chart URLs."""
        response = client.get(
            "/dashboard?mode=index&log_scale=true", headers=basic("admin", "s3cret")
        )
        assert response.status_code == 200
        assert 'value="index" selected' in response.text
        assert "checked" in response.text
        assert "/dashboard/charts/overview?frequency=annual&amp;mode=index&amp;log_scale=true" in response.text
        assert "/dashboard/charts/scatter?" in response.text

    def test_invalid_frequency(self, client):
        """Test that an unknown frequency on the page is a 400."""
        response = client.get("/dashboard?frequency=weekly", headers=basic("admin", "s3cret"))
        assert response.status_code == 400

    @pytest.mark.parametrize("name", ["overview", "scatter", "correlation"])
    def test_chart_png(self, client, name):
        """Test that each chart is served as a PNG image."""
        response = client.get(
            f"/dashboard/charts/{name}?log_scale=true", headers=basic("admin", "s3cret")
        )
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.content.startswith(b"\x89PNG")

    def test_unknown_chart(self, client):
        """Test that an unknown chart name is a 404."""
        response = client.get("/dashboard/charts/pie", headers=basic("admin", "s3cret"))
        assert response.status_code == 404

    def test_chart_requires_auth(self, client):
        """Test that charts sit behind the gateway."""
        response = client.get("/dashboard/charts/overview")
        assert response.status_code == 401
