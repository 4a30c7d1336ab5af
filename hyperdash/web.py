"""
FastAPI web interface for the correlation dashboard.

Every path under /dashboard sits behind a single shared-secret basic-auth
check. The gateway is independent of the analytics: it only decides
whether a request reaches the routes.
"""

import base64
import binascii
import io
import math
import secrets
import threading
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import urlencode
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, Response
from jinja2 import Environment, FileSystemLoader, select_autoescape
from pydantic import BaseModel, validator
from hyperdash import __version__, catalog
from hyperdash.analytics.correlation import MIN_ALIGNED_ROWS, MIN_SERIES, matrix_to_lists
from hyperdash.analytics.heatmap import color_for, css_color
from hyperdash.analytics.pipeline import DashboardSession, DashboardView
from hyperdash.config import Settings, load_selection
from hyperdash.data_sources.fetch import SeriesStore
from hyperdash.reporting.charts import plot_correlation_heatmap, plot_overview, plot_scatter
from hyperdash.reporting.export import export_filename, export_metadata, to_csv_text
from hyperdash.reporting.report import MODE_LABELS
from hyperdash.selection import FREQUENCIES, MODES, Selection

PROTECTED_PREFIX = "/dashboard"
MAX_CODES = 50
CHARTS = ("overview", "scatter", "correlation")

app = FastAPI(title="HyperDash")

# Setup templates
template_env = Environment(
    loader=FileSystemLoader(str(Path(__file__).parent / "templates")),
    autoescape=select_autoescape(["html"]),
)

_settings = Settings.from_env()
session = DashboardSession(SeriesStore(
    max_workers=_settings.max_workers,
    timeout=_settings.http_timeout,
))

# pyplot keeps global figure state
_chart_lock = threading.Lock()


# Input validation models
class SelectionRequest(BaseModel):
    wb_indicators: List[str] = list(Selection.wb_indicators)
    countries: List[str] = list(Selection.countries)
    fx_pairs: List[str] = list(Selection.fx_pairs)
    commodities: List[str] = list(Selection.commodities)
    coins: List[str] = list(Selection.coins)
    frequency: str = Selection.frequency
    mode: str = Selection.mode
    log_scale: bool = False
    fx_base_brl: bool = False

    @validator("wb_indicators", "countries", "fx_pairs", "commodities", "coins")
    def validate_codes(cls, v):
        if len(v) > MAX_CODES:
            raise ValueError(f"Too many codes (max {MAX_CODES})")
        return [code.strip() for code in v]

    @validator("frequency")
    def validate_frequency(cls, v):
        if v not in FREQUENCIES:
            raise ValueError(f"frequency must be one of {FREQUENCIES}")
        return v

    @validator("mode")
    def validate_mode(cls, v):
        if v not in MODES:
            raise ValueError(f"mode must be one of {MODES}")
        return v

    def to_selection(self) -> Selection:
        """Convert to a Selection; unknown codes raise ValueError."""
        return Selection(
            wb_indicators=tuple(self.wb_indicators),
            countries=tuple(self.countries),
            fx_pairs=tuple(self.fx_pairs),
            commodities=tuple(self.commodities),
            coins=tuple(self.coins),
            frequency=self.frequency,
            mode=self.mode,
            log_scale=self.log_scale,
            fx_base_brl=self.fx_base_brl,
        )


def check_basic_auth(authorization: Optional[str], settings: Settings) -> Optional[int]:
    """
    Check a basic-auth Authorization header against the configured secret.

    Args:
        authorization: Raw Authorization header value (None if absent)
        settings: Settings holding the expected credentials

    Returns:
        None if access is granted, 401 if no basic credentials were supplied,
        403 if credentials were supplied but are wrong or unreadable
    """
    if not authorization:
        return 401
    scheme, _, encoded = authorization.partition(" ")
    if scheme.lower() != "basic" or not encoded.strip():
        return 401

    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return 403

    user, sep, password = decoded.partition(":")
    if not sep or settings.basic_auth_user is None or settings.basic_auth_pass is None:
        return 403

    user_ok = secrets.compare_digest(user.encode(), settings.basic_auth_user.encode())
    pass_ok = secrets.compare_digest(password.encode(), settings.basic_auth_pass.encode())
    if user_ok and pass_ok:
        return None
    return 403


def _is_protected(path: str) -> bool:
    return path == PROTECTED_PREFIX or path.startswith(PROTECTED_PREFIX + "/")


@app.middleware("http")
async def basic_auth_gateway(request: Request, call_next):
    """Guard every route under /dashboard with basic auth."""
    if _is_protected(request.url.path):
        status = check_basic_auth(request.headers.get("Authorization"), Settings.from_env())
        if status == 401:
            return PlainTextResponse(
                "Authentication required",
                status_code=401,
                headers={"WWW-Authenticate": 'Basic realm="hyperdash"'},
            )
        if status == 403:
            return PlainTextResponse("Forbidden", status_code=403)
    return await call_next(request)


def _json_number(value: Optional[float]) -> Optional[float]:
    if value is None or not math.isfinite(value):
        return None
    return float(value)


def _heat_colors(matrix: List[List[Optional[float]]]) -> List[List[Optional[str]]]:
    return [
        [css_color(color_for(v)) if v is not None else None for v in row]
        for row in matrix
    ]


def _labels(view: DashboardView) -> Dict[str, str]:
    labels = {}
    for key in view.keys:
        meta = view.series[key].meta
        labels[key] = meta.label if meta else key
    return labels


def view_payload(view: DashboardView, selection: Selection) -> dict:
    """
    Serialize a view to a JSON-safe dict.

    Undefined correlations and non-finite cells become null. The matrix and
    colors are withheld (empty) when the overlap is too small to show.
    """
    rows = [
        {k: (v if k == "date" else _json_number(v)) for k, v in row.items()}
        for row in view.table.rows()
    ]
    ready = view.correlation_ready
    matrix = matrix_to_lists(view.matrix) if ready else []
    return {
        "keys": view.keys,
        "labels": _labels(view),
        "rows": rows,
        "frequency": view.frequency,
        "mode": view.mode,
        "log_scale": selection.log_scale,
        "correlation_ready": ready,
        "matrix": matrix,
        "colors": _heat_colors(matrix),
        "sources": selection.source_urls(),
        "errors": view.errors,
    }


def _load_view(selection: Selection) -> DashboardView:
    return session.view_for(selection)


def _parse_request(body: SelectionRequest) -> Selection:
    try:
        return body.to_selection()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _page_selection(frequency: Optional[str], mode: Optional[str], log_scale: bool) -> Selection:
    """Default selection with the page's display options applied."""
    changes = {"log_scale": log_scale}
    if frequency:
        changes["frequency"] = frequency
    if mode:
        changes["mode"] = mode
    try:
        return load_selection().replace(**changes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def render_chart(view: DashboardView, name: str, log_scale: bool = False) -> bytes:
    """
    Render one dashboard chart as PNG bytes.

    Args:
        view: Dashboard view to draw
        name: "overview", "scatter" (first two series) or "correlation"
        log_scale: Use a log y-axis for the overview

    Returns:
        PNG image data

    Raises:
        ValueError: If the chart is unknown or the view cannot support it
    """
    if name not in CHARTS:
        raise ValueError(f"Unknown chart: {name}")
    if name == "scatter" and len(view.keys) < 2:
        raise ValueError("Scatter needs at least 2 series")
    if name == "correlation" and not view.correlation_ready:
        raise ValueError("Not enough overlapping data for correlations")

    buffer = io.BytesIO()
    with _chart_lock:
        if name == "overview":
            plot_overview(
                view.table, view.keys, buffer,
                log_scale=log_scale,
                title=MODE_LABELS.get(view.mode, view.mode)
            )
        elif name == "scatter":
            plot_scatter(view.table, view.keys[0], view.keys[1], buffer)
        else:
            plot_correlation_heatmap(view.matrix, buffer)
    return buffer.getvalue()


@app.get("/health")
def health():
    """Liveness check (not behind auth)."""
    return {"status": "ok", "version": __version__}


@app.get(PROTECTED_PREFIX, response_class=HTMLResponse)
def dashboard(
    frequency: Optional[str] = None,
    mode: Optional[str] = None,
    log_scale: bool = False
):
    """Dashboard page for the default selection and the chosen display options."""
    selection = _page_selection(frequency, mode, log_scale)
    view = _load_view(selection)
    payload = view_payload(view, selection)

    cells = []
    for i, row in enumerate(payload["matrix"]):
        cells.append([
            {"value": v, "color": payload["colors"][i][j]}
            for j, v in enumerate(row)
        ])

    chart_query = urlencode({
        "frequency": selection.frequency,
        "mode": selection.mode,
        "log_scale": str(selection.log_scale).lower(),
    })

    template = template_env.get_template("dashboard.html")
    return HTMLResponse(template.render(
        payload=payload,
        cells=cells,
        catalog=catalog.describe(),
        frequencies=FREQUENCIES,
        modes=MODE_LABELS,
        chart_base=PROTECTED_PREFIX + "/charts",
        chart_query=chart_query,
        min_series=MIN_SERIES,
        min_rows=MIN_ALIGNED_ROWS,
    ))


@app.get(PROTECTED_PREFIX + "/charts/{name}")
def dashboard_chart(
    name: str,
    frequency: Optional[str] = None,
    mode: Optional[str] = None,
    log_scale: bool = False
):
    """PNG chart (overview, scatter or correlation) for the dashboard page."""
    selection = _page_selection(frequency, mode, log_scale)
    view = _load_view(selection)
    try:
        content = render_chart(view, name, log_scale=selection.log_scale)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(content=content, media_type="image/png")


@app.post(PROTECTED_PREFIX + "/api/view")
def dashboard_view(body: SelectionRequest):
    """Fetch (if needed), transform and correlate a selection."""
    selection = _parse_request(body)
    return view_payload(_load_view(selection), selection)


@app.post(PROTECTED_PREFIX + "/api/export")
def dashboard_export(body: SelectionRequest):
    """Download the aligned dataset of a selection as CSV."""
    selection = _parse_request(body)
    view = _load_view(selection)
    text = to_csv_text(view.table, export_metadata(selection))
    filename = export_filename("corr")
    return Response(
        content=text,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
