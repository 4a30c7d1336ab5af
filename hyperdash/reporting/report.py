"""
Markdown report generation.

This module generates markdown reports for one dashboard view: series
provenance, the correlation matrix, charts, sources and fetch failures.
The aligned dataset is written next to the report as CSV.
"""

from datetime import datetime
from pathlib import Path
from typing import Dict, Optional
import numpy as np
from hyperdash.analytics.correlation import MIN_ALIGNED_ROWS, MIN_SERIES
from hyperdash.analytics.pipeline import DashboardView
from hyperdash.entities import Series
from hyperdash.reporting.charts import (
    plot_overview, plot_correlation_heatmap, plot_scatter, create_report_assets_dir
)
from hyperdash.reporting.export import export_metadata, write_csv
from hyperdash.selection import Selection


MODE_LABELS = {
    "level": "Level",
    "index": "Index (first value = 100)",
    "yoy": "Year-over-year change (%)",
}


class Report:
    """
    Generates markdown reports for a dashboard view.

    This class assembles the series list, correlation matrix and charts of
    a DashboardView into a markdown file with an assets directory.
    """

    def __init__(self, output_dir: str = "reports"):
        """
        Initialize report generator.

        Args:
            output_dir: Directory to save reports
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def generate_report(
        self,
        view: DashboardView,
        selection: Selection,
        errors: Optional[Dict[str, str]] = None
    ) -> str:
        """
        Generate complete markdown report.

        Args:
            view: Dashboard view to report on
            selection: Selection the view was built from
            errors: Fetch errors by key (defaults to view.errors)

        Returns:
            Path to generated report file
        """
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        report_path = self.output_dir / f"correlation_{timestamp}.md"
        csv_name = f"correlation_{timestamp}.csv"

        assets_dir = create_report_assets_dir(self.output_dir)
        write_csv(self.output_dir / csv_name, view.table, export_metadata(selection))

        content = self._generate_header(view, selection)
        content += self._generate_series_section(view)
        content += self._generate_correlation_section(view, assets_dir)
        content += self._generate_chart_section(view, selection, assets_dir)
        content += self._generate_sources_section(selection, csv_name)
        content += self._generate_errors_section(view.errors if errors is None else errors)
        content += self._generate_footer()

        with open(report_path, "w", encoding="utf-8") as f:
            f.write(content)

        return str(report_path)

    def _generate_header(self, view: DashboardView, selection: Selection) -> str:
        """Generate report header."""
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        mode = MODE_LABELS.get(view.mode, view.mode)

        header = "# Correlation Report\n\n"
        header += f"**Frequency:** {view.frequency}  \n"
        header += f"**Mode:** {mode}  \n"
        if selection.fx_base_brl:
            header += "**Currency:** BRL  \n"
        header += f"**Generated:** {timestamp}\n\n---\n\n"
        return header

    def _generate_series_section(self, view: DashboardView) -> str:
        """Generate the list of active series."""
        section = "## Series\n\n"
        if not view.keys:
            return section + "*No series with data.*\n\n---\n\n"

        section += "| Key | Label | Unit | Source | Points | First | Last |\n"
        section += "|-----|-------|------|--------|--------|-------|------|\n"
        for key in view.keys:
            section += self._series_row(view.series[key])
        section += "\n---\n\n"
        return section

    @staticmethod
    def _series_row(series: Series) -> str:
        meta = series.meta
        label = meta.label if meta else series.key
        unit = meta.unit if meta else ""
        source = meta.source if meta else ""
        dates = series.dates
        return f"| {series.key} | {label} | {unit} | {source} | {len(series)} | {dates[0]} | {dates[-1]} |\n"

    def _generate_correlation_section(self, view: DashboardView, assets_dir: Path) -> str:
        """Generate correlation matrix section."""
        section = "## Correlation (Pearson)\n\n"

        if not view.correlation_ready:
            section += f"*Select at least {MIN_SERIES} series with {MIN_ALIGNED_ROWS} or more "
            section += "aligned dates to compute correlations.*\n\n---\n\n"
            return section

        section += "> Each cell is computed over the dates on which every listed series "
        section += "has a value. Blank cells are undefined (too few points or a constant series).\n\n"

        keys = view.keys
        values = view.matrix.to_numpy(dtype=float)
        section += "| | " + " | ".join(keys) + " |\n"
        section += "|---|" + "---|" * len(keys) + "\n"
        for i, key in enumerate(keys):
            cells = [f"{v:.2f}" if np.isfinite(v) else "" for v in values[i]]
            section += f"| {key} | " + " | ".join(cells) + " |\n"
        section += "\n"

        chart_path = assets_dir / "correlation.png"
        plot_correlation_heatmap(view.matrix, str(chart_path))
        section += "![Correlation](assets/correlation.png)\n\n---\n\n"
        return section

    def _generate_chart_section(
        self,
        view: DashboardView,
        selection: Selection,
        assets_dir: Path
    ) -> str:
        """Generate overview and scatter charts."""
        if not view.keys:
            return ""

        section = "## Charts\n\n"
        plot_overview(
            view.table, view.keys, str(assets_dir / "overview.png"),
            log_scale=selection.log_scale,
            title=MODE_LABELS.get(view.mode, view.mode)
        )
        section += "![Overview](assets/overview.png)\n\n"

        if len(view.keys) >= 2:
            x_key, y_key = view.keys[0], view.keys[1]
            plot_scatter(view.table, x_key, y_key, str(assets_dir / "scatter.png"))
            section += f"![{y_key} vs {x_key}](assets/scatter.png)\n\n"

        section += "---\n\n"
        return section

    def _generate_sources_section(self, selection: Selection, csv_name: str) -> str:
        """Generate the sources section."""
        section = "## Sources\n\n"
        for url in selection.source_urls():
            section += f"- {url}\n"
        section += f"\n**Dataset:** [{csv_name}]({csv_name})\n\n---\n\n"
        return section

    def _generate_errors_section(self, errors: Dict[str, str]) -> str:
        """Generate the fetch failures section (empty when nothing failed)."""
        if not errors:
            return ""
        section = "## Fetch Failures\n\n"
        section += "| Key | Error |\n"
        section += "|-----|-------|\n"
        for key, message in errors.items():
            section += f"| {key} | {message} |\n"
        section += "\n---\n\n"
        return section

    def _generate_footer(self) -> str:
        """Generate report footer."""
        return """
## Methodology Notes

- Annual values are the last observation of each calendar year
- FX, commodity and crypto series keep the last value of each month after download
- Index mode rebases each series so its first value is 100
- YoY mode computes percentage change between consecutive calendar years only
- Correlations are pairwise Pearson coefficients over a common set of dates

---

*Report generated by HyperDash*
"""
