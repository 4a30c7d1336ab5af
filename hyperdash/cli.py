"""
Command-line interface for the correlation dashboard.

This module provides CLI commands for listing the available series,
computing a correlation matrix, exporting the aligned dataset, and
serving the web dashboard.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional
import numpy as np
from hyperdash import catalog
from hyperdash.analytics.correlation import MIN_ALIGNED_ROWS, MIN_SERIES
from hyperdash.analytics.pipeline import DashboardSession, DashboardView
from hyperdash.config import Settings, load_selection
from hyperdash.data_sources.fetch import SeriesStore
from hyperdash.errors import HyperdashError
from hyperdash.reporting.export import export_filename, export_metadata, write_csv
from hyperdash.reporting.report import Report
from hyperdash.selection import FREQUENCIES, MODES, Selection


def _resolve_selection(args) -> Selection:
    """Load the selection file and apply command-line overrides."""
    selection = load_selection(args.selection)
    changes = {}
    if args.frequency:
        changes["frequency"] = args.frequency
    if args.mode:
        changes["mode"] = args.mode
    if getattr(args, "log_scale", False):
        changes["log_scale"] = True
    if args.brl:
        changes["fx_base_brl"] = True
    return selection.replace(**changes) if changes else selection


def _fetch_view(selection: Selection, settings: Settings) -> DashboardView:
    """Fetch every selected series, printing one line per key."""
    keys = selection.series_keys()
    print(f"  Fetching {len(keys)} series...")

    session = DashboardSession(SeriesStore(
        max_workers=settings.max_workers,
        timeout=settings.http_timeout,
    ))
    batch = session.refresh(selection)

    for key, series in batch.series.items():
        if key in batch.errors:
            print(f"    ✗ {key}: {batch.errors[key]}")
        elif len(series) == 0:
            print(f"    ✗ {key}: no data")
        else:
            print(f"    ✓ {key}: {len(series)} points")

    return session.view(selection.frequency, selection.mode)


def _format_matrix(view: DashboardView) -> str:
    """Render the matrix as text with blanks for undefined cells."""
    keys = view.keys
    values = view.matrix.to_numpy(dtype=float)
    width = max(len(k) for k in keys)
    lines = [" " * width + "  " + "  ".join(f"{k:>{width}}" for k in keys)]
    for i, key in enumerate(keys):
        cells = [
            f"{v:>{width}.2f}" if np.isfinite(v) else " " * width
            for v in values[i]
        ]
        lines.append(f"{key:<{width}}  " + "  ".join(cells))
    return "\n".join(lines)


def catalog_command(args):
    """List every series the dashboard can fetch."""
    for group, entries in catalog.describe().items():
        print(f"{group}:")
        for code, label in entries.items():
            print(f"  {code:<10} {label}")


def correlate_command(args):
    """Fetch a selection and print its correlation matrix."""
    settings = Settings.from_env()

    try:
        selection = _resolve_selection(args)
        print(f"Correlating {len(selection.series_keys())} series "
              f"({selection.frequency}, {selection.mode})...")

        view = _fetch_view(selection, settings)

        if view.correlation_ready:
            print("\n" + _format_matrix(view))
        else:
            print(f"\n  Not enough overlap: select at least {MIN_SERIES} series "
                  f"with {MIN_ALIGNED_ROWS} or more aligned dates")

        if args.export:
            csv_path = write_csv(args.export, view.table, export_metadata(selection))
            print(f"\n✓ Dataset saved to: {csv_path}")

        if args.report:
            print("  Generating report...")
            report = Report(settings.output_dir)
            report_path = report.generate_report(view, selection)
            print(f"\n✓ Report saved to: {report_path}")

    except (HyperdashError, ValueError, FileNotFoundError) as e:
        print(f"\n✗ Error: {e}", file=sys.stderr)
        sys.exit(1)


def export_command(args):
    """Fetch a selection and write its aligned dataset as CSV."""
    settings = Settings.from_env()

    try:
        selection = _resolve_selection(args)
        print(f"Exporting {len(selection.series_keys())} series...")

        view = _fetch_view(selection, settings)
        output = args.output or str(Path(settings.output_dir) / export_filename("corr"))
        csv_path = write_csv(output, view.table, export_metadata(selection))

        print(f"\n✓ Export complete! {len(view.table)} rows, {len(view.keys)} series")
        print(f"  Saved to: {csv_path}")

    except (HyperdashError, ValueError, FileNotFoundError) as e:
        print(f"\n✗ Error: {e}", file=sys.stderr)
        sys.exit(1)


def serve_command(args):
    """Run the web dashboard."""
    import uvicorn

    print(f"Serving dashboard on http://{args.host}:{args.port}/dashboard")
    uvicorn.run("hyperdash.web:app", host=args.host, port=args.port)


def _add_selection_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--selection", default=None, help="Selection YAML file (default: data/selection.yaml)")
    parser.add_argument("--frequency", choices=FREQUENCIES, help="Display frequency")
    parser.add_argument("--mode", choices=MODES, help="Display mode")
    parser.add_argument("--brl", action="store_true", help="Record BRL as the reporting currency")


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Macro, FX, Commodity & Crypto Correlation Dashboard",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Catalog command
    subparsers.add_parser("catalog", help="List available series")

    # Correlate command
    correlate_parser = subparsers.add_parser("correlate", help="Compute a correlation matrix")
    _add_selection_arguments(correlate_parser)
    correlate_parser.add_argument("--export", default=None, help="Write the aligned dataset to this CSV path")
    correlate_parser.add_argument("--report", action="store_true", help="Generate a markdown report")
    correlate_parser.add_argument("--log-scale", action="store_true", help="Log y-axis on report charts")

    # Export command
    export_parser = subparsers.add_parser("export", help="Export the aligned dataset as CSV")
    _add_selection_arguments(export_parser)
    export_parser.add_argument("--output", default=None, help="Output CSV path")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the web dashboard")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port")

    args = parser.parse_args(argv)

    if args.command == "catalog":
        catalog_command(args)
    elif args.command == "correlate":
        correlate_command(args)
    elif args.command == "export":
        export_command(args)
    elif args.command == "serve":
        serve_command(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
