"""
Chart generation for reports.

This module creates matplotlib charts for the aligned dataset and the
correlation matrix, for report files and for the web dashboard. Charts only consume computed artifacts; they never
re-derive them.
"""

from typing import BinaryIO, List, Union
import matplotlib
matplotlib.use("Agg")  # Non-interactive backend
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from pathlib import Path
from hyperdash.analytics.heatmap import NEUTRAL, color_for, mpl_color
from hyperdash.entities import AlignedTable


def plot_overview(
    table: AlignedTable,
    keys: List[str],
    save_path: Union[str, BinaryIO],
    log_scale: bool = False,
    title: str = "Overview"
) -> None:
    """
    Plot one line per series over the aligned dates.

    Absent cells break the line rather than being interpolated.

    Args:
        table: Aligned table
        keys: Keys to plot
        save_path: Path or binary file to save the PNG chart to
        log_scale: Use a log y-axis
        title: Chart title
    """
    fig, ax = plt.subplots(figsize=(12, 6))

    dates = pd.to_datetime(table.dates)
    values = table.to_numpy(keys)

    for i, key in enumerate(keys):
        column = values[:, i]
        # Non-finite cells (absent or degenerate) are left as gaps
        column = np.where(np.isfinite(column), column, np.nan)
        ax.plot(dates, column, label=key, linewidth=1.8)

    if log_scale:
        ax.set_yscale("log")

    ax.set_xlabel("Date")
    ax.set_ylabel("Value")
    ax.set_title(title)
    if keys:
        ax.legend(fontsize=8)
    ax.grid(True, alpha=0.3, linestyle="--")

    plt.tight_layout()
    plt.savefig(save_path, format="png", dpi=150, bbox_inches="tight")
    plt.close()


def plot_correlation_heatmap(
    matrix: pd.DataFrame,
    save_path: Union[str, BinaryIO]
) -> None:
    """
    Plot the correlation matrix as a colored grid.

    Undefined cells are drawn in the neutral color with no label, so they
    cannot be mistaken for a correlation of 0.

    Args:
        matrix: Correlation matrix (keys on both axes)
        save_path: Path or binary file to save the PNG chart to
    """
    keys = [str(k) for k in matrix.index]
    n = len(keys)
    values = matrix.to_numpy(dtype=float)

    image = np.zeros((n, n, 3))
    for i in range(n):
        for j in range(n):
            v = values[i, j]
            rgb = color_for(v) if np.isfinite(v) else NEUTRAL
            image[i, j] = mpl_color(rgb)

    size = max(4, 0.9 * n + 2)
    fig, ax = plt.subplots(figsize=(size, size))
    ax.imshow(image, interpolation="nearest")

    for i in range(n):
        for j in range(n):
            v = values[i, j]
            if np.isfinite(v):
                ax.text(j, i, f"{v:.2f}", ha="center", va="center", fontsize=8)

    ax.set_xticks(range(n))
    ax.set_yticks(range(n))
    ax.set_xticklabels(keys, rotation=45, ha="right", fontsize=8)
    ax.set_yticklabels(keys, fontsize=8)
    ax.set_title("Correlation (Pearson)")

    plt.tight_layout()
    plt.savefig(save_path, format="png", dpi=150, bbox_inches="tight")
    plt.close()


def plot_scatter(
    table: AlignedTable,
    x_key: str,
    y_key: str,
    save_path: Union[str, BinaryIO]
) -> None:
    """
    Scatter two series against each other on rows where both are finite.

    Args:
        table: Aligned table
        x_key: Key for the x axis
        y_key: Key for the y axis
        save_path: Path or binary file to save the PNG chart to
    """
    values = table.to_numpy([x_key, y_key])
    mask = np.isfinite(values).all(axis=1)

    fig, ax = plt.subplots(figsize=(8, 6))
    ax.scatter(values[mask, 0], values[mask, 1], s=30, alpha=0.8, color="#8884d8")

    ax.set_xlabel(x_key)
    ax.set_ylabel(y_key)
    ax.set_title(f"{y_key} vs {x_key}")
    ax.grid(True, alpha=0.3, linestyle="--")

    plt.tight_layout()
    plt.savefig(save_path, format="png", dpi=150, bbox_inches="tight")
    plt.close()


def create_report_assets_dir(report_dir: Path) -> Path:
    """
    Create assets directory for report charts.

    Args:
        report_dir: Report directory path

    Returns:
        Path to assets directory
    """
    assets_dir = report_dir / "assets"
    assets_dir.mkdir(parents=True, exist_ok=True)
    return assets_dir
