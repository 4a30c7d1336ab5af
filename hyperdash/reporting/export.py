"""
CSV export of aligned tables.

Format:
    # Key: value          (one metadata comment line per entry)
    date,<key1>,<key2>    (header)
    2020-12-31,1.5,       (one line per row; absent cells are empty)

Values are plain numbers or empty, so nothing is quoted.
"""

import io
import math
from datetime import date
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple, Union
import pandas as pd
from hyperdash.entities import AlignedTable
from hyperdash.selection import Selection


def format_value(value: Optional[float]) -> str:
    """Format a cell; absent and non-finite values become empty strings."""
    if value is None or not math.isfinite(value):
        return ""
    return repr(float(value))


def to_csv_text(table: AlignedTable, meta: Optional[Mapping[str, str]] = None) -> str:
    """
    Serialize a table with metadata comment lines.

    Args:
        table: Aligned table
        meta: Metadata written as "# key: value" lines, in order

    Returns:
        CSV text (lines joined by "\\n", no trailing newline)
    """
    lines = [f"# {k}: {v}" for k, v in (meta or {}).items()]
    keys = table.keys
    lines.append(",".join(["date"] + keys))
    for row in table.rows():
        cells = [str(row["date"])] + [format_value(row[k]) for k in keys]
        lines.append(",".join(cells))
    return "\n".join(lines)


def read_csv_text(text: str) -> Tuple[AlignedTable, Dict[str, str]]:
    """
    Parse text produced by to_csv_text.

    Returns:
        Tuple of (table, metadata); empty cells become absent

    Raises:
        ValueError: If the header does not start with "date"
    """
    meta: Dict[str, str] = {}
    for line in text.splitlines():
        if not line.startswith("#"):
            continue
        entry = line[1:].strip()
        name, sep, value = entry.partition(": ")
        if sep:
            meta[name] = value
        else:
            meta[entry.rstrip(":")] = ""

    frame = pd.read_csv(
        io.StringIO(text),
        comment="#",
        dtype={"date": str},
        float_precision="round_trip",
    )
    if len(frame.columns) == 0 or frame.columns[0] != "date":
        raise ValueError("CSV header must start with 'date'")

    frame = frame.set_index("date")
    return AlignedTable.from_frame(frame.astype(float)), meta


def write_csv(
    path: Union[str, Path],
    table: AlignedTable,
    meta: Optional[Mapping[str, str]] = None
) -> Path:
    """
    Write a table to a CSV file (UTF-8).

    Returns:
        Path of the written file
    """
    csv_path = Path(path)
    csv_path.parent.mkdir(parents=True, exist_ok=True)
    with open(csv_path, "w", encoding="utf-8") as f:
        f.write(to_csv_text(table, meta))
    return csv_path


def export_filename(tab: str = "corr", today: Optional[date] = None) -> str:
    """Return the dataset file name, e.g. "dataset_corr_2024-05-01.csv"."""
    today = today or date.today()
    return f"dataset_{tab}_{today.strftime('%Y-%m-%d')}.csv"


def export_metadata(selection: Selection) -> Dict[str, str]:
    """
    Build the metadata lines for an export of the given selection.

    Includes the first three source URLs, the mode and the frequency, plus
    the reporting currency when the BRL flag is set.
    """
    sources = selection.source_urls()
    meta = {
        "Source1": sources[0] if len(sources) > 0 else "",
        "Source2": sources[1] if len(sources) > 1 else "",
        "Source3": sources[2] if len(sources) > 2 else "",
        "Mode": selection.mode,
        "Frequency": selection.frequency,
    }
    if selection.fx_base_brl:
        meta["Currency"] = "BRL"
    return meta
