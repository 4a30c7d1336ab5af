"""
Pairwise Pearson correlation over an aligned table.

Rows are filtered once for the whole key set: a row is used only when every
selected key has a finite value on it. Every matrix cell is then computed
over that common subset. Degenerate statistics (fewer than MIN_SAMPLES rows,
or a constant column) are reported as NaN, never as 0 and never raised.
"""

import math
from typing import List, Sequence
import numpy as np
import pandas as pd
from hyperdash.entities import AlignedTable


MIN_SAMPLES = 3

# Integration-level gate for showing a correlation view at all
MIN_SERIES = 2
MIN_ALIGNED_ROWS = 5


def pearson(a: np.ndarray, b: np.ndarray) -> float:
    """
    Pearson correlation of two paired samples.

    Preconditions:
        - a and b contain finite values, paired by position

    Postconditions:
        - Returns NaN if fewer than MIN_SAMPLES pairs
        - Returns NaN if either sample is constant (zero variance)
        - pearson(a, b) == pearson(b, a) exactly

    Args:
        a: First sample
        b: Second sample

    Returns:
        Correlation in [-1, 1], or NaN when undefined
    """
    n = min(len(a), len(b))
    if n < MIN_SAMPLES:
        return float("nan")

    a = np.asarray(a[:n], dtype=float)
    b = np.asarray(b[:n], dtype=float)

    # A constant sample can leave rounding residue after centering; test it directly
    if np.all(a == a[0]) or np.all(b == b[0]):
        return float("nan")

    da = a - a.mean()
    db = b - b.mean()
    num = float(np.sum(da * db))
    var_a = float(np.sum(da * da))
    var_b = float(np.sum(db * db))

    if var_a == 0.0 or var_b == 0.0:
        return float("nan")

    return num / math.sqrt(var_a * var_b)


def valid_rows(table: AlignedTable, keys: Sequence[str]) -> np.ndarray:
    """
    Return the rows on which every key has a finite value.

    Args:
        table: Aligned table
        keys: Active series keys

    Returns:
        Float array of shape (n_valid_rows, len(keys))
    """
    values = table.to_numpy(list(keys))
    if values.shape[1] == 0:
        return values
    mask = np.isfinite(values).all(axis=1)
    return values[mask]


def correlate(table: AlignedTable, keys: Sequence[str]) -> pd.DataFrame:
    """
    Compute the symmetric Pearson correlation matrix for the given keys.

    Preconditions:
        - every key is a column of table

    Postconditions:
        - Returns a len(keys) x len(keys) DataFrame indexed by keys on both axes
        - All cells are computed over the same common valid-row subset
        - matrix[i][j] and matrix[j][i] are identical (both NaN when undefined)
        - Diagonal is 1 for a non-constant column with >= MIN_SAMPLES valid rows

    Args:
        table: Aligned table
        keys: Ordered sequence of active series keys

    Returns:
        Correlation matrix (NaN marks undefined cells)

    Raises:
        KeyError: If a key is not a column of table
    """
    keys = list(keys)
    missing = [k for k in keys if k not in table.keys]
    if missing:
        raise KeyError(f"keys not in table: {missing}")

    values = valid_rows(table, keys)
    columns = [values[:, i] for i in range(len(keys))]

    matrix = np.full((len(keys), len(keys)), np.nan)
    for i in range(len(keys)):
        for j in range(i, len(keys)):
            value = pearson(columns[i], columns[j])
            matrix[i, j] = value
            matrix[j, i] = value

    return pd.DataFrame(matrix, index=keys, columns=keys)


def has_sufficient_overlap(table: AlignedTable, keys: Sequence[str]) -> bool:
    """
    Decide whether a correlation view is worth showing.

    Requires at least MIN_SERIES active keys and MIN_ALIGNED_ROWS aligned rows.
    Callers should prompt for a broader selection instead of rendering a
    degenerate matrix when this returns False.
    """
    return len(keys) >= MIN_SERIES and len(table) >= MIN_ALIGNED_ROWS


def matrix_to_lists(matrix: pd.DataFrame) -> List[List[object]]:
    """Convert a matrix to nested lists with None for undefined cells (JSON-safe)."""
    return [
        [float(v) if np.isfinite(v) else None for v in row]
        for row in matrix.to_numpy(dtype=float)
    ]
