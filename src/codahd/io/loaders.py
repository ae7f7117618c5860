"""
Delimited-text loader for gene-by-cell count matrices.

Expected layout (TSV, CSV or semicolon-separated):

    ""        cell_AAACCTG  cell_AAACGGG  cell_AAAGATG
    GAPDH     152           98            210
    MT-CO1    0             17            3

- First column: feature ids (genes); header may be empty
- Remaining columns: one per cell, header = cell barcode
- Values: non-negative counts (zeros expected)

Examples:
    >>> from pathlib import Path
    >>> from codahd.io.loaders import load_matrix
    >>>
    >>> counts = load_matrix(Path("pbmc_counts.tsv"))
    >>> print(f"Loaded {counts.n_features} genes × {counts.n_samples} cells")
"""

from __future__ import annotations

import csv
import logging
import warnings
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from codahd.core.errors import InvalidInputError
from codahd.core.matrix import ExpressionMatrix
from codahd.io.formats import sniff_delimiter

logger = logging.getLogger(__name__)

__all__ = ['load_matrix']


def _read_header(path: Path, sep: str) -> Optional[list[str]]:
    """First row as written; pandas would rename repeated sample names."""
    with open(path, 'r', newline='', encoding='utf-8') as f:
        return next(csv.reader(f, delimiter=sep), None)


def load_matrix(path: Path, delimiter: Optional[str] = None) -> ExpressionMatrix:
    """
    Load a delimited count matrix into an ExpressionMatrix.

    Duplicate feature or sample ids trigger a UserWarning and the first
    occurrence is kept.

    Args:
        path: Path to the matrix file
        delimiter: Column delimiter. If None, it is sniffed from the file.

    Returns:
        ExpressionMatrix with an empty sample_metadata frame

    Raises:
        FileNotFoundError: If path does not exist
        InvalidInputError: Empty file, no features/samples, non-numeric,
            missing or infinite values
    """
    if not isinstance(path, Path):
        path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Matrix file not found: {path}")
    if not path.is_file():
        raise InvalidInputError(f"Path is not a file: {path}")

    sep = delimiter or sniff_delimiter(path)
    header = _read_header(path, sep)
    if header is None:
        raise InvalidInputError(f"Matrix file is empty: {path}")

    try:
        df = pd.read_csv(path, sep=sep, header=None, skiprows=1, index_col=0)
    except pd.errors.EmptyDataError as e:
        raise InvalidInputError(f"Matrix file contains no features (rows): {path}") from e
    except pd.errors.ParserError as e:
        raise InvalidInputError(f"Failed to parse matrix file {path}: {e}") from e

    if df.shape[1] != len(header) - 1:
        raise InvalidInputError(
            f"Header names {len(header) - 1} samples but rows hold {df.shape[1]} values: {path}"
        )
    df.columns = pd.Index(header[1:])
    df.index.name = header[0] or None

    if df.shape[0] == 0:
        raise InvalidInputError(f"Matrix file contains no features (rows): {path}")
    if df.shape[1] == 0:
        raise InvalidInputError(f"Matrix file contains no samples (columns): {path}")

    if df.index.duplicated().any():
        n_duplicates = int(df.index.duplicated().sum())
        warnings.warn(
            f"Found {n_duplicates} duplicate feature IDs. "
            "Using first occurrence of each.",
            UserWarning
        )
        df = df[~df.index.duplicated(keep='first')]

    if df.columns.duplicated().any():
        n_duplicates = int(df.columns.duplicated().sum())
        warnings.warn(
            f"Found {n_duplicates} duplicate sample IDs. "
            "Using first occurrence of each.",
            UserWarning
        )
        df = df.loc[:, ~df.columns.duplicated(keep='first')]

    non_numeric = [col for col in df.columns if not pd.api.types.is_numeric_dtype(df[col])]
    if non_numeric:
        raise InvalidInputError(
            f"Non-numeric values in {len(non_numeric)} sample column(s) "
            f"(first 5: {non_numeric[:5]})"
        )

    data = df.to_numpy(dtype=float)
    if np.isnan(data).any():
        raise InvalidInputError(
            f"Matrix contains {int(np.isnan(data).sum()):,} missing values; counts must be complete"
        )
    if np.isinf(data).any():
        raise InvalidInputError(f"Matrix contains {int(np.isinf(data).sum()):,} infinite values")

    matrix = ExpressionMatrix(
        data=data,
        feature_ids=pd.Index(df.index.astype(str)),
        sample_ids=pd.Index(df.columns.astype(str)),
    )
    logger.info(f"Loaded {matrix.n_features} features × {matrix.n_samples} samples from {path}")
    return matrix
