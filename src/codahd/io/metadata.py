"""
Per-cell annotation loading and group-label resolution.

Cell annotations (cell type, cluster, donor, condition) usually arrive as a
separate table keyed by cell barcode. Grouped reference methods (groupIQLR,
groupLVHA) need one label per cell, given either as the name of an annotation
column or as an explicit mapping.

Examples:
    >>> from codahd.io.metadata import load_sample_metadata, attach_metadata
    >>> meta = load_sample_metadata(Path("cell_annotations.csv"))
    >>> matrix = attach_metadata(matrix, meta)
    >>> labels = resolve_group_labels("cell_type", matrix.sample_ids, matrix.sample_metadata)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from codahd.core.errors import InvalidConfigError, InvalidInputError
from codahd.core.matrix import ExpressionMatrix
from codahd.io.formats import sniff_delimiter

logger = logging.getLogger(__name__)

__all__ = [
    'GroupSpec',
    'load_sample_metadata',
    'attach_metadata',
    'resolve_group_labels',
]

GroupSpec = Union[str, Mapping, pd.Series]


def load_sample_metadata(
    path: Path,
    sample_col: Optional[str] = None,
    delimiter: Optional[str] = None,
) -> pd.DataFrame:
    """
    Load a per-cell annotation table indexed by sample id.

    Args:
        path: CSV/TSV file with one row per cell
        sample_col: Column holding the cell ids. If None, the first column is used.
        delimiter: Column delimiter (None = sniff)

    Returns:
        DataFrame indexed by sample id (as strings)

    Raises:
        FileNotFoundError: If path does not exist
        InvalidInputError: If the table is empty, lacks sample_col, or has
            duplicate sample ids
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Metadata file not found: {path}")

    sep = delimiter or sniff_delimiter(path)
    try:
        df = pd.read_csv(path, sep=sep)
    except pd.errors.EmptyDataError as e:
        raise InvalidInputError(f"Metadata file is empty: {path}") from e

    if df.empty:
        raise InvalidInputError(f"Metadata file contains no rows: {path}")

    if sample_col is None:
        sample_col = df.columns[0]
    elif sample_col not in df.columns:
        raise InvalidInputError(
            f"Sample column '{sample_col}' not found in metadata. "
            f"Available columns: {list(df.columns)}"
        )

    df[sample_col] = df[sample_col].astype(str)
    if df[sample_col].duplicated().any():
        dups = df.loc[df[sample_col].duplicated(), sample_col].unique()
        raise InvalidInputError(f"Duplicate sample ids in metadata (first 10): {list(dups[:10])}")

    df = df.set_index(sample_col)
    df.index.name = None
    logger.info(f"Loaded metadata for {len(df)} samples with columns {list(df.columns)}")
    return df


def attach_metadata(matrix: ExpressionMatrix, metadata: pd.DataFrame) -> ExpressionMatrix:
    """
    Left-join annotations onto a matrix by sample id.

    Cells missing from ``metadata`` keep NaN annotations. Columns already
    present on the matrix are replaced by the incoming ones.
    """
    sample_index = pd.Index(matrix.sample_ids.astype(str))
    aligned = metadata.reindex(sample_index)
    aligned.index = matrix.sample_ids

    n_unmatched = int(aligned.isna().all(axis=1).sum()) if len(aligned.columns) else 0
    if n_unmatched:
        logger.warning(f"{n_unmatched}/{matrix.n_samples} samples have no metadata row")

    existing = matrix.sample_metadata.drop(columns=aligned.columns, errors='ignore')
    return matrix.with_metadata(existing.join(aligned))


def resolve_group_labels(
    groups: GroupSpec,
    sample_ids: pd.Index,
    sample_metadata: Optional[pd.DataFrame] = None,
) -> pd.Series:
    """
    One group label per sample, in sample order.

    Args:
        groups: Metadata column name, mapping {sample_id: label}, or Series
            indexed by sample id
        sample_ids: Samples that need a label
        sample_metadata: Annotations to look the column up in

    Returns:
        Series indexed by sample_ids

    Raises:
        InvalidConfigError: Unknown column, or any sample without a label
    """
    if isinstance(groups, str):
        if sample_metadata is None or groups not in sample_metadata.columns:
            available = [] if sample_metadata is None else list(sample_metadata.columns)
            raise InvalidConfigError(
                f"Group column '{groups}' not found in sample metadata. "
                f"Available columns: {available}"
            )
        labels = sample_metadata[groups].reindex(sample_ids)
    elif isinstance(groups, pd.Series):
        labels = groups.reindex(sample_ids)
    elif isinstance(groups, Mapping):
        labels = pd.Series([groups.get(s) for s in sample_ids], index=sample_ids, dtype=object)
    else:
        raise InvalidConfigError(
            f"groups must be a column name, mapping or Series, got {type(groups)}"
        )

    missing = labels.isna()
    if missing.any():
        raise InvalidConfigError(
            f"{int(missing.sum())} sample(s) have no group label "
            f"(first 10: {list(sample_ids[missing.values][:10])})"
        )
    return labels
