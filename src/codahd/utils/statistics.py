"""
Column-wise statistics shared by the log-ratio transforms.

Functions:
    validate_counts: Reject matrices that cannot be log-transformed
    positive_geometric_mean: Geometric mean of strictly positive entries per column
    feature_dispersion: Robust per-feature spread across samples (MAD)
"""

from __future__ import annotations

import numpy as np
from scipy.stats import median_abs_deviation

from codahd.core.errors import InvalidInputError

__all__ = [
    'validate_counts',
    'positive_geometric_mean',
    'feature_dispersion',
]


def validate_counts(data: np.ndarray, allow_empty_columns: bool = False) -> None:
    """
    Check that a matrix holds finite, non-negative counts.

    Args:
        data: 2D array (features × samples)
        allow_empty_columns: Accept columns whose entries are all zero

    Raises:
        InvalidInputError: On empty, non-finite, negative or all-zero columns
    """
    if data.ndim != 2:
        raise InvalidInputError(f"Expected 2D array, got {data.ndim}D")
    if data.size == 0:
        raise InvalidInputError("Cannot transform an empty matrix")
    if not np.all(np.isfinite(data)):
        n_bad = int(np.sum(~np.isfinite(data)))
        raise InvalidInputError(f"Matrix contains {n_bad} NaN or infinite values")
    if np.any(data < 0):
        n_neg = int(np.sum(data < 0))
        raise InvalidInputError(f"Matrix contains {n_neg} negative values; counts must be >= 0")
    if not allow_empty_columns:
        empty = np.flatnonzero(~np.any(data > 0, axis=0))
        if empty.size:
            raise InvalidInputError(
                f"{empty.size} sample(s) have all-zero counts (column indices "
                f"{empty[:10].tolist()}); remove empty cells before transforming"
            )


def positive_geometric_mean(data: np.ndarray) -> np.ndarray:
    """
    Geometric mean of the strictly positive entries of each column.

    Columns without any positive entry get NaN.

    Example:
        >>> positive_geometric_mean(np.array([[4.0, 0.0], [1.0, 9.0], [0.0, 1.0]]))
        array([2., 3.])
    """
    positive = data > 0
    logs = np.log(np.where(positive, data, 1.0))
    n_positive = positive.sum(axis=0)
    with np.errstate(invalid='ignore', divide='ignore'):
        mean_log = logs.sum(axis=0) / n_positive
    return np.where(n_positive > 0, np.exp(mean_log), np.nan)


def feature_dispersion(values: np.ndarray) -> np.ndarray:
    """
    Median absolute deviation of each row, scaled to be consistent with the
    standard deviation under normality.
    """
    return median_abs_deviation(values, axis=1, scale='normal')
