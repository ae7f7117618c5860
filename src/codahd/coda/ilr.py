"""
Isometric log-ratio (ILR) coordinates.

ILR maps a D-part composition onto D - 1 orthonormal balances. Each row of the
basis V sums to zero and V V^T = I, so

    ilr(x) = V log(x) = V clr(x)

and the per-sample reference drops out. Two bases are provided:

    pivot    balance i contrasts part i against all parts after it
             (sequential binary partition; coordinate i is labelled by part i)
    helmert  balance i contrasts part i + 1 against all parts before it
             (scipy.linalg.helmert; coordinate i is labelled by part i + 1)
"""

from __future__ import annotations

import numpy as np
import pandas as pd
from scipy.linalg import helmert

from codahd.core.errors import InvalidConfigError, InvalidInputError

__all__ = ['ILR_BASES', 'ilr_basis', 'ilr_labels', 'ilr_coordinates']

ILR_BASES = ('pivot', 'helmert')


def ilr_basis(n_features: int, kind: str = 'pivot') -> np.ndarray:
    """
    Orthonormal contrast matrix of shape (n_features - 1, n_features).

    Raises:
        InvalidInputError: n_features < 2
        InvalidConfigError: Unknown basis kind
    """
    if kind not in ILR_BASES:
        raise InvalidConfigError(f"Unknown ILR basis '{kind}'. Must be one of {list(ILR_BASES)}")
    if n_features < 2:
        raise InvalidInputError(f"ILR needs at least 2 features, got {n_features}")

    if kind == 'helmert':
        return helmert(n_features, full=False)

    basis = np.zeros((n_features - 1, n_features))
    for i in range(n_features - 1):
        remaining = n_features - i
        basis[i, i] = np.sqrt((remaining - 1) / remaining)
        basis[i, i + 1:] = -1.0 / np.sqrt(remaining * (remaining - 1))
    return basis


def ilr_labels(feature_ids: pd.Index, kind: str = 'pivot') -> pd.Index:
    """Row labels of the ILR coordinates, e.g. ``ilr1_GAPDH``."""
    offset = 1 if kind == 'helmert' else 0
    n = len(feature_ids) - 1
    return pd.Index([f"ilr{i + 1}_{feature_ids[i + offset]}" for i in range(n)])


def ilr_coordinates(
    log_data: np.ndarray,
    feature_ids: pd.Index,
    kind: str = 'pivot',
) -> tuple[np.ndarray, pd.Index]:
    """
    ILR coordinates of a log-space matrix (features × samples).

    Returns:
        (coordinates with D - 1 rows, contrast labels)
    """
    basis = ilr_basis(log_data.shape[0], kind)
    return basis @ log_data, ilr_labels(pd.Index(feature_ids), kind)
