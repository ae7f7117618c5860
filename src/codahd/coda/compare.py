"""
Agreement between two transformed matrices.

Used to quantify how far the LogNorm-based CLR drifts from the ``s/10000``
pseudo-count CLR: the two are equal up to storage precision, so RMSE is tiny,
almost every entry matches after rounding, yet the matrices are not bitwise
identical.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd

from codahd.core.errors import InvalidInputError
from codahd.core.matrix import ExpressionMatrix

logger = logging.getLogger(__name__)

__all__ = ['ComparisonResult', 'compare_matrices']


@dataclass(frozen=True)
class ComparisonResult:
    """
    Summary of the element-wise difference between two matrices.

    Attributes:
        rmse: Root-mean-square difference over all entries
        max_abs_diff: Largest absolute difference
        exact_match_fraction: Fraction of entries equal after rounding to
            ``decimals`` places
        bitwise_identical: True only if every entry is exactly equal
        per_sample_rmse: RMSE of each sample (column), indexed by sample id
        decimals: Rounding used for exact_match_fraction
    """

    rmse: float
    max_abs_diff: float
    exact_match_fraction: float
    bitwise_identical: bool
    per_sample_rmse: pd.Series
    decimals: int = 3

    def to_dict(self) -> dict[str, Any]:
        return {
            'rmse': self.rmse,
            'max_abs_diff': self.max_abs_diff,
            'exact_match_fraction': self.exact_match_fraction,
            'bitwise_identical': self.bitwise_identical,
            'decimals': self.decimals,
            'per_sample_rmse': {str(k): float(v) for k, v in self.per_sample_rmse.items()},
        }


def compare_matrices(a: ExpressionMatrix, b: ExpressionMatrix, decimals: int = 3) -> ComparisonResult:
    """
    Compare two matrices with identical feature and sample ids.

    Raises:
        InvalidInputError: Ids differ (in content or order) or decimals < 0
    """
    if not a.feature_ids.equals(b.feature_ids):
        raise InvalidInputError("Cannot compare matrices with different feature ids")
    if not a.sample_ids.equals(b.sample_ids):
        raise InvalidInputError("Cannot compare matrices with different sample ids")
    if decimals < 0:
        raise InvalidInputError(f"decimals must be >= 0, got {decimals}")

    diff = a.data - b.data
    squared = diff ** 2
    result = ComparisonResult(
        rmse=float(np.sqrt(squared.mean())),
        max_abs_diff=float(np.abs(diff).max()),
        exact_match_fraction=float(np.mean(np.round(a.data, decimals) == np.round(b.data, decimals))),
        bitwise_identical=bool(np.array_equal(a.data, b.data)),
        per_sample_rmse=pd.Series(np.sqrt(squared.mean(axis=0)), index=a.sample_ids, name='rmse'),
        decimals=decimals,
    )

    logger.info(
        f"Comparison: RMSE={result.rmse:.3g}, max |diff|={result.max_abs_diff:.3g}, "
        f"{result.exact_match_fraction:.1%} equal at {decimals} decimals"
    )
    return result
