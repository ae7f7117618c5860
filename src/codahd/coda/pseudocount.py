"""
Zero / pseudo-count adjustment before taking logarithms.

Single-cell count matrices are dominated by zeros, and the log-ratio of a zero
is undefined. Each cell (column) therefore gets an additive constant derived
from its own library size, so cells of different depth are adjusted
proportionally:

    s/gm     c_j = sum_j / geometric_mean(positive counts of cell j)   (default)
    s/max    c_j = sum_j / max_j
    s/10000  c_j = sum_j / 10000
    manual   c_j = user value for every cell

The constant is added to every entry of the column, not only to zeros, so the
adjusted values stay a monotone function of the raw counts.

Examples:
    >>> from codahd.coda.config import PseudocountConfig, PseudocountMode
    >>> from codahd.coda.pseudocount import compute_pseudocounts
    >>>
    >>> data = np.array([[4.0, 0.0], [2.0, 2.0], [0.0, 6.0]])
    >>> compute_pseudocounts(data, PseudocountConfig(PseudocountMode.SUM_OVER_FIXED))
    array([0.0006, 0.0008])
"""

from __future__ import annotations

import logging

import numpy as np

from codahd.coda.config import PseudocountConfig, PseudocountMode
from codahd.core.matrix import ExpressionMatrix
from codahd.core.transform import Transform
from codahd.utils.statistics import positive_geometric_mean, validate_counts

logger = logging.getLogger(__name__)

__all__ = [
    'compute_pseudocounts',
    'add_pseudocount',
    'log_adjusted',
    'PseudocountAdjuster',
]


def compute_pseudocounts(data: np.ndarray, config: PseudocountConfig) -> np.ndarray:
    """
    Per-cell additive constants.

    Args:
        data: Raw counts (features × samples), entries >= 0
        config: Zero-replacement strategy

    Returns:
        1D array with one strictly positive constant per column

    Raises:
        InvalidInputError: Negative/non-finite entries or an all-zero column
    """
    validate_counts(data)
    col_sums = data.sum(axis=0)

    if config.mode is PseudocountMode.SUM_OVER_GEOMEAN:
        constants = col_sums / positive_geometric_mean(data)
    elif config.mode is PseudocountMode.SUM_OVER_MAX:
        constants = col_sums / data.max(axis=0)
    elif config.mode is PseudocountMode.SUM_OVER_FIXED:
        constants = col_sums / config.fixed_divisor
    else:
        constants = np.full(data.shape[1], float(config.value))

    logger.debug(
        f"Pseudocounts ({config.mode.value}): min={constants.min():.4g}, "
        f"median={np.median(constants):.4g}, max={constants.max():.4g}"
    )
    return constants


def add_pseudocount(matrix: ExpressionMatrix, config: PseudocountConfig) -> ExpressionMatrix:
    """Return a strictly positive copy of ``matrix`` with per-cell constants added."""
    constants = compute_pseudocounts(matrix.data, config)
    return matrix.with_data(matrix.data + constants[np.newaxis, :])


def log_adjusted(data: np.ndarray, config: PseudocountConfig) -> np.ndarray:
    """Natural log of the pseudo-count adjusted matrix."""
    constants = compute_pseudocounts(data, config)
    return np.log(data + constants[np.newaxis, :])


class PseudocountAdjuster(Transform):
    """
    Transform wrapper around :func:`add_pseudocount`.

    Examples:
        >>> adjuster = PseudocountAdjuster(PseudocountConfig())
        >>> positive = adjuster.apply(counts)
        >>> assert (positive.data > 0).all()
    """

    def __init__(self, config: PseudocountConfig | str | float | None = None):
        config = PseudocountConfig.parse(config)
        super().__init__(name="PseudocountAdjuster", params=config.to_dict())
        self.config = config

    def apply(self, matrix: ExpressionMatrix) -> ExpressionMatrix:
        return add_pseudocount(matrix, self.config)

    def validate(self, matrix: ExpressionMatrix) -> list[str]:
        errors = super().validate(matrix)
        if errors:
            return errors
        if np.any(matrix.data < 0):
            errors.append("Matrix contains negative values; counts must be >= 0")
        if np.any(~np.any(matrix.data > 0, axis=0)):
            errors.append("Matrix contains all-zero samples; remove empty cells first")
        return errors
