"""
Library-size log-normalization as an alternative to additive pseudo-counts.

Mirrors the normalization most single-cell pipelines have already applied
(Seurat ``LogNormalize``, scanpy ``normalize_total`` + ``log1p``):

    y_ij = log(1 + x_ij / sum_j * scale_factor)

CLR computed on these values is close to the ``s/10000`` pseudo-count CLR,
since log(x + s/10000) differs from log(1 + 10000 x / s) only by a per-cell
constant that centering removes. The normalized values are stored at the
precision of the configured dtype (float32 by default), so the two paths
agree to a few decimals but are not bitwise identical.
"""

from __future__ import annotations

import logging

import numpy as np

from codahd.coda.config import LogNormConfig
from codahd.core.errors import InvalidInputError
from codahd.core.matrix import ExpressionMatrix
from codahd.core.transform import Transform
from codahd.utils.statistics import validate_counts

logger = logging.getLogger(__name__)

__all__ = ['lognorm_adjust', 'LogNormAdjuster']


def lognorm_adjust(data: np.ndarray, config: LogNormConfig) -> np.ndarray:
    """
    Log-space matrix from raw counts or from already log-normalized values.

    Args:
        data: Counts (or log-normalized values when config.is_log_normalized)
        config: Log-normalization settings

    Returns:
        float64 array, same shape as data

    Raises:
        InvalidInputError: Negative/non-finite entries, or an all-zero column
            when normalizing raw counts
    """
    if config.is_log_normalized:
        validate_counts(data, allow_empty_columns=True)
        logger.debug("Input flagged as log-normalized; using values directly")
        return data.astype(float, copy=True)

    validate_counts(data)
    col_sums = data.sum(axis=0)
    scaled = (data / col_sums[np.newaxis, :] * config.scale_factor).astype(config.dtype)
    logged = np.log1p(scaled)

    if not np.all(np.isfinite(logged)):
        raise InvalidInputError(
            f"Log-normalization overflowed {config.dtype}; use a wider dtype or smaller scale_factor"
        )
    return logged.astype(float)


class LogNormAdjuster(Transform):
    """Transform wrapper around :func:`lognorm_adjust`."""

    def __init__(self, config: LogNormConfig | None = None):
        config = config or LogNormConfig()
        super().__init__(name="LogNormAdjuster", params=config.to_dict())
        self.config = config

    def apply(self, matrix: ExpressionMatrix) -> ExpressionMatrix:
        return matrix.with_data(lognorm_adjust(matrix.data, self.config))
