"""
Log-ratio transform pipeline.

    counts ──► zero handling ──► log space L ──► reference selection ──► L - ref
               (pseudo-count        (features ×     (per sample)           (ILR: V L)
                or LogNorm)          samples)

The output is a drop-in replacement for a log-normalized expression matrix:
same genes (ILR: D - 1 balances), same cells in the same order, cell
annotations carried over.

Examples:
    >>> from codahd.coda.transformer import TransformConfig, log_ratio_transform, clr
    >>> from codahd.coda.reference import IQLR
    >>>
    >>> clr_matrix = clr(counts)                                  # s/gm pseudo-count
    >>> clr_fixed = clr(counts, pseudocount="s/10000")
    >>> iqlr_matrix = log_ratio_transform(counts, TransformConfig(method=IQLR()))
    >>>
    >>> config = TransformConfig.from_dict({
    ...     'method': 'group-iqlr',
    ...     'method_params': {'groups': 'cell_type', 'max_iter': 50},
    ...     'pseudocount': {'mode': 's/max'},
    ... })
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np

from codahd.coda.config import LogNormConfig, PseudocountConfig
from codahd.coda.lognorm import lognorm_adjust
from codahd.coda.pseudocount import log_adjusted
from codahd.coda.reference import (
    CLR,
    GroupedMethod,
    ILR,
    IterativeMethod,
    Manual,
    ReferenceMethod,
    ReferenceSelection,
    parse_method,
    select_reference,
)
from codahd.core.errors import InvalidConfigError, InvalidInputError
from codahd.core.matrix import ExpressionMatrix
from codahd.core.transform import Transform

logger = logging.getLogger(__name__)

__all__ = [
    'TransformConfig',
    'log_adjusted_matrix',
    'transform_with_reference',
    'log_ratio_transform',
    'LogRatioTransform',
    'clr',
]

_CONFIG_KEYS = {'method', 'method_params', 'pseudocount', 'lognorm'}


@dataclass(frozen=True)
class TransformConfig:
    """
    Complete description of one log-ratio transform.

    Attributes:
        method: Reference-method variant (default: plain CLR)
        pseudocount: Zero-replacement strategy (ignored when lognorm is set)
        lognorm: When set, library-size log-normalization replaces the
            pseudo-count path
    """

    method: ReferenceMethod = field(default_factory=CLR)
    pseudocount: PseudocountConfig = field(default_factory=PseudocountConfig)
    lognorm: Optional[LogNormConfig] = None

    def __post_init__(self):
        object.__setattr__(self, 'method', parse_method(self.method))
        object.__setattr__(self, 'pseudocount', PseudocountConfig.parse(self.pseudocount))
        object.__setattr__(self, 'lognorm', LogNormConfig.parse(self.lognorm))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TransformConfig:
        """
        Build from a JSON/YAML mapping.

        Keys: ``method`` (name), ``method_params`` (mapping), ``pseudocount``
        (mode string, number or mapping), ``lognorm`` (bool or mapping).

        Raises:
            InvalidConfigError: Unknown keys or invalid values
        """
        unknown = sorted(set(data) - _CONFIG_KEYS)
        if unknown:
            raise InvalidConfigError(
                f"Unknown transform config key(s): {unknown}. Accepted: {sorted(_CONFIG_KEYS)}"
            )
        method_params = data.get('method_params') or {}
        if not isinstance(method_params, dict):
            raise InvalidConfigError(f"method_params must be a mapping, got {type(method_params)}")

        return cls(
            method=parse_method(data.get('method', 'clr'), **method_params),
            pseudocount=PseudocountConfig.parse(data.get('pseudocount')),
            lognorm=LogNormConfig.parse(data.get('lognorm')),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            'method': self.method.name,
            'method_params': self.method.params(),
            'pseudocount': self.pseudocount.to_dict(),
            'lognorm': self.lognorm.to_dict() if self.lognorm is not None else None,
        }

    def describe_zero_handling(self) -> str:
        if self.lognorm is None:
            if self.pseudocount.value is not None:
                return f"pseudocount={self.pseudocount.value:g}"
            return f"pseudocount={self.pseudocount.mode.value}"
        if self.lognorm.is_log_normalized:
            return "lognorm (pre-normalized input)"
        return f"lognorm (scale_factor={self.lognorm.scale_factor:g})"


def log_adjusted_matrix(data: np.ndarray, config: TransformConfig) -> np.ndarray:
    """Log-space matrix L from raw counts (pseudo-count or LogNorm path)."""
    if config.lognorm is not None:
        return lognorm_adjust(data, config.lognorm)
    return log_adjusted(data, config.pseudocount)


def transform_with_reference(
    matrix: ExpressionMatrix,
    config: Optional[TransformConfig] = None,
) -> tuple[ExpressionMatrix, ReferenceSelection]:
    """
    Log-ratio transform that also returns the reference selection.

    Raises:
        InvalidInputError: Unusable counts
        InvalidConfigError: Configuration does not fit this matrix
        ConvergenceError: Iterative reference selection failed
    """
    config = config or TransformConfig()
    logger.info(
        f"Log-ratio transform: method={config.method.name}, {config.describe_zero_handling()}, "
        f"{matrix.n_features} features × {matrix.n_samples} samples"
    )

    log_data = log_adjusted_matrix(matrix.data, config)
    selection = select_reference(
        log_data,
        config.method,
        matrix.feature_ids,
        matrix.sample_ids,
        matrix.sample_metadata,
    )
    values, row_ids = config.method.transform(log_data, selection, matrix.feature_ids)

    if not np.all(np.isfinite(values)):
        raise InvalidInputError("Log-ratio transform produced non-finite values")

    n_ref = selection.n_reference_features
    logger.debug(
        f"{selection.method}: reference size min={int(n_ref.min())}, max={int(n_ref.max())}, "
        f"iterations={selection.n_iterations}"
    )
    return matrix.with_data(values, feature_ids=row_ids), selection


def log_ratio_transform(
    matrix: ExpressionMatrix,
    config: Optional[TransformConfig] = None,
) -> ExpressionMatrix:
    """
    Transform a raw count matrix (features × samples) into log-ratios.

    The input matrix is not modified. Output has the same shape and names,
    except ILR which returns D - 1 rows labelled by contrast.
    """
    result, _ = transform_with_reference(matrix, config)
    return result


def clr(matrix: ExpressionMatrix, pseudocount: PseudocountConfig | str | float = "s/gm") -> ExpressionMatrix:
    """Plain centered log-ratio."""
    return log_ratio_transform(matrix, TransformConfig(method=CLR(), pseudocount=pseudocount))


class LogRatioTransform(Transform):
    """
    Transform wrapper around :func:`log_ratio_transform`.

    Examples:
        >>> transform = LogRatioTransform(TransformConfig(method=IQLR()))
        >>> errors = transform.validate(counts)
        >>> if not errors:
        ...     result = transform.apply(counts)
    """

    def __init__(self, config: Optional[TransformConfig] = None):
        config = config or TransformConfig()
        super().__init__(name="LogRatioTransform", params=config.to_dict())
        self.config = config

    def apply(self, matrix: ExpressionMatrix) -> ExpressionMatrix:
        return log_ratio_transform(matrix, self.config)

    def validate(self, matrix: ExpressionMatrix) -> list[str]:
        errors = super().validate(matrix)
        if errors:
            return errors

        data = matrix.data
        method = self.config.method
        pre_normalized = self.config.lognorm is not None and self.config.lognorm.is_log_normalized

        if np.any(data < 0):
            errors.append("Matrix contains negative values; counts must be >= 0")
        elif not pre_normalized and np.any(~np.any(data > 0, axis=0)):
            errors.append("Matrix contains all-zero samples; remove empty cells first")

        if isinstance(method, ILR) and matrix.n_features < 2:
            errors.append(f"ILR needs at least 2 features, got {matrix.n_features}")

        if isinstance(method, IterativeMethod) and matrix.n_samples < 2:
            errors.append(f"{method.name} needs at least 2 samples, got {matrix.n_samples}")

        if isinstance(method, Manual):
            missing = [f for f in method.features if f not in matrix.feature_ids]
            if missing:
                errors.append(f"Manual reference features not in matrix: {missing[:10]}")

        if isinstance(method, GroupedMethod) and isinstance(method.groups, str):
            if method.groups not in matrix.sample_metadata.columns:
                errors.append(f"Group column '{method.groups}' not in sample metadata")

        return errors
