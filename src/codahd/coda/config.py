"""
Configuration records for log-ratio transforms.

All tunable constants (pseudo-count divisor, log-normalization scale factor,
iteration caps, tolerances) live here as fields of frozen dataclasses that are
built once per call and passed explicitly. Nothing is read from module state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from numbers import Real
from typing import Any, Optional

import numpy as np

from codahd.core.errors import InvalidConfigError

__all__ = [
    'PseudocountMode',
    'PseudocountConfig',
    'LogNormConfig',
    'ConvergenceCriteria',
]


class PseudocountMode(Enum):
    """Zero-replacement strategies (additive constant per cell)."""

    SUM_OVER_GEOMEAN = "s/gm"   # default
    SUM_OVER_MAX = "s/max"
    SUM_OVER_FIXED = "s/10000"
    MANUAL = "manual"

    @classmethod
    def parse(cls, value: str | PseudocountMode) -> PseudocountMode:
        if isinstance(value, PseudocountMode):
            return value
        key = str(value).strip().lower()
        for mode in cls:
            if mode.value == key:
                return mode
        raise InvalidConfigError(
            f"Unknown pseudocount mode: '{value}'. "
            f"Must be one of {[m.value for m in cls]} or a positive number"
        )


@dataclass(frozen=True)
class PseudocountConfig:
    """
    Zero-replacement strategy.

    Attributes:
        mode: Which additive constant to use (default: s/gm)
        value: Scalar pseudo-count, required for MANUAL and rejected otherwise
        fixed_divisor: Divisor of the column sum for s/10000
    """

    mode: PseudocountMode = PseudocountMode.SUM_OVER_GEOMEAN
    value: Optional[float] = None
    fixed_divisor: float = 10000.0

    def __post_init__(self):
        if not isinstance(self.mode, PseudocountMode):
            object.__setattr__(self, 'mode', PseudocountMode.parse(self.mode))

        if self.mode is PseudocountMode.MANUAL:
            if self.value is None:
                raise InvalidConfigError("Manual pseudocount mode requires a value")
            if not isinstance(self.value, Real) or not np.isfinite(self.value) or self.value <= 0:
                raise InvalidConfigError(
                    f"Manual pseudocount must be a positive finite number, got {self.value!r}"
                )
        elif self.value is not None:
            raise InvalidConfigError(
                f"Pseudocount value is only used with mode 'manual' (got mode '{self.mode.value}')"
            )

        if not np.isfinite(self.fixed_divisor) or self.fixed_divisor <= 0:
            raise InvalidConfigError(
                f"fixed_divisor must be positive, got {self.fixed_divisor!r}"
            )

    @classmethod
    def parse(cls, spec: Any) -> PseudocountConfig:
        """
        Build from a CLI/config value.

        Accepts an existing config, a mode name ("s/gm", "s/max", "s/10000"),
        a number (manual pseudo-count), or a mapping with "mode"/"value" keys.
        """
        if isinstance(spec, PseudocountConfig):
            return spec
        if spec is None:
            return cls()
        if isinstance(spec, dict):
            return cls(
                mode=PseudocountMode.parse(spec.get('mode', PseudocountMode.SUM_OVER_GEOMEAN)),
                value=spec.get('value'),
                fixed_divisor=float(spec.get('fixed_divisor', 10000.0)),
            )
        if isinstance(spec, Real) and not isinstance(spec, bool):
            return cls(mode=PseudocountMode.MANUAL, value=float(spec))
        if isinstance(spec, str):
            try:
                number = float(spec)
            except ValueError:
                return cls(mode=PseudocountMode.parse(spec))
            return cls(mode=PseudocountMode.MANUAL, value=number)
        raise InvalidConfigError(f"Cannot interpret pseudocount setting: {spec!r}")

    def to_dict(self) -> dict[str, Any]:
        return {
            'mode': self.mode.value,
            'value': self.value,
            'fixed_divisor': self.fixed_divisor,
        }


@dataclass(frozen=True)
class LogNormConfig:
    """
    Library-size log-normalization used instead of an additive pseudo-count.

    Attributes:
        is_log_normalized: Input already holds log-normalized values
        scale_factor: Target library size before log1p (Seurat default 10000)
        dtype: Storage precision of the normalized values. Single-cell
            toolkits keep normalized data in float32.
    """

    is_log_normalized: bool = False
    scale_factor: float = 10000.0
    dtype: str = "float32"

    def __post_init__(self):
        if not np.isfinite(self.scale_factor) or self.scale_factor <= 0:
            raise InvalidConfigError(
                f"scale_factor must be positive, got {self.scale_factor!r}"
            )
        try:
            kind = np.dtype(self.dtype).kind
        except TypeError as e:
            raise InvalidConfigError(f"Invalid dtype: {self.dtype!r}") from e
        if kind != 'f':
            raise InvalidConfigError(f"dtype must be a floating type, got {self.dtype!r}")

    @classmethod
    def parse(cls, spec: Any) -> Optional[LogNormConfig]:
        """Build from a config value: None/False (disabled), True, or a mapping."""
        if spec is None or spec is False:
            return None
        if isinstance(spec, LogNormConfig):
            return spec
        if spec is True:
            return cls()
        if isinstance(spec, dict):
            return cls(
                is_log_normalized=bool(spec.get('is_log_normalized', False)),
                scale_factor=float(spec.get('scale_factor', 10000.0)),
                dtype=str(spec.get('dtype', 'float32')),
            )
        raise InvalidConfigError(f"Cannot interpret lognorm setting: {spec!r}")

    def to_dict(self) -> dict[str, Any]:
        return {
            'is_log_normalized': self.is_log_normalized,
            'scale_factor': self.scale_factor,
            'dtype': self.dtype,
        }


@dataclass(frozen=True)
class ConvergenceCriteria:
    """
    Fixed-point criterion for iterative reference selection.

    An iteration has converged when the selected feature set is unchanged and
    the per-sample log reference moved by at most ``tol``. Iterations beyond
    ``max_iter`` raise ConvergenceError.
    """

    max_iter: int = 100
    tol: float = 1e-10

    def __post_init__(self):
        if isinstance(self.max_iter, bool) or not isinstance(self.max_iter, (int, np.integer)):
            raise InvalidConfigError(f"max_iter must be an integer, got {self.max_iter!r}")
        if self.max_iter < 1:
            raise InvalidConfigError(f"max_iter must be >= 1, got {self.max_iter}")
        if not np.isfinite(self.tol) or self.tol < 0:
            raise InvalidConfigError(f"tol must be a non-negative number, got {self.tol!r}")
