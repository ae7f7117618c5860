"""
Base transformation framework for immutable matrix operations.

Every step of the log-ratio pipeline (pseudo-count adjustment, log
normalization, the log-ratio transform itself) is a Transform: a pure
function from one ExpressionMatrix to a new one, with its parameters recorded
for provenance.

Engineering Design:
    Pure Functions:
        - No side effects (input matrix is never modified)
        - Deterministic (same input + params → same output)
        - Composable (chain transformations)

Examples:
    >>> from codahd.core.transform import Transform
    >>>
    >>> class Log1p(Transform):
    ...     def __init__(self):
    ...         super().__init__(name="Log1p", params={})
    ...
    ...     def apply(self, matrix):
    ...         import numpy as np
    ...         return matrix.with_data(np.log1p(matrix.data))
    >>>
    >>> transformed = Log1p().apply(counts)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, TYPE_CHECKING
from datetime import datetime

import numpy as np

if TYPE_CHECKING:
    from codahd.core.matrix import ExpressionMatrix

__all__ = ['Transform']


class Transform(ABC):
    """
    Abstract base class for all matrix transformations.

    Attributes:
        name: Human-readable transformation name (e.g., "LogRatioTransform")
        params: JSON-serializable parameters used for this transformation
        timestamp: When this transform instance was created (for audit trail)
    """

    def __init__(self, name: str, params: dict[str, Any]) -> None:
        self.name = name
        self.params = params
        self.timestamp = datetime.now()

    @abstractmethod
    def apply(self, matrix: ExpressionMatrix) -> ExpressionMatrix:
        """
        Execute transformation and return new matrix.

        Must never modify the input matrix.

        Raises:
            InvalidInputError: If the matrix cannot be transformed
            InvalidConfigError: If the parameters are unusable for this matrix
        """

    def validate(self, matrix: ExpressionMatrix) -> list[str]:
        """
        Check preconditions before applying transformation.

        Subclasses should override and call super().validate() first.

        Returns:
            List of error messages (empty list = valid)
        """
        errors: list[str] = []

        if matrix.data.size == 0:
            errors.append("Cannot process empty matrix")
        elif not np.all(np.isfinite(matrix.data)):
            errors.append("Matrix contains NaN or infinite values")

        return errors

    def __repr__(self) -> str:
        """String like "PseudocountAdjuster(mode=s/gm, value=None)"."""
        params_str = ", ".join(f"{k}={v}" for k, v in self.params.items())
        return f"{self.name}({params_str})"
