"""
Core data structures and abstractions.

1. ExpressionMatrix: gene-by-cell matrix with names and cell annotations
2. Transform: abstract base class for immutable matrix transformations
3. Error taxonomy: InvalidInputError, InvalidConfigError, ConvergenceError

Examples:
    >>> from codahd.core import ExpressionMatrix, Transform
"""

from codahd.core.errors import (
    CodaError,
    ConvergenceError,
    InvalidConfigError,
    InvalidInputError,
)
from codahd.core.matrix import ExpressionMatrix
from codahd.core.transform import Transform

__all__ = [
    'ExpressionMatrix',
    'Transform',
    'CodaError',
    'InvalidInputError',
    'InvalidConfigError',
    'ConvergenceError',
]
