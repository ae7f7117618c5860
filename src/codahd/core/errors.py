"""
Exception taxonomy for log-ratio transforms.

Every failure in the transform engine is raised synchronously at the point of
detection as one of three types, so callers can tell bad data from bad
parameters from a numerical failure:

    InvalidInputError: the count matrix itself is unusable (negative or
        non-finite entries, all-zero cells, mismatched or duplicated names).
    InvalidConfigError: the request is unusable (unknown method, manual
        reference naming absent genes, missing group labels).
    ConvergenceError: an iterative reference selection (IQLR, LVHA, mdCLR)
        did not reach a fixed point within its iteration cap.

InvalidInputError and InvalidConfigError subclass ValueError so code written
against plain ValueError keeps working.
"""

from __future__ import annotations

__all__ = [
    'CodaError',
    'InvalidInputError',
    'InvalidConfigError',
    'ConvergenceError',
]


class CodaError(Exception):
    """Base class for all codahd errors."""


class InvalidInputError(CodaError, ValueError):
    """Malformed count matrix."""


class InvalidConfigError(CodaError, ValueError):
    """Invalid transform configuration."""


class ConvergenceError(CodaError, RuntimeError):
    """Iterative reference selection failed to stabilize."""

    def __init__(self, message: str, method: str = "", n_iterations: int = 0):
        super().__init__(message)
        self.method = method
        self.n_iterations = n_iterations
