"""Shared statistics and file utilities."""

from codahd.utils.fileio import atomic_write_json
from codahd.utils.statistics import (
    feature_dispersion,
    positive_geometric_mean,
    validate_counts,
)

__all__ = [
    'atomic_write_json',
    'validate_counts',
    'positive_geometric_mean',
    'feature_dispersion',
]
