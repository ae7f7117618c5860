"""
codahd: compositional data analysis transforms for single-cell RNA-seq.

Centered log-ratio (CLR) and its robust variants (IQLR, LVHA, mdCLR),
manual-reference and grouped CLR, and the isometric log-ratio (ILR), with
per-cell pseudo-count or library-size log-normalization zero handling.

Examples:
    >>> from codahd import load_matrix, log_ratio_transform, TransformConfig, IQLR
    >>> counts = load_matrix("counts.tsv")
    >>> iqlr = log_ratio_transform(counts, TransformConfig(method=IQLR(), pseudocount="s/gm"))
"""

__version__ = "0.1.0"

from codahd.coda import (
    CLR,
    ILR,
    IQLR,
    LVHA,
    GroupIQLR,
    GroupLVHA,
    LogNormConfig,
    LogRatioTransform,
    Manual,
    MdCLR,
    PseudocountConfig,
    PseudocountMode,
    TransformConfig,
    clr,
    compare_matrices,
    log_ratio_transform,
    parse_method,
)
from codahd.core import (
    CodaError,
    ConvergenceError,
    ExpressionMatrix,
    InvalidConfigError,
    InvalidInputError,
    Transform,
)
from codahd.io import load_matrix, load_sample_metadata, write_matrix

__all__ = [
    '__version__',
    'ExpressionMatrix',
    'Transform',
    'CodaError',
    'InvalidInputError',
    'InvalidConfigError',
    'ConvergenceError',
    'TransformConfig',
    'PseudocountConfig',
    'PseudocountMode',
    'LogNormConfig',
    'CLR',
    'IQLR',
    'LVHA',
    'MdCLR',
    'Manual',
    'GroupIQLR',
    'GroupLVHA',
    'ILR',
    'parse_method',
    'log_ratio_transform',
    'LogRatioTransform',
    'clr',
    'compare_matrices',
    'load_matrix',
    'load_sample_metadata',
    'write_matrix',
]
