"""
Compositional log-ratio transforms for single-cell count matrices.

Modules:
    config       Pseudo-count, LogNorm and convergence settings
    pseudocount  Per-cell additive zero replacement
    lognorm      Library-size log-normalization path
    reference    Reference-method variants (CLR, IQLR, LVHA, mdCLR, manual,
                 groupIQLR, groupLVHA, ILR)
    ilr          Orthonormal ILR bases
    transformer  End-to-end log-ratio transform
    compare      Agreement between two transformed matrices
"""

from codahd.coda.compare import ComparisonResult, compare_matrices
from codahd.coda.config import (
    ConvergenceCriteria,
    LogNormConfig,
    PseudocountConfig,
    PseudocountMode,
)
from codahd.coda.ilr import ilr_basis, ilr_coordinates
from codahd.coda.lognorm import LogNormAdjuster, lognorm_adjust
from codahd.coda.pseudocount import PseudocountAdjuster, add_pseudocount, compute_pseudocounts
from codahd.coda.reference import (
    CLR,
    ILR,
    IQLR,
    LVHA,
    METHOD_NAMES,
    GroupIQLR,
    GroupLVHA,
    Manual,
    MdCLR,
    ReferenceMethod,
    ReferenceSelection,
    parse_method,
    select_reference,
)
from codahd.coda.transformer import (
    LogRatioTransform,
    TransformConfig,
    clr,
    log_ratio_transform,
    transform_with_reference,
)

__all__ = [
    # Configuration
    'PseudocountMode',
    'PseudocountConfig',
    'LogNormConfig',
    'ConvergenceCriteria',
    'TransformConfig',
    # Zero handling
    'compute_pseudocounts',
    'add_pseudocount',
    'PseudocountAdjuster',
    'lognorm_adjust',
    'LogNormAdjuster',
    # Reference selection
    'ReferenceMethod',
    'ReferenceSelection',
    'CLR',
    'IQLR',
    'LVHA',
    'MdCLR',
    'Manual',
    'GroupIQLR',
    'GroupLVHA',
    'ILR',
    'METHOD_NAMES',
    'parse_method',
    'select_reference',
    'ilr_basis',
    'ilr_coordinates',
    # Transform
    'log_ratio_transform',
    'transform_with_reference',
    'LogRatioTransform',
    'clr',
    # Comparison
    'ComparisonResult',
    'compare_matrices',
]
